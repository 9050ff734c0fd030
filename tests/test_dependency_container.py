"""
依赖注入容器测试
"""

import unittest
from unittest.mock import Mock

from kareoke.core.dependency_container import DependencyContainer


class TestDependencyContainer(unittest.TestCase):
    """依赖注入容器测试类"""

    def setUp(self):
        self.container = DependencyContainer()

    def test_resolves_dependencies_in_order(self):
        self.container.register_singleton("config", lambda: {"path": "x.db"})
        self.container.register_singleton(
            "database", lambda config: ("db", config["path"]), ["config"]
        )

        self.assertTrue(self.container.validate_dependencies())
        self.assertEqual(self.container.resolve("database"), ("db", "x.db"))

    def test_singleton_created_once(self):
        factory = Mock(return_value=object())
        self.container.register_singleton("service", factory)

        first = self.container.resolve("service")
        second = self.container.resolve("service")

        self.assertIs(first, second)
        factory.assert_called_once_with()

    def test_duplicate_registration(self):
        self.container.register_singleton("service", object)
        with self.assertRaises(ValueError):
            self.container.register_singleton("service", object)

    def test_unregistered_dependency(self):
        with self.assertRaises(ValueError):
            self.container.resolve("missing")

        self.container.register_singleton("service", lambda missing: missing, ["missing"])
        with self.assertRaises(RuntimeError):
            self.container.validate_dependencies()
        with self.assertRaises(RuntimeError):
            self.container.resolve("service")

    def test_circular_dependency(self):
        self.container.register_singleton("a", lambda b: b, ["b"])
        self.container.register_singleton("b", lambda a: a, ["a"])

        with self.assertRaises(RuntimeError):
            self.container.validate_dependencies()
        with self.assertRaises(RuntimeError):
            self.container.resolve("a")

    def test_factory_failure_wrapped(self):
        def broken():
            raise OSError("disk full")

        self.container.register_singleton("broken", broken)

        with self.assertRaises(RuntimeError) as context:
            self.container.resolve("broken")
        self.assertIsInstance(context.exception.__cause__, OSError)


if __name__ == '__main__':
    unittest.main()
