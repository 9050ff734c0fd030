"""
依赖注入容器

按注册的依赖关系创建组件，确保数据库、曲库、通知器和队列注册表
按正确顺序初始化，并避免循环依赖。
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


@dataclass
class DependencyRegistration:
    """依赖项注册信息"""
    factory: Callable[..., Any]
    dependencies: List[str] = field(default_factory=list)
    instance: Optional[Any] = None
    initialized: bool = False


class DependencyContainer:
    """
    依赖注入容器

    所有依赖项均为单例：第一次解析时创建，之后返回同一实例。
    """

    def __init__(self):
        self.logger = logging.getLogger("kareoke.core.dependency")
        self._registrations: Dict[str, DependencyRegistration] = {}
        self._initializing: set = set()

    def register_singleton(
        self,
        name: str,
        factory: Callable[..., Any],
        dependencies: Optional[List[str]] = None
    ) -> None:
        """
        注册单例依赖项

        Args:
            name: 依赖项名称
            factory: 创建实例的工厂函数，依赖项以同名关键字参数传入
            dependencies: 依赖的其他组件名称列表

        Raises:
            ValueError: 名称已注册
        """
        if name in self._registrations:
            raise ValueError(f"依赖项 '{name}' 已经注册")

        self._registrations[name] = DependencyRegistration(
            factory=factory,
            dependencies=list(dependencies or [])
        )
        self.logger.debug(f"📝 注册依赖项: {name}")

    def resolve(self, name: str) -> Any:
        """
        解析依赖项

        Args:
            name: 依赖项名称

        Returns:
            依赖项实例

        Raises:
            ValueError: 依赖项未注册
            RuntimeError: 循环依赖或创建失败
        """
        if name not in self._registrations:
            raise ValueError(f"依赖项 '{name}' 未注册")

        registration = self._registrations[name]
        if registration.initialized:
            return registration.instance

        if name in self._initializing:
            raise RuntimeError(f"检测到循环依赖: {name}")

        try:
            self._initializing.add(name)
            resolved_dependencies = {
                dep_name: self.resolve(dep_name) for dep_name in registration.dependencies
            }
            instance = registration.factory(**resolved_dependencies)
            registration.instance = instance
            registration.initialized = True
            self.logger.debug(f"✅ 依赖项解析完成: {name}")
            return instance
        except RuntimeError:
            raise
        except Exception as e:
            self.logger.error(f"❌ 依赖项解析失败: {name} - {e}", exc_info=True)
            raise RuntimeError(f"依赖项 '{name}' 解析失败: {e}") from e
        finally:
            self._initializing.discard(name)

    def validate_dependencies(self) -> bool:
        """
        验证依赖关系是否有效（依赖均已注册且无循环依赖）

        Returns:
            True 如果依赖关系有效

        Raises:
            RuntimeError: 存在未注册的依赖或循环依赖
        """
        visited = set()
        rec_stack = set()

        def has_cycle(node: str) -> bool:
            if node in rec_stack:
                return True
            if node in visited:
                return False

            visited.add(node)
            rec_stack.add(node)
            for dep in self._registrations[node].dependencies:
                if dep not in self._registrations:
                    raise RuntimeError(f"依赖项 '{dep}' 未注册（被 '{node}' 依赖）")
                if has_cycle(dep):
                    return True
            rec_stack.remove(node)
            return False

        for name in self._registrations:
            if has_cycle(name):
                raise RuntimeError(f"检测到循环依赖，涉及组件: {name}")

        self.logger.debug("✅ 依赖关系验证通过")
        return True
