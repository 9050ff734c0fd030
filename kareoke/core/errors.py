"""
错误类型定义

队列引擎和存储层统一使用的异常体系。每个异常都携带 queue_id、position 和
operation 上下文，调用方可以直接记录日志或映射为面向用户的响应。
"""

from typing import Any, Dict, Optional


class KareokeError(Exception):
    """
    Kareoke 基础异常

    Args:
        message: 错误描述
        queue_id: 相关队列ID
        position: 相关位置
        operation: 发生错误的操作名称
    """

    def __init__(
        self,
        message: str,
        queue_id: Optional[str] = None,
        position: Optional[float] = None,
        operation: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.queue_id = queue_id
        self.position = position
        self.operation = operation

    def context(self) -> Dict[str, Any]:
        """返回非空的上下文字段"""
        context = {
            'queue_id': self.queue_id,
            'position': self.position,
            'operation': self.operation,
        }
        return {key: value for key, value in context.items() if value is not None}

    def __str__(self) -> str:
        context = self.context()
        if not context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in context.items())
        return f"{self.message} ({details})"


class ValidationError(KareokeError):
    """输入缺失或无效，在访问存储之前抛出"""


class NotFoundError(KareokeError):
    """引用的位置或歌曲不存在"""


class ConflictError(KareokeError):
    """位置冲突 - 说明位置分配算法或并发控制存在问题"""


class StoreError(KareokeError):
    """底层持久化失败，始终向上传播"""
