"""Backend 异常体系"""


class BackendError(Exception):
    """Backend 包基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class UnsupportedOperationError(BackendError):
    """后端不处理该操作（例如删除只在本地执行）"""

    def __init__(self, operation: str) -> None:
        super().__init__(f"后端不支持的操作: {operation}", recoverable=False)
        self.operation = operation
