"""Core 异常体系

校验类错误均可恢复：报告一次，不修改任何状态。
"""


class DeployDeskError(Exception):
    """Core 基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述（面向操作者）
            recoverable: 是否可由操作者修正后重试
        """
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class OperationNotApplicableError(DeployDeskError):
    """操作不适用于当前状态"""

    def __init__(self, status: str, operation: str, operation_name: str | None = None) -> None:
        super().__init__(f"{operation_name or operation}操作不适用于当前状态")
        self.status = status
        self.operation = operation


class InvalidDeployOrderError(DeployDeskError):
    """部署顺序输入非法，或任务不在待部署状态"""


class NoEligibleTasksError(DeployDeskError):
    """没有可加入批次的任务（需选中、待部署且已有部署顺序）"""

    def __init__(self, message: str = "请选择有部署顺序的待部署任务") -> None:
        super().__init__(message)


class TaskNotFoundError(DeployDeskError):
    """任务不存在"""

    def __init__(self, key: str) -> None:
        super().__init__(f"任务不存在: {key}")
        self.key = key


class DuplicateTaskKeyError(DeployDeskError):
    """新增任务的 key 与已有任务冲突"""

    def __init__(self, key: str) -> None:
        super().__init__(f"任务 key 重复: {key}")
        self.key = key
