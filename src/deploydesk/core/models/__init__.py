"""deploydesk Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .batch import BatchInfo, BatchPartition
from .commands import (
    AddTasks,
    ChangeDeployOrder,
    DeleteTask,
    ReallocateOrders,
    ReplaceTasks,
    TaskCommand,
    UpdateTask,
)
from .enums import (
    DELETABLE_STATES,
    PHASED_OPERATIONS,
    STATUS_LABELS,
    STATUS_TRANSITIONS,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    DeploymentStatus,
    OperationType,
    Transition,
    transition_target,
    validate_transition,
)
from .task import DeploymentTask

__all__ = [
    # 枚举
    "DeploymentStatus",
    "OperationType",
    # 状态机
    "Transition",
    "STATUS_LABELS",
    "STATUS_TRANSITIONS",
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "DELETABLE_STATES",
    "PHASED_OPERATIONS",
    "validate_transition",
    "transition_target",
    # Task
    "DeploymentTask",
    # Batch
    "BatchInfo",
    "BatchPartition",
    # Commands
    "TaskCommand",
    "ReplaceTasks",
    "UpdateTask",
    "DeleteTask",
    "AddTasks",
    "ReallocateOrders",
    "ChangeDeployOrder",
]
