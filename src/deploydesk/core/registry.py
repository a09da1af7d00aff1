"""Status Registry -- 状态对应的可用操作

由 STATUS_TRANSITIONS 推导主操作；删除作为独立的策略标记放在次要操作中。
仅用于决定哪些操作可用，不执行任何流转。
"""

from pydantic import BaseModel, Field

from .models.enums import DELETABLE_STATES, DeploymentStatus, OperationType

# 操作展示名称
OPERATION_NAMES: dict[OperationType, str] = {
    OperationType.DEPLOY: "部署",
    OperationType.WHITELIST: "申请加白",
    OperationType.VERIFY_PASS: "验证通过",
    OperationType.ROLLBACK: "回滚",
    OperationType.OPS_INTERVENTION: "运维介入",
    OperationType.DELETE: "删除",
}

# 每个状态的主操作与次要操作（不含删除）；enabled 为 False 表示展示但禁用
_PRIMARY: dict[DeploymentStatus, tuple[OperationType, bool]] = {
    DeploymentStatus.PENDING: (OperationType.DEPLOY, True),
    DeploymentStatus.APPROVING: (OperationType.DEPLOY, False),
    DeploymentStatus.DEPLOYING: (OperationType.DEPLOY, False),
    DeploymentStatus.DEPLOYED: (OperationType.VERIFY_PASS, True),
    DeploymentStatus.DEPLOYMENT_FAILED: (OperationType.ROLLBACK, True),
    DeploymentStatus.ROLLING_BACK: (OperationType.OPS_INTERVENTION, True),
    DeploymentStatus.DEPLOYMENT_ENDED: (OperationType.OPS_INTERVENTION, False),
}

_SECONDARY: dict[DeploymentStatus, list[OperationType]] = {
    DeploymentStatus.PENDING: [OperationType.WHITELIST],
    DeploymentStatus.DEPLOYMENT_FAILED: [OperationType.OPS_INTERVENTION],
}


class OperationSlot(BaseModel):
    """单个操作入口"""

    operation: OperationType
    label: str
    enabled: bool = Field(default=True)


class AvailableOperations(BaseModel):
    """状态对应的主操作 + 次要操作列表"""

    primary: OperationSlot | None = None
    secondary: list[OperationSlot] = Field(default_factory=list)

    def enabled_operations(self) -> set[OperationType]:
        slots = ([self.primary] if self.primary else []) + self.secondary
        return {slot.operation for slot in slots if slot.enabled}


def get_operation_name(operation: OperationType) -> str:
    """获取操作类型的展示名称"""
    return OPERATION_NAMES.get(operation, "未知操作")


def _slot(operation: OperationType, enabled: bool) -> OperationSlot:
    return OperationSlot(
        operation=operation,
        label=get_operation_name(operation),
        enabled=enabled,
    )


def get_available_operations(status: DeploymentStatus) -> AvailableOperations:
    """根据状态获取操作配置

    Returns:
        AvailableOperations，secondary 末尾总是包含删除入口
    """
    primary = _PRIMARY.get(status)
    secondary = [_slot(op, True) for op in _SECONDARY.get(status, [])]
    secondary.append(_slot(OperationType.DELETE, status in DELETABLE_STATES))
    return AvailableOperations(
        primary=_slot(*primary) if primary else None,
        secondary=secondary,
    )


def is_operation_applicable(status: DeploymentStatus, operation: OperationType) -> bool:
    """检查操作是否适用于当前状态"""
    return operation in get_available_operations(status).enabled_operations()
