"""枚举定义 -- 部署任务状态机

包含 DeploymentStatus 状态机、OperationType 操作类型，
以及 STATUS_TRANSITIONS 流转规则、VALID_TRANSITIONS 合法流转映射和 TERMINAL_STATES 终态集合。
"""

from enum import StrEnum
from typing import NamedTuple


class DeploymentStatus(StrEnum):
    """部署任务状态机"""

    # 初始状态
    PENDING = "PENDING"
    # 进行中状态（所有操作按钮被禁用）
    APPROVING = "APPROVING"
    DEPLOYING = "DEPLOYING"
    # 等待人工处理
    DEPLOYED = "DEPLOYED"
    DEPLOYMENT_FAILED = "DEPLOYMENT_FAILED"
    ROLLING_BACK = "ROLLING_BACK"
    # 终态
    DEPLOYMENT_ENDED = "DEPLOYMENT_ENDED"


class OperationType(StrEnum):
    """操作类型"""

    DEPLOY = "deploy"
    WHITELIST = "whitelist"
    VERIFY_PASS = "verify_pass"
    ROLLBACK = "rollback"
    OPS_INTERVENTION = "ops_intervention"
    DELETE = "delete"


class Transition(NamedTuple):
    """单条流转规则：action 触发后进入 target"""

    action: str
    target: DeploymentStatus


# 状态展示名称
STATUS_LABELS: dict[DeploymentStatus, str] = {
    DeploymentStatus.PENDING: "待部署",
    DeploymentStatus.APPROVING: "审批中",
    DeploymentStatus.DEPLOYING: "部署中",
    DeploymentStatus.DEPLOYED: "部署完成",
    DeploymentStatus.DEPLOYMENT_FAILED: "部署失败",
    DeploymentStatus.ROLLING_BACK: "回滚中",
    DeploymentStatus.DEPLOYMENT_ENDED: "部署结束",
}

# 状态流转规则；非 OperationType 的 action 由后端结果驱动
STATUS_TRANSITIONS: dict[DeploymentStatus, list[Transition]] = {
    DeploymentStatus.PENDING: [
        Transition(OperationType.DEPLOY, DeploymentStatus.DEPLOYING),
        Transition(OperationType.WHITELIST, DeploymentStatus.APPROVING),
    ],
    DeploymentStatus.APPROVING: [
        Transition("approve", DeploymentStatus.PENDING),
        Transition("reject", DeploymentStatus.PENDING),
    ],
    DeploymentStatus.DEPLOYING: [
        Transition("success", DeploymentStatus.DEPLOYED),
        Transition("failed", DeploymentStatus.DEPLOYMENT_FAILED),
    ],
    DeploymentStatus.DEPLOYED: [
        Transition(OperationType.VERIFY_PASS, DeploymentStatus.DEPLOYMENT_ENDED),
        Transition("verify_failed", DeploymentStatus.DEPLOYMENT_FAILED),
    ],
    DeploymentStatus.DEPLOYMENT_FAILED: [
        Transition(OperationType.ROLLBACK, DeploymentStatus.ROLLING_BACK),
        Transition(OperationType.OPS_INTERVENTION, DeploymentStatus.DEPLOYMENT_ENDED),
    ],
    DeploymentStatus.ROLLING_BACK: [
        Transition("success", DeploymentStatus.DEPLOYMENT_ENDED),
        Transition(OperationType.OPS_INTERVENTION, DeploymentStatus.DEPLOYMENT_ENDED),
    ],
    # 终态不可再流转
    DeploymentStatus.DEPLOYMENT_ENDED: [],
}

VALID_TRANSITIONS: dict[DeploymentStatus, set[DeploymentStatus]] = {
    status: {t.target for t in transitions}
    for status, transitions in STATUS_TRANSITIONS.items()
}

TERMINAL_STATES: set[DeploymentStatus] = {
    DeploymentStatus.DEPLOYMENT_ENDED,
}

# 有可见"进行中"阶段的操作：提交时立即进入中间状态，后端返回后再流转
PHASED_OPERATIONS: set[OperationType] = {
    OperationType.DEPLOY,
    OperationType.WHITELIST,
    OperationType.ROLLBACK,
}

# 删除是编辑策略而非状态机边：仅这些状态允许删除
DELETABLE_STATES: set[DeploymentStatus] = {
    DeploymentStatus.PENDING,
    DeploymentStatus.DEPLOYED,
}


def validate_transition(from_status: DeploymentStatus, to_status: DeploymentStatus) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed


def transition_target(status: DeploymentStatus, action: str) -> DeploymentStatus | None:
    """查找 status 下 action 对应的目标状态，无匹配返回 None"""
    for transition in STATUS_TRANSITIONS.get(status, []):
        if transition.action == action:
            return transition.target
    return None
