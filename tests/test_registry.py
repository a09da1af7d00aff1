"""Status Registry 单元测试 -- 状态 × 操作 适用性矩阵"""

import itertools

import pytest
from deploydesk.core.models.enums import DeploymentStatus, OperationType
from deploydesk.core.registry import (
    get_available_operations,
    get_operation_name,
    is_operation_applicable,
)

S = DeploymentStatus
Op = OperationType

# 所有可执行的 (状态, 操作) 组合，其余组合均不可执行
APPLICABLE: set[tuple[DeploymentStatus, OperationType]] = {
    (S.PENDING, Op.DEPLOY),
    (S.PENDING, Op.WHITELIST),
    (S.PENDING, Op.DELETE),
    (S.DEPLOYED, Op.VERIFY_PASS),
    (S.DEPLOYED, Op.DELETE),
    (S.DEPLOYMENT_FAILED, Op.ROLLBACK),
    (S.DEPLOYMENT_FAILED, Op.OPS_INTERVENTION),
    (S.ROLLING_BACK, Op.OPS_INTERVENTION),
}


class TestApplicabilityMatrix:
    """7 个状态 × 6 种操作"""

    @pytest.mark.parametrize(
        "status,operation",
        list(itertools.product(DeploymentStatus, OperationType)),
    )
    def test_matrix(self, status, operation):
        expected = (status, operation) in APPLICABLE
        assert is_operation_applicable(status, operation) is expected

    @pytest.mark.parametrize(
        "status",
        [S.APPROVING, S.DEPLOYING, S.DEPLOYMENT_ENDED],
    )
    def test_in_progress_and_terminal_have_no_operations(self, status):
        """进行中与终态：没有任何可执行操作"""
        assert get_available_operations(status).enabled_operations() == set()


class TestAvailableOperations:
    """主操作 / 次要操作配置"""

    def test_pending_operations(self):
        ops = get_available_operations(S.PENDING)
        assert ops.primary.operation == Op.DEPLOY
        assert ops.primary.enabled is True
        assert [slot.operation for slot in ops.secondary] == [Op.WHITELIST, Op.DELETE]

    def test_disabled_primary_is_still_shown(self):
        """进行中状态展示禁用的部署按钮"""
        ops = get_available_operations(S.DEPLOYING)
        assert ops.primary.operation == Op.DEPLOY
        assert ops.primary.enabled is False

    def test_delete_slot_always_last(self):
        """删除总在次要操作末尾，仅 PENDING / DEPLOYED 可用"""
        for status in DeploymentStatus:
            last = get_available_operations(status).secondary[-1]
            assert last.operation == Op.DELETE
            assert last.enabled is (status in {S.PENDING, S.DEPLOYED})

    def test_failed_has_ops_intervention_secondary(self):
        ops = get_available_operations(S.DEPLOYMENT_FAILED)
        assert ops.primary.operation == Op.ROLLBACK
        assert ops.secondary[0].operation == Op.OPS_INTERVENTION

    def test_operation_names(self):
        assert get_operation_name(Op.DEPLOY) == "部署"
        assert get_operation_name(Op.OPS_INTERVENTION) == "运维介入"
        assert get_available_operations(S.DEPLOYED).primary.label == "验证通过"
