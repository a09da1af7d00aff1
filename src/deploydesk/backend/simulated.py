"""SimulatedBackend -- 模拟后端

实现 TaskBackend 的两个函数：fetch_all_tasks / submit_operation。
以固定延迟模拟一次后端往返；部署结果随机（默认约 80% 成功），
失败时从固定的错误信息池中取一条。替换为真实 API 时 Executor 不需要改动。
"""

import asyncio
import random
import time
from datetime import UTC, datetime

import structlog

from ..core.models.enums import (
    PHASED_OPERATIONS,
    DeploymentStatus,
    OperationType,
    transition_target,
)
from ..core.models.task import DeploymentTask
from ..core.store.persistence import KeyValuePersistence
from .config import BackendConfig
from .exceptions import BackendError, UnsupportedOperationError
from .models import OperationResult

log = structlog.get_logger()

_FAILURE_TEMPLATES: tuple[str, ...] = (
    '镜像拉取失败：Failed to pull image "registry.company.com/{app}:{version}"',
    'Pod 启动失败：Failed to start container "{app}"',
    '资源分配失败：Insufficient resources in cluster "{cluster}"',
    '健康检查失败：Readiness probe failed for container "{app}"',
    "网络配置错误：Service endpoint creation failed",
)


def failure_messages(task: DeploymentTask) -> list[str]:
    """该任务可能出现的部署失败信息"""
    return [
        template.format(app=task.app_name, version=task.version, cluster=task.cluster)
        for template in _FAILURE_TEMPLATES
    ]


class SimulatedBackend:
    """TaskBackend 的模拟实现"""

    def __init__(
        self,
        config: BackendConfig | None = None,
        persistence: KeyValuePersistence | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config or BackendConfig()
        self._persistence = persistence
        self._rng = rng or random.Random(self._config.seed)

    async def fetch_all_tasks(self) -> list[DeploymentTask]:
        """获取全部任务快照（读取已持久化的任务数据）"""
        if self._persistence is None:
            return []
        return await self._persistence.load_tasks()

    def _delay_for(self, operation: OperationType) -> float:
        if operation == OperationType.DEPLOY:
            return self._config.deploy_delay_s
        if operation == OperationType.WHITELIST:
            return self._config.whitelist_delay_s
        if operation == OperationType.ROLLBACK:
            return self._config.rollback_delay_s
        return 0.0

    async def submit_operation(
        self,
        task: DeploymentTask,
        operation: OperationType,
    ) -> OperationResult:
        """提交操作并等待模拟结果

        Args:
            task: 提交操作前的任务快照
            operation: 操作类型

        Returns:
            OperationResult，status 为本步骤的最终状态

        Raises:
            UnsupportedOperationError: 删除等仅在本地执行的操作
            BackendError: 当前状态下不存在该操作的流转
        """
        if operation == OperationType.DELETE:
            raise UnsupportedOperationError(operation)

        start_time = time.monotonic()
        delay = self._delay_for(operation)
        if delay > 0:
            await asyncio.sleep(delay)

        error_message = None
        error_time = None
        if operation in PHASED_OPERATIONS:
            phase = transition_target(task.status, operation)
            if phase is None:
                raise BackendError(f"{task.status} 状态下无法执行 {operation}")
            status = self._resolve_phase(phase)
            if status == DeploymentStatus.DEPLOYMENT_FAILED:
                error_message = self._rng.choice(failure_messages(task))
                error_time = datetime.now(UTC)
        else:
            status = transition_target(task.status, operation)
            if status is None:
                raise BackendError(f"{task.status} 状态下无法执行 {operation}")

        duration_ms = int((time.monotonic() - start_time) * 1000)
        log.info(
            "backend_operation_resolved",
            task_key=task.key,
            operation=operation.value,
            status=status.value,
            duration_ms=duration_ms,
        )
        return OperationResult(
            task_key=task.key,
            operation=operation,
            status=status,
            error_message=error_message,
            error_time=error_time,
            duration_ms=duration_ms,
        )

    def _resolve_phase(self, phase: DeploymentStatus) -> DeploymentStatus:
        """中间状态的后端结果：部署随机成功/失败，其余确定性成功"""
        if phase == DeploymentStatus.DEPLOYING:
            succeeded = self._rng.random() < self._config.deploy_success_rate
            action = "success" if succeeded else "failed"
        elif phase == DeploymentStatus.APPROVING:
            action = "approve"
        else:
            action = "success"
        target = transition_target(phase, action)
        if target is None:
            raise BackendError(f"{phase} 状态下没有 {action} 流转")
        return target
