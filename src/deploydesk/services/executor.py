"""OperationExecutor -- 单任务操作执行

执行流程：
1. 校验操作是否适用于任务当前状态（不适用时提示并返回，不修改任何状态）
2. 删除操作直接从 TaskStore 移除
3. 部署/加白/回滚立即进入中间状态，随后提交后端并等待结果
4. 按 key 回写结果；任务在等待期间被删除时不做任何修改

步骤 1~3 中的同步部分在 _begin 中完成，批量部署可以在清空选中前
就让所有任务进入"部署中"。
"""

import asyncio
from collections.abc import Callable
from typing import NamedTuple

import structlog
from pydantic import BaseModel, Field

from ..core.exceptions import OperationNotApplicableError
from ..core.models.enums import (
    PHASED_OPERATIONS,
    DeploymentStatus,
    OperationType,
    transition_target,
)
from ..core.models.task import DeploymentTask
from ..core.registry import get_operation_name, is_operation_applicable
from ..core.store.protocols import TaskBackend
from ..core.store.task_store import TaskStore
from .notifier import LogNotifier, Notifier

log = structlog.get_logger()

LoadingCallback = Callable[[bool], None]


class OperationOutcome(BaseModel):
    """单次操作的结果"""

    task_key: str
    operation: OperationType
    applied: bool = Field(description="操作是否被执行（不适用时为 False）")
    final_status: DeploymentStatus | None = Field(
        default=None, description="操作结束后的任务状态；任务已被删除时为 None"
    )


class _InFlight(NamedTuple):
    """已通过校验、等待后端结果的操作"""

    operation: OperationType
    snapshot: DeploymentTask
    intermediate: DeploymentStatus | None


# 操作成功后的提示
_SUCCESS_MESSAGES: dict[OperationType, str] = {
    OperationType.DEPLOY: "{app} 部署成功",
    OperationType.WHITELIST: "{app} 申请加白成功，已返回待部署状态",
    OperationType.VERIFY_PASS: "{app} 验证通过",
    OperationType.ROLLBACK: "{app} 回滚成功",
    OperationType.OPS_INTERVENTION: "{app} 运维介入处理",
    OperationType.DELETE: "{app} 已删除",
}


class OperationExecutor:
    """单任务操作执行器"""

    def __init__(
        self,
        store: TaskStore,
        backend: TaskBackend,
        notifier: Notifier | None = None,
    ) -> None:
        self._store = store
        self._backend = backend
        # 未指定时通知以日志事件输出
        self._notifier = notifier or LogNotifier()

    async def execute(
        self,
        operation: OperationType,
        task: DeploymentTask,
        silent: bool = False,
        on_loading_change: LoadingCallback | None = None,
    ) -> OperationOutcome:
        """执行操作并等待结果

        Args:
            operation: 操作类型
            task: 目标任务（以 TaskStore 中的最新版本为准）
            silent: 静默模式，不发送任何通知（批量操作使用）
            on_loading_change: 加载状态回调，提交前 True，结束后 False

        Returns:
            OperationOutcome

        Raises:
            Exception: 后端或回写失败时重新抛出（中间状态已恢复）
        """
        began = self._begin(operation, task, silent, on_loading_change)
        return await self._finish(began, silent, on_loading_change)

    def dispatch(
        self,
        operation: OperationType,
        task: DeploymentTask,
        silent: bool = False,
        on_loading_change: LoadingCallback | None = None,
    ) -> "asyncio.Task[OperationOutcome]":
        """同步完成校验与中间状态，后端等待部分作为后台任务执行

        需要在运行中的事件循环内调用。
        """
        began = self._begin(operation, task, silent, on_loading_change)
        return asyncio.ensure_future(self._finish(began, silent, on_loading_change))

    def _begin(
        self,
        operation: OperationType,
        task: DeploymentTask,
        silent: bool,
        on_loading_change: LoadingCallback | None,
    ) -> OperationOutcome | _InFlight:
        current = self._store.get_task(task.key) or task

        if not is_operation_applicable(current.status, operation):
            error = OperationNotApplicableError(
                current.status, operation, get_operation_name(operation)
            )
            log.info(
                "operation_not_applicable",
                task_key=current.key,
                operation=operation.value,
                status=current.status.value,
            )
            if not silent:
                self._notifier.notify("warning", error.message)
            return OperationOutcome(
                task_key=current.key,
                operation=operation,
                applied=False,
                final_status=current.status,
            )

        if operation == OperationType.DELETE:
            self._store.delete_task(current.key)
            if not silent:
                message = _SUCCESS_MESSAGES[operation].format(app=current.app_name)
                self._notifier.notify("success", message)
            return OperationOutcome(task_key=current.key, operation=operation, applied=True)

        if on_loading_change is not None:
            on_loading_change(True)

        intermediate = transition_target(current.status, operation)
        if intermediate is not None and operation in PHASED_OPERATIONS:
            self._store.update_task(current.key, status=intermediate)
        else:
            intermediate = None

        log.info(
            "operation_started",
            task_key=current.key,
            operation=operation.value,
            from_status=current.status.value,
        )
        return _InFlight(operation=operation, snapshot=current, intermediate=intermediate)

    async def _finish(
        self,
        began: OperationOutcome | _InFlight,
        silent: bool,
        on_loading_change: LoadingCallback | None,
    ) -> OperationOutcome:
        if isinstance(began, OperationOutcome):
            return began

        operation, snapshot, intermediate = began
        try:
            result = await self._backend.submit_operation(snapshot, operation)

            updates: dict = {"status": result.status}
            if result.failed:
                updates["error_message"] = result.error_message
                updates["error_time"] = result.error_time
            # 按 key 回写，任务已被删除时 update_task 不做任何修改
            updated = self._store.update_task(snapshot.key, **updates)
        except Exception as e:
            log.error(
                "operation_execution_failed",
                task_key=snapshot.key,
                operation=operation.value,
                error_type=type(e).__name__,
                error=str(e),
            )
            if intermediate is not None and self._store.get_task(snapshot.key) is not None:
                self._store.update_task(snapshot.key, status=snapshot.status)
            if not silent:
                self._notifier.notify("error", "操作执行失败")
            raise
        finally:
            if on_loading_change is not None:
                on_loading_change(False)

        if updated is None:
            log.info(
                "operation_resolution_skipped",
                task_key=snapshot.key,
                operation=operation.value,
                reason="task_deleted",
            )
            return OperationOutcome(task_key=snapshot.key, operation=operation, applied=True)

        log.info(
            "operation_completed",
            task_key=snapshot.key,
            operation=operation.value,
            status=updated.status.value,
        )
        if not silent:
            if result.failed:
                self._notifier.notify("error", f"{snapshot.app_name} 部署失败")
            else:
                self._notifier.notify(
                    "success", _SUCCESS_MESSAGES[operation].format(app=snapshot.app_name)
                )
        return OperationOutcome(
            task_key=snapshot.key,
            operation=operation,
            applied=True,
            final_status=updated.status,
        )
