"""BatchOperationCoordinator -- 批量操作

对当前选中集合执行同一操作：
- 部署：后台并发提交，不等待结果，立即清空选中
- 其他操作：并发执行并等待全部完成，汇总为一条通知
每次批量操作最多产生一条通知，单任务执行均为静默模式。
"""

import asyncio

import structlog
from pydantic import BaseModel, Field

from ..core.exceptions import NoEligibleTasksError
from ..core.models.enums import OperationType
from ..core.models.task import DeploymentTask
from ..core.registry import get_operation_name, is_operation_applicable
from ..core.store.task_store import TaskStore
from .executor import OperationExecutor, OperationOutcome
from .notifier import LogNotifier, Notifier

log = structlog.get_logger()


class BatchApplicability(BaseModel):
    """选中任务按操作适用性划分（保持选中顺序）"""

    applicable: list[DeploymentTask] = Field(default_factory=list)
    not_applicable: list[DeploymentTask] = Field(default_factory=list)


class BatchRunResult(BaseModel):
    """一次批量操作的结果"""

    operation: OperationType
    started: bool = Field(default=False, description="是否有任务被提交执行")
    task_keys: list[str] = Field(default_factory=list, description="被提交执行的任务")
    not_applicable_count: int = 0
    batch_key: str | None = Field(default=None, description="批量部署时新建的批次")
    outcomes: list[OperationOutcome] = Field(
        default_factory=list, description="等待型批量操作的单任务结果"
    )
    error: str | None = None


class BatchOperationCoordinator:
    """批量操作协调器"""

    def __init__(
        self,
        store: TaskStore,
        executor: OperationExecutor,
        notifier: Notifier | None = None,
    ) -> None:
        self._store = store
        self._executor = executor
        self._notifier = notifier or LogNotifier()
        # 后台执行中的批量部署
        self._background: set[asyncio.Task] = set()

    def get_batch_applicability(self, operation: OperationType) -> BatchApplicability:
        """按操作适用性划分当前选中的任务"""
        result = BatchApplicability()
        for task in self._store.selected_tasks():
            if is_operation_applicable(task.status, operation):
                result.applicable.append(task)
            else:
                result.not_applicable.append(task)
        return result

    def can_perform(self, operation: OperationType) -> bool:
        """选中集合中至少有一个任务可执行该操作"""
        if not self._store.selected_keys:
            return False
        return len(self.get_batch_applicability(operation).applicable) > 0

    async def run(self, operation: OperationType) -> BatchRunResult:
        """对选中集合执行批量操作

        Returns:
            BatchRunResult；选中为空或无可执行任务时 started=False 且不修改任何状态
        """
        operation_name = get_operation_name(operation)

        if not self._store.selected_keys:
            self._notifier.notify("warning", "请先选择要操作的任务")
            return BatchRunResult(operation=operation)

        applicability = self.get_batch_applicability(operation)
        applicable = applicability.applicable
        not_applicable_count = len(applicability.not_applicable)

        if not applicable:
            message = f"选中的任务中没有可以{operation_name}的任务：\n"
            if not_applicable_count > 0:
                message += f"• {not_applicable_count} 个任务状态不符合要求\n"
            message += f"\n只有特定状态的任务可以执行{operation_name}操作。"
            self._notifier.notify("warning", message)
            log.info(
                "batch_operation_skipped",
                operation=operation.value,
                not_applicable_count=not_applicable_count,
            )
            return BatchRunResult(operation=operation, not_applicable_count=not_applicable_count)

        task_keys = [task.key for task in applicable]
        log.info(
            "batch_operation_started",
            operation=operation.value,
            task_count=len(applicable),
            not_applicable_count=not_applicable_count,
        )

        if operation == OperationType.DEPLOY:
            # 按选中顺序提交，不等待结果
            for task in applicable:
                background = self._executor.dispatch(operation, task, silent=True)
                self._background.add(background)
                background.add_done_callback(self._on_background_done)
            self._notifier.notify(
                "success", f"批量{operation_name}已提交，共 {len(applicable)} 个任务"
            )
            self._store.clear_selection()
            return BatchRunResult(
                operation=operation,
                started=True,
                task_keys=task_keys,
                not_applicable_count=not_applicable_count,
            )

        # 等待全部执行结束后再汇总，失败的任务各自已恢复状态
        results = await asyncio.gather(
            *(self._executor.execute(operation, task, silent=True) for task in applicable),
            return_exceptions=True,
        )
        outcomes = [r for r in results if isinstance(r, OperationOutcome)]
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            first = errors[0]
            log.error(
                "batch_operation_failed",
                operation=operation.value,
                failed_count=len(errors),
                error_type=type(first).__name__,
                error=str(first),
            )
            self._notifier.notify("error", f"批量{operation_name}失败")
            return BatchRunResult(
                operation=operation,
                started=True,
                task_keys=task_keys,
                not_applicable_count=not_applicable_count,
                outcomes=outcomes,
                error=str(first),
            )

        self._notifier.notify(
            "success", f"批量{operation_name}成功，共处理 {len(applicable)} 个任务"
        )
        self._store.clear_selection()
        return BatchRunResult(
            operation=operation,
            started=True,
            task_keys=task_keys,
            not_applicable_count=not_applicable_count,
            outcomes=outcomes,
        )

    async def confirm(self, operation: OperationType) -> BatchRunResult:
        """确认批量操作

        批量部署先将选中的已排序待部署任务组成新批次，再提交部署；
        没有可加入批次的任务时提示并中止，不做任何修改。
        """
        if operation != OperationType.DEPLOY:
            return await self.run(operation)

        try:
            batch_key = self._store.create_batch()
        except NoEligibleTasksError as e:
            self._notifier.notify("warning", e.message)
            return BatchRunResult(operation=operation)

        result = await self.run(operation)
        return result.model_copy(update={"batch_key": batch_key})

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            # 失败已由 Executor 处理（恢复状态），这里只记录
            log.error(
                "background_dispatch_failed",
                error_type=type(error).__name__,
                error=str(error),
            )

    @property
    def pending_count(self) -> int:
        return len(self._background)

    async def drain(self) -> None:
        """等待所有后台提交完成（失败只记录，不抛出）"""
        while self._background:
            pending = list(self._background)
            self._background.difference_update(pending)
            await asyncio.gather(*pending, return_exceptions=True)
