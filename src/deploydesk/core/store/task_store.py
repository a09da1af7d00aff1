"""TaskStore -- 任务集合 + 选中状态 + 分组展开状态

唯一的共享可变资源。所有修改都是对整个集合的同步读-改-写（经由 reducers），
持久化写入经过防抖合并：短时间内的多次修改只落盘最终状态。
"""

import asyncio
import contextlib
from collections.abc import Iterable

import structlog

from ..batching import assign_batch, list_group_keys, reconcile_expanded_keys
from ..config import PERSIST_DEBOUNCE_MS
from ..models.commands import (
    AddTasks,
    ChangeDeployOrder,
    DeleteTask,
    ReallocateOrders,
    ReplaceTasks,
    TaskCommand,
    UpdateTask,
)
from ..models.task import DeploymentTask
from ..reducers import apply_command
from .persistence import KeyValuePersistence

log = structlog.get_logger()

_TASKS = "tasks"
_EXPANDED = "expanded_group_keys"


class TaskStore:
    """显式持有、注入到 Executor / Coordinator 的状态容器"""

    def __init__(
        self,
        persistence: KeyValuePersistence,
        debounce_ms: int = PERSIST_DEBOUNCE_MS,
    ) -> None:
        self._persistence = persistence
        self._debounce_s = debounce_ms / 1000
        self._tasks: list[DeploymentTask] = []
        self._selected_keys: list[str] = []
        # None 表示从未保存过展开状态
        self._expanded_keys: list[str] | None = None
        # None 表示展开状态尚未按分组初始化
        self._known_group_keys: set[str] | None = None
        # 每类数据的修改版本号 / 已落盘版本号
        self._versions = {_TASKS: 0, _EXPANDED: 0}
        self._persisted = {_TASKS: 0, _EXPANDED: 0}
        self._flush_task: asyncio.Task | None = None

    @classmethod
    async def open(
        cls,
        persistence: KeyValuePersistence,
        debounce_ms: int = PERSIST_DEBOUNCE_MS,
    ) -> "TaskStore":
        """创建并从持久化存储恢复状态"""
        store = cls(persistence, debounce_ms)
        await store.load()
        return store

    async def load(self) -> None:
        """恢复任务与分组展开状态；缺失或损坏的数据视为空"""
        self._tasks = await self._persistence.load_tasks()
        self._expanded_keys = await self._persistence.load_expanded_keys()
        self._selected_keys = []
        self._known_group_keys = None
        self._sync_expanded_groups()
        log.info(
            "task_store_loaded",
            task_count=len(self._tasks),
            expanded_count=len(self._expanded_keys or []),
        )

    # ---- 读取 ----

    @property
    def tasks(self) -> list[DeploymentTask]:
        return list(self._tasks)

    @property
    def selected_keys(self) -> list[str]:
        return list(self._selected_keys)

    @property
    def expanded_group_keys(self) -> list[str]:
        return list(self._expanded_keys or [])

    def get_task(self, key: str) -> DeploymentTask | None:
        """按 key 查询任务"""
        return next((task for task in self._tasks if task.key == key), None)

    def selected_tasks(self) -> list[DeploymentTask]:
        """按选中顺序返回选中的任务"""
        by_key = {task.key: task for task in self._tasks}
        return [by_key[key] for key in self._selected_keys if key in by_key]

    # ---- 任务修改 ----

    def dispatch(self, command: TaskCommand) -> list[DeploymentTask]:
        """应用命令并安排持久化

        Raises:
            DeployDeskError: 命令校验失败，此时状态不变
        """
        self._tasks = apply_command(self._tasks, command)
        self._mark_dirty(_TASKS)
        self._sync_expanded_groups()
        return self.tasks

    def set_tasks(self, tasks: Iterable[DeploymentTask]) -> None:
        """整体替换任务集合，同时丢弃已不存在的选中项"""
        self.dispatch(ReplaceTasks(tasks=list(tasks)))
        known = {task.key for task in self._tasks}
        self._selected_keys = [key for key in self._selected_keys if key in known]

    def update_task(self, key: str, **updates) -> DeploymentTask | None:
        """合并更新单个任务

        Returns:
            更新后的任务；key 不存在时返回 None 且不做任何修改
        """
        if self.get_task(key) is None:
            log.debug("task_update_skipped_missing", task_key=key)
            return None
        self.dispatch(UpdateTask(key=key, updates=updates))
        return self.get_task(key)

    def delete_task(self, key: str) -> bool:
        """删除任务并移出选中集合

        Returns:
            True 如果任务存在并被删除
        """
        if self.get_task(key) is None:
            return False
        was_selected = key in self._selected_keys
        self.dispatch(DeleteTask(key=key))
        if was_selected:
            self._selected_keys = [k for k in self._selected_keys if k != key]
            self.dispatch(ReallocateOrders(selected_keys=self._selected_keys))
        log.info("task_deleted", task_key=key)
        return True

    def add_tasks(self, tasks: Iterable[DeploymentTask]) -> None:
        """追加任务

        Raises:
            DuplicateTaskKeyError: key 与已有任务冲突
        """
        self.dispatch(AddTasks(tasks=list(tasks)))

    # ---- 选中与部署顺序 ----

    def set_selected_keys(self, keys: Iterable[str]) -> None:
        """更新选中集合（保留首次出现顺序，忽略未知 key），并重新分配部署顺序"""
        known = {task.key for task in self._tasks}
        selected: list[str] = []
        for key in keys:
            if key in known and key not in selected:
                selected.append(key)
        self._selected_keys = selected
        self.dispatch(ReallocateOrders(selected_keys=selected))

    def clear_selection(self) -> None:
        """清空选中集合；不触发重新分配，已有顺序保持冻结"""
        self._selected_keys = []

    def change_deploy_order(self, key: str, value: str) -> None:
        """手动修改部署顺序

        Raises:
            TaskNotFoundError: 任务不存在
            InvalidDeployOrderError: 任务不是待部署状态或输入非法
        """
        self.dispatch(
            ChangeDeployOrder(selected_keys=self._selected_keys, key=key, value=value)
        )

    def create_batch(self) -> str:
        """将当前选中的可部署任务组成新批次，并展开该分组

        Returns:
            新批次标识

        Raises:
            NoEligibleTasksError: 没有选中且已排序的待部署任务，此时不做任何修改
        """
        batch_key, updated = assign_batch(self._tasks, self._selected_keys)
        self.dispatch(ReplaceTasks(tasks=updated))
        if batch_key not in self.expanded_group_keys:
            self._expanded_keys = [*self.expanded_group_keys, batch_key]
            self._mark_dirty(_EXPANDED)
        return batch_key

    # ---- 分组展开状态 ----

    def set_expanded_group_keys(self, keys: Iterable[str]) -> None:
        """用户手动展开/收起分组"""
        unique: list[str] = []
        for key in keys:
            if key not in unique:
                unique.append(key)
        self._expanded_keys = unique
        self._mark_dirty(_EXPANDED)

    def toggle_group(self, group_key: str) -> bool:
        """切换单个分组的展开状态

        Returns:
            切换后是否展开
        """
        current = self.expanded_group_keys
        if group_key in current:
            self.set_expanded_group_keys(k for k in current if k != group_key)
            return False
        self.set_expanded_group_keys([*current, group_key])
        return True

    def _sync_expanded_groups(self) -> None:
        """新增分组自动展开，已删除分组从展开状态中清理"""
        group_keys = list_group_keys(self._tasks)
        if not group_keys:
            return
        expanded = reconcile_expanded_keys(
            self._expanded_keys, group_keys, self._known_group_keys
        )
        self._known_group_keys = set(group_keys)
        if expanded != self._expanded_keys:
            self._expanded_keys = expanded
            self._mark_dirty(_EXPANDED)

    def reset(self) -> None:
        """清空所有状态（落盘空值）"""
        self._tasks = []
        self._selected_keys = []
        self._expanded_keys = []
        self._known_group_keys = None
        self._mark_dirty(_TASKS)
        self._mark_dirty(_EXPANDED)

    # ---- 持久化 ----

    def _mark_dirty(self, name: str) -> None:
        self._versions[name] += 1
        self._schedule_flush()

    @property
    def has_pending_writes(self) -> bool:
        return any(self._versions[name] != self._persisted[name] for name in self._versions)

    def _schedule_flush(self) -> None:
        """安排一次延迟写入；已有待执行的写入时合并"""
        if self._flush_task is not None and not self._flush_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # 无事件循环时由调用方显式 flush()
            return
        self._flush_task = loop.create_task(self._delayed_flush())

    async def _delayed_flush(self) -> None:
        while True:
            await asyncio.sleep(self._debounce_s)
            await self.flush()
            if not self.has_pending_writes:
                break

    async def flush(self) -> None:
        """立即写入所有未落盘的修改（写入失败视为跳过）"""
        if self._versions[_TASKS] != self._persisted[_TASKS]:
            version = self._versions[_TASKS]
            await self._persistence.save_tasks(list(self._tasks))
            self._persisted[_TASKS] = version
        if self._versions[_EXPANDED] != self._persisted[_EXPANDED]:
            version = self._versions[_EXPANDED]
            await self._persistence.save_expanded_keys(self.expanded_group_keys)
            self._persisted[_EXPANDED] = version
        log.debug("task_store_flushed", task_count=len(self._tasks))

    async def aclose(self) -> None:
        """取消待执行的延迟写入并同步落盘"""
        if self._flush_task is not None and not self._flush_task.done():
            self._flush_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._flush_task
        self._flush_task = None
        await self.flush()
