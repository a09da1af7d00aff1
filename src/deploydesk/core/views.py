"""UI 读模型 -- 均为当前状态的纯函数，可在每次渲染/轮询时重新计算"""

from collections.abc import Iterable, Sequence

from .batching import (
    group_tasks_by_batch,
    is_ungrouped,
    select_batch_candidates,
    sort_tasks_by_batch,
)
from .models.batch import BatchPartition
from .models.enums import DeploymentStatus, OperationType
from .models.task import DeploymentTask
from .registry import AvailableOperations, get_available_operations, is_operation_applicable


def operations_for(status: DeploymentStatus) -> AvailableOperations:
    """状态对应的可用操作"""
    return get_available_operations(status)


def eligible_for_batch_count(
    tasks: Sequence[DeploymentTask],
    selected_keys: Iterable[str],
) -> int:
    """选中且可加入批次的任务数"""
    return len(select_batch_candidates(tasks, selected_keys))


def applicable_count(
    tasks: Sequence[DeploymentTask],
    selected_keys: Iterable[str],
    operation: OperationType,
) -> int:
    """选中任务中可执行 operation 的数量"""
    selected = set(selected_keys)
    return sum(
        1
        for task in tasks
        if task.key in selected and is_operation_applicable(task.status, operation)
    )


def show_grouping(tasks: Sequence[DeploymentTask]) -> bool:
    """存在真实批次时才按分组展示"""
    return any(not is_ungrouped(task.batch_key) for task in tasks)


def batch_partition(tasks: Sequence[DeploymentTask]) -> BatchPartition:
    """批次 / 未分组 划分（含批次序号）"""
    return group_tasks_by_batch(tasks)


def table_rows(tasks: Sequence[DeploymentTask]) -> list[DeploymentTask]:
    """表格行：有分组时按分组排序，否则保持原顺序"""
    if not show_grouping(tasks):
        return list(tasks)
    return sort_tasks_by_batch(tasks)


def status_summary(tasks: Iterable[DeploymentTask]) -> dict[str, int]:
    """各状态任务数"""
    summary = {status.value: 0 for status in DeploymentStatus}
    for task in tasks:
        summary[task.status.value] += 1
    return summary
