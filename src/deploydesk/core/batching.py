"""Batch Assignor -- 批次分配与批次序号推导

批次序号从不存储：每次读取时按 (batch_key, created_at) 重新计算，
默认分组（"0" 或空）总是排在最后。
"""

import random
import string
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from functools import lru_cache

import structlog

from .config import UNGROUPED_BATCH_KEY
from .exceptions import NoEligibleTasksError
from .models.batch import BatchInfo, BatchPartition
from .models.enums import DeploymentStatus
from .models.task import DeploymentTask

log = structlog.get_logger()

_KEY_ALPHABET = string.ascii_lowercase + string.digits
_KEY_SUFFIX_LENGTH = 6


def generate_batch_key(
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> str:
    """生成批次标识：BATCH-<epoch-ms>-<random>

    唯一性为概率性保证，同毫秒随机后缀碰撞视为可接受的极小概率事件。
    """
    now = now or datetime.now(UTC)
    rng = rng or random
    timestamp = int(now.timestamp() * 1000)
    suffix = "".join(rng.choice(_KEY_ALPHABET) for _ in range(_KEY_SUFFIX_LENGTH))
    return f"BATCH-{timestamp}-{suffix}"


def is_ungrouped(batch_key: str | None) -> bool:
    """batch_key 为空或 "0" 表示未分组"""
    return not batch_key or batch_key == UNGROUPED_BATCH_KEY


def select_batch_candidates(
    tasks: Sequence[DeploymentTask],
    selected_keys: Iterable[str],
) -> list[DeploymentTask]:
    """筛选可加入批次的任务：选中 + 待部署 + 已有部署顺序"""
    selected = set(selected_keys)
    return [
        task
        for task in tasks
        if task.key in selected
        and task.status == DeploymentStatus.PENDING
        and task.deploy_order is not None
    ]


def stamp_batch(
    tasks: Sequence[DeploymentTask],
    task_keys: Iterable[str],
    batch_key: str,
    created_at: datetime,
) -> list[DeploymentTask]:
    """为指定任务写入批次标识和共享的创建时间"""
    members = set(task_keys)
    return [
        task.model_copy(update={"batch_key": batch_key, "batch_created_at": created_at})
        if task.key in members
        else task
        for task in tasks
    ]


def assign_batch(
    tasks: Sequence[DeploymentTask],
    selected_keys: Iterable[str],
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> tuple[str, list[DeploymentTask]]:
    """将选中的可部署任务组成一个新批次

    Returns:
        (batch_key, 更新后的任务列表)

    Raises:
        NoEligibleTasksError: 没有符合条件的任务，此时不做任何修改
    """
    candidates = select_batch_candidates(tasks, selected_keys)
    if not candidates:
        raise NoEligibleTasksError()

    created_at = now or datetime.now(UTC)
    batch_key = generate_batch_key(created_at, rng)
    updated = stamp_batch(tasks, [t.key for t in candidates], batch_key, created_at)

    log.info(
        "batch_assigned",
        batch_key=batch_key,
        task_count=len(candidates),
    )
    return batch_key, updated


def _batch_created_times(tasks: Sequence[DeploymentTask]) -> dict[str, datetime]:
    """每个批次的创建时间：成员的 batch_created_at，旧数据回退到最小 deploy_time"""
    created: dict[str, datetime] = {}
    for task in tasks:
        if is_ungrouped(task.batch_key):
            continue
        moment = task.batch_created_at or task.deploy_time
        existing = created.get(task.batch_key)
        if existing is None or moment < existing:
            created[task.batch_key] = moment
    return created


@lru_cache(maxsize=128)
def rank_batches(pairs: tuple[tuple[str, datetime], ...]) -> dict[str, int]:
    """按创建时间升序为批次分配从 1 开始的序号（创建时间相同按 key 排序）"""
    ordered = sorted(pairs, key=lambda pair: (pair[1], pair[0]))
    return {batch_key: number for number, (batch_key, _) in enumerate(ordered, start=1)}


def batch_numbers(tasks: Sequence[DeploymentTask]) -> dict[str, int]:
    """推导当前集合中所有批次的序号"""
    created = _batch_created_times(tasks)
    return dict(rank_batches(tuple(sorted(created.items()))))


def _member_sort_key(item: tuple[int, DeploymentTask]) -> tuple[bool, int, int]:
    index, task = item
    return (task.deploy_order is None, task.deploy_order or 0, index)


def group_tasks_by_batch(tasks: Sequence[DeploymentTask]) -> BatchPartition:
    """按批次标识划分任务

    Returns:
        BatchPartition：batches 按序号升序，成员按 deploy_order 升序（未设置排最后）
    """
    created = _batch_created_times(tasks)
    numbers = rank_batches(tuple(sorted(created.items())))

    members: dict[str, list[tuple[int, DeploymentTask]]] = {}
    unbatched: list[DeploymentTask] = []
    for index, task in enumerate(tasks):
        if is_ungrouped(task.batch_key):
            unbatched.append(task)
        else:
            members.setdefault(task.batch_key, []).append((index, task))

    batches = [
        BatchInfo(
            batch_key=batch_key,
            batch_number=numbers[batch_key],
            created_at=created[batch_key],
            tasks=[task for _, task in sorted(items, key=_member_sort_key)],
        )
        for batch_key, items in members.items()
    ]
    batches.sort(key=lambda batch: batch.batch_number)
    return BatchPartition(batches=batches, unbatched_tasks=unbatched)


def sort_tasks_by_batch(tasks: Sequence[DeploymentTask]) -> list[DeploymentTask]:
    """表格排序：批次按创建时间正序，默认分组排在最后；组内保持原有顺序"""
    numbers = batch_numbers(tasks)
    ungrouped_rank = len(numbers) + 1

    def group_rank(task: DeploymentTask) -> int:
        if is_ungrouped(task.batch_key):
            return ungrouped_rank
        return numbers[task.batch_key]

    return sorted(tasks, key=group_rank)


def list_group_keys(tasks: Sequence[DeploymentTask]) -> list[str]:
    """所有分组标识（首次出现顺序），存在未分组任务时追加 "0"；无真实批次时返回空"""
    keys: list[str] = []
    has_ungrouped = False
    for task in tasks:
        if is_ungrouped(task.batch_key):
            has_ungrouped = True
        elif task.batch_key not in keys:
            keys.append(task.batch_key)
    if not keys:
        return []
    if has_ungrouped:
        keys.append(UNGROUPED_BATCH_KEY)
    return keys


def reconcile_expanded_keys(
    stored: list[str] | None,
    group_keys: Sequence[str],
    previous_group_keys: set[str] | None = None,
) -> list[str]:
    """计算分组展开状态

    Args:
        stored: 当前展开的分组；None 表示从未保存过
        group_keys: 当前所有分组标识
        previous_group_keys: 上一次的分组集合；None 表示首次初始化

    Returns:
        新的展开分组列表
    """
    if not group_keys:
        return list(stored or [])

    if previous_group_keys is None:
        # 首次初始化：从未保存过则全部展开
        if stored is None:
            return list(group_keys)
        # 用户手动收起了所有分组
        if not stored:
            return []
        valid = [key for key in stored if key in group_keys]
        # 保存的分组都已不存在，视为旧数据
        return valid or list(group_keys)

    current = list(stored or [])
    new_keys = [key for key in group_keys if key not in previous_group_keys]
    if new_keys:
        return current + [key for key in new_keys if key not in current]
    # 清理已删除的分组
    return [key for key in current if key in group_keys]
