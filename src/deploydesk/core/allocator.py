"""Deploy-Order Allocator -- 部署顺序分配

先"试探性赋值"，再整体重新分配：每次修改后，选中且待部署任务的顺序
总是恰好为 1..N，无空洞、无重复。
"""

from collections.abc import Iterable, Sequence

import structlog

from .exceptions import InvalidDeployOrderError, TaskNotFoundError
from .models.enums import DeploymentStatus
from .models.task import DeploymentTask

log = structlog.get_logger()


def _is_selected_pending(task: DeploymentTask, selected: set[str]) -> bool:
    return task.key in selected and task.status == DeploymentStatus.PENDING


def reallocate_deploy_orders(
    tasks: Sequence[DeploymentTask],
    selected_keys: Iterable[str],
) -> list[DeploymentTask]:
    """重新分配选中任务的部署顺序

    规则：
    1. 选中且待部署的任务：按原顺序排序（未设置排最后，相同时按集合位置），分配 1..N
    2. 未选中的待部署任务：清除顺序
    3. 非待部署任务：保持不变（已提交部署的任务顺序锁定）

    Args:
        tasks: 全部任务
        selected_keys: 当前选中的任务 key

    Returns:
        新的任务列表，不修改输入
    """
    selected = set(selected_keys)
    candidates = [
        (index, task)
        for index, task in enumerate(tasks)
        if _is_selected_pending(task, selected)
    ]
    candidates.sort(
        key=lambda item: (
            item[1].deploy_order is None,
            item[1].deploy_order or 0,
            item[0],
        )
    )
    ranks = {task.key: rank for rank, (_, task) in enumerate(candidates, start=1)}

    result: list[DeploymentTask] = []
    for task in tasks:
        if task.key in ranks:
            order = ranks[task.key]
            result.append(
                task if task.deploy_order == order
                else task.model_copy(update={"deploy_order": order})
            )
        elif task.status == DeploymentStatus.PENDING and task.deploy_order is not None:
            result.append(task.model_copy(update={"deploy_order": None}))
        else:
            result.append(task)
    return result


def parse_deploy_order(value: str) -> int | None:
    """解析用户输入的部署顺序

    Returns:
        空输入返回 None（表示清除）

    Raises:
        InvalidDeployOrderError: 不是大于 0 的整数
    """
    text = value.strip()
    if text == "":
        return None
    try:
        order = int(text)
    except ValueError:
        raise InvalidDeployOrderError("部署顺序必须是大于0的整数") from None
    if order < 1:
        raise InvalidDeployOrderError("部署顺序必须是大于0的整数")
    return order


def change_deploy_order(
    tasks: Sequence[DeploymentTask],
    selected_keys: Iterable[str],
    key: str,
    value: str,
) -> list[DeploymentTask]:
    """处理单个任务的部署顺序修改

    目标顺序已被其他选中待部署任务占用时，交换两者的原始顺序值，
    之后统一重新分配以恢复连续性。

    Raises:
        TaskNotFoundError: 任务不存在
        InvalidDeployOrderError: 不是待部署状态 / 输入非法
    """
    selected = list(selected_keys)
    selected_set = set(selected)
    current = next((task for task in tasks if task.key == key), None)
    if current is None:
        raise TaskNotFoundError(key)
    if current.status != DeploymentStatus.PENDING:
        raise InvalidDeployOrderError("只有待部署状态的任务才能设置部署顺序")

    new_order = parse_deploy_order(value)

    holder = None
    if new_order is not None:
        holder = next(
            (
                task
                for task in tasks
                if task.key != key
                and task.deploy_order == new_order
                and _is_selected_pending(task, selected_set)
            ),
            None,
        )

    updated: list[DeploymentTask] = []
    for task in tasks:
        if task.key == key:
            updated.append(task.model_copy(update={"deploy_order": new_order}))
        elif holder is not None and task.key == holder.key:
            updated.append(task.model_copy(update={"deploy_order": current.deploy_order}))
        else:
            updated.append(task)

    if holder is not None:
        log.debug(
            "deploy_order_swapped",
            task_key=key,
            other_key=holder.key,
            order=new_order,
        )
    return reallocate_deploy_orders(updated, selected)
