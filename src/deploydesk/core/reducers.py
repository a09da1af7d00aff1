"""任务集合 Reducer

apply_command(tasks, command) -> tasks：纯函数，不修改输入，
TaskStore 的所有修改路径都经过这里。
"""

from collections.abc import Sequence

from .allocator import change_deploy_order, reallocate_deploy_orders
from .exceptions import DuplicateTaskKeyError
from .models.commands import (
    AddTasks,
    ChangeDeployOrder,
    DeleteTask,
    ReallocateOrders,
    ReplaceTasks,
    TaskCommand,
    UpdateTask,
)
from .models.task import DeploymentTask


def apply_command(
    tasks: Sequence[DeploymentTask],
    command: TaskCommand,
) -> list[DeploymentTask]:
    """将单个命令应用到任务集合

    Args:
        tasks: 当前任务集合
        command: 要应用的命令

    Returns:
        新的任务集合

    Raises:
        DuplicateTaskKeyError: AddTasks 中存在重复 key
        InvalidDeployOrderError: ChangeDeployOrder 校验失败
        TaskNotFoundError: ChangeDeployOrder 的目标任务不存在
    """
    if isinstance(command, ReplaceTasks):
        return list(command.tasks)

    if isinstance(command, UpdateTask):
        # 仅更新已存在的任务，避免延迟回调复活已删除的任务
        return [
            task.model_copy(update=command.updates) if task.key == command.key else task
            for task in tasks
        ]

    if isinstance(command, DeleteTask):
        return [task for task in tasks if task.key != command.key]

    if isinstance(command, AddTasks):
        existing = {task.key for task in tasks}
        for task in command.tasks:
            if task.key in existing:
                raise DuplicateTaskKeyError(task.key)
            existing.add(task.key)
        return [*tasks, *command.tasks]

    if isinstance(command, ReallocateOrders):
        return reallocate_deploy_orders(tasks, command.selected_keys)

    if isinstance(command, ChangeDeployOrder):
        return change_deploy_order(
            tasks, command.selected_keys, command.key, command.value
        )

    raise TypeError(f"unsupported command: {type(command).__name__}")
