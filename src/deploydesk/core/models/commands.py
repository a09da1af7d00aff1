"""任务集合命令 -- reducers.apply_command 的输入

每个命令描述一次对整个任务集合的读-改-写。
"""

from typing import Any

from pydantic import BaseModel, Field

from .task import DeploymentTask


class ReplaceTasks(BaseModel):
    """整体替换任务集合"""

    tasks: list[DeploymentTask]


class UpdateTask(BaseModel):
    """按 key 合并更新单个任务；key 不存在时为空操作"""

    key: str
    updates: dict[str, Any] = Field(default_factory=dict)


class DeleteTask(BaseModel):
    """按 key 删除任务"""

    key: str


class AddTasks(BaseModel):
    """追加任务"""

    tasks: list[DeploymentTask]


class ReallocateOrders(BaseModel):
    """按当前选中集合重新分配部署顺序"""

    selected_keys: list[str] = Field(default_factory=list)


class ChangeDeployOrder(BaseModel):
    """手动修改单个任务的部署顺序"""

    selected_keys: list[str] = Field(default_factory=list)
    key: str
    value: str = Field(description="用户输入的原始文本")


TaskCommand = (
    ReplaceTasks
    | UpdateTask
    | DeleteTask
    | AddTasks
    | ReallocateOrders
    | ChangeDeployOrder
)
