"""Batch 派生视图模型

批次不单独存储：由任务上的 batch_key / batch_created_at 每次读取时推导，
batch_number 从不持久化。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .task import DeploymentTask


class BatchInfo(BaseModel):
    """批次信息（派生）"""

    batch_key: str = Field(description="批次标识")
    batch_number: int = Field(ge=1, description="批次序号，按创建时间升序从 1 开始")
    created_at: datetime = Field(description="批次创建时间")
    tasks: list[DeploymentTask] = Field(
        default_factory=list, description="成员任务，按 deploy_order 升序"
    )

    @property
    def task_count(self) -> int:
        return len(self.tasks)


class BatchPartition(BaseModel):
    """批次 / 未分组 划分结果"""

    batches: list[BatchInfo] = Field(default_factory=list)
    unbatched_tasks: list[DeploymentTask] = Field(default_factory=list)
