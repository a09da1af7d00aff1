"""Backend 数据模型"""

from datetime import datetime

from pydantic import BaseModel, Field

from ..core.models.enums import DeploymentStatus, OperationType


class OperationResult(BaseModel):
    """一次操作在后端的最终结果"""

    task_key: str
    operation: OperationType
    status: DeploymentStatus = Field(description="本步骤的最终状态")
    error_message: str | None = Field(default=None, description="失败原因")
    error_time: datetime | None = Field(default=None, description="失败时间")
    duration_ms: int = Field(default=0, description="模拟耗时（毫秒）")

    @property
    def failed(self) -> bool:
        return self.status == DeploymentStatus.DEPLOYMENT_FAILED
