"""DeploymentTask Domain Model

部署任务快照，持久化时使用 camelCase 别名（与前端存储格式一致）。
模型按值对象使用：所有更新通过 model_copy 产生新实例。
"""

from datetime import UTC, datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from ulid import ULID

from .enums import DeploymentStatus


class DeploymentTask(BaseModel):
    """部署任务数据模型

    deploy_order 仅在 PENDING 状态下有意义；
    batch_key 为空或 "0" 表示未分组。
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    key: str = Field(description="唯一标识")
    app_name: str = Field(description="应用名称")
    version: str = Field(default="", description="制品版本")
    cluster: str = Field(default="", description="部署集群")
    namespace: str = Field(default="default", description="命名空间")
    env_tag: str = Field(default="prod", description="环境标签")
    deployer: str = Field(default="", description="部署人")
    deploy_time: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="任务加入时间（旧数据中用于推导批次创建时间）",
    )
    status: DeploymentStatus = Field(
        default=DeploymentStatus.PENDING,
        alias="taskStatus",
        description="当前状态",
    )
    deploy_order: int | None = Field(default=None, ge=1, description="部署顺序")
    # 旧前端快照以 groupKey 记录批次
    batch_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("batchKey", "groupKey", "batch_key"),
        serialization_alias="batchKey",
        description="批次标识",
    )
    batch_created_at: datetime | None = Field(default=None, description="批次创建时间")
    error_message: str | None = Field(default=None, description="失败原因")
    error_time: datetime | None = Field(default=None, description="失败时间")

    @field_validator("deploy_time", "batch_created_at", "error_time")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        """不带时区的时间按 UTC 处理，保证批次排序可比较"""
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @classmethod
    def create(cls, app_name: str, **fields) -> "DeploymentTask":
        """创建新任务：生成 ULID key，无顺序、无批次"""
        return cls(key=str(ULID()), app_name=app_name, **fields)

    def to_snapshot(self) -> dict:
        """序列化为持久化快照（camelCase，JSON 兼容）"""
        return self.model_dump(mode="json", by_alias=True)
