"""BackendConfig -- 模拟后端配置加载

从环境变量加载延迟与部署成功率，非法值记录告警后回退默认值，不阻塞启动。
"""

import os

import structlog
from pydantic import BaseModel, Field, ValidationError

log = structlog.get_logger()


class BackendConfig(BaseModel):
    """模拟后端配置

    环境变量:
        DEPLOYDESK_DEPLOY_DELAY_S: 部署耗时（秒，默认 2.0）
        DEPLOYDESK_WHITELIST_DELAY_S: 加白审批耗时（秒，默认 1.5）
        DEPLOYDESK_ROLLBACK_DELAY_S: 回滚耗时（秒，默认 2.0）
        DEPLOYDESK_DEPLOY_SUCCESS_RATE: 部署成功率（0~1，默认 0.8）
        DEPLOYDESK_BACKEND_SEED: 随机种子（可选，用于复现）
    """

    deploy_delay_s: float = Field(default=2.0, ge=0, description="部署耗时（秒）")
    whitelist_delay_s: float = Field(default=1.5, ge=0, description="加白审批耗时（秒）")
    rollback_delay_s: float = Field(default=2.0, ge=0, description="回滚耗时（秒）")
    deploy_success_rate: float = Field(
        default=0.8, ge=0, le=1, description="部署成功率"
    )
    seed: int | None = Field(default=None, description="随机种子")


_ENV_FIELDS: dict[str, tuple[str, type]] = {
    "DEPLOYDESK_DEPLOY_DELAY_S": ("deploy_delay_s", float),
    "DEPLOYDESK_WHITELIST_DELAY_S": ("whitelist_delay_s", float),
    "DEPLOYDESK_ROLLBACK_DELAY_S": ("rollback_delay_s", float),
    "DEPLOYDESK_DEPLOY_SUCCESS_RATE": ("deploy_success_rate", float),
    "DEPLOYDESK_BACKEND_SEED": ("seed", int),
}


def load_backend_config() -> BackendConfig:
    """从环境变量加载模拟后端配置

    Returns:
        BackendConfig 实例；单个字段非法时该字段使用默认值
    """
    defaults = BackendConfig()
    kwargs: dict = {}

    for env_var, (field_name, cast) in _ENV_FIELDS.items():
        val = os.environ.get(env_var)
        if not val:
            continue
        try:
            # 逐字段校验，避免一个非法值拖垮全部配置
            BackendConfig(**{field_name: cast(val)})
            kwargs[field_name] = cast(val)
        except (ValueError, ValidationError):
            log.warning(
                "invalid_backend_config",
                env_var=env_var,
                value=val,
                fallback=getattr(defaults, field_name),
            )

    return BackendConfig(**kwargs)
