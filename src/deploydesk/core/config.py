"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、持久化防抖间隔、存储键名等可配置常量。
"""

import os
from pathlib import Path


def get_data_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("DEPLOYDESK_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "DEPLOYDESK_DB_PATH",
        str(get_data_dir() / "sqlite" / "deploydesk.db"),
    )


# 持久化防抖间隔（毫秒），窗口内的多次修改合并为一次写入
PERSIST_DEBOUNCE_MS: int = int(
    os.environ.get("DEPLOYDESK_PERSIST_DEBOUNCE_MS", "100")
)

# 存储键名
TASKS_DATA_KEY: str = "devops_tasks_data"
EXPANDED_GROUP_KEYS_KEY: str = "devops_expanded_group_keys"

# 默认分组（未分组任务）的批次标识
UNGROUPED_BATCH_KEY: str = "0"
