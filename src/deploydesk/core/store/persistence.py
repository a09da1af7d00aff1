"""Persistence Adapter -- 类型化整值读写

读写失败在适配器边界被吞掉：缺失或损坏的数据视为"无数据"，
写入失败视为"跳过写入"，永远不阻塞启动。
"""

import json
from typing import Any, TypeVar

import aiosqlite
import structlog
from pydantic import TypeAdapter, ValidationError

from ..config import EXPANDED_GROUP_KEYS_KEY, TASKS_DATA_KEY
from ..models.task import DeploymentTask
from .protocols import KeyValueStore

log = structlog.get_logger()

T = TypeVar("T")

_TASKS_ADAPTER = TypeAdapter(list[DeploymentTask])
_STRING_LIST_ADAPTER = TypeAdapter(list[str])


class KeyValuePersistence:
    """将类型化的值保存为 JSON 文本"""

    def __init__(self, kv_store: KeyValueStore) -> None:
        self._kv = kv_store

    async def load(self, key: str, adapter: TypeAdapter[T], default: T) -> T:
        """读取并校验

        Returns:
            校验后的值；键不存在、JSON 损坏、结构不符或读取失败时返回 default
        """
        try:
            raw = await self._kv.get(key)
        except aiosqlite.Error as e:
            log.warning("persistence_read_failed", key=key, error_type=type(e).__name__)
            return default
        if raw is None:
            return default
        try:
            return adapter.validate_json(raw)
        except ValidationError as e:
            log.warning(
                "persistence_value_malformed",
                key=key,
                error_count=e.error_count(),
            )
            return default

    async def save(self, key: str, value: Any, adapter: TypeAdapter | None = None) -> bool:
        """整值写入

        Returns:
            True 写入成功；False 写入被跳过
        """
        try:
            if adapter is not None:
                payload = adapter.dump_json(value, by_alias=True).decode("utf-8")
            else:
                payload = json.dumps(value, ensure_ascii=False)
            await self._kv.set(key, payload)
        except (aiosqlite.Error, TypeError, ValueError) as e:
            log.warning("persistence_write_skipped", key=key, error_type=type(e).__name__)
            return False
        return True

    async def has_key(self, key: str) -> bool:
        """键是否存在（用于区分"从未保存"与"保存了空值"）"""
        try:
            return await self._kv.get(key) is not None
        except aiosqlite.Error:
            return False

    # ---- 业务键 ----

    async def load_tasks(self) -> list[DeploymentTask]:
        return await self.load(TASKS_DATA_KEY, _TASKS_ADAPTER, [])

    async def save_tasks(self, tasks: list[DeploymentTask]) -> bool:
        return await self.save(TASKS_DATA_KEY, tasks, _TASKS_ADAPTER)

    async def load_expanded_keys(self) -> list[str] | None:
        """读取分组展开状态；从未保存过返回 None"""
        if not await self.has_key(EXPANDED_GROUP_KEYS_KEY):
            return None
        return await self.load(EXPANDED_GROUP_KEYS_KEY, _STRING_LIST_ADAPTER, [])

    async def save_expanded_keys(self, keys: list[str]) -> bool:
        return await self.save(EXPANDED_GROUP_KEYS_KEY, keys, _STRING_LIST_ADAPTER)
