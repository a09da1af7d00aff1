"""deploydesk Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

from pathlib import Path

import aiosqlite

from ..config import PERSIST_DEBOUNCE_MS
from .kv_store import SqliteKeyValueStore
from .persistence import KeyValuePersistence
from .protocols import KeyValueStore, TaskBackend
from .sqlite_init import init_db
from .task_store import TaskStore


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接"""

    def __init__(self, conn: aiosqlite.Connection, task_store: TaskStore) -> None:
        self.conn = conn
        self.task_store = task_store

    async def close(self) -> None:
        """落盘未写入的修改并关闭连接"""
        try:
            await self.task_store.aclose()
        finally:
            await self.conn.close()


async def create_store_group(
    db_path: str,
    debounce_ms: int = PERSIST_DEBOUNCE_MS,
) -> StoreGroup:
    """创建 Store 实例组并恢复已保存的状态

    Args:
        db_path: SQLite 数据库文件路径
        debounce_ms: 持久化防抖间隔（毫秒）

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    await init_db(conn)

    persistence = KeyValuePersistence(SqliteKeyValueStore(conn))
    task_store = await TaskStore.open(persistence, debounce_ms)
    return StoreGroup(conn=conn, task_store=task_store)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "KeyValueStore",
    "TaskBackend",
    "SqliteKeyValueStore",
    "KeyValuePersistence",
    "TaskStore",
    "init_db",
]
