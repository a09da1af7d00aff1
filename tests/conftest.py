"""deploydesk 测试配置 -- 共享 fixture"""

import logging
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio
import structlog
from deploydesk.backend import BackendConfig, BackendError, SimulatedBackend
from deploydesk.core.models import DeploymentStatus, DeploymentTask
from deploydesk.core.store import KeyValuePersistence, SqliteKeyValueStore, TaskStore
from deploydesk.core.store.sqlite_init import init_db
from deploydesk.services import RecordingNotifier

TaskFactory = Callable[..., DeploymentTask]


@pytest.fixture
def restore_logging():
    """还原 setup_logging 修改的全局日志配置"""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def make_task() -> TaskFactory:
    """任务构造器：make_task("a", status=..., deploy_order=...)"""

    def _make(key: str, status: DeploymentStatus = DeploymentStatus.PENDING, **fields):
        fields.setdefault("app_name", f"app-{key}")
        fields.setdefault("version", "1.0.0")
        fields.setdefault("cluster", "cluster-a")
        return DeploymentTask(key=key, status=status, **fields)

    return _make


@pytest_asyncio.fixture
async def db_path(tmp_path: Path) -> Path:
    """临时数据库路径"""
    return tmp_path / "deploydesk_test.db"


@pytest_asyncio.fixture
async def db_conn(db_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """已初始化的数据库连接"""
    conn = await aiosqlite.connect(str(db_path))
    await init_db(conn)
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def kv_store(db_conn: aiosqlite.Connection) -> SqliteKeyValueStore:
    return SqliteKeyValueStore(db_conn)


@pytest_asyncio.fixture
async def persistence(kv_store: SqliteKeyValueStore) -> KeyValuePersistence:
    return KeyValuePersistence(kv_store)


@pytest_asyncio.fixture
async def store(persistence: KeyValuePersistence) -> AsyncGenerator[TaskStore, None]:
    """短防抖间隔的 TaskStore"""
    task_store = await TaskStore.open(persistence, debounce_ms=10)
    yield task_store
    await task_store.aclose()


@pytest.fixture
def fast_config() -> BackendConfig:
    """近零延迟、部署必定成功的后端配置"""
    return BackendConfig(
        deploy_delay_s=0.01,
        whitelist_delay_s=0.01,
        rollback_delay_s=0.01,
        deploy_success_rate=1.0,
        seed=7,
    )


@pytest.fixture
def failing_config(fast_config: BackendConfig) -> BackendConfig:
    """部署必定失败的后端配置"""
    return fast_config.model_copy(update={"deploy_success_rate": 0.0})


@pytest.fixture
def backend(fast_config: BackendConfig) -> SimulatedBackend:
    return SimulatedBackend(fast_config)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


class ExplodingBackend:
    """提交即失败的后端"""

    async def fetch_all_tasks(self) -> list[DeploymentTask]:
        return []

    async def submit_operation(self, task, operation):
        raise BackendError("backend unavailable")


@pytest.fixture
def exploding_backend() -> ExplodingBackend:
    return ExplodingBackend()
