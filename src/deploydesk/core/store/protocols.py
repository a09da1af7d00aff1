"""Store Protocol 接口定义

定义 KeyValueStore 与 TaskBackend 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from typing import Protocol

from ..models.enums import OperationType
from ..models.task import DeploymentTask


class KeyValueStore(Protocol):
    """持久化键值存储接口"""

    async def get(self, key: str) -> str | None:
        """读取原始值，不存在返回 None"""
        ...

    async def set(self, key: str, value: str) -> None:
        """整值覆盖写入"""
        ...

    async def delete(self, key: str) -> None:
        """删除键"""
        ...


class TaskBackend(Protocol):
    """后端边界：替换为真实 API 时 Executor 控制流不变"""

    async def fetch_all_tasks(self) -> list[DeploymentTask]:
        """获取全部任务快照"""
        ...

    async def submit_operation(self, task: DeploymentTask, operation: OperationType):
        """提交操作，最终返回 OperationResult（目标状态或失败详情）"""
        ...
