"""BatchOperationCoordinator 测试

测试内容：
1. 选中为空 / 无可执行任务：一条提示，不修改状态
2. 批量部署：后台提交，立即清空选中，顺序冻结
3. 确认批量部署：先创建批次再提交（两任务场景）
4. 其他批量操作：等待全部完成，一条汇总通知
5. 失败只产生一条错误通知
"""

import pytest
from deploydesk.backend import BackendError, SimulatedBackend
from deploydesk.core.models import DeploymentStatus, OperationType
from deploydesk.core.store import TaskStore
from deploydesk.core.views import batch_partition
from deploydesk.services import (
    BatchOperationCoordinator,
    OperationExecutor,
    RecordingNotifier,
)


def _make_coordinator(store, backend, notifier) -> BatchOperationCoordinator:
    return BatchOperationCoordinator(store, OperationExecutor(store, backend, notifier), notifier)


class _FailingKeysBackend:
    """指定 key 的任务提交失败，其余交给真实后端"""

    def __init__(self, inner: SimulatedBackend, failing_keys: set[str]) -> None:
        self._inner = inner
        self._failing_keys = failing_keys

    async def fetch_all_tasks(self):
        return await self._inner.fetch_all_tasks()

    async def submit_operation(self, task, operation):
        if task.key in self._failing_keys:
            raise BackendError(f"backend unavailable: {task.key}")
        return await self._inner.submit_operation(task, operation)


@pytest.fixture
def coordinator(store: TaskStore, backend: SimulatedBackend, notifier: RecordingNotifier):
    return _make_coordinator(store, backend, notifier)


class TestApplicability:
    """适用性划分"""

    async def test_partition_in_selection_order(self, store, coordinator, make_task):
        store.set_tasks(
            [
                make_task("a"),
                make_task("b", DeploymentStatus.DEPLOYED),
                make_task("c"),
            ]
        )
        store.set_selected_keys(["c", "b", "a"])

        result = coordinator.get_batch_applicability(OperationType.DEPLOY)
        assert [task.key for task in result.applicable] == ["c", "a"]
        assert [task.key for task in result.not_applicable] == ["b"]

    async def test_can_perform(self, store, coordinator, make_task):
        store.set_tasks([make_task("a", DeploymentStatus.DEPLOYED)])
        assert coordinator.can_perform(OperationType.VERIFY_PASS) is False

        store.set_selected_keys(["a"])
        assert coordinator.can_perform(OperationType.VERIFY_PASS) is True
        assert coordinator.can_perform(OperationType.DEPLOY) is False


class TestRunAborts:
    """中止的批量操作"""

    async def test_empty_selection(self, store, coordinator, notifier, make_task):
        store.set_tasks([make_task("a")])
        result = await coordinator.run(OperationType.DEPLOY)
        assert result.started is False
        assert notifier.messages("warning") == ["请先选择要操作的任务"]

    async def test_no_applicable_tasks(self, store, coordinator, notifier, make_task):
        store.set_tasks(
            [
                make_task("a", DeploymentStatus.DEPLOYED),
                make_task("b", DeploymentStatus.DEPLOYMENT_ENDED),
            ]
        )
        store.set_selected_keys(["a", "b"])
        before = [task.model_dump_json() for task in store.tasks]

        result = await coordinator.run(OperationType.ROLLBACK)

        assert result.started is False
        assert result.not_applicable_count == 2
        assert len(notifier.notifications) == 1
        message = notifier.messages("warning")[0]
        assert "选中的任务中没有可以回滚的任务" in message
        assert "2 个任务状态不符合要求" in message
        assert [task.model_dump_json() for task in store.tasks] == before
        assert store.selected_keys == ["a", "b"]


class TestBatchDeploy:
    """批量部署"""

    async def test_fire_and_forget(self, store, coordinator, notifier, make_task):
        store.set_tasks([make_task("a"), make_task("b"), make_task("c")])
        store.set_selected_keys(["b", "a"])

        result = await coordinator.run(OperationType.DEPLOY)

        # 立即返回：已进入部署中，选中已清空，顺序冻结
        assert result.started is True
        assert result.task_keys == ["b", "a"]
        assert store.selected_keys == []
        assert store.get_task("a").status == DeploymentStatus.DEPLOYING
        assert store.get_task("b").status == DeploymentStatus.DEPLOYING
        assert store.get_task("a").deploy_order == 1
        assert store.get_task("b").deploy_order == 2
        assert notifier.messages() == ["批量部署已提交，共 2 个任务"]

        await coordinator.drain()
        assert coordinator.pending_count == 0
        assert store.get_task("a").status == DeploymentStatus.DEPLOYED
        assert store.get_task("b").status == DeploymentStatus.DEPLOYED
        assert store.get_task("c").status == DeploymentStatus.PENDING
        # 单任务结果为静默模式
        assert len(notifier.notifications) == 1

    async def test_confirm_two_task_batch(self, store, coordinator, make_task):
        """A、B 组成批次并部署，未选中的 C 不受影响"""
        store.set_tasks([make_task("a"), make_task("b"), make_task("c")])
        store.set_selected_keys(["a", "b"])

        result = await coordinator.confirm(OperationType.DEPLOY)
        await coordinator.drain()

        assert result.batch_key is not None
        assert store.get_task("a").batch_key == result.batch_key
        assert store.get_task("b").batch_key == result.batch_key
        assert store.get_task("c").batch_key is None
        assert store.get_task("c").deploy_order is None
        assert result.batch_key in store.expanded_group_keys

        partition = batch_partition(store.tasks)
        assert len(partition.batches) == 1
        batch = partition.batches[0]
        assert batch.batch_number == 1
        assert [task.key for task in batch.tasks] == ["a", "b"]
        assert [task.deploy_order for task in batch.tasks] == [1, 2]
        assert all(task.status == DeploymentStatus.DEPLOYED for task in batch.tasks)
        assert [task.key for task in partition.unbatched_tasks] == ["c"]

    async def test_confirm_without_eligible_tasks(self, store, coordinator, notifier, make_task):
        store.set_tasks([make_task("a", DeploymentStatus.DEPLOYED)])
        store.set_selected_keys(["a"])
        before = [task.model_dump_json() for task in store.tasks]

        result = await coordinator.confirm(OperationType.DEPLOY)

        assert result.started is False
        assert result.batch_key is None
        assert notifier.messages("warning") == ["请选择有部署顺序的待部署任务"]
        assert [task.model_dump_json() for task in store.tasks] == before

    async def test_background_failure_is_not_raised(
        self, store, exploding_backend, notifier, make_task
    ):
        coordinator = _make_coordinator(store, exploding_backend, notifier)
        store.set_tasks([make_task("a")])
        store.set_selected_keys(["a"])

        result = await coordinator.run(OperationType.DEPLOY)
        assert result.started is True
        await coordinator.drain()

        # 失败后恢复为待部署
        assert store.get_task("a").status == DeploymentStatus.PENDING
        assert notifier.messages() == ["批量部署已提交，共 1 个任务"]


class TestAwaitedBatchOperations:
    """等待结果的批量操作"""

    async def test_batch_verify_pass(self, store, coordinator, notifier, make_task):
        store.set_tasks(
            [
                make_task("a", DeploymentStatus.DEPLOYED),
                make_task("b", DeploymentStatus.DEPLOYED),
                make_task("c"),
            ]
        )
        store.set_selected_keys(["a", "b", "c"])

        result = await coordinator.run(OperationType.VERIFY_PASS)

        assert result.started is True
        assert result.not_applicable_count == 1
        assert [o.final_status for o in result.outcomes] == [
            DeploymentStatus.DEPLOYMENT_ENDED,
            DeploymentStatus.DEPLOYMENT_ENDED,
        ]
        assert store.get_task("c").status == DeploymentStatus.PENDING
        assert store.selected_keys == []
        assert notifier.messages() == ["批量验证通过成功，共处理 2 个任务"]

    async def test_batch_delete(self, store, coordinator, notifier, make_task):
        store.set_tasks([make_task("a"), make_task("b", DeploymentStatus.DEPLOYED), make_task("c")])
        store.set_selected_keys(["a", "b"])

        await coordinator.run(OperationType.DELETE)

        assert [task.key for task in store.tasks] == ["c"]
        assert notifier.messages() == ["批量删除成功，共处理 2 个任务"]

    async def test_batch_failure_single_error(
        self, store, exploding_backend, notifier, make_task
    ):
        coordinator = _make_coordinator(store, exploding_backend, notifier)
        store.set_tasks(
            [
                make_task("a", DeploymentStatus.DEPLOYMENT_FAILED),
                make_task("b", DeploymentStatus.DEPLOYMENT_FAILED),
            ]
        )
        store.set_selected_keys(["a", "b"])

        result = await coordinator.run(OperationType.ROLLBACK)

        assert result.error is not None
        assert notifier.messages() == ["批量回滚失败"]
        assert store.get_task("a").status == DeploymentStatus.DEPLOYMENT_FAILED
        assert store.get_task("b").status == DeploymentStatus.DEPLOYMENT_FAILED
        # 失败时保留选中
        assert store.selected_keys == ["a", "b"]

    async def test_partial_failure_waits_for_all(self, store, backend, notifier, make_task):
        """部分任务失败：等待所有任务结束，成功的结果保留，只产生一条错误通知"""
        coordinator = _make_coordinator(store, _FailingKeysBackend(backend, {"b", "c"}), notifier)
        store.set_tasks(
            [
                make_task("a", DeploymentStatus.DEPLOYED),
                make_task("b", DeploymentStatus.DEPLOYED),
                make_task("c", DeploymentStatus.DEPLOYED),
            ]
        )
        store.set_selected_keys(["a", "b", "c"])

        result = await coordinator.run(OperationType.VERIFY_PASS)

        assert result.error == "backend unavailable: b"
        assert [outcome.task_key for outcome in result.outcomes] == ["a"]
        assert notifier.messages() == ["批量验证通过失败"]
        assert store.get_task("a").status == DeploymentStatus.DEPLOYMENT_ENDED
        assert store.get_task("b").status == DeploymentStatus.DEPLOYED
        assert store.get_task("c").status == DeploymentStatus.DEPLOYED
        assert store.selected_keys == ["a", "b", "c"]
