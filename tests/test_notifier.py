"""Notifier 测试

测试内容：
1. LogNotifier 按通知级别输出 structlog 事件
2. 未指定 notifier 时 Executor / Coordinator 使用 LogNotifier
"""

from deploydesk.core.models import DeploymentStatus, OperationType
from deploydesk.services import (
    BatchOperationCoordinator,
    LogNotifier,
    OperationExecutor,
    RecordingNotifier,
)
from structlog.testing import capture_logs


class TestLogNotifier:
    def test_levels_map_to_log_levels(self):
        notifier = LogNotifier()
        with capture_logs() as logs:
            notifier.notify("success", "app-a 部署成功")
            notifier.notify("warning", "请先选择要操作的任务")
            notifier.notify("error", "操作执行失败")

        assert [entry["event"] for entry in logs] == ["operator_notification"] * 3
        assert [entry["log_level"] for entry in logs] == ["info", "warning", "error"]
        assert logs[0]["message"] == "app-a 部署成功"
        assert logs[2]["level"] == "error"


class TestRecordingNotifier:
    def test_messages_filtered_by_level(self):
        notifier = RecordingNotifier()
        notifier.notify("success", "a")
        notifier.notify("error", "b")

        assert notifier.messages() == ["a", "b"]
        assert notifier.messages("error") == ["b"]

        notifier.clear()
        assert notifier.messages() == []


class TestDefaultNotifier:
    async def test_executor_logs_notifications(self, store, backend, make_task):
        store.set_tasks([make_task("a", DeploymentStatus.DEPLOYED)])
        executor = OperationExecutor(store, backend)

        with capture_logs() as logs:
            await executor.execute(OperationType.VERIFY_PASS, store.get_task("a"))

        notices = [entry for entry in logs if entry["event"] == "operator_notification"]
        assert [entry["message"] for entry in notices] == ["app-a 验证通过"]

    async def test_coordinator_logs_empty_selection_warning(self, store, backend):
        coordinator = BatchOperationCoordinator(store, OperationExecutor(store, backend))

        with capture_logs() as logs:
            result = await coordinator.run(OperationType.DEPLOY)

        assert result.started is False
        notices = [entry for entry in logs if entry["event"] == "operator_notification"]
        assert notices[0]["log_level"] == "warning"
        assert notices[0]["message"] == "请先选择要操作的任务"
