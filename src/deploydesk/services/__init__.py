"""deploydesk Services -- 操作执行与批量协调"""

from .coordinator import BatchApplicability, BatchOperationCoordinator, BatchRunResult
from .executor import OperationExecutor, OperationOutcome
from .notifier import LogNotifier, Notification, Notifier, RecordingNotifier

__all__ = [
    "OperationExecutor",
    "OperationOutcome",
    "BatchOperationCoordinator",
    "BatchApplicability",
    "BatchRunResult",
    "Notifier",
    "Notification",
    "LogNotifier",
    "RecordingNotifier",
]
