"""Notifier -- 面向操作者的通知

每次用户操作最多产生一条汇总通知；静默模式下 Executor 不发通知。
"""

from typing import Literal, Protocol

import structlog
from pydantic import BaseModel

log = structlog.get_logger()

NotificationLevel = Literal["success", "warning", "error"]


class Notification(BaseModel):
    """一条通知"""

    level: NotificationLevel
    message: str


class Notifier(Protocol):
    """通知接口"""

    def notify(self, level: NotificationLevel, message: str) -> None:
        ...


class LogNotifier:
    """以 structlog 事件输出通知"""

    def notify(self, level: NotificationLevel, message: str) -> None:
        if level == "error":
            log.error("operator_notification", level=level, message=message)
        elif level == "warning":
            log.warning("operator_notification", level=level, message=message)
        else:
            log.info("operator_notification", level=level, message=message)


class RecordingNotifier:
    """记录所有通知（供 CLI 汇总输出与测试断言）"""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def notify(self, level: NotificationLevel, message: str) -> None:
        self.notifications.append(Notification(level=level, message=message))

    def messages(self, level: NotificationLevel | None = None) -> list[str]:
        return [n.message for n in self.notifications if level is None or n.level == level]

    def clear(self) -> None:
        self.notifications.clear()
