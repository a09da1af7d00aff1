"""deploydesk Backend -- 后端边界与模拟实现

Backend 包的公开接口导出。
"""

from .config import BackendConfig, load_backend_config
from .exceptions import BackendError, UnsupportedOperationError
from .models import OperationResult
from .simulated import SimulatedBackend, failure_messages

__all__ = [
    "OperationResult",
    "SimulatedBackend",
    "failure_messages",
    "BackendConfig",
    "load_backend_config",
    "BackendError",
    "UnsupportedOperationError",
]
