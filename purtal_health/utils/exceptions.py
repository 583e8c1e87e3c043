"""自定义异常类和错误码"""

import traceback
from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime


class ErrorCode(Enum):
    """错误代码枚举"""
    # 通用错误 (1000-1999)
    UNKNOWN_ERROR = 1000
    VALIDATION_ERROR = 1002

    # 配置错误 (2000-2999)
    CONFIG_FILE_NOT_FOUND = 2000
    CONFIG_PARSE_ERROR = 2001
    CONFIG_VALIDATION_ERROR = 2002

    # 探测错误 (3000-3999)
    PROBE_TIMEOUT = 3001
    PROBE_TRANSPORT_ERROR = 3002
    MISCONFIGURED_TARGET = 3003

    # 目标查找错误 (4000-4999)
    TARGET_NOT_FOUND = 4000

    # 调度错误 (5000-5999)
    SCHEDULER_SETUP_ERROR = 5000

    # 持久化错误 (6000-6999)
    PERSISTENCE_ERROR = 6000


class HealthMonitorError(Exception):
    """健康监控系统基础异常类"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = True
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause
        self.recoverable = recoverable
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            'error_code': self.error_code.value,
            'error_name': self.error_code.name,
            'message': self.message,
            'details': self.details,
            'recoverable': self.recoverable,
            'timestamp': self.timestamp.isoformat(),
            'cause': str(self.cause) if self.cause else None,
            'traceback': traceback.format_exc() if self.cause else None
        }

    def format_error(self) -> str:
        """格式化错误信息"""
        error_msg = f"[{self.error_code.name}] {self.message}"
        if self.details:
            details_str = ", ".join([f"{k}={v}" for k, v in self.details.items()])
            error_msg += f" (详情: {details_str})"
        if self.cause:
            error_msg += f" (原因: {str(self.cause)})"
        return error_msg


class ConfigError(HealthMonitorError):
    """配置相关异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONFIG_VALIDATION_ERROR,
        config_path: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if config_path:
            details['config_path'] = config_path
        super().__init__(message, error_code, details, **kwargs)


class TargetNotFoundError(HealthMonitorError):
    """按需检查时目标不存在"""

    def __init__(self, target_kind: str, target_id: str, **kwargs):
        super().__init__(
            f"{target_kind.capitalize()} not found",
            ErrorCode.TARGET_NOT_FOUND,
            details={'target_kind': target_kind, 'target_id': target_id},
            recoverable=False,
            **kwargs
        )
        self.target_kind = target_kind
        self.target_id = target_id


class ProbeError(HealthMonitorError):
    """探测相关异常基类

    探测异常只在检查器内部使用，最终都会被转换为状态记录中的字段。
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.PROBE_TRANSPORT_ERROR,
        target_id: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if target_id:
            details['target_id'] = target_id
        super().__init__(message, error_code, details, **kwargs)


class ProbeTimeoutError(ProbeError):
    """探测超时"""

    def __init__(self, message: str, target_id: Optional[str] = None, **kwargs):
        super().__init__(message, ErrorCode.PROBE_TIMEOUT, target_id=target_id, **kwargs)


class ProbeTransportError(ProbeError):
    """DNS解析失败、连接被拒绝等传输层错误"""

    def __init__(self, message: str, target_id: Optional[str] = None, **kwargs):
        super().__init__(message, ErrorCode.PROBE_TRANSPORT_ERROR, target_id=target_id, **kwargs)


class MisconfiguredTargetError(ProbeError):
    """目标缺少必需字段，不发起任何网络请求"""

    def __init__(self, message: str, target_id: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            ErrorCode.MISCONFIGURED_TARGET,
            target_id=target_id,
            recoverable=False,
            **kwargs
        )


class PersistenceError(HealthMonitorError):
    """目标注册表读写失败"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.PERSISTENCE_ERROR,
        **kwargs
    ):
        super().__init__(message, error_code, **kwargs)


class SchedulerSetupError(HealthMonitorError):
    """重新调度时读取设置失败，保留原有调度"""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCode.SCHEDULER_SETUP_ERROR, **kwargs)
