"""
数据模型定义
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List


DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_WARNING_HOURS = 120
DEFAULT_CRITICAL_HOURS = 72


@dataclass(frozen=True)
class CheckTarget:
    """检查目标（主机、端口、超时）"""
    host: str
    port: Optional[int]
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_input(cls, host: Optional[str], port, timeout=None) -> "CheckTarget":
        """
        从命令行输入构建检查目标

        端口缺失或格式错误时保留为None，由证书获取器报告 NO_PORT_DEFINED。

        Args:
            host: 主机名
            port: 端口（字符串或整数）
            timeout: 超时时间（秒），None表示使用默认值

        Returns:
            CheckTarget: 检查目标
        """
        try:
            parsed_port = int(str(port).strip()) if port is not None else None
        except ValueError:
            parsed_port = None

        return cls(
            host=(host or "").strip(),
            port=parsed_port,
            timeout_seconds=int(timeout) if timeout is not None else DEFAULT_TIMEOUT_SECONDS
        )

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class Thresholds:
    """告警阈值（小时）"""
    warning_hours: int = DEFAULT_WARNING_HOURS
    critical_hours: int = DEFAULT_CRITICAL_HOURS

    @property
    def is_sane(self) -> bool:
        """严重阈值不应大于警告阈值"""
        return self.critical_hours <= self.warning_hours


@dataclass(frozen=True)
class CertificateInfo:
    """叶子证书信息"""
    subject: str
    serial_number: str
    issuer: str
    not_after: datetime

    @property
    def not_after_display(self) -> str:
        """OpenSSL风格的过期时间，例如 'Dec 31 23:59:59 2024 GMT'"""
        return self.not_after.strftime('%b %d %H:%M:%S %Y GMT')


class OutcomeKind(Enum):
    """连接结果类型"""
    SUCCESS = "success"
    HOST_RESOLUTION_FAILURE = "host_resolution_failure"
    CONNECTION_REFUSED = "connection_refused"
    NO_CERTIFICATE_AVAILABLE = "no_certificate_available"
    NO_PORT_DEFINED = "no_port_defined"
    TIMEOUT = "timeout"
    OTHER_ERROR = "other_error"


@dataclass(frozen=True)
class ConnectionOutcome:
    """证书获取结果"""
    kind: OutcomeKind
    certificate: Optional[CertificateInfo] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, certificate: CertificateInfo) -> "ConnectionOutcome":
        return cls(kind=OutcomeKind.SUCCESS, certificate=certificate)

    @classmethod
    def failure(cls, kind: OutcomeKind, message: Optional[str] = None) -> "ConnectionOutcome":
        if kind is OutcomeKind.SUCCESS:
            raise ValueError("失败结果不能使用 SUCCESS 类型")
        return cls(kind=kind, message=message)

    @property
    def is_success(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS and self.certificate is not None


class Severity(Enum):
    """监控状态级别及其退出码"""
    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3

    @property
    def exit_code(self) -> int:
        return self.value


@dataclass
class CheckResult:
    """检查结果"""
    severity: Severity
    message: str
    details: List[str] = field(default_factory=list)
