"""
证书过期评估服务
"""
from datetime import datetime, timezone
from typing import List, Optional

from ..interfaces import ExpiryEvaluatorInterface
from ..models import (
    CertificateInfo,
    CheckResult,
    ConnectionOutcome,
    OutcomeKind,
    Severity,
    Thresholds,
)


SECONDS_PER_HOUR = 3600


class ExpiryEvaluator(ExpiryEvaluatorInterface):
    """证书过期评估器"""

    def __init__(self, thresholds: Optional[Thresholds] = None, timeout_seconds: Optional[int] = None):
        """
        初始化过期评估器

        Args:
            thresholds: 告警阈值，默认警告120小时、严重72小时
            timeout_seconds: 连接超时时间，仅用于超时提示信息
        """
        self.thresholds = thresholds or Thresholds()
        self.timeout_seconds = timeout_seconds

    def calculate_hours_until_expiry(self, expiry_date: datetime, now: Optional[datetime] = None) -> int:
        """
        计算距离过期的小时数，小数部分向零截断

        Args:
            expiry_date: 过期时间
            now: 当前时间，默认为当前UTC时间

        Returns:
            int: 剩余小时数（负数表示已过期）
        """
        now = now or datetime.now(timezone.utc)
        seconds = int((expiry_date - now).total_seconds())
        hours = abs(seconds) // SECONDS_PER_HOUR
        return hours if seconds >= 0 else -hours

    def evaluate(self, outcome: ConnectionOutcome, thresholds: Optional[Thresholds] = None,
                 now: Optional[datetime] = None) -> CheckResult:
        """
        评估证书获取结果

        Args:
            outcome: 证书获取结果
            thresholds: 告警阈值，None则使用初始化时的阈值
            now: 当前时间，默认为当前UTC时间

        Returns:
            CheckResult: 状态级别、消息和详细信息
        """
        thresholds = thresholds or self.thresholds

        # 获取失败时按失败类型给出状态
        if not outcome.is_success:
            return self._evaluate_failure(outcome)

        cert = outcome.certificate
        # 计算剩余小时数
        hours = self.calculate_hours_until_expiry(cert.not_after, now)
        expiry = cert.not_after_display
        details = self._certificate_details(cert)

        # 不足1小时也视为已过期
        if hours <= 0:
            return CheckResult(
                Severity.CRITICAL,
                f"The certificate has expired {abs(hours)} hours ago on {expiry}.",
                details
            )

        # 严重阈值优先于警告阈值
        if hours <= thresholds.critical_hours:
            severity = Severity.CRITICAL
        elif hours <= thresholds.warning_hours:
            severity = Severity.WARNING
        else:
            return CheckResult(
                Severity.OK,
                f"The certificate is good for another {hours} hours until {expiry}.",
                details
            )

        return CheckResult(
            severity,
            f"The certificate is about to expire in {hours} hours on {expiry}.",
            details
        )

    def _evaluate_failure(self, outcome: ConnectionOutcome) -> CheckResult:
        kind = outcome.kind
        detail = outcome.message

        # 未定义端口属于配置问题，按 CRITICAL 报告
        if kind is OutcomeKind.NO_PORT_DEFINED:
            return CheckResult(Severity.CRITICAL, "no port defined")

        if kind is OutcomeKind.HOST_RESOLUTION_FAILURE:
            message = "gethostbyname failure"
        elif kind is OutcomeKind.CONNECTION_REFUSED:
            message = "connect: Connection refused"
        elif kind is OutcomeKind.NO_CERTIFICATE_AVAILABLE:
            return CheckResult(Severity.UNKNOWN, "no peer certificate available")
        elif kind is OutcomeKind.TIMEOUT:
            if self.timeout_seconds:
                return CheckResult(Severity.UNKNOWN, f"connection timed out after {self.timeout_seconds} seconds")
            return CheckResult(Severity.UNKNOWN, "connection timed out")
        else:
            return CheckResult(Severity.UNKNOWN, detail or "unknown error")

        if detail:
            message = f"{message} ({detail})"
        return CheckResult(Severity.UNKNOWN, message)

    def _certificate_details(self, cert: CertificateInfo) -> List[str]:
        return [
            f"Subject: {cert.subject}",
            f"Serial Number: {cert.serial_number}",
            f"Issuer: {cert.issuer}",
        ]
