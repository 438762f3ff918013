"""
证书过期评估器测试
"""
import pytest
from datetime import datetime, timezone, timedelta

from certificate_check.services.expiry_evaluator import ExpiryEvaluator
from certificate_check.models import (
    CertificateInfo,
    ConnectionOutcome,
    OutcomeKind,
    Severity,
    Thresholds,
)


NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def outcome_expiring_in(delta: timedelta) -> ConnectionOutcome:
    return ConnectionOutcome.success(CertificateInfo(
        subject="C = US, O = Example Org, CN = example.com",
        serial_number="4096 (0x1000)",
        issuer="C = US, O = Test CA, CN = Test CA",
        not_after=NOW + delta
    ))


class TestExpiryEvaluator:
    """证书过期评估器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.evaluator = ExpiryEvaluator(Thresholds(warning_hours=120, critical_hours=72))

    def test_default_thresholds(self):
        evaluator = ExpiryEvaluator()
        assert evaluator.thresholds.warning_hours == 120
        assert evaluator.thresholds.critical_hours == 72

    def test_calculate_hours_truncates_toward_zero(self):
        """小数小时向零截断"""
        assert self.evaluator.calculate_hours_until_expiry(NOW + timedelta(hours=5, minutes=59), NOW) == 5
        assert self.evaluator.calculate_hours_until_expiry(NOW - timedelta(hours=5, minutes=59), NOW) == -5
        assert self.evaluator.calculate_hours_until_expiry(NOW + timedelta(minutes=30), NOW) == 0

    def test_ok(self):
        """200小时后过期 -> OK"""
        result = self.evaluator.evaluate(outcome_expiring_in(timedelta(hours=200)), now=NOW)

        assert result.severity is Severity.OK
        assert result.severity.exit_code == 0
        assert result.message == (
            "The certificate is good for another 200 hours until Jun 09 20:00:00 2024 GMT."
        )

    def test_warning(self):
        """100小时后过期 -> WARNING"""
        result = self.evaluator.evaluate(outcome_expiring_in(timedelta(hours=100)), now=NOW)

        assert result.severity is Severity.WARNING
        assert result.severity.exit_code == 1
        assert "about to expire in 100 hours" in result.message

    def test_critical_takes_precedence_over_warning(self):
        """50小时后过期同时满足两个阈值 -> CRITICAL"""
        result = self.evaluator.evaluate(outcome_expiring_in(timedelta(hours=50)), now=NOW)

        assert result.severity is Severity.CRITICAL
        assert result.severity.exit_code == 2
        assert "about to expire in 50 hours" in result.message

    def test_expired(self):
        """10小时前已过期 -> CRITICAL"""
        result = self.evaluator.evaluate(outcome_expiring_in(timedelta(hours=-10)), now=NOW)

        assert result.severity is Severity.CRITICAL
        assert result.message == "The certificate has expired 10 hours ago on Jun 01 02:00:00 2024 GMT."

    def test_expiring_within_the_hour_counts_as_expired(self):
        result = self.evaluator.evaluate(outcome_expiring_in(timedelta(minutes=20)), now=NOW)

        assert result.severity is Severity.CRITICAL
        assert "expired 0 hours ago" in result.message

    @pytest.mark.parametrize("hours,expected", [
        (121, Severity.OK),
        (120, Severity.WARNING),
        (73, Severity.WARNING),
        (72, Severity.CRITICAL),
        (1, Severity.CRITICAL),
        (0, Severity.CRITICAL),
        (-1, Severity.CRITICAL),
    ])
    def test_threshold_boundaries(self, hours, expected):
        """阈值边界：小于等于阈值即触发"""
        result = self.evaluator.evaluate(outcome_expiring_in(timedelta(hours=hours)), now=NOW)
        assert result.severity is expected

    def test_thresholds_argument_overrides_configured(self):
        result = self.evaluator.evaluate(
            outcome_expiring_in(timedelta(hours=100)),
            Thresholds(warning_hours=48, critical_hours=24),
            now=NOW
        )
        assert result.severity is Severity.OK

    def test_critical_above_warning_critical_wins(self):
        """严重阈值大于警告阈值时严重阈值优先，WARNING 不会出现"""
        evaluator = ExpiryEvaluator(Thresholds(warning_hours=24, critical_hours=48))

        assert evaluator.evaluate(outcome_expiring_in(timedelta(hours=30)), now=NOW).severity is Severity.CRITICAL
        assert evaluator.evaluate(outcome_expiring_in(timedelta(hours=47)), now=NOW).severity is Severity.CRITICAL
        assert evaluator.evaluate(outcome_expiring_in(timedelta(hours=49)), now=NOW).severity is Severity.OK

    def test_details_for_success(self):
        result = self.evaluator.evaluate(outcome_expiring_in(timedelta(hours=200)), now=NOW)

        assert result.details == [
            "Subject: C = US, O = Example Org, CN = example.com",
            "Serial Number: 4096 (0x1000)",
            "Issuer: C = US, O = Test CA, CN = Test CA",
        ]

    @pytest.mark.parametrize("kind,message", [
        (OutcomeKind.HOST_RESOLUTION_FAILURE, "gethostbyname failure"),
        (OutcomeKind.CONNECTION_REFUSED, "connect: Connection refused"),
        (OutcomeKind.NO_CERTIFICATE_AVAILABLE, "no peer certificate available"),
        (OutcomeKind.TIMEOUT, "connection timed out"),
        (OutcomeKind.OTHER_ERROR, "SSLError: wrong version number"),
    ])
    def test_connectivity_failures_are_unknown(self, kind, message):
        outcome = ConnectionOutcome.failure(kind, "SSLError: wrong version number")
        result = self.evaluator.evaluate(outcome)

        assert result.severity is Severity.UNKNOWN
        assert result.severity.exit_code == 3
        assert message in result.message
        assert result.details == []

    def test_no_port_defined_is_critical(self):
        result = self.evaluator.evaluate(ConnectionOutcome.failure(OutcomeKind.NO_PORT_DEFINED))

        assert result.severity is Severity.CRITICAL
        assert result.message == "no port defined"

    def test_timeout_message_includes_seconds(self):
        evaluator = ExpiryEvaluator(timeout_seconds=2)
        result = evaluator.evaluate(ConnectionOutcome.failure(OutcomeKind.TIMEOUT))

        assert result.message == "connection timed out after 2 seconds"
