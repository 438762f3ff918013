"""
服务接口定义
"""
from abc import ABC, abstractmethod
from typing import Optional
from .models import CheckTarget, ConnectionOutcome, CheckResult, Thresholds


class CertificateFetcherInterface(ABC):
    """证书获取器接口"""

    @abstractmethod
    def fetch(self, target: CheckTarget) -> ConnectionOutcome:
        """连接目标并获取叶子证书"""
        pass


class ExpiryEvaluatorInterface(ABC):
    """过期评估器接口"""

    @abstractmethod
    def evaluate(self, outcome: ConnectionOutcome,
                 thresholds: Optional[Thresholds] = None) -> CheckResult:
        """根据阈值评估获取结果"""
        pass


class StatusReporterInterface(ABC):
    """状态输出接口"""

    @abstractmethod
    def format_status(self, result: CheckResult, verbose: bool = False) -> str:
        """格式化状态行"""
        pass

    @abstractmethod
    def report(self, result: CheckResult, verbose: bool = False) -> int:
        """输出状态并返回退出码"""
        pass


class LoggerServiceInterface(ABC):
    """日志服务接口"""

    @abstractmethod
    def log_check_start(self, target: CheckTarget):
        """记录检查开始"""
        pass

    @abstractmethod
    def log_outcome(self, target: CheckTarget, outcome: ConnectionOutcome):
        """记录证书获取结果"""
        pass

    @abstractmethod
    def log_error(self, target: CheckTarget, error: Exception):
        """记录错误信息"""
        pass
