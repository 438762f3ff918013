"""
错误处理服务
"""
import socket
import ssl
import threading
from typing import Callable, Any, Optional, Dict
from datetime import datetime, timezone
import logging

from ..models import CheckTarget, ConnectionOutcome, OutcomeKind


class NoPeerCertificateError(Exception):
    """握手完成但对端未提供证书"""


class ConnectionErrorClassifier:
    """连接错误分类器"""

    def __init__(self):
        """初始化连接错误分类器"""
        self.logger = logging.getLogger(__name__)

        # 按顺序匹配，子类必须排在父类之前
        self.error_kinds = [
            (socket.gaierror, OutcomeKind.HOST_RESOLUTION_FAILURE),
            (ConnectionRefusedError, OutcomeKind.CONNECTION_REFUSED),
            (ConnectionResetError, OutcomeKind.NO_CERTIFICATE_AVAILABLE),
            (BrokenPipeError, OutcomeKind.NO_CERTIFICATE_AVAILABLE),
            (ssl.SSLEOFError, OutcomeKind.NO_CERTIFICATE_AVAILABLE),
            (ssl.SSLZeroReturnError, OutcomeKind.NO_CERTIFICATE_AVAILABLE),
            (NoPeerCertificateError, OutcomeKind.NO_CERTIFICATE_AVAILABLE),
            (socket.timeout, OutcomeKind.TIMEOUT),
            (TimeoutError, OutcomeKind.TIMEOUT),
        ]

    def classify(self, error: BaseException) -> OutcomeKind:
        """
        根据异常类型判断连接结果类型

        Args:
            error: 异常对象

        Returns:
            OutcomeKind: 结果类型，无法识别的错误归为 OTHER_ERROR
        """
        for error_type, kind in self.error_kinds:
            if isinstance(error, error_type):
                return kind
        return OutcomeKind.OTHER_ERROR

    def handle_connection_error(self, target: CheckTarget, error: BaseException) -> ConnectionOutcome:
        """
        处理连接错误

        Args:
            target: 检查目标
            error: 异常对象

        Returns:
            ConnectionOutcome: 失败结果
        """
        kind = self.classify(error)
        error_info = self.describe_error(target, error, kind)

        self.logger.warning(
            f"{target.address} 连接失败 ({kind.value}): {error_info['error_message']}，"
            f"建议: {error_info['suggested_action']}"
        )

        return ConnectionOutcome.failure(kind, f"{error_info['error_type']}: {error_info['error_message']}")

    def describe_error(self, target: CheckTarget, error: BaseException,
                       kind: Optional[OutcomeKind] = None) -> Dict[str, Any]:
        """
        生成错误描述信息

        Args:
            target: 检查目标
            error: 异常对象
            kind: 已知的结果类型，None则重新分类

        Returns:
            Dict[str, Any]: 错误描述
        """
        kind = kind or self.classify(error)
        return {
            'target': target.address,
            'outcome': kind.value,
            'error_type': type(error).__name__,
            'error_message': str(error) or repr(error),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'suggested_action': self._get_suggested_action(kind, error)
        }

    def _get_suggested_action(self, kind: OutcomeKind, error: BaseException) -> str:
        """
        获取错误的建议处理方案

        Args:
            kind: 结果类型
            error: 异常对象

        Returns:
            str: 建议的处理方案
        """
        error_message = str(error).lower()

        if kind is OutcomeKind.HOST_RESOLUTION_FAILURE:
            return "检查主机名是否正确，DNS服务器是否可用"
        elif kind is OutcomeKind.CONNECTION_REFUSED:
            return "检查目标服务器是否运行，端口是否正确"
        elif kind is OutcomeKind.NO_CERTIFICATE_AVAILABLE:
            return "对端未提供证书，检查端口是否为TLS服务"
        elif kind is OutcomeKind.TIMEOUT:
            return "检查网络连接，考虑增加超时时间"
        elif isinstance(error, ssl.SSLError):
            if 'wrong version number' in error_message:
                return "目标端口可能不是TLS服务"
            elif 'handshake failure' in error_message:
                return "SSL握手失败，检查SSL/TLS版本兼容性"
            else:
                return "SSL连接问题，检查服务器SSL配置"
        elif 'network is unreachable' in error_message:
            return "网络不可达，检查网络连接和路由"
        elif 'no route to host' in error_message:
            return "无法路由到主机，检查防火墙和网络配置"
        else:
            return "检查网络连接和服务器状态"


class TimeoutHandler:
    """超时处理器"""

    def __init__(self, default_timeout: int = 30):
        """
        初始化超时处理器

        Args:
            default_timeout: 默认超时时间（秒）
        """
        self.default_timeout = default_timeout
        self.logger = logging.getLogger(__name__)

    def with_timeout(self, func: Callable, timeout: Optional[float] = None,
                     on_timeout: Optional[Callable[[], None]] = None, *args, **kwargs) -> Any:
        """
        在工作线程中执行函数，超过时限后调用取消回调

        工作线程为守护线程，卡住的DNS解析不会阻止进程退出。

        Args:
            func: 要执行的函数
            timeout: 超时时间，如果为None则使用默认值
            on_timeout: 超时后调用的取消回调（例如关闭套接字）
            *args: 函数参数
            **kwargs: 函数关键字参数

        Returns:
            Any: 函数执行结果

        Raises:
            TimeoutError: 执行超时
        """
        timeout = timeout or self.default_timeout
        outcome: Dict[str, Any] = {}

        def runner():
            try:
                outcome['result'] = func(*args, **kwargs)
            except BaseException as e:
                outcome['error'] = e

        # 在守护线程中执行并等待结果
        worker = threading.Thread(target=runner, name=f"timeout-{getattr(func, '__name__', 'task')}", daemon=True)
        worker.start()
        worker.join(timeout)

        if worker.is_alive():
            self.logger.error(f"函数执行超时: {getattr(func, '__name__', func)}（{timeout}秒）")
            # 通知调用方释放资源
            if on_timeout is not None:
                try:
                    on_timeout()
                except Exception as e:
                    self.logger.debug(f"取消回调执行失败: {type(e).__name__}: {str(e)}")
            raise TimeoutError(f"操作超时（{timeout}秒）")

        # 在调用线程中重新抛出工作线程的异常
        if 'error' in outcome:
            raise outcome['error']

        return outcome.get('result')
