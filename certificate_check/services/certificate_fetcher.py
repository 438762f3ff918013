"""
证书获取服务
"""
import ssl
import socket
import threading
from typing import Optional
import logging

from cryptography import x509

from ..interfaces import CertificateFetcherInterface
from ..models import CheckTarget, CertificateInfo, ConnectionOutcome, OutcomeKind
from .error_handler import ConnectionErrorClassifier, TimeoutHandler, NoPeerCertificateError


MAX_PORT = 65535


class HandshakeAttempt:
    """一次握手尝试中打开的套接字，超时后由调用方关闭"""

    def __init__(self):
        self._lock = threading.Lock()
        self._sockets = []
        self.cancelled = False

    def register(self, sock: socket.socket) -> socket.socket:
        with self._lock:
            if self.cancelled:
                self._close(sock)
                raise TimeoutError("握手已被取消")
            self._sockets.append(sock)
        return sock

    def cancel(self):
        with self._lock:
            self.cancelled = True
            sockets, self._sockets = self._sockets, []
        for sock in sockets:
            self._close(sock)

    @staticmethod
    def _close(sock: socket.socket):
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        sock.close()


class CertificateFetcher(CertificateFetcherInterface):
    """证书获取器实现"""

    def __init__(self, timeout_handler: Optional[TimeoutHandler] = None,
                 error_classifier: Optional[ConnectionErrorClassifier] = None):
        """
        初始化证书获取器

        Args:
            timeout_handler: 超时处理器
            error_classifier: 连接错误分类器
        """
        self.logger = logging.getLogger(__name__)
        self.timeout_handler = timeout_handler or TimeoutHandler()
        self.error_classifier = error_classifier or ConnectionErrorClassifier()

    def fetch(self, target: CheckTarget) -> ConnectionOutcome:
        """
        连接目标并获取叶子证书，只尝试一次

        DNS解析、TCP连接和TLS握手整体受 target.timeout_seconds 限制。

        Args:
            target: 检查目标

        Returns:
            ConnectionOutcome: 获取结果
        """
        # 检查端口和主机
        if not self._is_valid_port(target.port):
            self.logger.error(f"端口无效: {target.port!r}")
            return ConnectionOutcome.failure(OutcomeKind.NO_PORT_DEFINED, "no port defined")

        if not target.host:
            self.logger.error("未指定主机")
            return ConnectionOutcome.failure(OutcomeKind.OTHER_ERROR, "no host defined")

        # 在超时限制内获取证书，超时后关闭套接字
        attempt = HandshakeAttempt()
        try:
            cert_der = self.timeout_handler.with_timeout(
                self._get_peer_certificate,
                target.timeout_seconds,
                attempt.cancel,
                target,
                attempt
            )
            # 解析证书信息
            cert_info = self._parse_certificate(cert_der)
        except Exception as e:
            # 使用错误分类器处理连接错误
            return self.error_classifier.handle_connection_error(target, e)

        self.logger.debug(f"{target.address} 证书获取成功: {cert_info.subject}")
        return ConnectionOutcome.success(cert_info)

    def _is_valid_port(self, port) -> bool:
        return isinstance(port, int) and not isinstance(port, bool) and 0 < port <= MAX_PORT

    def _create_context(self) -> ssl.SSLContext:
        """
        创建不校验证书链的SSL上下文

        过期或自签名的证书同样需要被读取。
        """
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return context

    def _get_peer_certificate(self, target: CheckTarget, attempt: HandshakeAttempt) -> bytes:
        """
        获取对端叶子证书（DER格式）

        Args:
            target: 检查目标
            attempt: 当前握手尝试，用于超时后关闭套接字

        Returns:
            bytes: DER编码的证书

        Raises:
            NoPeerCertificateError: 对端未提供证书
        """
        # 创建SSL上下文
        context = self._create_context()

        # 建立TCP连接
        sock = attempt.register(
            socket.create_connection((target.host, target.port), timeout=target.timeout_seconds)
        )
        with sock:
            # 执行TLS握手并读取叶子证书
            ssock = attempt.register(
                context.wrap_socket(sock, server_hostname=target.host, do_handshake_on_connect=False)
            )
            with ssock:
                ssock.do_handshake()
                cert_der = ssock.getpeercert(binary_form=True)

        if not cert_der:
            raise NoPeerCertificateError("no peer certificate available")

        return cert_der

    def _parse_certificate(self, cert_der: bytes) -> CertificateInfo:
        """
        解析DER证书

        Args:
            cert_der: DER编码的证书

        Returns:
            CertificateInfo: 证书信息
        """
        cert = x509.load_der_x509_certificate(cert_der)

        return CertificateInfo(
            subject=self._format_name(cert.subject),
            serial_number=self._format_serial(cert.serial_number),
            issuer=self._format_name(cert.issuer),
            not_after=cert.not_valid_after_utc
        )

    def _format_name(self, name: x509.Name) -> str:
        """按 OpenSSL 的顺序和格式输出DN，例如 'C = US, O = Example, CN = example.com'"""
        parts = []
        for rdn in name.rdns:
            parts.append(" + ".join(
                f"{attribute.rfc4514_attribute_name} = {attribute.value}" for attribute in rdn
            ))
        return ", ".join(parts)

    def _format_serial(self, serial: int) -> str:
        """
        按 OpenSSL 的展示方式格式化序列号

        能放入有符号64位整数（小于2**63）的序列号显示为 '十进制 (0x十六进制)'，
        其余序列号显示为冒号分隔的十六进制字节。
        """
        if serial < 0:
            return "-" + self._format_serial(-serial)

        # DER编码不超过8字节时按十进制输出
        if serial < 2 ** 63:
            return f"{serial} (0x{serial:x})"

        serial_bytes = serial.to_bytes((serial.bit_length() + 7) // 8, 'big')
        return ":".join(f"{b:02x}" for b in serial_bytes)
