"""
状态输出服务

输出格式遵循监控插件协议：第一行为 '<LEVEL>: <message>'，
退出码 OK=0、WARNING=1、CRITICAL=2、UNKNOWN=3。
"""
import sys
from typing import Optional, TextIO
import logging

from ..interfaces import StatusReporterInterface
from ..models import CheckResult


class StatusReporter(StatusReporterInterface):
    """状态输出实现"""

    def __init__(self, stream: Optional[TextIO] = None):
        """
        初始化状态输出

        Args:
            stream: 输出流，None表示在输出时使用 sys.stdout
        """
        self.stream = stream
        self.logger = logging.getLogger(__name__)

    def format_status(self, result: CheckResult, verbose: bool = False) -> str:
        """
        格式化状态文本

        Args:
            result: 检查结果
            verbose: 是否附加证书详细信息

        Returns:
            str: 状态文本
        """
        lines = [f"{result.severity.name}: {result.message}"]

        # 详细模式下每条证书信息单独一行，以制表符缩进
        if verbose:
            lines.extend(f"\t{detail}" for detail in result.details)

        return "\n".join(lines)

    def report(self, result: CheckResult, verbose: bool = False) -> int:
        """
        输出状态并返回退出码

        Args:
            result: 检查结果
            verbose: 是否附加证书详细信息

        Returns:
            int: 退出码
        """
        # 状态只写入标准输出，诊断信息走日志
        stream = self.stream or sys.stdout
        stream.write(self.format_status(result, verbose) + "\n")
        stream.flush()

        self.logger.info(f"状态 {result.severity.name}，退出码 {result.severity.exit_code}")
        return result.severity.exit_code
