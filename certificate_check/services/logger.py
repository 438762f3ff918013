"""
日志服务

诊断日志写入 stderr，stdout 只保留插件状态输出。
"""
import os
import logging
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from ..interfaces import LoggerServiceInterface
from ..models import CheckTarget, ConnectionOutcome, CheckResult


DEFAULT_LOG_LEVEL = 'WARNING'


class LoggerService(LoggerServiceInterface):
    """日志服务实现"""

    def __init__(self, logger_name: str = "certificate_check", log_level: Optional[str] = None):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
        """
        self.logger_name = logger_name
        self.log_level = log_level or os.getenv('LOG_LEVEL', DEFAULT_LOG_LEVEL)

        # 配置日志器
        self.logger = logging.getLogger(logger_name)
        self._configure_logger()

        # 执行统计
        self.execution_stats = self._empty_stats()

    def _empty_stats(self) -> Dict[str, Any]:
        return {
            'start_time': None,
            'end_time': None,
            'target': None,
            'outcome': None,
            'severity': None,
            'errors': []
        }

    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level.upper(), logging.WARNING)
        self.logger.setLevel(level)

        # 避免重复添加处理器
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

        for handler in self.logger.handlers:
            handler.setLevel(level)

        # 防止日志传播到根日志器
        self.logger.propagate = False

    def log_check_start(self, target: CheckTarget):
        """
        记录检查开始

        Args:
            target: 检查目标
        """
        self.execution_stats['start_time'] = datetime.now(timezone.utc)
        self.execution_stats['target'] = target.address

        self.logger.info(f"开始证书检查: {target.address}，超时 {target.timeout_seconds} 秒")

    def log_outcome(self, target: CheckTarget, outcome: ConnectionOutcome):
        """
        记录证书获取结果

        Args:
            target: 检查目标
            outcome: 获取结果
        """
        self.execution_stats['outcome'] = outcome.kind.value

        if outcome.is_success:
            cert = outcome.certificate
            self.logger.info(
                f"证书获取成功 - 目标: {target.address}, "
                f"主题: {cert.subject}, "
                f"过期时间: {cert.not_after.isoformat()}, "
                f"颁发者: {cert.issuer}"
            )
        else:
            self.logger.warning(
                f"证书获取失败 - 目标: {target.address}, "
                f"类型: {outcome.kind.value}, "
                f"错误: {outcome.message}"
            )

    def log_error(self, target: CheckTarget, error: Exception):
        """
        记录错误信息

        Args:
            target: 检查目标
            error: 异常对象
        """
        error_info = {
            'target': target.address,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat()
        }

        self.execution_stats['errors'].append(error_info)

        self.logger.error(f"{target.address} 检查时发生错误: {type(error).__name__}: {str(error)}")

        # 记录详细的堆栈跟踪（调试级别）
        self.logger.debug(f"{target.address} 错误堆栈跟踪:\n{traceback.format_exc()}")

    def log_check_end(self, result: CheckResult):
        """
        记录检查结束

        Args:
            result: 检查结果
        """
        self.execution_stats['end_time'] = datetime.now(timezone.utc)
        self.execution_stats['severity'] = result.severity.name

        # 计算执行时间
        duration = self._duration()

        self.logger.info(
            f"证书检查完成: {result.severity.name} "
            f"(退出码 {result.severity.exit_code})，耗时 {duration:.2f} 秒"
        )

    def log_configuration_info(self, config: Dict[str, Any]):
        """
        记录配置信息

        Args:
            config: 配置信息字典
        """
        self.logger.info("检查配置信息:")
        for key, value in config.items():
            self.logger.info(f"  {key}: {value}")

    def _duration(self) -> float:
        start = self.execution_stats['start_time']
        end = self.execution_stats['end_time']
        if start and end:
            return (end - start).total_seconds()
        return 0.0

    def get_execution_summary(self) -> Dict[str, Any]:
        """
        获取执行摘要

        Returns:
            Dict[str, Any]: 执行摘要信息
        """
        start = self.execution_stats['start_time']
        end = self.execution_stats['end_time']

        return {
            'start_time': start.isoformat() if start else None,
            'end_time': end.isoformat() if end else None,
            'duration_seconds': self._duration(),
            'target': self.execution_stats['target'],
            'outcome': self.execution_stats['outcome'],
            'severity': self.execution_stats['severity'],
            'error_count': len(self.execution_stats['errors']),
            'errors': self.execution_stats['errors']
        }

