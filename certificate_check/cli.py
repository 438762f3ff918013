"""
命令行入口点

usage: check_certificate -h host -p port [-c crit] [-w warn] [-v] [-t seconds]
"""
import argparse
import sys
from typing import List, Optional, TextIO

from .services.certificate_fetcher import CertificateFetcher
from .services.config_validator import ConfigValidator
from .services.expiry_evaluator import ExpiryEvaluator
from .services.logger import LoggerService
from .services.status_reporter import StatusReporter
from .models import (
    CheckResult,
    CheckTarget,
    Severity,
    Thresholds,
    DEFAULT_CRITICAL_HOURS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_WARNING_HOURS,
)


PROG = "check_certificate"

USAGE = (
    f"usage :{PROG} -h host -p port [-c crit] [-w warn] [-v] [-t seconds]\n"
    "\nOPTIONS:\n"
    "\t-h  Host\n"
    "\t-p  Port\n"
    f"\t-c  Critical alarm when certificate is N hours from expiring (Optional) (default: {DEFAULT_CRITICAL_HOURS})\n"
    f"\t-w  Warning alarm when certificate is N hours from expiring (Optional) (default: {DEFAULT_WARNING_HOURS})\n"
    "\t-v  Use the -v flag for verbose output (Optional)\n"
    f"\t-t  Timeout (Optional) (default: {DEFAULT_TIMEOUT_SECONDS} seconds)\n"
    "\t--strict  Exit with UNKNOWN instead of 0 on usage errors (Optional)\n"
)


class UsageError(Exception):
    """命令行参数错误"""


class PluginArgumentParser(argparse.ArgumentParser):
    """参数错误时抛出 UsageError，而不是以退出码2退出"""

    def error(self, message):
        raise UsageError(message)


class CertificateCheckMonitor:
    """证书检查监控器主类"""

    def __init__(self, target: CheckTarget, thresholds: Optional[Thresholds] = None, verbose: bool = False,
                 logger_service: Optional[LoggerService] = None,
                 fetcher: Optional[CertificateFetcher] = None,
                 evaluator: Optional[ExpiryEvaluator] = None,
                 reporter: Optional[StatusReporter] = None):
        """
        初始化监控器

        Args:
            target: 检查目标
            thresholds: 告警阈值
            verbose: 是否输出证书详细信息
            logger_service: 日志服务
            fetcher: 证书获取器
            evaluator: 过期评估器
            reporter: 状态输出
        """
        self.target = target
        self.thresholds = thresholds or Thresholds()
        self.verbose = verbose

        self.logger_service = logger_service or LoggerService()
        self.config_validator = ConfigValidator()
        self.fetcher = fetcher or CertificateFetcher()
        self.evaluator = evaluator or ExpiryEvaluator(self.thresholds, target.timeout_seconds)
        self.reporter = reporter or StatusReporter()

    def _log_configuration(self):
        """记录检查配置信息"""
        config = {
            'host': self.target.host,
            'port': self.target.port,
            'timeout_seconds': self.target.timeout_seconds,
            'warning_hours': self.thresholds.warning_hours,
            'critical_hours': self.thresholds.critical_hours,
            'verbose': self.verbose,
            'log_level': self.logger_service.log_level
        }

        self.logger_service.log_configuration_info(config)

        validation = self.config_validator.validate_all_configurations(self.target, self.thresholds)
        for error in validation['errors']:
            self.logger_service.logger.warning(f"配置错误: {error}")

    def execute(self) -> CheckResult:
        """
        执行一次证书检查

        Returns:
            CheckResult: 检查结果
        """
        self.logger_service.log_check_start(self.target)
        self._log_configuration()

        # 获取证书，只尝试一次
        outcome = self.fetcher.fetch(self.target)
        self.logger_service.log_outcome(self.target, outcome)

        # 评估证书状态
        result = self.evaluator.evaluate(outcome, self.thresholds)
        self.logger_service.log_check_end(result)

        return result

    def run(self) -> int:
        """
        执行检查并输出状态

        未预期的异常同样以 UNKNOWN 状态输出，不会绕过退出码协议。

        Returns:
            int: 退出码
        """
        try:
            result = self.execute()
        except Exception as e:
            self.logger_service.log_error(self.target, e)
            result = CheckResult(Severity.UNKNOWN, f"{type(e).__name__}: {str(e)}")

        exit_code = self.reporter.report(result, self.verbose)

        # 执行摘要只在调试级别输出
        summary = self.logger_service.get_execution_summary()
        self.logger_service.logger.debug(f"执行摘要: {summary}")

        return exit_code


def _threshold_hours(value: str) -> int:
    hours = int(value)
    if hours < 0:
        raise argparse.ArgumentTypeError(f"invalid hours: {value}")
    return hours


def _timeout_seconds(value: str) -> int:
    seconds = int(value)
    if seconds <= 0:
        raise argparse.ArgumentTypeError(f"invalid timeout: {value}")
    return seconds


def build_parser() -> PluginArgumentParser:
    """创建参数解析器（-h 表示主机，因此关闭默认的帮助选项）"""
    parser = PluginArgumentParser(prog=PROG, add_help=False, allow_abbrev=False)
    parser.add_argument('-h', dest='host')
    parser.add_argument('-p', dest='port')
    parser.add_argument('-c', dest='critical', type=_threshold_hours, default=DEFAULT_CRITICAL_HOURS)
    parser.add_argument('-w', dest='warning', type=_threshold_hours, default=DEFAULT_WARNING_HOURS)
    parser.add_argument('-v', dest='verbose', action='store_true')
    parser.add_argument('-t', dest='timeout', type=_timeout_seconds, default=DEFAULT_TIMEOUT_SECONDS)
    parser.add_argument('-?', '--help', dest='show_help', action='store_true')
    parser.add_argument('--strict', action='store_true')
    return parser


def _usage(stream: TextIO, strict: bool) -> int:
    stream.write(USAGE)
    stream.flush()
    # 兼容原有行为：参数错误时打印用法并以0退出
    return Severity.UNKNOWN.exit_code if strict else Severity.OK.exit_code


def main(argv: Optional[List[str]] = None, stream: Optional[TextIO] = None) -> int:
    """
    命令行入口

    Args:
        argv: 命令行参数，None则使用 sys.argv[1:]
        stream: 状态输出流，None则使用 sys.stdout

    Returns:
        int: 退出码
    """
    argv = sys.argv[1:] if argv is None else argv
    stream = stream or sys.stdout

    try:
        args, extras = build_parser().parse_known_args(argv)
    except UsageError:
        return _usage(stream, '--strict' in argv)

    # 多余的位置参数被忽略，未知选项仍打印用法
    if any(extra.startswith('-') and extra != '-' for extra in extras):
        return _usage(stream, args.strict)

    if args.show_help:
        return _usage(stream, False)

    if not args.host or not args.port:
        return _usage(stream, args.strict)

    try:
        target = CheckTarget.from_input(args.host, args.port, args.timeout)
        thresholds = Thresholds(warning_hours=args.warning, critical_hours=args.critical)
        monitor = CertificateCheckMonitor(
            target,
            thresholds,
            verbose=args.verbose,
            reporter=StatusReporter(stream)
        )
    except Exception as e:
        return StatusReporter(stream).report(CheckResult(Severity.UNKNOWN, f"{type(e).__name__}: {str(e)}"))

    return monitor.run()


if __name__ == '__main__':
    sys.exit(main())
