"""
配置验证服务
"""
import re
from typing import Dict, Any
import logging

from ..models import CheckTarget, Thresholds, DEFAULT_TIMEOUT_SECONDS


class ConfigValidator:
    """配置验证器"""

    def __init__(self):
        """初始化配置验证器"""
        self.logger = logging.getLogger(__name__)

        # 主机名格式验证正则表达式（也接受IPv4地址）
        self.host_pattern = re.compile(
            r'^(?:[a-zA-Z0-9_](?:[a-zA-Z0-9_-]{0,61}[a-zA-Z0-9])?\.)*[a-zA-Z0-9_](?:[a-zA-Z0-9_-]{0,61}[a-zA-Z0-9])?\.?$'
        )

    def validate_all_configurations(self, target: CheckTarget, thresholds: Thresholds) -> Dict[str, Any]:
        """
        验证所有配置

        Args:
            target: 检查目标
            thresholds: 告警阈值

        Returns:
            Dict[str, Any]: 验证结果
        """
        validation_result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'configurations': {}
        }

        for name, validation in (
            ('target', self.validate_target(target)),
            ('thresholds', self.validate_thresholds(thresholds)),
        ):
            validation_result['configurations'][name] = validation
            if not validation['is_valid']:
                validation_result['is_valid'] = False
                validation_result['errors'].extend(validation['errors'])
            validation_result['warnings'].extend(validation['warnings'])

        # 警告只记录日志，不影响检查结果
        for warning in validation_result['warnings']:
            self.logger.warning(warning)

        return validation_result

    def validate_target(self, target: CheckTarget) -> Dict[str, Any]:
        """
        验证检查目标

        Args:
            target: 检查目标

        Returns:
            Dict[str, Any]: 目标验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'host': target.host,
            'port': target.port,
            'timeout_seconds': target.timeout_seconds
        }

        # 验证主机
        if not target.host:
            result['is_valid'] = False
            result['errors'].append("未指定主机")
        elif not self._validate_host_format(target.host):
            result['warnings'].append(f"主机名格式可能无效: {target.host}")

        # 验证端口
        if target.port is None:
            result['is_valid'] = False
            result['errors'].append("未指定端口或端口格式无效")
        elif not 0 < target.port <= 65535:
            result['is_valid'] = False
            result['errors'].append(f"端口超出范围: {target.port}")

        # 验证超时时间
        if target.timeout_seconds <= 0:
            result['is_valid'] = False
            result['errors'].append(f"超时时间必须为正数: {target.timeout_seconds}")
        elif target.timeout_seconds > 10 * DEFAULT_TIMEOUT_SECONDS:
            result['warnings'].append(f"超时时间过长: {target.timeout_seconds}秒")

        return result

    def validate_thresholds(self, thresholds: Thresholds) -> Dict[str, Any]:
        """
        验证告警阈值

        严重阈值大于警告阈值时只给出警告，不视为错误。

        Args:
            thresholds: 告警阈值

        Returns:
            Dict[str, Any]: 阈值验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'warning_hours': thresholds.warning_hours,
            'critical_hours': thresholds.critical_hours
        }

        for name, value in (('警告', thresholds.warning_hours), ('严重', thresholds.critical_hours)):
            if value < 0:
                result['is_valid'] = False
                result['errors'].append(f"{name}阈值不能为负数: {value}")

        # 阈值顺序颠倒时 WARNING 状态不会出现
        if not thresholds.is_sane:
            result['warnings'].append(
                f"严重阈值({thresholds.critical_hours}小时)大于警告阈值({thresholds.warning_hours}小时)"
            )

        return result

    def _validate_host_format(self, host: str) -> bool:
        """
        验证主机名格式

        Args:
            host: 主机名或IP地址

        Returns:
            bool: 是否有效
        """
        # IPv6地址不做进一步检查
        if ':' in host:
            return True
        return bool(self.host_pattern.match(host))
