"""配置验证工具"""

from typing import Dict, Any

from .exceptions import ConfigError

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


class ConfigValidator:
    """配置验证器"""

    @staticmethod
    def validate_global_config(global_config: Dict[str, Any]) -> None:
        """
        验证全局配置

        Args:
            global_config: 全局配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(global_config, dict):
            raise ConfigError("全局配置必须是字典类型")

        # 验证设置轮询间隔
        poll_interval = global_config.get('settings_poll_interval')
        if poll_interval is not None:
            if (isinstance(poll_interval, bool) or not isinstance(poll_interval, (int, float))
                    or poll_interval <= 0):
                raise ConfigError("settings_poll_interval 必须是正数")

        # 验证日志级别
        log_level = global_config.get('log_level')
        if log_level is not None:
            if log_level not in VALID_LOG_LEVELS:
                raise ConfigError(f"log_level 必须是以下值之一: {VALID_LOG_LEVELS}")

        for path_key in ('log_file', 'data_file'):
            value = global_config.get(path_key)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"{path_key} 必须是字符串")

        for flag_key in ('watch_data_file', 'icmp_privileged'):
            value = global_config.get(flag_key)
            if value is not None and not isinstance(value, bool):
                raise ConfigError(f"{flag_key} 必须是布尔值")

    @staticmethod
    def validate_api_config(api_config: Dict[str, Any]) -> None:
        """
        验证HTTP接口配置

        Args:
            api_config: 接口配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(api_config, dict):
            raise ConfigError("api配置必须是字典类型")

        host = api_config.get('host')
        if host is not None and not isinstance(host, str):
            raise ConfigError("api.host 必须是字符串")

        port = api_config.get('port')
        if port is not None:
            if isinstance(port, bool) or not isinstance(port, int) or not (1 <= port <= 65535):
                raise ConfigError("api.port 必须是 1-65535 之间的整数")
