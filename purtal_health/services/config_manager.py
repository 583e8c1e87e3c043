"""配置管理器"""

import os
from typing import Dict, Any

import yaml

from ..utils.config_validator import ConfigValidator
from ..utils.exceptions import ConfigError, ErrorCode
from ..utils.log_manager import get_logger

DEFAULT_DATA_FILE = 'data/config.json'
DEFAULT_API_HOST = '0.0.0.0'
DEFAULT_API_PORT = 3001


class ConfigManager:
    """配置管理器，负责YAML应用配置的加载、解析和验证

    健康检查的频率和超时不在这里配置，而是保存在注册表的设置中，
    运行时修改无需重启。
    """

    def __init__(self, config_path: str):
        """
        初始化配置管理器

        Args:
            config_path: 配置文件路径
        """
        self.config_path = config_path
        self.config: Dict[str, Any] = {}
        self.logger = get_logger('config_manager')

    def load_config(self) -> Dict[str, Any]:
        """
        加载YAML配置文件

        Returns:
            Dict[str, Any]: 配置字典

        Raises:
            ConfigError: 配置加载或验证失败
        """
        self.logger.info(f"开始加载配置文件: {self.config_path}")

        if not os.path.exists(self.config_path):
            raise ConfigError(f"配置文件不存在: {self.config_path}",
                              ErrorCode.CONFIG_FILE_NOT_FOUND,
                              config_path=self.config_path)

        try:
            with open(self.config_path, 'r', encoding='utf-8') as file:
                config = yaml.safe_load(file)
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML格式错误: {e}", ErrorCode.CONFIG_PARSE_ERROR,
                              config_path=self.config_path, cause=e)
        except PermissionError as e:
            raise ConfigError(f"没有权限读取配置文件: {self.config_path}",
                              config_path=self.config_path, cause=e)
        except OSError as e:
            raise ConfigError(f"加载配置文件失败: {e}",
                              config_path=self.config_path, cause=e)

        if config is None:
            raise ConfigError("配置文件为空", config_path=self.config_path)

        self._validate_config(config)
        self.config = config

        self.logger.info(f"配置验证成功，数据文件: {self.get_data_file()}")
        return self.config

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """
        验证配置文件内容

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(config, dict):
            raise ConfigError("配置文件根节点必须是字典类型")

        if 'global' in config:
            ConfigValidator.validate_global_config(config['global'])

        if 'api' in config:
            ConfigValidator.validate_api_config(config['api'])

    def get_global_config(self) -> Dict[str, Any]:
        """获取全局配置"""
        return self.config.get('global') or {}

    def get_api_config(self) -> Dict[str, Any]:
        """获取HTTP接口配置，缺失项使用默认值"""
        api_config = self.config.get('api') or {}
        return {
            'host': api_config.get('host', DEFAULT_API_HOST),
            'port': api_config.get('port', DEFAULT_API_PORT)
        }

    def get_data_file(self) -> str:
        """
        获取注册表数据文件路径

        相对路径相对于配置文件所在目录解析。
        """
        data_file = self.get_global_config().get('data_file', DEFAULT_DATA_FILE)
        if os.path.isabs(data_file):
            return data_file
        base_dir = os.path.dirname(os.path.abspath(self.config_path))
        return os.path.join(base_dir, data_file)
