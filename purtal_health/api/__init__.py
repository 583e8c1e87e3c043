"""HTTP接口模块"""

from .routes import MONITOR_KEY, create_app

__all__ = ['MONITOR_KEY', 'create_app']
