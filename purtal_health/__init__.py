"""Purtal 健康监控引擎"""

__version__ = "1.0.0"
