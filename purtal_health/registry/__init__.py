"""目标注册表模块"""

from .base import BaseRegistry
from .file_registry import FileRegistry, default_document

__all__ = ['BaseRegistry', 'FileRegistry', 'default_document']
