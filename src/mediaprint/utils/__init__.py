"""Utility modules for mediaprint."""

from mediaprint.utils.config import resolve_setting, write_setting
from mediaprint.utils.debug import setup_logger

__all__ = ["resolve_setting", "setup_logger", "write_setting"]
