"""
Tool settings for cfgcheck.
"""

from cfgcheck.config.settings import Settings, ValidationJob, DEFAULT_SETTINGS_PATH

__all__ = ["Settings", "ValidationJob", "DEFAULT_SETTINGS_PATH"]
