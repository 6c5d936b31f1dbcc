"""
Configuration management.

YAML config files, environment resolution, and typed publish settings.
"""

from docpublisher.config.loader import Config, load_config, resolve_config
from docpublisher.config.settings import PublishSettings, load_publish_settings, load_upload_settings

__all__ = [
    "load_config",
    "Config",
    "resolve_config",
    "PublishSettings",
    "load_publish_settings",
    "load_upload_settings",
]
