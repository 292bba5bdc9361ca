"""Sequestre configuration."""

from sequestre.config.settings import SequestreConfig, get_settings, load_config

__all__ = ["SequestreConfig", "get_settings", "load_config"]
