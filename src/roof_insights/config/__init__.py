"""Configuration module for the insights service."""

from roof_insights.config.logging import configure_logging, get_logger
from roof_insights.config.settings import FlatSettings, get_settings

__all__ = ["FlatSettings", "get_settings", "configure_logging", "get_logger"]
