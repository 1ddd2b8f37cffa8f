"""Utility modules for configuration, logging, errors and image handling."""

from .config import AppConfig, load_config
from .logger import (
    get_logger,
    log_exception,
    log_execution_time,
    set_log_level,
)
from .image_utils import extract_dominant_colors, load_image_bytes
from .performance import PerformanceMonitor, get_performance_monitor

__all__ = [
    # Configuration
    "AppConfig",
    "load_config",
    # Logging
    "get_logger",
    "log_exception",
    "log_execution_time",
    "set_log_level",
    # Images
    "extract_dominant_colors",
    "load_image_bytes",
    # Performance
    "PerformanceMonitor",
    "get_performance_monitor",
]
