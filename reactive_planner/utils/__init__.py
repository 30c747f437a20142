"""
工具模块
日志配置、节流日志与性能统计
"""

from .logger import (
    setup_logger, setup_all_loggers, ThrottledLogger,
    PerformanceLogger, log_performance
)

__all__ = [
    'setup_logger', 'setup_all_loggers', 'ThrottledLogger',
    'PerformanceLogger', 'log_performance'
]
