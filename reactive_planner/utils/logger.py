"""
日志系统模块
统一的日志配置、节流日志和性能统计
"""

import functools
import logging
import sys
import time
import threading
from pathlib import Path
from datetime import datetime
from logging.handlers import RotatingFileHandler


LOG_FORMAT = '[%(asctime)s] %(name)s - %(levelname)s - %(message)s'


def _file_handler(log_file: str, max_bytes: int, backup_count: int) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count,
                               encoding='utf-8')


def setup_logger(
    name: str,
    log_file: str = None,
    level: int = logging.INFO,
    console: bool = True,
    max_bytes: int = 10*1024*1024,
    backup_count: int = 5
) -> logging.Logger:
    """为规划器的某个子系统挂载输出

    点云接收线程和规划轮询循环都通过 logging.getLogger(__name__) 记录日志，
    这里只负责给对应层级的logger加上轮转文件和/或标准输出。
    已经挂载过的logger直接返回，多次调用（如测试中反复创建规划器）不会重复输出。

    Args:
        name: logger层级名，如 'reactive_planner.mapping'
        log_file: 轮转日志文件（None表示不写文件）
        level: 日志级别
        console: 是否同时输出到标准输出
        max_bytes: 单个文件上限（默认10MB）
        backup_count: 轮转保留份数

    Example:
        >>> map_logger = setup_logger('reactive_planner.mapping', 'data/logs/map.log',
        ...                           console=False)
        >>> map_logger.info('点云插入: 更新%d个体素', 11)
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handlers = []
    if log_file:
        handlers.append(_file_handler(log_file, max_bytes, backup_count))
    if console:
        handlers.append(logging.StreamHandler(sys.stdout))

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def setup_all_loggers(base_dir: str = 'data/logs', level: int = logging.INFO,
                      console: bool = True):
    """配置所有子模块的日志记录器

    子模块通过 logging.getLogger(__name__) 获取的logger会向上传递到这里配置的父logger。

    Args:
        base_dir: 日志基础目录（None则只输出到控制台）
        level: 日志级别
        console: 是否输出到控制台

    Returns:
        dict: 所有logger的字典
    """
    timestamp = datetime.now().strftime('%Y%m%d')

    def log_file(prefix):
        if base_dir is None:
            return None
        return Path(base_dir) / f'{prefix}_{timestamp}.log'

    # 父logger负责输出，子logger只写文件，避免控制台重复
    loggers = {
        'main': setup_logger('reactive_planner', log_file('main'), level, console),
        'communication': setup_logger('reactive_planner.communication',
                                      log_file('comm'), level, False),
        'mapping': setup_logger('reactive_planner.mapping', log_file('map'), level, False),
        'planning': setup_logger('reactive_planner.planning', log_file('plan'), level, False),
        'visualization': setup_logger('reactive_planner.visualization',
                                      log_file('viz'), level, False),
    }

    return loggers


class ThrottledLogger:
    """节流日志记录器

    同一个key的消息在period秒内最多输出一次，用于高频轮询循环中的状态输出。

    Example:
        >>> throttled = ThrottledLogger(logging.getLogger('planner'))
        >>> throttled.info(1.0, '地图尺寸: %s', size)
    """

    def __init__(self, logger: logging.Logger, clock=time.monotonic):
        self.logger = logger
        self.clock = clock
        self._last_emit = {}
        self._lock = threading.Lock()

    def log(self, level: int, period: float, msg: str, *args, key: str = None) -> bool:
        """按节流周期输出日志

        Args:
            level: 日志级别
            period: 节流周期（秒）
            msg: 日志格式字符串（key默认取msg本身）

        Returns:
            本次是否实际输出
        """
        key = key if key is not None else msg
        now = self.clock()

        with self._lock:
            last = self._last_emit.get(key)
            if last is not None and now - last < period:
                return False
            self._last_emit[key] = now

        self.logger.log(level, msg, *args)
        return True

    def info(self, period: float, msg: str, *args, **kwargs) -> bool:
        return self.log(logging.INFO, period, msg, *args, **kwargs)

    def warning(self, period: float, msg: str, *args, **kwargs) -> bool:
        return self.log(logging.WARNING, period, msg, *args, **kwargs)

    def error(self, period: float, msg: str, *args, **kwargs) -> bool:
        return self.log(logging.ERROR, period, msg, *args, **kwargs)


class PerformanceLogger:
    """性能日志记录器

    用于记录各处理阶段的执行时间
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.timings = {}
        self.call_counts = {}

    def log_execution_time(self, func_name: str, duration: float):
        """记录函数执行时间

        Args:
            func_name: 函数名称
            duration: 执行时长（秒）
        """
        if func_name not in self.timings:
            self.timings[func_name] = []
            self.call_counts[func_name] = 0

        self.timings[func_name].append(duration)
        self.call_counts[func_name] += 1

        self.logger.info(f"[性能] {func_name} 耗时: {duration:.3f}s")

    def get_statistics(self, func_name: str = None):
        """获取性能统计

        Args:
            func_name: 函数名（None=所有）

        Returns:
            统计信息字典
        """
        if func_name:
            if func_name in self.timings:
                return self._summarize(func_name)
            return None

        return {name: self._summarize(name) for name in self.timings}

    def _summarize(self, name: str) -> dict:
        timings = self.timings[name]
        return {
            'count': self.call_counts[name],
            'avg': sum(timings) / len(timings),
            'min': min(timings),
            'max': max(timings),
            'total': sum(timings)
        }


def log_performance(logger: logging.Logger, stage: str = None):
    """规划阶段计时装饰器

    在DEBUG级别输出被装饰阶段的耗时（毫秒），stage缺省取函数名。
    用于连通图构建这类随搜索空间规模增长的阶段。

    Example:
        >>> @log_performance(logger, stage='连通图构建')
        ... def connect_nodes(self):
        ...     ...
    """
    def decorator(func):
        label = stage or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                logger.debug(f"[阶段] {label} ({func.__name__}) 耗时 {elapsed_ms:.2f}ms")
        return wrapper
    return decorator
