"""
点云回放模块
从记录文件（每行一个JSON点云消息）按固定频率回放点云，用于离线调试
"""

import time
import threading
import logging
from pathlib import Path
from typing import Optional, Callable, List, Iterable

from .protocol import PointCloudData, parse_cloud_message


def save_recording(filename: str, clouds: Iterable[PointCloudData]) -> Path:
    """保存点云记录文件

    Args:
        filename: 文件路径（.jsonl）
        clouds: 点云序列

    Returns:
        实际保存的路径
    """
    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w', encoding='utf-8') as f:
        for cloud in clouds:
            f.write(cloud.to_json() + '\n')

    return path


def load_recording(filename: str) -> List[PointCloudData]:
    """加载点云记录文件，跳过无法解析的行"""
    clouds = []
    with open(filename, 'r', encoding='utf-8') as f:
        for line in f:
            cloud = parse_cloud_message(line)
            if cloud is not None:
                clouds.append(cloud)
    return clouds


class CloudPlayer:
    """点云回放器

    与 CloudReceiver 相同的回调接口，在独立线程中按频率回放记录的点云。

    Example:
        >>> player = CloudPlayer('data/recordings/wall.jsonl', rate=5.0)
        >>> player.on_cloud_update = planner.on_cloud
        >>> player.start()
    """

    def __init__(self, filename: str = None, rate: float = 5.0, loop: bool = False,
                 clouds: List[PointCloudData] = None):
        """初始化回放器

        Args:
            filename: 记录文件路径
            rate: 回放频率（Hz）
            loop: 是否循环回放
            clouds: 直接提供点云列表（优先于filename）
        """
        if rate <= 0:
            raise ValueError(f"回放频率必须大于0: {rate}")

        self.filename = filename
        self.rate = rate
        self.loop = loop
        self.clouds = clouds
        self.running = False
        self.play_thread: Optional[threading.Thread] = None
        self.played_count = 0
        self.finished = threading.Event()

        self.on_cloud_update: Optional[Callable[[PointCloudData], None]] = None

        self.logger = logging.getLogger(__name__)

    def start(self) -> bool:
        """启动回放线程

        Returns:
            成功返回True，记录文件无法读取时返回False
        """
        if self.clouds is None:
            try:
                self.clouds = load_recording(self.filename)
            except (OSError, TypeError) as e:
                self.logger.error(f"无法读取点云记录: {self.filename} - {e}")
                return False

        self.logger.info(f"开始回放: {len(self.clouds)}帧 @ {self.rate}Hz")

        self.running = True
        self.finished.clear()
        self.play_thread = threading.Thread(
            target=self._play_loop,
            daemon=True,
            name="CloudPlayer"
        )
        self.play_thread.start()
        return True

    def stop(self):
        """停止回放"""
        self.running = False
        if self.play_thread and self.play_thread.is_alive():
            self.play_thread.join(timeout=2.0)
            self.logger.info("回放线程已停止")

    def _play_loop(self):
        period = 1.0 / self.rate

        try:
            while self.running:
                for cloud in self.clouds:
                    if not self.running:
                        break
                    self.played_count += 1
                    if self.on_cloud_update:
                        try:
                            self.on_cloud_update(cloud)
                        except Exception as e:
                            self.logger.error(f"回放回调异常: 第{self.played_count}帧 - {e}")
                    time.sleep(period)

                if not self.loop or not self.clouds:
                    break
        finally:
            self.running = False
            self.finished.set()
            self.logger.info(f"回放结束: 共{self.played_count}帧")
