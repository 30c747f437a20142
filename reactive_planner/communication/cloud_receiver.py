"""
点云接收模块
通过串口接收传感器端发送的点云数据（每行一个JSON消息）
"""

import serial
import time
import threading
import logging
from typing import Optional, Callable

from .protocol import PointCloudData, parse_cloud_message


class CloudReceiver:
    """点云接收类

    在独立线程中读取串口数据，按行解析点云消息并回调。

    Example:
        >>> receiver = CloudReceiver(port='/dev/ttyUSB0', baudrate=921600)
        >>> receiver.on_cloud_update = lambda cloud: print(f"收到点云: {cloud.point_count}点")
        >>> receiver.start()
        >>> time.sleep(2)
        >>> receiver.stop()
    """

    def __init__(self, port: str = '/dev/ttyUSB0', baudrate: int = 921600, timeout: float = 0.1):
        """初始化接收对象

        Args:
            port: 串口设备路径 (Linux: '/dev/ttyUSB0', Windows: 'COM5')
            baudrate: 波特率
            timeout: 串口读超时（秒）
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.serial: Optional[serial.Serial] = None
        self.running = False
        self.receive_thread: Optional[threading.Thread] = None

        self.latest_cloud: Optional[PointCloudData] = None
        self.cloud_count = 0

        # 回调函数（在接收线程中调用）
        self.on_cloud_update: Optional[Callable[[PointCloudData], None]] = None

        self.logger = logging.getLogger(__name__)

    def connect(self) -> bool:
        """连接串口

        Returns:
            连接成功返回True，失败返回False
        """
        try:
            self.serial = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                timeout=self.timeout
            )
            self.logger.info(f"串口已连接: {self.port} @ {self.baudrate}")
            return True
        except serial.SerialException as e:
            self.logger.error(f"串口连接失败: {e}")
            return False

    def start(self) -> bool:
        """启动接收线程

        Returns:
            启动成功返回True
        """
        if not self.serial or not self.serial.is_open:
            if not self.connect():
                return False

        self.running = True
        self.receive_thread = threading.Thread(
            target=self._receive_loop,
            daemon=True,
            name="CloudReceiver"
        )
        self.receive_thread.start()
        self.logger.info("接收线程已启动")
        return True

    def stop(self):
        """停止接收并关闭串口"""
        self.running = False

        if self.receive_thread and self.receive_thread.is_alive():
            self.receive_thread.join(timeout=2.0)
            self.logger.info("接收线程已停止")

        if self.serial and self.serial.is_open:
            self.serial.close()
            self.logger.info("串口已关闭")

    def is_connected(self) -> bool:
        return self.serial is not None and self.serial.is_open

    def _receive_loop(self):
        """接收循环（在独立线程中运行）"""
        buffer = ""

        while self.running:
            try:
                if self.serial and self.serial.in_waiting:
                    data = self.serial.read(self.serial.in_waiting)
                    buffer += data.decode('utf-8', errors='ignore')
                elif '\n' not in buffer:
                    # 没有数据时短暂休眠，避免CPU占用过高
                    time.sleep(0.001)
                    continue

                # 按行处理（回调异常后剩余的行在下一轮继续处理）
                while '\n' in buffer:
                    line, buffer = buffer.split('\n', 1)
                    self.handle_line(line)

            except serial.SerialException as e:
                self.logger.error(f"串口读取错误: {e}")
                time.sleep(0.1)
            except Exception as e:
                self.logger.error(f"接收循环异常: {e}")
                time.sleep(0.1)

    def handle_line(self, line: str) -> Optional[PointCloudData]:
        """处理一行数据，解析成功则触发回调

        Args:
            line: 接收到的一行数据

        Returns:
            解析出的点云，非点云消息返回None
        """
        cloud = parse_cloud_message(line)
        if cloud is None:
            return None

        self.latest_cloud = cloud
        self.cloud_count += 1
        self.logger.debug(f"收到点云: {cloud.point_count}点 (第{self.cloud_count}帧)")

        if self.on_cloud_update:
            self.on_cloud_update(cloud)

        return cloud
