"""
通信协议数据类定义
定义传感器端与规划主机之间传输的点云数据结构

点云消息为一行JSON：
    {"type": "CLOUD", "timestamp": 1234, "frame_id": "world",
     "transform": {"translation": [x, y, z], "rotation": [qx, qy, qz, qw]},
     "points": [[x, y, z], ...]}
points 位于传感器坐标系，transform 为传感器到世界坐标系的变换。
"""

import json
import logging
import numpy as np
from dataclasses import dataclass, field
from typing import Optional, Sequence
from scipy.spatial.transform import Rotation

logger = logging.getLogger(__name__)

CLOUD_MESSAGE_TYPE = 'CLOUD'


@dataclass
class PointCloudData:
    """带位姿的三维点云

    Attributes:
        timestamp: 毫秒时间戳
        frame_id: 目标坐标系名称
        translation: 传感器在世界坐标系下的位置 [x, y, z]
        rotation: 传感器在世界坐标系下的朝向 [qx, qy, qz, qw]
        points: 传感器坐标系下的点 (N x 3)
    """
    timestamp: int
    frame_id: str
    translation: Sequence[float]
    rotation: Sequence[float]
    points: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))

    def __post_init__(self):
        self.points = np.asarray(self.points, dtype=float).reshape(-1, 3)

    @property
    def sensor_origin(self) -> np.ndarray:
        """传感器原点（世界坐标）"""
        return np.asarray(self.translation, dtype=float)

    @property
    def point_count(self) -> int:
        return len(self.points)

    def world_points(self) -> np.ndarray:
        """将点云变换到世界坐标系

        Returns:
            世界坐标系下的点 (N x 3)
        """
        if len(self.points) == 0:
            return np.zeros((0, 3))
        return Rotation.from_quat(self.rotation).apply(self.points) + self.sensor_origin

    def to_dict(self) -> dict:
        return {
            'type': CLOUD_MESSAGE_TYPE,
            'timestamp': self.timestamp,
            'frame_id': self.frame_id,
            'transform': {
                'translation': [float(v) for v in self.translation],
                'rotation': [float(v) for v in self.rotation],
            },
            'points': self.points.tolist(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def cloud_from_dict(data: dict) -> PointCloudData:
    """由解析后的JSON字典构造点云

    Raises:
        KeyError, ValueError: 字段缺失或格式错误
    """
    transform = data.get('transform', {})
    rotation = transform.get('rotation', [0.0, 0.0, 0.0, 1.0])
    translation = transform.get('translation', [0.0, 0.0, 0.0])

    if len(translation) != 3 or len(rotation) != 4:
        raise ValueError(f"变换格式错误: translation={translation}, rotation={rotation}")

    return PointCloudData(
        timestamp=int(data.get('timestamp', 0)),
        frame_id=data.get('frame_id', 'world'),
        translation=[float(v) for v in translation],
        rotation=[float(v) for v in rotation],
        points=np.asarray(data['points'], dtype=float)
    )


def parse_cloud_message(line: str) -> Optional[PointCloudData]:
    """解析一行点云消息

    Args:
        line: 一行JSON字符串（已去除换行符）

    Returns:
        PointCloudData；非点云消息或格式错误时返回None
    """
    line = line.strip()
    if not line or not line.startswith('{'):
        return None

    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        logger.warning(f"JSON解析错误: {e}")
        return None

    if data.get('type') != CLOUD_MESSAGE_TYPE:
        return None

    try:
        return cloud_from_dict(data)
    except (KeyError, ValueError, TypeError) as e:
        logger.warning(f"点云消息格式错误: {line[:50]}... 错误: {e}")
        return None
