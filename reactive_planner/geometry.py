"""
位姿与刚体变换
规划、建图和可视化共用的三维位姿类型
"""

import numpy as np
from dataclasses import dataclass
from typing import Sequence, Tuple
from scipy.spatial.transform import Rotation


@dataclass(frozen=True)
class Pose:
    """三维位姿（位置 + 四元数朝向）

    四元数采用 (x, y, z, w) 顺序，与 scipy Rotation 一致。

    Attributes:
        x, y, z: 位置（米）
        qx, qy, qz, qw: 朝向四元数
        phi: 附加的固定旋转偏移（弧度）
    """
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    qx: float = 0.0
    qy: float = 0.0
    qz: float = 0.0
    qw: float = 1.0
    phi: float = 0.0

    @classmethod
    def from_yaw(cls, x: float, y: float, z: float, yaw: float = 0.0, phi: float = 0.0) -> 'Pose':
        """由位置和偏航角构造位姿

        Args:
            x, y, z: 位置（米）
            yaw: 偏航角（弧度）
            phi: 附加旋转偏移（弧度）
        """
        half = yaw / 2.0
        return cls(float(x), float(y), float(z), 0.0, 0.0, float(np.sin(half)), float(np.cos(half)), phi)

    @classmethod
    def from_position_rotation(cls, position: Sequence[float], rotation: Rotation,
                               phi: float = 0.0) -> 'Pose':
        qx, qy, qz, qw = rotation.as_quat()
        return cls(float(position[0]), float(position[1]), float(position[2]),
                   float(qx), float(qy), float(qz), float(qw), phi)

    @property
    def position(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    @property
    def quaternion(self) -> Tuple[float, float, float, float]:
        return (self.qx, self.qy, self.qz, self.qw)

    @property
    def rotation(self) -> Rotation:
        return Rotation.from_quat(self.quaternion)

    @property
    def yaw(self) -> float:
        """偏航角（弧度，范围[-pi, pi]）"""
        siny_cosp = 2.0 * (self.qw * self.qz + self.qx * self.qy)
        cosy_cosp = 1.0 - 2.0 * (self.qy * self.qy + self.qz * self.qz)
        return float(np.arctan2(siny_cosp, cosy_cosp))

    def distance_to(self, other: 'Pose') -> float:
        """两位姿位置之间的欧氏距离（米）"""
        return float(np.linalg.norm(self.position - other.position))

    def compose(self, offset: 'Pose') -> 'Pose':
        """刚体变换复合 self ∘ offset

        offset 表示在本位姿坐标系下的相对位姿（例如传感器安装位置），
        返回其在世界坐标系下的位姿。
        """
        rotation = self.rotation
        position = self.position + rotation.apply(offset.position)
        return Pose.from_position_rotation(position, rotation * offset.rotation, self.phi)

    def __str__(self):
        return f"({self.x:.2f}, {self.y:.2f}, {self.z:.2f}, yaw={np.rad2deg(self.yaw):.1f}°)"


def offset_pose(position: Sequence[float], rpy_deg: Sequence[float] = (0.0, 0.0, 0.0)) -> Pose:
    """由安装位置和欧拉角（度）构造相对位姿"""
    rotation = Rotation.from_euler('xyz', rpy_deg, degrees=True)
    return Pose.from_position_rotation(position, rotation)
