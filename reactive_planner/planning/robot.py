"""
机器人描述
机身尺寸、机身中心偏移与传感器安装位置
"""

from dataclasses import dataclass
from typing import Tuple

from ..geometry import Pose, offset_pose


@dataclass(frozen=True)
class SensorMount:
    """传感器安装信息

    Attributes:
        name: 传感器名称
        offset: 传感器相对机器人位姿的偏移
    """
    name: str
    offset: Pose


@dataclass(frozen=True)
class RobotDescriptor:
    """机器人描述（创建后不可修改）

    Attributes:
        name: 名称
        height: 机身高度（米）
        width: 机身宽度（米）
        narrowest_path: 可通过的最窄通道宽度（米）
        center: 机身中心相对位姿原点的偏移 (x, y, z)
        sensors: 安装的传感器
    """
    name: str
    height: float
    width: float
    narrowest_path: float
    center: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    sensors: Tuple[SensorMount, ...] = ()

    def __post_init__(self):
        if self.height <= 0 or self.width <= 0:
            raise ValueError(f"机器人尺寸必须大于0: height={self.height}, width={self.width}")

    def sensor_poses(self, robot_pose: Pose) -> Tuple[Pose, ...]:
        """计算给定机器人位姿下所有传感器的世界位姿"""
        return tuple(robot_pose.compose(sensor.offset) for sensor in self.sensors)

    def body_center(self, robot_pose: Pose) -> Pose:
        """机身中心的世界位姿"""
        return robot_pose.compose(Pose(*self.center))

    @property
    def half_extents(self) -> Tuple[float, float, float]:
        """机身包围盒的半尺寸 (x, y, z)"""
        return (self.width / 2.0, self.width / 2.0, self.height / 2.0)


def robot_from_config(cfg) -> RobotDescriptor:
    """根据配置模块构造机器人描述

    Args:
        cfg: 配置模块（reactive_planner.config）
    """
    sensors = tuple(
        SensorMount(name, offset_pose(position, rpy))
        for name, position, rpy in cfg.ROBOT_SENSORS
    )
    return RobotDescriptor(
        name=cfg.ROBOT_NAME,
        height=cfg.ROBOT_HEIGHT,
        width=cfg.ROBOT_WIDTH,
        narrowest_path=cfg.ROBOT_NARROWEST_PATH,
        center=tuple(cfg.ROBOT_CENTER),
        sensors=sensors
    )
