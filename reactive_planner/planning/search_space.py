"""
搜索空间生成模块
在包围盒内按分辨率规则采样候选位姿（可选朝向采样），并计算各采样的传感器位姿
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from ..geometry import Pose
from .robot import RobotDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchSpaceSample:
    """搜索空间采样（生成后不可修改）

    Attributes:
        index: 在搜索空间中的序号
        pose: 机器人位姿
        sensor_poses: 该位姿下各传感器的世界位姿
    """
    index: int
    pose: Pose
    sensor_poses: Tuple[Pose, ...] = ()


class SearchSpace:
    """有序的搜索空间采样集合

    采样顺序由生成参数唯一确定，可以按序号访问。
    """

    def __init__(self, samples: Sequence[SearchSpaceSample] = ()):
        self.samples: List[SearchSpaceSample] = list(samples)

    def __len__(self):
        return len(self.samples)

    def __getitem__(self, index: int) -> SearchSpaceSample:
        return self.samples[index]

    def __iter__(self):
        return iter(self.samples)

    def points(self) -> np.ndarray:
        """所有采样的位置 (N x 3)，与采样一一对应（含重复位置）"""
        if not self.samples:
            return np.zeros((0, 3))
        return np.array([sample.pose.position for sample in self.samples])

    def positions(self) -> List[Tuple[float, float, float]]:
        """去除重复朝向后的空间位置（保持采样顺序），用于显示"""
        seen = set()
        unique = []
        for sample in self.samples:
            key = (sample.pose.x, sample.pose.y, sample.pose.z)
            if key not in seen:
                seen.add(key)
                unique.append(key)
        return unique

    def robot_poses(self) -> List[Pose]:
        return [sample.pose for sample in self.samples]

    def sensor_poses(self) -> List[List[Pose]]:
        """按传感器分组的传感器位姿

        Returns:
            [[传感器0在各采样处的位姿], [传感器1...], ...]
        """
        if not self.samples:
            return []

        sensor_count = max(len(sample.sensor_poses) for sample in self.samples)
        grouped = [[] for _ in range(sensor_count)]
        for sample in self.samples:
            for i, pose in enumerate(sample.sensor_poses):
                grouped[i].append(pose)
        return grouped


def axis_sample_count(size: float, resolution: float) -> int:
    """单轴采样数量: max(1, ceil(size / resolution))"""
    # 消除浮点误差，例如 10.0 / 0.1
    return max(1, int(np.ceil(size / resolution - 1e-9)))


def orientation_samples(orientation_res: float) -> List[float]:
    """离散偏航角列表（弧度），共 floor(360 / orientation_res) 个"""
    if not 0 < orientation_res <= 360:
        raise ValueError(f"朝向采样分辨率必须在(0, 360]范围内: {orientation_res}")

    count = int(np.floor(360.0 / orientation_res + 1e-9))
    return [np.deg2rad(k * orientation_res) for k in range(count)]


class SearchSpaceGenerator:
    """规则网格搜索空间生成器

    Example:
        >>> generator = SearchSpaceGenerator(robot)
        >>> space = generator.generate_regular_grid(Pose(), (10, 10, 0), 1.0)
        >>> len(space)
        100
    """

    def __init__(self, robot: RobotDescriptor, map_obj=None):
        """初始化生成器

        Args:
            robot: 机器人描述（传感器安装位置、机身尺寸）
            map_obj: 体素地图，仅在碰撞剔除时使用
        """
        self.robot = robot
        self.map = map_obj

    def generate_regular_grid(self,
                              origin: Pose,
                              grid_size: Sequence[float],
                              resolution: float,
                              sample_orientations: bool = False,
                              orientation_res: float = 90.0,
                              collision_check: bool = False) -> SearchSpace:
        """生成规则网格搜索空间

        采样顺序: x -> y -> z -> 偏航角（最内层）。

        Args:
            origin: 网格起点位姿（未采样朝向时各采样使用其朝向）
            grid_size: 网格尺寸 (x, y, z)（米）
            resolution: 网格分辨率（米）
            sample_orientations: 是否在每个位置采样多个偏航角
            orientation_res: 朝向采样分辨率（度）
            collision_check: 是否剔除机身与占用体素相交的采样

        Returns:
            SearchSpace对象
        """
        if resolution <= 0:
            raise ValueError(f"网格分辨率必须大于0: {resolution}")
        if len(grid_size) != 3 or any(s < 0 for s in grid_size):
            raise ValueError(f"网格尺寸必须为3个非负数: {grid_size}")
        if collision_check and self.map is None:
            raise ValueError("碰撞剔除需要提供地图")

        counts = [axis_sample_count(s, resolution) for s in grid_size]

        if sample_orientations:
            yaws = orientation_samples(orientation_res)
        else:
            yaws = None

        samples = []
        rejected = 0
        for i in range(counts[0]):
            for j in range(counts[1]):
                for k in range(counts[2]):
                    x = origin.x + i * resolution
                    y = origin.y + j * resolution
                    z = origin.z + k * resolution

                    if yaws is None:
                        poses = [Pose(x, y, z, origin.qx, origin.qy, origin.qz, origin.qw, origin.phi)]
                    else:
                        poses = [Pose.from_yaw(x, y, z, yaw, origin.phi) for yaw in yaws]

                    for pose in poses:
                        if collision_check and not self._is_pose_free(pose):
                            rejected += 1
                            continue
                        samples.append(SearchSpaceSample(
                            index=len(samples),
                            pose=pose,
                            sensor_poses=self.robot.sensor_poses(pose)
                        ))

        logger.info(
            f"搜索空间生成完成: 网格{counts[0]}x{counts[1]}x{counts[2]}, "
            f"朝向{len(yaws) if yaws else 1}个, 采样{len(samples)}个"
            + (f", 碰撞剔除{rejected}个" if collision_check else "")
        )

        return SearchSpace(samples)

    def _is_pose_free(self, pose: Pose) -> bool:
        """检查机身包围盒是否与占用体素相交"""
        center = self.robot.body_center(pose)
        return self.map.is_box_free(center.position, self.robot.half_extents)


def build_search_space(robot: RobotDescriptor,
                       poses: Sequence[Pose]) -> SearchSpace:
    """由给定位姿列表直接构造搜索空间（保持给定顺序）"""
    return SearchSpace([
        SearchSpaceSample(index=i, pose=pose, sensor_poses=robot.sensor_poses(pose))
        for i, pose in enumerate(poses)
    ])
