"""
路径重建模块
遍历解路径，生成显示用线段、机器人位姿序列、传感器位姿序列和路径总长度
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from ..geometry import Pose
from .search import SolutionPath


@dataclass
class PlannedPath:
    """路径重建结果

    Attributes:
        found: 是否找到路径
        segments: 相邻节点之间的线段 [(起点, 终点), ...]
        robot_poses: 机器人位姿序列（每条线段的两个端点都会加入，中间节点出现两次）
        sensor_poses: 传感器位姿序列（与robot_poses相同的展开方式）
        length: 路径总长度（米）
        node_count: 路径节点数
    """
    found: bool = False
    segments: List[Tuple[np.ndarray, np.ndarray]] = field(default_factory=list)
    robot_poses: List[Pose] = field(default_factory=list)
    sensor_poses: List[Pose] = field(default_factory=list)
    length: float = 0.0
    node_count: int = 0

    def segment_points(self) -> List[np.ndarray]:
        """线段端点的平铺列表 [a0, b0, a1, b1, ...]"""
        points = []
        for start, end in self.segments:
            points.append(start)
            points.append(end)
        return points


def reconstruct_path(solution: Optional[SolutionPath]) -> PlannedPath:
    """遍历解路径

    Args:
        solution: 搜索结果，None表示未找到路径

    Returns:
        PlannedPath对象；未找到路径时 found=False，长度为0
    """
    result = PlannedPath()
    if solution is None:
        return result

    result.found = True
    nodes = list(solution)
    result.node_count = len(nodes)

    # 只有一个节点（起点即终点）时没有线段
    if len(nodes) == 1:
        result.robot_poses.append(nodes[0].pose)
        result.sensor_poses.extend(nodes[0].sensor_poses)
        return result

    for current, following in zip(nodes, nodes[1:]):
        result.segments.append((current.pose.position, following.pose.position))

        result.robot_poses.append(current.pose)
        result.sensor_poses.extend(current.sensor_poses)
        result.robot_poses.append(following.pose)
        result.sensor_poses.extend(following.sensor_poses)

        result.length += following.pose.distance_to(current.pose)

    return result


def format_node_list(solution: Optional[SolutionPath]) -> str:
    """将解路径格式化为文本（用于日志输出）"""
    if solution is None:
        return "No Path Found"

    lines = []
    for i, node in enumerate(solution):
        lines.append(f"  [{i}] 位姿={node.pose} 传感器={len(node.sensor_poses)}个")
    return "\n".join(lines)
