"""
启发式函数模块
搜索引擎只依赖 evaluate / is_goal 两个接口，具体搜索策略可以替换
"""

from abc import ABC, abstractmethod

from ..geometry import Pose


class Heuristic(ABC):
    """启发式函数接口"""

    @abstractmethod
    def evaluate(self, node) -> float:
        """估计节点到目标的代价"""

    @abstractmethod
    def is_goal(self, node) -> bool:
        """节点是否可以作为解的终点"""

    def cost(self, parent, child) -> float:
        """父节点到子节点的实际代价，默认为欧氏距离"""
        return parent.pose.distance_to(child.pose)


class DistanceHeuristic(Heuristic):
    """欧氏距离启发式

    到目标的直线距离作为估计代价；与目标的距离不超过容差的节点视为到达。

    Example:
        >>> heuristic = DistanceHeuristic()
        >>> heuristic.set_end_pose(Pose(5.0, 5.0, 0.0))
        >>> heuristic.set_tolerance_to_goal(0.5)
    """

    def __init__(self, end_pose: Pose = None, tolerance: float = 0.0):
        self.end_pose = end_pose
        self.tolerance = 0.0
        self.set_tolerance_to_goal(tolerance)

    def set_end_pose(self, end_pose: Pose):
        self.end_pose = end_pose

    def set_tolerance_to_goal(self, tolerance: float):
        if tolerance < 0:
            raise ValueError(f"到达容差不能为负: {tolerance}")
        self.tolerance = tolerance

    def _require_end_pose(self) -> Pose:
        if self.end_pose is None:
            raise RuntimeError("启发式函数未设置终点")
        return self.end_pose

    def evaluate(self, node) -> float:
        return node.pose.distance_to(self._require_end_pose())

    def is_goal(self, node) -> bool:
        return node.pose.distance_to(self._require_end_pose()) <= self.tolerance
