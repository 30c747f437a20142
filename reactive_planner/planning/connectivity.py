"""
连通图构建模块
在连接半径内连接搜索空间采样，并用体素地图检测连线是否可通行
"""

import logging
import numpy as np
from typing import List, Tuple, Set
from scipy.spatial import cKDTree

from ..geometry import Pose
from .search_space import SearchSpace
from ..utils.logger import log_performance

logger = logging.getLogger(__name__)


class SearchGraph:
    """无向连通图

    边以 (i, j) 且 i < j 的形式保存，邻接表双向维护，因此对称且无自环。
    """

    def __init__(self, node_count: int):
        self.node_count = node_count
        self._edges: Set[Tuple[int, int]] = set()
        self._adjacency: List[List[int]] = [[] for _ in range(node_count)]

    def add_edge(self, i: int, j: int):
        """添加无向边

        Raises:
            ValueError: 自环或序号越界
        """
        if i == j:
            raise ValueError(f"不允许自环: {i}")
        if not (0 <= i < self.node_count and 0 <= j < self.node_count):
            raise ValueError(f"节点序号越界: ({i}, {j}), 节点数={self.node_count}")

        key = (i, j) if i < j else (j, i)
        if key in self._edges:
            return

        self._edges.add(key)
        self._adjacency[i].append(j)
        self._adjacency[j].append(i)

    def has_edge(self, i: int, j: int) -> bool:
        key = (i, j) if i < j else (j, i)
        return key in self._edges

    def neighbors(self, i: int) -> List[int]:
        return self._adjacency[i]

    @property
    def edges(self) -> List[Tuple[int, int]]:
        """所有边（按序号排序）"""
        return sorted(self._edges)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def get_connections(self, space: SearchSpace) -> List[np.ndarray]:
        """连线端点的平铺列表 [a0, b0, a1, b1, ...]，用于显示"""
        points = []
        for i, j in self.edges:
            points.append(space[i].pose.position)
            points.append(space[j].pose.position)
        return points


class ConnectivityBuilder:
    """连通图构建器

    在连接半径内的采样对之间连边，前提是地图报告两点间线段可通行。

    Example:
        >>> builder = ConnectivityBuilder(voxel_map, connection_radius=1.5)
        >>> graph = builder.build(space)
        >>> graph.edge_count
    """

    def __init__(self, map_obj, connection_radius: float):
        """初始化构建器

        Args:
            map_obj: 体素地图（提供 is_segment_free）
            connection_radius: 最大连接距离（米）
        """
        if connection_radius <= 0:
            raise ValueError(f"连接半径必须大于0: {connection_radius}")

        self.map = map_obj
        self.connection_radius = connection_radius

    @log_performance(logger, stage='连通图构建')
    def build(self, space: SearchSpace) -> SearchGraph:
        """构建连通图

        Args:
            space: 搜索空间

        Returns:
            SearchGraph对象（可以没有边）
        """
        graph = SearchGraph(len(space))
        if len(space) < 2:
            logger.warning(f"搜索空间采样不足，无法连接: {len(space)}个")
            return graph

        points = space.points()
        tree = cKDTree(points)
        pairs = sorted(tree.query_pairs(self.connection_radius))

        blocked = 0
        for i, j in pairs:
            if self.map.is_segment_free(points[i], points[j]):
                graph.add_edge(i, j)
            else:
                blocked += 1

        logger.info(
            f"连通图构建完成: 候选{len(pairs)}对, 连接{graph.edge_count}条, 被阻挡{blocked}条"
        )
        if graph.edge_count == 0:
            logger.warning("连通图没有任何边，搜索将无法找到路径")

        return graph

    def connect_pose(self, pose: Pose, space: SearchSpace) -> List[int]:
        """计算一个不在搜索空间中的位姿（例如起点）可以连接的采样序号

        Returns:
            按序号排序的采样序号列表
        """
        if len(space) == 0:
            return []

        tree = cKDTree(space.points())
        candidates = sorted(tree.query_ball_point(pose.position, self.connection_radius))

        return [
            i for i in candidates
            if self.map.is_segment_free(pose.position, space[i].pose.position)
        ]
