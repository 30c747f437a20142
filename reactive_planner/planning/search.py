"""
搜索引擎模块
在连通图上从起点位姿搜索到目标，返回以前向索引串联的解路径
"""

import heapq
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from ..geometry import Pose
from .heuristic import Heuristic
from .search_space import SearchSpace
from .connectivity import SearchGraph

logger = logging.getLogger(__name__)

# 起点不属于搜索空间，使用独立的键
START_KEY = -1

ProgressCallback = Callable[[List[Tuple[Pose, Pose]]], None]


@dataclass
class SearchNode:
    """搜索树节点

    Attributes:
        key: 搜索空间序号（起点为START_KEY）
        pose: 机器人位姿
        sensor_poses: 传感器位姿
        g: 起点到该节点的实际代价
        h: 启发式估计代价
        parent: 父节点键
    """
    key: int
    pose: Pose
    sensor_poses: Tuple[Pose, ...] = ()
    g: float = 0.0
    h: float = 0.0
    parent: Optional[int] = None


@dataclass(frozen=True)
class SolutionNode:
    """解路径上的一个节点

    Attributes:
        pose: 机器人位姿
        sensor_poses: 传感器位姿
        next: 下一个节点在路径中的序号，None表示终点
    """
    pose: Pose
    sensor_poses: Tuple[Pose, ...] = ()
    next: Optional[int] = None


class SolutionPath:
    """解路径（节点数组 + 前向索引）

    由搜索引擎构造，只读。迭代时从头节点沿 next 依次访问。
    """

    def __init__(self, nodes: List[SolutionNode], head: int = 0):
        if not nodes:
            raise ValueError("解路径至少包含一个节点")
        self.nodes = list(nodes)
        self.head = head

    @classmethod
    def from_chain(cls, chain: List[Tuple[Pose, Tuple[Pose, ...]]]) -> 'SolutionPath':
        """由按顺序排列的 (位姿, 传感器位姿) 构造"""
        last = len(chain) - 1
        return cls([
            SolutionNode(pose, tuple(sensors), i + 1 if i < last else None)
            for i, (pose, sensors) in enumerate(chain)
        ])

    def __iter__(self) -> Iterator[SolutionNode]:
        index = self.head
        while index is not None:
            node = self.nodes[index]
            yield node
            index = node.next

    def __len__(self):
        return sum(1 for _ in self)

    @property
    def goal(self) -> SolutionNode:
        *_, last = iter(self)
        return last


@dataclass
class SearchProblem:
    """一次搜索所需的图数据

    Attributes:
        space: 搜索空间
        graph: 连通图
        start_neighbors: 起点可以直接连接的采样序号
        start_sensor_poses: 起点处的传感器位姿
    """
    space: SearchSpace
    graph: SearchGraph
    start_neighbors: List[int] = field(default_factory=list)
    start_sensor_poses: Tuple[Pose, ...] = ()


class SearchEngine(ABC):
    """搜索引擎接口

    找不到路径时返回None，不抛出异常。
    """

    def __init__(self, progress_every: int = -1, progress_callback: ProgressCallback = None):
        """
        Args:
            progress_every: 每扩展多少个节点回调一次搜索树，-1禁用
            progress_callback: 搜索树回调，参数为 [(父位姿, 子位姿), ...]
        """
        self.progress_every = progress_every
        self.progress_callback = progress_callback
        self.expanded_count = 0

    @abstractmethod
    def search(self, start_pose: Pose, problem: SearchProblem,
               heuristic: Heuristic) -> Optional[SolutionPath]:
        """从起点搜索到目标"""


class AStarSearch(SearchEngine):
    """A*搜索

    优先级 f = g + h；弹出的节点满足 heuristic.is_goal 时结束。
    """

    def _priority(self, node: SearchNode) -> float:
        return node.g + node.h

    def search(self, start_pose: Pose, problem: SearchProblem,
               heuristic: Heuristic) -> Optional[SolutionPath]:
        self.expanded_count = 0

        start = SearchNode(START_KEY, start_pose, tuple(problem.start_sensor_poses))
        start.h = heuristic.evaluate(start)
        nodes: Dict[int, SearchNode] = {START_KEY: start}

        # 优先队列：(priority, counter, key)，counter用于打破平局
        open_set = []
        counter = 0
        heapq.heappush(open_set, (self._priority(start), counter, START_KEY))
        closed_set = set()

        while open_set:
            _, _, key = heapq.heappop(open_set)
            if key in closed_set:
                continue

            current = nodes[key]
            if heuristic.is_goal(current):
                logger.info(f"找到路径: 扩展{self.expanded_count}个节点, 代价{current.g:.3f}")
                return self._reconstruct(nodes, current)

            closed_set.add(key)
            self.expanded_count += 1
            self._report_progress(nodes)

            neighbor_keys = problem.start_neighbors if key == START_KEY else problem.graph.neighbors(key)
            for neighbor_key in neighbor_keys:
                if neighbor_key in closed_set:
                    continue

                sample = problem.space[neighbor_key]
                candidate = SearchNode(neighbor_key, sample.pose, sample.sensor_poses)
                tentative_g = current.g + heuristic.cost(current, candidate)

                existing = nodes.get(neighbor_key)
                if existing is not None and tentative_g >= existing.g:
                    continue

                candidate.g = tentative_g
                candidate.h = heuristic.evaluate(candidate)
                candidate.parent = key
                nodes[neighbor_key] = candidate

                counter += 1
                heapq.heappush(open_set, (self._priority(candidate), counter, neighbor_key))

        logger.info(f"搜索结束，未找到路径: 扩展{self.expanded_count}个节点")
        return None

    def _report_progress(self, nodes: Dict[int, SearchNode]):
        if self.progress_every <= 0 or self.progress_callback is None:
            return
        if self.expanded_count % self.progress_every != 0:
            return

        tree_edges = [
            (nodes[node.parent].pose, node.pose)
            for node in nodes.values() if node.parent is not None
        ]
        self.progress_callback(tree_edges)

    @staticmethod
    def _reconstruct(nodes: Dict[int, SearchNode], goal: SearchNode) -> SolutionPath:
        chain = []
        node = goal
        while node is not None:
            chain.append((node.pose, node.sensor_poses))
            node = nodes[node.parent] if node.parent is not None else None
        chain.reverse()
        return SolutionPath.from_chain(chain)


class GreedyBestFirstSearch(AStarSearch):
    """贪心最佳优先搜索：只按启发式估计排序，速度快但不保证最短"""

    def _priority(self, node: SearchNode) -> float:
        return node.h


def create_search_engine(strategy: str = 'astar', **kwargs) -> SearchEngine:
    """工厂函数：按名称创建搜索引擎

    Args:
        strategy: 'astar' 或 'greedy'
    """
    engines = {
        'astar': AStarSearch,
        'greedy': GreedyBestFirstSearch,
    }
    try:
        engine_cls = engines[strategy.lower()]
    except KeyError:
        raise ValueError(f"不支持的搜索策略: {strategy}，请使用{list(engines)}") from None
    return engine_cls(**kwargs)
