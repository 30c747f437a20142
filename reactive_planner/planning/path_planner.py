"""
路径规划器模块
组合搜索空间生成、连通图构建和启发式搜索，提供一次完整规划所需的接口
"""

import logging
import time
from typing import List, Optional, Sequence, Tuple

from ..geometry import Pose
from .robot import RobotDescriptor
from .heuristic import Heuristic
from .search_space import SearchSpace, SearchSpaceGenerator
from .connectivity import ConnectivityBuilder, SearchGraph
from .search import AStarSearch, SearchEngine, SearchProblem, SolutionPath
from .path_reconstructor import format_node_list

logger = logging.getLogger(__name__)


class PathPlanner:
    """搜索空间路径规划器

    使用流程：
    1. generate_regular_grid 生成搜索空间
    2. connect_nodes 构建连通图
    3. set_heuristic_function 设置启发式函数
    4. start_search 从起点搜索

    Attributes:
        map_obj: 体素地图
        robot: 机器人描述
        space: 当前搜索空间
        graph: 当前连通图

    Example:
        >>> planner = PathPlanner(voxel_map, robot, connection_radius=1.5)
        >>> planner.set_heuristic_function(DistanceHeuristic(end, 0.5))
        >>> planner.generate_regular_grid(Pose(), (10, 10, 0), 1.0)
        >>> planner.connect_nodes()
        >>> path = planner.start_search(start)
    """

    def __init__(self,
                 map_obj,
                 robot: RobotDescriptor,
                 connection_radius: float,
                 tree_progress_display_freq: int = -1,
                 search_engine: SearchEngine = None):
        """初始化路径规划器

        Args:
            map_obj: 体素地图
            robot: 机器人描述
            connection_radius: 连接半径（米）
            tree_progress_display_freq: 每多少次扩展显示一次搜索树，-1禁用
            search_engine: 搜索引擎，None则使用A*
        """
        self.map = map_obj
        self.robot = robot
        self.generator = SearchSpaceGenerator(robot, map_obj)
        self.builder = ConnectivityBuilder(map_obj, connection_radius)
        self.search_engine = search_engine if search_engine else AStarSearch()
        self.search_engine.progress_every = tree_progress_display_freq

        self.heuristic: Optional[Heuristic] = None
        self.debug_delay = 0.0

        self.space = SearchSpace()
        self.graph: Optional[SearchGraph] = None
        self.path: Optional[SolutionPath] = None

        logger.info(f"[PathPlanner] 路径规划器初始化完成 "
                    f"(radius={connection_radius}, engine={type(self.search_engine).__name__})")

    def set_debug_delay(self, debug_delay: float):
        """设置每次显示搜索树后的暂停时间（秒），用于调试"""
        if debug_delay < 0:
            raise ValueError(f"调试暂停时间不能为负: {debug_delay}")
        self.debug_delay = debug_delay

    def set_heuristic_function(self, heuristic: Heuristic):
        self.heuristic = heuristic

    def set_tree_progress_callback(self, callback):
        """设置搜索树显示回调；回调之后按 debug_delay 暂停"""
        def display(tree_edges):
            callback(tree_edges)
            if self.debug_delay > 0:
                time.sleep(self.debug_delay)

        self.search_engine.progress_callback = display

    def generate_regular_grid(self,
                              grid_start: Pose,
                              grid_size: Sequence[float],
                              resolution: float,
                              sample_orientations: bool = False,
                              orientation_res: float = 90.0,
                              collision_check: bool = False) -> SearchSpace:
        """生成规则网格搜索空间，参数含义见 SearchSpaceGenerator.generate_regular_grid"""
        self.space = self.generator.generate_regular_grid(
            grid_start, grid_size, resolution,
            sample_orientations, orientation_res, collision_check
        )
        self.graph = None
        return self.space

    def get_search_space(self) -> List[Tuple[float, float, float]]:
        """搜索空间中去重后的位置"""
        return self.space.positions()

    def get_robot_sensor_poses(self) -> Tuple[List[Pose], List[List[Pose]]]:
        """搜索空间中的机器人位姿和按传感器分组的传感器位姿"""
        return self.space.robot_poses(), self.space.sensor_poses()

    def connect_nodes(self) -> SearchGraph:
        """在连接半径内连接搜索空间采样"""
        self.graph = self.builder.build(self.space)
        return self.graph

    def get_connections(self):
        """连线端点的平铺列表 [a0, b0, a1, b1, ...]"""
        if self.graph is None:
            return []
        return self.graph.get_connections(self.space)

    def start_search(self, start: Pose) -> Optional[SolutionPath]:
        """从起点位姿开始搜索

        Returns:
            SolutionPath；找不到路径时返回None

        Raises:
            RuntimeError: 未设置启发式函数
        """
        if self.heuristic is None:
            raise RuntimeError("未设置启发式函数，请先调用 set_heuristic_function")
        if self.graph is None:
            self.connect_nodes()

        problem = SearchProblem(
            space=self.space,
            graph=self.graph,
            start_neighbors=self.builder.connect_pose(start, self.space),
            start_sensor_poses=self.robot.sensor_poses(start)
        )
        logger.info(f"[PathPlanner] 开始搜索: 起点{start}可连接{len(problem.start_neighbors)}个采样")

        self.path = self.search_engine.search(start, problem, self.heuristic)
        if self.path is None:
            logger.warning(f"[PathPlanner] 未找到路径: 起点{start}")
        return self.path

    def format_node_list(self) -> str:
        return format_node_list(self.path)
