"""
规划触发控制器模块
根据异步到达的点云判断地图是否就绪，就绪后执行且只执行一次完整的规划流程：
搜索空间生成 -> 连通图构建 -> 启发式搜索 -> 路径重建 -> 显示
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from .. import config
from .robot import RobotDescriptor, robot_from_config
from .heuristic import DistanceHeuristic
from .search import create_search_engine
from .path_planner import PathPlanner
from .path_reconstructor import PlannedPath, reconstruct_path
from .parameters import ParameterStore, PlanningParams
from ..visualization.marker_publisher import MarkerPublisher, Color, Scale
from ..utils.logger import ThrottledLogger, PerformanceLogger

logger = logging.getLogger(__name__)


class PlannerState(Enum):
    """规划状态枚举"""
    WAITING_FOR_CLOUD = 0      # 等待第一帧点云
    WAITING_FOR_OCCUPANCY = 1  # 等待地图中出现占用体素
    PLANNING = 2               # 规划中
    DONE = 3                   # 完成（终止状态）


# 允许的状态转移；DONE之后不再有任何转移
TRANSITIONS = {
    PlannerState.WAITING_FOR_CLOUD: {PlannerState.WAITING_FOR_OCCUPANCY},
    PlannerState.WAITING_FOR_OCCUPANCY: {PlannerState.PLANNING},
    PlannerState.PLANNING: {PlannerState.DONE},
    PlannerState.DONE: set(),
}


class InvalidTransitionError(RuntimeError):
    """非法的状态转移"""


@dataclass
class PlanningResult:
    """一次规划的结果记录"""
    params: PlanningParams
    search_space_size: int
    edge_count: int
    path: PlannedPath
    generation_time: float
    search_time: float


class ReactivePlanner:
    """规划触发控制器

    点云回调（传感器线程）更新地图；主循环按固定频率调用 tick() 检查就绪条件，
    满足条件后在同一次 tick 中同步执行完整规划，然后进入 DONE，不再重新规划。

    Attributes:
        map: 体素地图
        params: 参数存储（进入PLANNING时一次性读取）
        visualizer: 标记发布器
        result: 规划结果（规划完成前为None）

    Example:
        >>> planner = ReactivePlanner(voxel_map, ParameterStore.from_config(config))
        >>> receiver.on_cloud_update = planner.on_cloud
        >>> planner.spin(rate_hz=10)
    """

    def __init__(self,
                 map_obj,
                 params: ParameterStore,
                 visualizer: MarkerPublisher = None,
                 robot: RobotDescriptor = None,
                 free_origin=config.ENV_FREE_ORIGIN,
                 free_box=config.ENV_FREE_BOX,
                 status_period: float = config.STATUS_LOG_PERIOD):
        """初始化控制器

        Args:
            map_obj: 体素地图
            params: 参数存储
            visualizer: 标记发布器，None则自动创建
            robot: 机器人描述，None则在规划时按配置创建
            free_origin: 初始空闲区域中心
            free_box: 初始空闲区域尺寸，None则不标记
            status_period: 地图状态日志的节流周期（秒）
        """
        self.map = map_obj
        self.params = params
        self.robot = robot
        self.status_period = status_period

        self.visualizer = visualizer if visualizer else MarkerPublisher(config.VISUALIZE_FRAME_ID)
        self.visualizer.delete_all_markers()
        self.visualizer.enable_batch_publishing()

        self._state = PlannerState.WAITING_FOR_CLOUD
        self._state_lock = threading.Lock()

        self.cloud_count = 0
        self.tick_count = 0
        self.result: Optional[PlanningResult] = None
        self.path_planner: Optional[PathPlanner] = None

        self.throttled = ThrottledLogger(logger)
        self.perf = PerformanceLogger(logger)

        if free_box is not None:
            self.map.set_free(free_origin, free_box)

        logger.info("开始反应式规划，等待点云...")

    # ========== 状态机 ==========

    @property
    def state(self) -> PlannerState:
        with self._state_lock:
            return self._state

    @property
    def map_ready(self) -> bool:
        """是否已收到点云"""
        return self.state != PlannerState.WAITING_FOR_CLOUD

    @property
    def planning_started(self) -> bool:
        return self.state in (PlannerState.PLANNING, PlannerState.DONE)

    def _transition(self, new_state: PlannerState):
        """执行状态转移（调用方持有_state_lock）

        Raises:
            InvalidTransitionError: 转移不在允许表中
        """
        if new_state not in TRANSITIONS[self._state]:
            raise InvalidTransitionError(f"非法状态转移: {self._state.name} -> {new_state.name}")

        logger.info(f"状态转移: {self._state.name} -> {new_state.name}")
        self._state = new_state

    # ========== 回调与主循环 ==========

    def on_cloud(self, cloud):
        """点云回调（在传感器线程中调用）

        Args:
            cloud: PointCloudData对象
        """
        self.map.insert_pointcloud(cloud)
        self.cloud_count += 1

        with self._state_lock:
            if self._state == PlannerState.WAITING_FOR_CLOUD:
                self._transition(PlannerState.WAITING_FOR_OCCUPANCY)

    def tick(self) -> PlannerState:
        """一次就绪检查；条件满足时同步执行规划

        Returns:
            本次检查后的状态
        """
        self.tick_count += 1

        occupied = self.map.get_all_occupied_boxes()
        map_size = self.map.get_map_size()
        self.throttled.info(
            self.status_period,
            "地图尺寸:[%.2f %.2f %.2f] 占用体素:%d",
            map_size[0], map_size[1], map_size[2], len(occupied),
            key='map_status'
        )

        with self._state_lock:
            if self._state != PlannerState.WAITING_FOR_OCCUPANCY or len(occupied) == 0:
                return self._state

            if np.linalg.norm(map_size) <= 0.0:
                self.throttled.error(self.status_period, "规划器未就绪: 地图为空!",
                                     key='map_empty')
                return self._state

            self._transition(PlannerState.PLANNING)

        # 规划期间不持有锁，点云回调仍可更新地图
        try:
            self.result = self._plan_path(self.params.snapshot())
        finally:
            with self._state_lock:
                self._transition(PlannerState.DONE)

        return self.state

    def spin(self, rate_hz: float = config.LOOP_RATE, max_ticks: int = None,
             stop_event: threading.Event = None, stop_when_done: bool = False) -> PlannerState:
        """按固定频率运行主循环

        Args:
            rate_hz: 轮询频率（Hz）
            max_ticks: 最多轮询次数，None表示不限
            stop_event: 外部停止信号
            stop_when_done: 规划完成后是否退出循环

        Returns:
            退出时的状态
        """
        if rate_hz <= 0:
            raise ValueError(f"轮询频率必须大于0: {rate_hz}")

        period = 1.0 / rate_hz
        ticks = 0
        while True:
            if stop_event is not None and stop_event.is_set():
                break
            if max_ticks is not None and ticks >= max_ticks:
                break

            state = self.tick()
            ticks += 1
            if stop_when_done and state == PlannerState.DONE:
                break

            time.sleep(period)

        return self.state

    # ========== 规划流程 ==========

    def _plan_path(self, params: PlanningParams) -> PlanningResult:
        """执行一次完整规划（只在进入PLANNING时调用一次）"""
        occupied = self.map.get_all_occupied_boxes()
        map_size = self.map.get_map_size()
        logger.info(f"规划时地图尺寸:[{map_size[0]:.2f} {map_size[1]:.2f} {map_size[2]:.2f}] "
                    f"占用体素:{len(occupied)}")

        timer_start = time.time()
        viz = self.visualizer

        viz.publish_sphere(params.start.position, Color.BLUE, config.MARKER_SPHERE_SCALE, 'start_pose')
        viz.publish_sphere(params.end.position, Color.ORANGE, config.MARKER_SPHERE_SCALE, 'end_pose')
        viz.trigger()

        if self.robot is None:
            self.robot = robot_from_config(config)

        engine = create_search_engine(params.search_strategy)
        planner = PathPlanner(self.map, self.robot, params.connection_radius,
                              params.tree_progress_display_freq, engine)
        self.path_planner = planner

        # 调试模式下每次显示搜索树后暂停
        planner.set_debug_delay(params.debug_delay if params.debug else 0.0)
        if params.tree_progress_display_freq > 0:
            planner.set_tree_progress_callback(self._display_tree)

        heuristic = DistanceHeuristic()
        heuristic.set_end_pose(params.end)
        heuristic.set_tolerance_to_goal(params.dist_to_goal)
        planner.set_heuristic_function(heuristic)

        # 生成搜索空间并显示
        space = planner.generate_regular_grid(
            params.grid_start, params.grid_size, params.grid_resolution,
            params.sample_orientations, params.orientation_sampling_res,
            params.collision_check
        )
        search_space_nodes = planner.get_search_space()
        robot_poses_ss, sensor_poses_ss = planner.get_robot_sensor_poses()
        logger.info(f"搜索空间节点总数 = {len(search_space_nodes)} (采样 {len(space)})")

        viz.publish_spheres(search_space_nodes, Color.PURPLE, config.MARKER_NODE_SCALE,
                            'search_space_nodes')
        viz.trigger()

        # 连接节点并显示
        graph = planner.connect_nodes()
        generation_time = time.time() - timer_start
        self.perf.log_execution_time('space_generation', generation_time)

        if params.visualize_search_space:
            connections = planner.get_connections()
            for i in range(0, len(connections) - 1, 2):
                viz.publish_line(connections[i], connections[i + 1], Color.BLUE, Scale.LARGE,
                                 'search_space_connections')
            viz.trigger()

        # 搜索路径
        timer_restart = time.time()
        solution = planner.start_search(params.start)
        search_time = time.time() - timer_restart
        self.perf.log_execution_time('path_finding', search_time)

        if solution is not None:
            logger.info(f"路径节点列表:\n{planner.format_node_list()}")
        else:
            logger.warning("No Path Found")

        path = reconstruct_path(solution)
        logger.info(f"路径长度: {path.length:.3f}m")

        # 路径线段、路径位姿、搜索空间位姿、搜索空间传感器位姿
        points = path.segment_points()
        for i in range(len(points) - 1):
            viz.publish_line(points[i], points[i + 1], Color.RED, Scale.MEDIUM, 'path_segments')
        viz.trigger()

        for pose in path.robot_poses:
            viz.publish_arrow(pose, Color.YELLOW, Scale.LARGE, config.MARKER_ARROW_LENGTH, 'path_poses')
        viz.trigger()

        for pose in robot_poses_ss:
            viz.publish_arrow(pose, Color.CYAN, Scale.LARGE, config.MARKER_ARROW_LENGTH,
                              'search_space_poses')
        viz.trigger()

        for sensor_poses in sensor_poses_ss:
            for pose in sensor_poses:
                viz.publish_arrow(pose, Color.DARK_GREY, Scale.LARGE, config.MARKER_ARROW_LENGTH,
                                  'search_space_sensor_poses')
        viz.trigger()

        return PlanningResult(
            params=params,
            search_space_size=len(space),
            edge_count=graph.edge_count,
            path=path,
            generation_time=generation_time,
            search_time=search_time
        )

    def _display_tree(self, tree_edges):
        """显示当前搜索树"""
        for parent, child in tree_edges:
            self.visualizer.publish_line(parent.position, child.position, Color.GREEN,
                                         Scale.SMALL, 'search_tree')
        self.visualizer.trigger()
