"""
规划参数模块
运行期可修改的参数存储，以及进入规划状态时生成的不可变参数快照
"""

import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from ..geometry import Pose

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanningParams:
    """一次规划使用的参数快照（创建后不可修改）"""
    start: Pose
    end: Pose
    grid_start: Pose
    connection_radius: float
    grid_resolution: float
    grid_size: Tuple[float, float, float]
    dist_to_goal: float
    sample_orientations: bool
    orientation_sampling_res: float
    visualize_search_space: bool
    debug: bool
    debug_delay: float
    tree_progress_display_freq: int
    collision_check: bool = False
    search_strategy: str = 'astar'


def default_parameters(cfg) -> Dict[str, Any]:
    """由配置模块生成参数默认值

    Args:
        cfg: 配置模块（reactive_planner.config）
    """
    return {
        'start_x': cfg.PLAN_START[0],
        'start_y': cfg.PLAN_START[1],
        'start_z': cfg.PLAN_START[2],
        'end_x': cfg.PLAN_END[0],
        'end_y': cfg.PLAN_END[1],
        'end_z': cfg.PLAN_END[2],
        'grid_start_x': cfg.PLAN_GRID_START[0],
        'grid_start_y': cfg.PLAN_GRID_START[1],
        'grid_start_z': cfg.PLAN_GRID_START[2],
        'connection_rad': cfg.PLAN_CONNECTION_RAD,
        'grid_resolution': cfg.PLAN_GRID_RESOLUTION,
        'grid_size_x': cfg.PLAN_GRID_SIZE[0],
        'grid_size_y': cfg.PLAN_GRID_SIZE[1],
        'grid_size_z': cfg.PLAN_GRID_SIZE[2],
        'visualize_search_space': cfg.PLAN_VISUALIZE_SEARCH_SPACE,
        'debug': cfg.PLAN_DEBUG,
        'debug_delay': cfg.PLAN_DEBUG_DELAY,
        'dist_to_goal': cfg.PLAN_DIST_TO_GOAL,
        'sample_orientations': cfg.PLAN_SAMPLE_ORIENTATIONS,
        'orientation_sampling_res': cfg.PLAN_ORIENTATION_SAMPLING_RES,
        'tree_progress_display_freq': cfg.PLAN_TREE_PROGRESS_DISPLAY_FREQ,
        'collision_check': cfg.PLAN_COLLISION_CHECK,
        'search_strategy': cfg.PLAN_SEARCH_STRATEGY,
    }


class ParameterStore:
    """线程安全的命名参数存储

    参数可以在运行期修改，但一次规划只读取一次（snapshot）。

    Example:
        >>> store = ParameterStore.from_config(config)
        >>> store.set('end_x', 8.0)
        >>> params = store.snapshot()
    """

    def __init__(self, values: Dict[str, Any] = None):
        self._values: Dict[str, Any] = dict(values or {})
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, cfg) -> 'ParameterStore':
        return cls(default_parameters(cfg))

    def get(self, name: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(name, default)

    def set(self, name: str, value: Any):
        with self._lock:
            self._values[name] = value

    def update(self, values: Dict[str, Any]):
        with self._lock:
            self._values.update(values)

    def load_json(self, filename: str) -> Dict[str, Any]:
        """从JSON文件加载参数覆盖

        未知参数名会被记录警告，但仍然写入。

        Returns:
            加载的参数字典
        """
        with open(filename, 'r', encoding='utf-8') as f:
            values = json.load(f)

        if not isinstance(values, dict):
            raise ValueError(f"参数文件必须是JSON对象: {filename}")

        with self._lock:
            unknown = [name for name in values if name not in self._values]
            self._values.update(values)

        if unknown:
            logger.warning(f"参数文件包含未知参数: {unknown}")
        logger.info(f"已加载参数文件: {filename} ({len(values)}项)")
        return values

    def snapshot(self) -> PlanningParams:
        """一次性读取全部参数，生成不可变快照

        Raises:
            KeyError: 缺少必需参数
        """
        with self._lock:
            v = dict(self._values)

        def vec(prefix: str) -> Tuple[float, float, float]:
            return (float(v[prefix + '_x']), float(v[prefix + '_y']), float(v[prefix + '_z']))

        start = Pose.from_yaw(*vec('start'), yaw=0.0, phi=0.0)
        end = Pose.from_yaw(*vec('end'), yaw=0.0, phi=0.0)

        return PlanningParams(
            start=start,
            end=end,
            grid_start=Pose(*vec('grid_start')),
            connection_radius=float(v['connection_rad']),
            grid_resolution=float(v['grid_resolution']),
            grid_size=vec('grid_size'),
            dist_to_goal=float(v['dist_to_goal']),
            sample_orientations=bool(v['sample_orientations']),
            orientation_sampling_res=float(v['orientation_sampling_res']),
            visualize_search_space=bool(v['visualize_search_space']),
            debug=bool(v['debug']),
            debug_delay=float(v['debug_delay']),
            tree_progress_display_freq=int(v['tree_progress_display_freq']),
            collision_check=bool(v.get('collision_check', False)),
            search_strategy=str(v.get('search_strategy', 'astar'))
        )
