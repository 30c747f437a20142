"""
规划模块
包含搜索空间生成、连通图构建、启发式搜索、路径重建和规划触发控制器
"""

from .robot import RobotDescriptor, SensorMount, robot_from_config
from .search_space import SearchSpace, SearchSpaceSample, SearchSpaceGenerator
from .connectivity import ConnectivityBuilder, SearchGraph
from .heuristic import Heuristic, DistanceHeuristic
from .search import (
    SearchEngine, AStarSearch, GreedyBestFirstSearch, SolutionNode, SolutionPath,
    create_search_engine
)
from .path_reconstructor import PlannedPath, reconstruct_path
from .path_planner import PathPlanner
from .parameters import ParameterStore, PlanningParams
from .controller import ReactivePlanner, PlannerState, PlanningResult, InvalidTransitionError

__all__ = [
    'RobotDescriptor', 'SensorMount', 'robot_from_config',
    'SearchSpace', 'SearchSpaceSample', 'SearchSpaceGenerator',
    'ConnectivityBuilder', 'SearchGraph',
    'Heuristic', 'DistanceHeuristic',
    'SearchEngine', 'AStarSearch', 'GreedyBestFirstSearch', 'SolutionNode', 'SolutionPath',
    'create_search_engine',
    'PlannedPath', 'reconstruct_path',
    'PathPlanner',
    'ParameterStore', 'PlanningParams',
    'ReactivePlanner', 'PlannerState', 'PlanningResult', 'InvalidTransitionError',
]
