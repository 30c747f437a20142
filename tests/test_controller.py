"""
规划触发控制器测试
"""

import pytest
import dataclasses
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import matplotlib
matplotlib.use('Agg')

from reactive_planner import config
from reactive_planner.communication import PointCloudData
from reactive_planner.mapping import OccupancyVoxelMap, VoxelMapConfig
from reactive_planner.planning import (
    ParameterStore, ReactivePlanner, PlannerState, InvalidTransitionError
)
from reactive_planner.visualization import MarkerPublisher


def make_cloud(points):
    return PointCloudData(timestamp=0, frame_id='world', translation=[0.0, 0.0, 0.0],
                          rotation=[0.0, 0.0, 0.0, 1.0], points=np.array(points, dtype=float))


# 远离规划网格的单个障碍点
OBSTACLE_CLOUD = [[-2.1, -2.1, 0.1]]


@pytest.fixture
def map_obj():
    config_ = VoxelMapConfig(width=40, depth=40, height=40, resolution=0.2,
                             origin_x=20, origin_y=20, origin_z=20)
    return OccupancyVoxelMap(config_)


@pytest.fixture
def params():
    """3x3 网格，从(0,0,0)规划到(2,2,0)"""
    store = ParameterStore.from_config(config)
    store.update({
        'end_x': 2.0, 'end_y': 2.0, 'end_z': 0.0,
        'grid_size_x': 3.0, 'grid_size_y': 3.0, 'grid_size_z': 0.0,
        'connection_rad': 1.5,
        'grid_resolution': 1.0,
    })
    return store


@pytest.fixture
def planner(map_obj, params):
    return ReactivePlanner(map_obj, params, MarkerPublisher(), free_box=(4.0, 4.0, 4.0),
                           status_period=0.0)


class ZeroExtentMap:
    """报告有占用体素但尺寸为零的地图"""

    def insert_pointcloud(self, cloud):
        return 0

    def get_all_occupied_boxes(self):
        return [(np.zeros(3), 0.2)]

    def get_map_size(self):
        return np.zeros(3)


# ============================================================================
# 状态转移
# ============================================================================

def test_initial_state(planner):
    assert planner.state == PlannerState.WAITING_FOR_CLOUD
    assert not planner.map_ready
    assert not planner.planning_started
    assert planner.result is None


def test_no_cloud_never_plans(planner):
    """没有点云时永远不会开始规划"""
    for _ in range(20):
        assert planner.tick() == PlannerState.WAITING_FOR_CLOUD

    assert planner.result is None
    assert planner.visualizer.trigger_count == 0


def test_occupied_map_without_cloud_never_plans(planner, map_obj):
    """地图中已有占用体素但尚未收到点云时不规划"""
    idx = map_obj.world_to_grid(*OBSTACLE_CLOUD[0])
    map_obj.log_odds[idx] = map_obj.config.log_odds_max
    map_obj.known[idx] = True
    assert len(map_obj.get_all_occupied_boxes()) == 1

    for _ in range(10):
        assert planner.tick() == PlannerState.WAITING_FOR_CLOUD

    assert not planner.map_ready
    assert planner.result is None
    assert planner.visualizer.trigger_count == 0


def test_cloud_without_occupancy(planner):
    """收到点云但没有占用体素时停留在等待占用状态"""
    planner.on_cloud(make_cloud(np.zeros((0, 3))))
    assert planner.state == PlannerState.WAITING_FOR_OCCUPANCY
    assert planner.map_ready

    for _ in range(5):
        assert planner.tick() == PlannerState.WAITING_FOR_OCCUPANCY
    assert planner.result is None


def test_zero_extent_map_does_not_plan(params):
    """地图尺寸为零时不开始规划"""
    planner = ReactivePlanner(ZeroExtentMap(), params, MarkerPublisher(), free_box=None,
                              status_period=0.0)
    planner.on_cloud(make_cloud(OBSTACLE_CLOUD))

    assert planner.tick() == PlannerState.WAITING_FOR_OCCUPANCY
    assert planner.result is None


def test_plan_once(planner):
    """地图就绪后只规划一次，DONE为终止状态"""
    planner.on_cloud(make_cloud(OBSTACLE_CLOUD))
    assert planner.tick() == PlannerState.DONE

    result = planner.result
    assert result is not None
    assert result.search_space_size == 9
    assert result.edge_count == 20
    assert result.path.found
    assert np.allclose(result.path.robot_poses[-1].position, (2.0, 2.0, 0.0))

    triggers = planner.visualizer.trigger_count
    planner.on_cloud(make_cloud(OBSTACLE_CLOUD))
    for _ in range(5):
        assert planner.tick() == PlannerState.DONE

    assert planner.result is result
    assert planner.visualizer.trigger_count == triggers


def test_published_markers(planner):
    """规划结果按命名空间发布"""
    planner.on_cloud(make_cloud(OBSTACLE_CLOUD))
    planner.tick()

    namespaces = planner.visualizer.namespaces()
    for expected in ['start_pose', 'end_pose', 'search_space_nodes', 'path_segments',
                     'path_poses', 'search_space_poses', 'search_space_sensor_poses']:
        assert expected in namespaces
    assert 'search_space_connections' not in namespaces
    assert 'search_tree' not in namespaces

    viz = planner.visualizer
    assert viz.pending_count == 0
    assert len(viz.markers('search_space_poses')) == 9
    assert len(viz.markers('path_poses')) == len(planner.result.path.robot_poses)


def test_visualize_search_space(planner, params):
    params.set('visualize_search_space', True)
    params.set('tree_progress_display_freq', 1)
    planner.on_cloud(make_cloud(OBSTACLE_CLOUD))
    planner.tick()

    assert len(planner.visualizer.markers('search_space_connections')) == 20
    assert 'search_tree' in planner.visualizer.namespaces()


def test_params_snapshot(planner, params):
    """规划使用进入规划状态时的参数快照"""
    planner.on_cloud(make_cloud(OBSTACLE_CLOUD))
    planner.tick()

    params.set('end_x', 9.0)
    assert planner.result.params.end.x == 2.0

    with pytest.raises(dataclasses.FrozenInstanceError):
        planner.result.params.end_x = 9.0


def test_no_path_still_done(planner, params):
    """找不到路径时同样进入DONE"""
    params.update({'end_x': 3.5, 'end_y': 3.5})
    planner.on_cloud(make_cloud(OBSTACLE_CLOUD))

    assert planner.tick() == PlannerState.DONE
    assert not planner.result.path.found
    assert planner.result.path.length == 0.0
    assert 'path_segments' not in planner.visualizer.namespaces()


def test_planning_error_still_done(planner, params):
    """规划抛出异常时状态仍然进入DONE，异常向上传递"""
    params.set('grid_resolution', 0.0)
    planner.on_cloud(make_cloud(OBSTACLE_CLOUD))

    with pytest.raises(ValueError):
        planner.tick()
    assert planner.state == PlannerState.DONE
    assert planner.result is None


def test_invalid_transition(planner):
    with pytest.raises(InvalidTransitionError):
        planner._transition(PlannerState.DONE)
    assert planner.state == PlannerState.WAITING_FOR_CLOUD


# ============================================================================
# 主循环
# ============================================================================

def test_spin_until_done(planner):
    planner.on_cloud(make_cloud(OBSTACLE_CLOUD))

    assert planner.spin(rate_hz=100, max_ticks=10, stop_when_done=True) == PlannerState.DONE
    assert planner.tick_count == 1


def test_spin_max_ticks(planner):
    assert planner.spin(rate_hz=100, max_ticks=3) == PlannerState.WAITING_FOR_CLOUD
    assert planner.tick_count == 3


def test_spin_invalid_rate(planner):
    with pytest.raises(ValueError):
        planner.spin(rate_hz=0)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
