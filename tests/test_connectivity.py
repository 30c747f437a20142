"""
连通图构建测试
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from reactive_planner.geometry import Pose
from reactive_planner.mapping import OccupancyVoxelMap, VoxelMapConfig
from reactive_planner.planning import (
    RobotDescriptor, SearchSpaceGenerator, ConnectivityBuilder, SearchGraph
)


def occupy(map_obj, x, y, z):
    """直接把世界坐标所在体素设为占用"""
    idx = map_obj.world_to_grid(x, y, z)
    map_obj.log_odds[idx] = map_obj.config.log_odds_max
    map_obj.known[idx] = True


@pytest.fixture
def map_obj():
    config = VoxelMapConfig(width=40, depth=40, height=40, resolution=0.2,
                            origin_x=20, origin_y=20, origin_z=20)
    return OccupancyVoxelMap(config)


@pytest.fixture
def grid_space():
    """3x3 平面网格，分辨率1米

    序号: (x, y) -> 3 * x + y
    """
    robot = RobotDescriptor('test', 0.9, 0.5, 0.987)
    return SearchSpaceGenerator(robot).generate_regular_grid(Pose(), (3.0, 3.0, 0.0), 1.0)


# ============================================================================
# SearchGraph
# ============================================================================

def test_graph_add_edge():
    graph = SearchGraph(3)
    graph.add_edge(2, 0)
    graph.add_edge(0, 2)

    assert graph.edge_count == 1
    assert graph.edges == [(0, 2)]
    assert graph.has_edge(2, 0)
    assert graph.neighbors(0) == [2]
    assert graph.neighbors(2) == [0]


def test_graph_rejects_invalid_edges():
    graph = SearchGraph(3)

    with pytest.raises(ValueError):
        graph.add_edge(1, 1)
    with pytest.raises(ValueError):
        graph.add_edge(0, 3)


# ============================================================================
# ConnectivityBuilder
# ============================================================================

def test_connect_open_grid(map_obj, grid_space):
    """空地图中，半径1.5连接相邻和对角采样"""
    graph = ConnectivityBuilder(map_obj, 1.5).build(grid_space)

    # 横向6 + 纵向6 + 对角8
    assert graph.edge_count == 20
    assert graph.has_edge(0, 1)
    assert graph.has_edge(0, 4)
    assert not graph.has_edge(0, 2)


def test_graph_symmetric_and_irreflexive(map_obj, grid_space):
    graph = ConnectivityBuilder(map_obj, 1.5).build(grid_space)

    for i, j in graph.edges:
        assert i != j
        assert j in graph.neighbors(i)
        assert i in graph.neighbors(j)


def test_spacing_exceeds_radius(map_obj, grid_space):
    """采样间距大于连接半径时没有边"""
    graph = ConnectivityBuilder(map_obj, 0.5).build(grid_space)

    assert graph.edge_count == 0
    assert graph.node_count == 9


def test_blocked_connections(map_obj, grid_space):
    """x=0.5 处的墙阻挡 x=0 与 x=1 两列之间的全部连线"""
    for i in range(16):
        occupy(map_obj, 0.5, -0.5 + 0.2 * i, 0.1)

    graph = ConnectivityBuilder(map_obj, 1.5).build(grid_space)

    assert graph.edge_count == 13
    assert graph.has_edge(0, 1)
    assert not graph.has_edge(0, 3)
    assert not graph.has_edge(0, 4)
    assert not graph.has_edge(1, 3)
    assert graph.has_edge(3, 6)


def test_single_sample(map_obj):
    robot = RobotDescriptor('test', 0.9, 0.5, 0.987)
    space = SearchSpaceGenerator(robot).generate_regular_grid(Pose(), (0.0, 0.0, 0.0), 1.0)

    graph = ConnectivityBuilder(map_obj, 1.5).build(space)
    assert len(space) == 1
    assert graph.edge_count == 0


def test_invalid_radius(map_obj):
    with pytest.raises(ValueError):
        ConnectivityBuilder(map_obj, 0.0)


def test_connect_pose(map_obj, grid_space):
    """起点连接半径内的采样"""
    builder = ConnectivityBuilder(map_obj, 1.5)

    assert builder.connect_pose(Pose(0.2, 0.2, 0.0), grid_space) == [0, 1, 3, 4]


def test_get_connections(map_obj, grid_space):
    graph = ConnectivityBuilder(map_obj, 1.5).build(grid_space)
    connections = graph.get_connections(grid_space)

    assert len(connections) == 2 * graph.edge_count
    assert tuple(connections[0]) == (0.0, 0.0, 0.0)
    assert tuple(connections[1]) == (0.0, 1.0, 0.0)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
