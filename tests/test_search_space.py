"""
搜索空间生成测试
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from reactive_planner.geometry import Pose, offset_pose
from reactive_planner.mapping import OccupancyVoxelMap, VoxelMapConfig
from reactive_planner.planning import RobotDescriptor, SensorMount, SearchSpaceGenerator
from reactive_planner.planning.search_space import (
    axis_sample_count, orientation_samples, build_search_space
)


@pytest.fixture
def robot():
    """带一个前视传感器的机器人"""
    return RobotDescriptor(
        name='test',
        height=0.9,
        width=0.5,
        narrowest_path=0.987,
        sensors=(SensorMount('front_camera', offset_pose([0.2, 0.0, 0.4])),)
    )


@pytest.fixture
def map_obj():
    config = VoxelMapConfig(width=40, depth=40, height=40, resolution=0.2,
                            origin_x=20, origin_y=20, origin_z=20)
    return OccupancyVoxelMap(config)


# ============================================================================
# 采样数量
# ============================================================================

def test_axis_sample_count():
    assert axis_sample_count(0.0, 1.0) == 1
    assert axis_sample_count(10.0, 1.0) == 10
    assert axis_sample_count(10.0, 0.1) == 100
    assert axis_sample_count(2.5, 1.0) == 3


def test_orientation_samples():
    """测试朝向采样"""
    yaws = orientation_samples(90)
    assert np.allclose(yaws, [0.0, np.pi / 2, np.pi, 3 * np.pi / 2])

    assert len(orientation_samples(360)) == 1
    assert len(orientation_samples(100)) == 3

    with pytest.raises(ValueError):
        orientation_samples(0)
    with pytest.raises(ValueError):
        orientation_samples(400)


def test_flat_grid(robot):
    """10x10x0 网格，分辨率1米，得到100个采样"""
    generator = SearchSpaceGenerator(robot)
    space = generator.generate_regular_grid(Pose(), (10.0, 10.0, 0.0), 1.0)

    assert len(space) == 100
    assert [s.index for s in space] == list(range(100))
    assert all(s.pose.z == 0.0 for s in space)


def test_sample_order(robot):
    """采样顺序: x -> y -> z，偏航角最内层"""
    generator = SearchSpaceGenerator(robot)
    space = generator.generate_regular_grid(Pose(1.0, 2.0, 0.0), (3.0, 2.0, 0.0), 1.0)

    positions = [tuple(s.pose.position) for s in space]
    assert positions == [
        (1.0, 2.0, 0.0), (1.0, 3.0, 0.0),
        (2.0, 2.0, 0.0), (2.0, 3.0, 0.0),
        (3.0, 2.0, 0.0), (3.0, 3.0, 0.0),
    ]


def test_grid_with_orientations(robot):
    """朝向采样使采样数乘以朝向数，显示用的位置数不变"""
    generator = SearchSpaceGenerator(robot)
    space = generator.generate_regular_grid(Pose(), (10.0, 10.0, 0.0), 1.0,
                                            sample_orientations=True, orientation_res=90)

    assert len(space) == 400
    assert len(space.positions()) == 100
    assert [round(np.rad2deg(s.pose.yaw)) for s in space[:4]] == [0, 90, 180, -90]


def test_grid_inherits_origin_orientation(robot):
    """未采样朝向时各采样使用起点朝向"""
    generator = SearchSpaceGenerator(robot)
    origin = Pose.from_yaw(0.0, 0.0, 0.0, np.pi / 2)
    space = generator.generate_regular_grid(origin, (2.0, 0.0, 0.0), 1.0)

    assert all(np.isclose(s.pose.yaw, np.pi / 2) for s in space)


def test_invalid_grid(robot):
    generator = SearchSpaceGenerator(robot)

    with pytest.raises(ValueError):
        generator.generate_regular_grid(Pose(), (10.0, 10.0, 0.0), 0.0)
    with pytest.raises(ValueError):
        generator.generate_regular_grid(Pose(), (10.0, -1.0, 0.0), 1.0)
    with pytest.raises(ValueError):
        generator.generate_regular_grid(Pose(), (10.0, 10.0, 0.0), 1.0, collision_check=True)


# ============================================================================
# 传感器位姿
# ============================================================================

def test_sensor_poses(robot):
    """传感器位姿随机器人朝向旋转"""
    pose = Pose.from_yaw(1.0, 1.0, 0.0, np.pi / 2)
    sensors = robot.sensor_poses(pose)

    assert len(sensors) == 1
    assert np.allclose(sensors[0].position, (1.0, 1.2, 0.4))
    assert np.isclose(sensors[0].yaw, np.pi / 2)


def test_sensor_poses_grouped(robot):
    generator = SearchSpaceGenerator(robot)
    space = generator.generate_regular_grid(Pose(), (3.0, 3.0, 0.0), 1.0)

    grouped = space.sensor_poses()
    assert len(grouped) == 1
    assert len(grouped[0]) == 9
    assert np.allclose(grouped[0][0].position, (0.2, 0.0, 0.4))
    assert len(space.robot_poses()) == 9


def test_robot_without_sensors():
    robot = RobotDescriptor('bare', 0.9, 0.5, 0.987)
    space = SearchSpaceGenerator(robot).generate_regular_grid(Pose(), (2.0, 0.0, 0.0), 1.0)

    assert space.sensor_poses() == []
    assert all(s.sensor_poses == () for s in space)


def test_invalid_robot():
    with pytest.raises(ValueError):
        RobotDescriptor('bad', 0.0, 0.5, 0.987)


# ============================================================================
# 碰撞剔除
# ============================================================================

def test_collision_check(robot, map_obj):
    """机身与占用体素相交的采样被剔除，序号保持连续"""
    idx = map_obj.world_to_grid(2.1, 0.1, 0.1)
    map_obj.log_odds[idx] = map_obj.config.log_odds_max
    map_obj.known[idx] = True

    generator = SearchSpaceGenerator(robot, map_obj)
    space = generator.generate_regular_grid(Pose(), (4.0, 0.0, 0.0), 1.0, collision_check=True)

    assert [s.pose.x for s in space] == [0.0, 1.0, 3.0]
    assert [s.index for s in space] == [0, 1, 2]

    unchecked = generator.generate_regular_grid(Pose(), (4.0, 0.0, 0.0), 1.0)
    assert len(unchecked) == 4


def test_build_search_space(robot):
    poses = [Pose(0.0, 0.0, 0.0), Pose(5.0, 0.0, 0.0)]
    space = build_search_space(robot, poses)

    assert len(space) == 2
    assert space[1].pose == poses[1]
    assert np.allclose(space.points(), [[0.0, 0.0, 0.0], [5.0, 0.0, 0.0]])


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
