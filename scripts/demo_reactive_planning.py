"""
反应式规划演示脚本
用合成的墙体点云驱动完整流程：回放点云 -> 地图就绪 -> 搜索空间 -> 连通图 -> 搜索 -> 显示
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import matplotlib
matplotlib.use('Agg')  # 非交互式后端

from reactive_planner import config
from reactive_planner.communication import PointCloudData, CloudPlayer, save_recording
from reactive_planner.geometry import Pose
from reactive_planner.mapping import OccupancyVoxelMap, VoxelMapConfig
from reactive_planner.planning import (
    ParameterStore, ReactivePlanner, PathPlanner, DistanceHeuristic,
    create_search_engine, reconstruct_path, robot_from_config
)
from reactive_planner.visualization import MarkerPublisher


OUTPUT_DIR = 'data/test_outputs'


def create_wall_cloud(wall_x=2.5, y_range=(-0.5, 3.5), z_range=(-0.4, 0.5)):
    """创建一帧墙体点云（传感器位于世界原点，无旋转）"""
    ys = np.arange(y_range[0], y_range[1], 0.1)
    zs = np.arange(z_range[0], z_range[1], 0.1)
    points = [(wall_x, y, z) for y in ys for z in zs]

    return PointCloudData(
        timestamp=0,
        frame_id='world',
        translation=[0.0, 0.0, 0.0],
        rotation=[0.0, 0.0, 0.0, 1.0],
        points=np.array(points)
    )


def demo_reactive_planning():
    """演示1: 回放点云触发一次规划"""
    print("\n=== 演示1: 回放点云触发一次规划 ===")

    recording = save_recording(os.path.join(OUTPUT_DIR, 'wall.jsonl'), [create_wall_cloud()])
    print(f"[记录] {recording}")

    voxel_map = OccupancyVoxelMap(VoxelMapConfig.from_config(config))
    params = ParameterStore.from_config(config)
    params.set('visualize_search_space', True)

    visualizer = MarkerPublisher(config.VISUALIZE_FRAME_ID)
    planner = ReactivePlanner(voxel_map, params, visualizer)

    player = CloudPlayer(str(recording), rate=20.0)
    player.on_cloud_update = planner.on_cloud
    player.start()

    state = planner.spin(rate_hz=20, max_ticks=200, stop_when_done=True)
    player.stop()

    print(f"[状态] {state.name}")
    if planner.result is None:
        print("[失败] 规划未执行")
        return

    result = planner.result
    print(f"[搜索空间] {result.search_space_size} 个采样, {result.edge_count} 条边")
    print(f"[路径] 找到={result.path.found}, 节点={result.path.node_count}, "
          f"长度={result.path.length:.2f}m")
    print(f"[显示] 命名空间: {visualizer.namespaces()}")

    visualizer.save(os.path.join(OUTPUT_DIR, 'demo_reactive_planning.png'))
    print(f"[保存] {OUTPUT_DIR}/demo_reactive_planning.png")


def demo_search_strategies():
    """演示2: A*与贪心最佳优先搜索对比"""
    print("\n=== 演示2: 搜索策略对比 ===")

    voxel_map = OccupancyVoxelMap(VoxelMapConfig.from_config(config))
    voxel_map.set_free(config.ENV_FREE_ORIGIN, config.ENV_FREE_BOX)
    voxel_map.insert_pointcloud(create_wall_cloud())

    robot = robot_from_config(config)
    start = Pose(0.0, 0.0, 0.0)
    end = Pose(5.0, 5.0, 0.0)

    for strategy in ('astar', 'greedy'):
        planner = PathPlanner(voxel_map, robot, config.PLAN_CONNECTION_RAD,
                              search_engine=create_search_engine(strategy))
        planner.set_heuristic_function(DistanceHeuristic(end, config.PLAN_DIST_TO_GOAL))
        planner.generate_regular_grid(Pose(), config.PLAN_GRID_SIZE, config.PLAN_GRID_RESOLUTION)
        planner.connect_nodes()

        path = reconstruct_path(planner.start_search(start))
        print(f"[{strategy}] 节点={path.node_count}, 长度={path.length:.2f}m, "
              f"扩展={planner.search_engine.expanded_count}")


def demo_orientation_sampling():
    """演示3: 朝向采样与传感器位姿"""
    print("\n=== 演示3: 朝向采样 ===")

    voxel_map = OccupancyVoxelMap(VoxelMapConfig.from_config(config))
    robot = robot_from_config(config)

    planner = PathPlanner(voxel_map, robot, config.PLAN_CONNECTION_RAD)
    space = planner.generate_regular_grid(Pose(), (3.0, 3.0, 0.0), 1.0,
                                          sample_orientations=True, orientation_res=90)
    robot_poses, sensor_poses = planner.get_robot_sensor_poses()

    print(f"[采样] {len(space)} 个位姿, {len(planner.get_search_space())} 个位置")
    for name, poses in zip([s.name for s in robot.sensors], sensor_poses):
        print(f"[传感器] {name}: {len(poses)} 个位姿, 第一个 {poses[0]}")

    visualizer = MarkerPublisher(config.VISUALIZE_FRAME_ID)
    for pose in robot_poses:
        visualizer.publish_arrow(pose, namespace='search_space_poses')
    visualizer.save(os.path.join(OUTPUT_DIR, 'demo_orientation_sampling.png'))
    print(f"[保存] {OUTPUT_DIR}/demo_orientation_sampling.png")


def main():
    os.makedirs(OUTPUT_DIR, exist_ok=True)

    print("=" * 60)
    print("   反应式三维路径规划演示")
    print("=" * 60)

    demos = [
        ("回放点云触发规划", demo_reactive_planning),
        ("搜索策略对比", demo_search_strategies),
        ("朝向采样", demo_orientation_sampling),
    ]

    for name, demo_func in demos:
        try:
            demo_func()
            print(f"[成功] {name} 演示完成\n")
        except Exception as e:
            print(f"[失败] {name} 演示失败: {e}\n")
            import traceback
            traceback.print_exc()

    print("=" * 60)
    print("所有演示完成！")
    print(f"输出文件保存在: {OUTPUT_DIR}/")
    print("=" * 60)


if __name__ == '__main__':
    main()
