"""
反应式规划主程序
接收点云（串口或回放文件），地图就绪后执行一次路径规划

运行模式：
  python -m reactive_planner.main                          # 串口接收点云
  python -m reactive_planner.main --replay data/wall.jsonl # 回放记录文件
  python -m reactive_planner.main --params params.json     # 覆盖规划参数
"""

import sys
import time
import signal
import logging
import argparse
import threading

from . import config
from .communication import create_cloud_source
from .mapping import OccupancyVoxelMap, VoxelMapConfig
from .planning import ParameterStore, ReactivePlanner, PlannerState
from .visualization import MarkerPublisher
from .utils.logger import setup_all_loggers


stop_event = threading.Event()


def signal_handler(sig, frame):
    """处理Ctrl+C信号"""
    print("\n\n[系统] 接收到中断信号，正在安全退出...")
    stop_event.set()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='反应式三维路径规划')
    parser.add_argument('--port', default=config.SERIAL_PORT,
                        help=f'点云串口（默认{config.SERIAL_PORT}）')
    parser.add_argument('--baudrate', type=int, default=config.BAUDRATE,
                        help=f'波特率（默认{config.BAUDRATE}）')
    parser.add_argument('--replay', default=None,
                        help='回放点云记录文件（.jsonl），代替串口输入')
    parser.add_argument('--replay-rate', type=float, default=config.REPLAY_RATE,
                        help='回放频率（Hz）')
    parser.add_argument('--params', default=None,
                        help='规划参数JSON文件，覆盖config中的默认值')
    parser.add_argument('--rate', type=float, default=config.LOOP_RATE,
                        help=f'就绪轮询频率（默认{config.LOOP_RATE}Hz）')
    parser.add_argument('--save-plot',
                        default=config.VISUALIZE_SAVE_PATH if config.VISUALIZE_ENABLE else None,
                        help=f'规划完成后保存三维显示图片（默认{config.VISUALIZE_SAVE_PATH}）')
    parser.add_argument('--log-dir', default=config.LOG_DIR if config.ENABLE_FILE_LOG else None,
                        help='日志目录')
    parser.add_argument('--exit-when-done', action='store_true',
                        help='规划完成后退出（默认继续运行直到Ctrl+C）')
    return parser.parse_args(argv)


def main(argv=None):
    """主函数"""
    args = parse_args(argv)

    setup_all_loggers(args.log_dir, getattr(logging, config.LOG_LEVEL),
                      console=config.ENABLE_CONSOLE_LOG)

    print("=" * 70)
    print(" reactive_planner - 反应式三维路径规划")
    print("=" * 70)
    print(config.get_config_summary())

    if not config.validate_config():
        sys.exit(1)

    signal.signal(signal.SIGINT, signal_handler)

    # 1. 参数
    params = ParameterStore.from_config(config)
    if args.params:
        try:
            params.load_json(args.params)
        except (OSError, ValueError) as e:
            print(f"[错误] 无法加载参数文件 {args.params}: {e}")
            sys.exit(1)

    # 2. 地图、显示与控制器
    print("[1/3] 初始化地图与规划器...")
    voxel_map = OccupancyVoxelMap(VoxelMapConfig.from_config(config))
    visualizer = MarkerPublisher(config.VISUALIZE_FRAME_ID, config.VISUALIZE_WINDOW_SIZE)
    planner = ReactivePlanner(voxel_map, params, visualizer)

    # 3. 点云输入
    print("[2/3] 启动点云输入...")
    if args.replay:
        source = create_cloud_source('replay', filename=args.replay,
                                     rate=args.replay_rate, loop=config.REPLAY_LOOP)
    else:
        source = create_cloud_source('serial', port=args.port, baudrate=args.baudrate,
                                     timeout=config.TIMEOUT)

    source.on_cloud_update = planner.on_cloud
    if not source.start():
        print("[错误] 无法启动点云输入，请检查:")
        print(f"  1. 串口设备或记录文件是否存在: {args.replay or args.port}")
        print(f"  2. 是否有权限访问串口")
        sys.exit(1)

    print("[3/3] 等待地图就绪... (按 Ctrl+C 退出)")

    try:
        planner.spin(rate_hz=args.rate, stop_event=stop_event, stop_when_done=True)

        if planner.state == PlannerState.DONE and planner.result is not None:
            path = planner.result.path
            if path.found:
                print(f"\n✅ 规划完成: {path.node_count}个节点, 长度{path.length:.2f}m")
            else:
                print("\n⚠️ 规划完成: 未找到路径")

            if args.save_plot:
                visualizer.save(args.save_plot)

            # 规划只执行一次，之后保持运行直到外部终止
            while not args.exit_when_done and not stop_event.is_set():
                time.sleep(0.1)

    finally:
        print("\n[系统] 正在关闭...")
        source.stop()
        print("[系统] 已安全退出")


if __name__ == "__main__":
    main()
