# config.py - reactive_planner 统一配置文件
# 修改此文件后，重启程序即可生效；规划参数也可以通过 --params JSON 文件覆盖

import numpy as np

# ============================================================================
# 串口通信配置（点云输入）
# ============================================================================
SERIAL_PORT = '/dev/ttyUSB0'       # Windows: 'COM5', Linux: '/dev/ttyUSB0'
BAUDRATE = 921600                  # 点云数据量大，需要高波特率
TIMEOUT = 1.0

# 点云回放（离线调试）
REPLAY_RATE = 5.0                  # 回放频率（Hz）
REPLAY_LOOP = False                # 是否循环回放

# ============================================================================
# 三维体素地图配置
# ============================================================================
VOXEL_MAP_WIDTH = 100              # 体素数量（X方向）
VOXEL_MAP_DEPTH = 100              # 体素数量（Y方向）
VOXEL_MAP_HEIGHT = 60              # 体素数量（Z方向）
VOXEL_MAP_RESOLUTION = 0.2         # 米/体素（分辨率）
VOXEL_MAP_ORIGIN_X = VOXEL_MAP_WIDTH // 2    # 世界原点所在体素
VOXEL_MAP_ORIGIN_Y = VOXEL_MAP_DEPTH // 2
VOXEL_MAP_ORIGIN_Z = VOXEL_MAP_HEIGHT // 2

# 占据概率阈值
VOXEL_FREE_THRESHOLD = 0.3         # 空闲判定阈值（<0.3为空闲）
VOXEL_OCCUPIED_THRESHOLD = 0.7     # 占用判定阈值（>0.7为占用）

# 贝叶斯概率更新参数
VOXEL_PROB_OCCUPIED = 0.97         # 射线终点（命中）概率
VOXEL_PROB_FREE = 0.4              # 射线途经（未命中）概率
VOXEL_LOG_ODDS_MIN = -2.0          # log-odds下限（约0.12）
VOXEL_LOG_ODDS_MAX = 3.5           # log-odds上限（约0.97）
VOXEL_MAX_RANGE = 10.0             # 传感器最大有效距离（米）

# 初始空闲区域（以原点为中心的盒子，米）
ENV_FREE_ORIGIN = (0.0, 0.0, 0.0)
ENV_FREE_BOX = (15.0, 15.0, 10.0)

# ============================================================================
# 机器人参数
# ============================================================================
ROBOT_NAME = 'Robot'
ROBOT_HEIGHT = 0.9                 # 机身高度（米）
ROBOT_WIDTH = 0.5                  # 机身宽度（米）
ROBOT_NARROWEST_PATH = 0.987       # 可通过的最窄通道（米）
ROBOT_CENTER = (-0.3, 0.0, 0.0)    # 机身中心相对位姿原点的偏移（米）

# 传感器安装位置: (名称, [x, y, z], [roll, pitch, yaw] 度)
ROBOT_SENSORS = [
    ('front_camera', [0.2, 0.0, 0.4], [0.0, 15.0, 0.0]),
]

# ============================================================================
# 规划参数默认值（进入PLANNING状态时一次性读取）
# ============================================================================
PLAN_START = (0.0, 0.0, 0.0)       # 起点（米）
PLAN_END = (5.0, 5.0, 0.0)         # 终点（米）
PLAN_CONNECTION_RAD = 1.5          # 连接半径（米）
PLAN_GRID_RESOLUTION = 1.0         # 网格分辨率（米）
PLAN_GRID_SIZE = (10.0, 10.0, 0.0) # 网格尺寸（米）
PLAN_GRID_START = (0.0, 0.0, 0.0)  # 网格起点（米）
PLAN_DIST_TO_GOAL = 0.5            # 到达目标容差（米）
PLAN_SAMPLE_ORIENTATIONS = False   # 是否采样朝向
PLAN_ORIENTATION_SAMPLING_RES = 90.0  # 朝向采样分辨率（度）
PLAN_VISUALIZE_SEARCH_SPACE = False   # 是否显示搜索空间连接
PLAN_DEBUG = False                 # 调试模式（搜索树显示后暂停）
PLAN_DEBUG_DELAY = 0.0             # 调试暂停时间（秒）
PLAN_TREE_PROGRESS_DISPLAY_FREQ = -1  # 每多少次扩展显示一次搜索树，-1禁用
PLAN_COLLISION_CHECK = False       # 生成搜索空间时剔除与障碍物碰撞的采样
PLAN_SEARCH_STRATEGY = 'astar'     # 搜索策略: 'astar' | 'greedy'

# ============================================================================
# 主循环配置
# ============================================================================
LOOP_RATE = 10                     # 就绪轮询频率（Hz）
STATUS_LOG_PERIOD = 1.0            # 地图状态节流输出周期（秒）

# ============================================================================
# 可视化配置
# ============================================================================
VISUALIZE_ENABLE = True            # 是否启用可视化
VISUALIZE_FRAME_ID = 'world'
VISUALIZE_WINDOW_SIZE = (12, 10)   # 窗口大小（英寸，matplotlib figsize）
VISUALIZE_SAVE_PATH = 'data/plots/reactive_plan.png'
MARKER_SPHERE_SCALE = 0.3          # 起点/终点球体尺寸
MARKER_NODE_SCALE = 0.1            # 搜索空间节点尺寸
MARKER_ARROW_LENGTH = 0.3          # 位姿箭头长度

# ============================================================================
# 日志配置
# ============================================================================
LOG_DIR = 'data/logs'
LOG_LEVEL = 'INFO'                 # DEBUG | INFO | WARNING | ERROR
ENABLE_FILE_LOG = True
ENABLE_CONSOLE_LOG = True

# ============================================================================
# 辅助函数
# ============================================================================

def get_config_summary():
    """获取配置摘要（用于调试）"""
    extent = np.array([VOXEL_MAP_WIDTH, VOXEL_MAP_DEPTH, VOXEL_MAP_HEIGHT]) * VOXEL_MAP_RESOLUTION
    return f"""
╔════════════════════════════════════════════════════════════════╗
║                 reactive_planner 配置摘要                      ║
╠════════════════════════════════════════════════════════════════╣
║ 串口: {SERIAL_PORT} @ {BAUDRATE}
║ 地图: {VOXEL_MAP_WIDTH}x{VOXEL_MAP_DEPTH}x{VOXEL_MAP_HEIGHT} @ {VOXEL_MAP_RESOLUTION}m/体素 ({extent[0]:.1f}x{extent[1]:.1f}x{extent[2]:.1f}m)
║ 机器人: 高={ROBOT_HEIGHT}m, 宽={ROBOT_WIDTH}m, 传感器={len(ROBOT_SENSORS)}个
║ 规划: 起点={PLAN_START}, 终点={PLAN_END}, 连接半径={PLAN_CONNECTION_RAD}m
║ 网格: {PLAN_GRID_SIZE} @ {PLAN_GRID_RESOLUTION}m, 朝向采样={'启用' if PLAN_SAMPLE_ORIENTATIONS else '禁用'}
║ 轮询: {LOOP_RATE}Hz
║ 日志: {LOG_LEVEL} -> {LOG_DIR}
╚════════════════════════════════════════════════════════════════╝
    """


def validate_config():
    """验证配置参数的合理性"""
    errors = []
    warnings = []

    if VOXEL_MAP_RESOLUTION <= 0:
        errors.append("VOXEL_MAP_RESOLUTION 必须大于0")
    if PLAN_GRID_RESOLUTION <= 0:
        errors.append("PLAN_GRID_RESOLUTION 必须大于0")
    if PLAN_CONNECTION_RAD <= 0:
        errors.append("PLAN_CONNECTION_RAD 必须大于0")
    if not 0 < PLAN_ORIENTATION_SAMPLING_RES <= 360:
        errors.append("PLAN_ORIENTATION_SAMPLING_RES 必须在(0, 360]范围内")
    if LOOP_RATE <= 0:
        errors.append("LOOP_RATE 必须大于0")

    if PLAN_CONNECTION_RAD < PLAN_GRID_RESOLUTION:
        warnings.append(
            f"PLAN_CONNECTION_RAD={PLAN_CONNECTION_RAD}m 小于网格分辨率，搜索空间将没有连接"
        )
    if PLAN_DIST_TO_GOAL <= 0:
        warnings.append("PLAN_DIST_TO_GOAL<=0，只有精确落在终点的节点才算到达")
    if VOXEL_PROB_OCCUPIED <= VOXEL_OCCUPIED_THRESHOLD:
        warnings.append("VOXEL_PROB_OCCUPIED 不高于占用阈值，单次命中无法标记为占用")

    if errors:
        print("❌ 配置错误:")
        for err in errors:
            print(f"   - {err}")

    if warnings:
        print("⚠️  配置警告:")
        for warn in warnings:
            print(f"   - {warn}")

    if not errors and not warnings:
        print("✅ 配置验证通过")

    return len(errors) == 0


if __name__ == '__main__':
    print(get_config_summary())
    validate_config()
