"""
三维占据体素地图模块
由带位姿的点云增量构建，为规划提供占用查询和可通行性检测
"""

import threading
import logging
import numpy as np
from typing import Tuple, List, Sequence, Set
from dataclasses import dataclass

logger = logging.getLogger(__name__)

GridIndex = Tuple[int, int, int]


@dataclass
class VoxelMapConfig:
    """地图配置参数"""
    width: int = 100  # 体素数量（X）
    depth: int = 100  # 体素数量（Y）
    height: int = 60  # 体素数量（Z）
    resolution: float = 0.2  # 米/体素
    origin_x: int = 50  # 世界原点所在体素
    origin_y: int = 50
    origin_z: int = 30

    # 占据概率阈值
    free_threshold: float = 0.3  # <0.3为空闲
    occupied_threshold: float = 0.7  # >0.7为占用

    # 概率更新参数
    prob_occupied: float = 0.97  # 射线终点的命中概率
    prob_free: float = 0.4  # 射线途经体素的概率
    log_odds_min: float = -2.0
    log_odds_max: float = 3.5

    max_range: float = 10.0  # 传感器最大有效距离（米）

    @classmethod
    def from_config(cls, cfg) -> 'VoxelMapConfig':
        """由配置模块构造"""
        return cls(
            width=cfg.VOXEL_MAP_WIDTH,
            depth=cfg.VOXEL_MAP_DEPTH,
            height=cfg.VOXEL_MAP_HEIGHT,
            resolution=cfg.VOXEL_MAP_RESOLUTION,
            origin_x=cfg.VOXEL_MAP_ORIGIN_X,
            origin_y=cfg.VOXEL_MAP_ORIGIN_Y,
            origin_z=cfg.VOXEL_MAP_ORIGIN_Z,
            free_threshold=cfg.VOXEL_FREE_THRESHOLD,
            occupied_threshold=cfg.VOXEL_OCCUPIED_THRESHOLD,
            prob_occupied=cfg.VOXEL_PROB_OCCUPIED,
            prob_free=cfg.VOXEL_PROB_FREE,
            log_odds_min=cfg.VOXEL_LOG_ODDS_MIN,
            log_odds_max=cfg.VOXEL_LOG_ODDS_MAX,
            max_range=cfg.VOXEL_MAX_RANGE
        )


class OccupancyVoxelMap:
    """三维占据体素地图

    每个体素保存log-odds，概率含义：
    - 0.0: 完全空闲
    - 0.5: 未知
    - 1.0: 完全占用

    点云插入在传感器线程中进行，规划循环在主线程中查询，
    所有公开方法都通过内部锁串行化。

    Attributes:
        log_odds: log-odds矩阵 (width x depth x height)，索引顺序 [x, y, z]
        known: 是否被观测过（或被显式设为空闲）
        config: 地图配置

    Example:
        >>> voxel_map = OccupancyVoxelMap()
        >>> voxel_map.set_free((0, 0, 0), (15, 15, 10))
        >>> voxel_map.insert_pointcloud(cloud)
        >>> boxes = voxel_map.get_all_occupied_boxes()
    """

    def __init__(self, config: VoxelMapConfig = None):
        """初始化体素地图

        Args:
            config: 地图配置，None则使用默认配置
        """
        self.config = config if config else VoxelMapConfig()
        if self.config.resolution <= 0:
            raise ValueError(f"地图分辨率必须大于0: {self.config.resolution}")

        shape = (self.config.width, self.config.depth, self.config.height)
        self.log_odds = np.zeros(shape, dtype=np.float32)
        self.known = np.zeros(shape, dtype=bool)

        self._log_hit = np.log(self.config.prob_occupied / (1 - self.config.prob_occupied))
        self._log_miss = np.log(self.config.prob_free / (1 - self.config.prob_free))
        self._log_occupied = np.log(
            self.config.occupied_threshold / (1 - self.config.occupied_threshold))
        self._log_free = np.log(self.config.free_threshold / (1 - self.config.free_threshold))

        self._lock = threading.RLock()

        # 统计信息
        self.update_count = 0
        self.inserted_points = 0

    # ========== 坐标转换 ==========

    def world_to_grid(self, x: float, y: float, z: float) -> GridIndex:
        """世界坐标转体素坐标

        Args:
            x, y, z: 世界坐标（米）

        Returns:
            (gx, gy, gz): 体素坐标
        """
        res = self.config.resolution
        return (int(np.floor(x / res)) + self.config.origin_x,
                int(np.floor(y / res)) + self.config.origin_y,
                int(np.floor(z / res)) + self.config.origin_z)

    def grid_to_world(self, gx: int, gy: int, gz: int) -> Tuple[float, float, float]:
        """体素坐标转世界坐标（体素中心）"""
        res = self.config.resolution
        return ((gx - self.config.origin_x + 0.5) * res,
                (gy - self.config.origin_y + 0.5) * res,
                (gz - self.config.origin_z + 0.5) * res)

    def is_valid_grid(self, gx: int, gy: int, gz: int) -> bool:
        """检查体素坐标是否在地图范围内"""
        return (0 <= gx < self.config.width and
                0 <= gy < self.config.depth and
                0 <= gz < self.config.height)

    # ========== 地图更新 ==========

    def set_free(self, origin: Sequence[float], box_size: Sequence[float]):
        """将以origin为中心的盒子区域标记为空闲

        Args:
            origin: 盒子中心（米）
            box_size: 盒子尺寸 (x, y, z)（米）
        """
        origin = np.asarray(origin, dtype=float)
        half = np.asarray(box_size, dtype=float) / 2.0

        lo, hi = self._clipped_index_range(origin - half, origin + half)
        if lo is None:
            logger.warning(f"空闲区域在地图范围之外: origin={origin.tolist()}")
            return

        with self._lock:
            region = (slice(lo[0], hi[0] + 1), slice(lo[1], hi[1] + 1), slice(lo[2], hi[2] + 1))
            self.log_odds[region] = self.config.log_odds_min
            self.known[region] = True

        logger.info(f"已标记空闲区域: 中心={origin.tolist()}, 尺寸={list(box_size)}")

    def insert_pointcloud(self, cloud) -> int:
        """插入一帧点云

        从传感器原点向每个点做射线追踪：途经体素记为空闲，终点体素记为占用。
        同一帧内每个体素最多更新一次，占用优先。

        Args:
            cloud: PointCloudData对象

        Returns:
            本帧更新的体素数量
        """
        origin = cloud.sensor_origin
        if not np.all(np.isfinite(origin)):
            logger.warning(f"传感器原点无效，忽略该帧: {origin.tolist()}")
            return 0

        points = cloud.world_points()

        # 丢弃含NaN/Inf的点（传感器无回波时常见）
        finite = np.isfinite(points).all(axis=1)
        if not finite.all():
            logger.debug(f"丢弃无效点: {int(np.sum(~finite))}个")
            points = points[finite]

        origin_idx = self.world_to_grid(*origin)
        if not self.is_valid_grid(*origin_idx):
            logger.warning(f"传感器原点在地图范围外，忽略该帧: {origin.tolist()}")
            return 0

        free_cells: Set[GridIndex] = set()
        occupied_cells: Set[GridIndex] = set()

        for point in points:
            offset = point - origin
            dist = np.linalg.norm(offset)

            # 忽略无效距离
            if dist <= 1e-6:
                continue

            hit = dist <= self.config.max_range
            if not hit:
                point = origin + offset / dist * self.config.max_range

            end_idx = self.world_to_grid(*point)
            ray_cells = self._ray_trace(origin_idx, end_idx)

            for cell in ray_cells[:-1]:
                if self.is_valid_grid(*cell):
                    free_cells.add(cell)

            if hit and self.is_valid_grid(*end_idx):
                occupied_cells.add(end_idx)
            elif self.is_valid_grid(*end_idx):
                free_cells.add(end_idx)

        free_cells -= occupied_cells

        with self._lock:
            self._apply_update(free_cells, self._log_miss)
            self._apply_update(occupied_cells, self._log_hit)
            self.update_count += 1
            self.inserted_points += len(points)

        return len(free_cells) + len(occupied_cells)

    def _apply_update(self, cells: Set[GridIndex], log_update: float):
        """批量更新体素的log-odds（调用方持有锁）"""
        if not cells:
            return

        idx = tuple(np.array(list(cells)).T)
        self.log_odds[idx] = np.clip(
            self.log_odds[idx] + log_update,
            self.config.log_odds_min,
            self.config.log_odds_max
        )
        self.known[idx] = True

    def _ray_trace(self, start: GridIndex, end: GridIndex) -> List[GridIndex]:
        """三维Bresenham射线追踪

        生成从start到end（包含两端）的所有体素坐标

        Args:
            start: 起点体素坐标
            end: 终点体素坐标

        Returns:
            途径的体素坐标列表
        """
        x0, y0, z0 = start
        x1, y1, z1 = end

        dx, dy, dz = abs(x1 - x0), abs(y1 - y0), abs(z1 - z0)
        sx = 1 if x1 > x0 else -1
        sy = 1 if y1 > y0 else -1
        sz = 1 if z1 > z0 else -1

        cells = [(x0, y0, z0)]

        # 以变化最大的轴为驱动轴
        if dx >= dy and dx >= dz:
            err_y, err_z = 2 * dy - dx, 2 * dz - dx
            for _ in range(dx):
                x0 += sx
                if err_y >= 0:
                    y0 += sy
                    err_y -= 2 * dx
                if err_z >= 0:
                    z0 += sz
                    err_z -= 2 * dx
                err_y += 2 * dy
                err_z += 2 * dz
                cells.append((x0, y0, z0))
        elif dy >= dx and dy >= dz:
            err_x, err_z = 2 * dx - dy, 2 * dz - dy
            for _ in range(dy):
                y0 += sy
                if err_x >= 0:
                    x0 += sx
                    err_x -= 2 * dy
                if err_z >= 0:
                    z0 += sz
                    err_z -= 2 * dy
                err_x += 2 * dx
                err_z += 2 * dz
                cells.append((x0, y0, z0))
        else:
            err_x, err_y = 2 * dx - dz, 2 * dy - dz
            for _ in range(dz):
                z0 += sz
                if err_x >= 0:
                    x0 += sx
                    err_x -= 2 * dz
                if err_y >= 0:
                    y0 += sy
                    err_y -= 2 * dz
                err_x += 2 * dx
                err_y += 2 * dy
                cells.append((x0, y0, z0))

        return cells

    def _clipped_index_range(self, lo_world: np.ndarray, hi_world: np.ndarray):
        """世界坐标包围盒转为裁剪到地图范围内的体素索引范围（闭区间）

        Returns:
            (lo, hi) 索引数组；与地图无交集时返回 (None, None)
        """
        lo = np.array(self.world_to_grid(*lo_world))
        # 盒子上边界恰好落在体素边界时不包含下一个体素
        hi = np.array(self.world_to_grid(*(hi_world - 1e-9)))
        upper = np.array([self.config.width, self.config.depth, self.config.height]) - 1

        lo = np.maximum(lo, 0)
        hi = np.minimum(hi, upper)
        if np.any(lo > hi):
            return None, None
        return lo, hi

    # ========== 地图查询 ==========

    def _occupied_mask(self) -> np.ndarray:
        return self.log_odds > self._log_occupied

    def get_all_occupied_boxes(self) -> List[Tuple[np.ndarray, float]]:
        """获取所有占用体素

        Returns:
            [(中心坐标, 边长), ...]
        """
        with self._lock:
            indices = np.argwhere(self._occupied_mask())

        res = self.config.resolution
        return [(np.array(self.grid_to_world(*idx)), res) for idx in indices]

    def get_map_size(self) -> np.ndarray:
        """获取已知区域的尺寸

        Returns:
            (x, y, z) 方向的尺寸（米），地图为空时为零向量
        """
        with self._lock:
            indices = np.argwhere(self.known)

        if len(indices) == 0:
            return np.zeros(3)

        span = indices.max(axis=0) - indices.min(axis=0) + 1
        return span.astype(float) * self.config.resolution

    def is_occupied(self, x: float, y: float, z: float) -> bool:
        """检查世界坐标是否被占用（地图外视为占用）"""
        idx = self.world_to_grid(x, y, z)
        if not self.is_valid_grid(*idx):
            return True

        with self._lock:
            return bool(self.log_odds[idx] > self._log_occupied)

    def is_free(self, x: float, y: float, z: float) -> bool:
        """检查世界坐标是否空闲（地图外视为非空闲）"""
        idx = self.world_to_grid(x, y, z)
        if not self.is_valid_grid(*idx):
            return False

        with self._lock:
            return bool(self.known[idx] and self.log_odds[idx] < self._log_free)

    def is_segment_free(self, p1: Sequence[float], p2: Sequence[float]) -> bool:
        """检查两点之间的线段是否可通行

        线段途经的体素均不被占用且均在地图范围内时可通行，未知体素视为可通行。
        """
        start = self.world_to_grid(*p1)
        end = self.world_to_grid(*p2)
        cells = self._ray_trace(start, end)

        if not all(self.is_valid_grid(*cell) for cell in cells):
            return False

        idx = tuple(np.array(cells).T)
        with self._lock:
            return not bool(np.any(self.log_odds[idx] > self._log_occupied))

    def is_box_free(self, center: Sequence[float], half_extents: Sequence[float]) -> bool:
        """检查轴对齐盒子区域内是否没有占用体素（超出地图的部分视为占用）"""
        center = np.asarray(center, dtype=float)
        half = np.asarray(half_extents, dtype=float)

        lo_world, hi_world = center - half, center + half
        lo = np.array(self.world_to_grid(*lo_world))
        hi = np.array(self.world_to_grid(*(hi_world - 1e-9)))
        if not (self.is_valid_grid(*lo) and self.is_valid_grid(*hi)):
            return False

        with self._lock:
            region = self.log_odds[lo[0]:hi[0] + 1, lo[1]:hi[1] + 1, lo[2]:hi[2] + 1]
            return not bool(np.any(region > self._log_occupied))

    def get_probability(self, x: float, y: float, z: float) -> float:
        """获取世界坐标处的占据概率（地图外返回0.5）"""
        idx = self.world_to_grid(x, y, z)
        if not self.is_valid_grid(*idx):
            return 0.5

        with self._lock:
            return float(1.0 / (1.0 + np.exp(-self.log_odds[idx])))

    def get_statistics(self) -> dict:
        """获取地图统计信息"""
        with self._lock:
            occupied_cells = int(np.sum(self._occupied_mask()))
            free_cells = int(np.sum(self.known & (self.log_odds < self._log_free)))
            known_cells = int(np.sum(self.known))

        total_cells = self.config.width * self.config.depth * self.config.height

        return {
            'total_cells': total_cells,
            'occupied_cells': occupied_cells,
            'free_cells': free_cells,
            'unknown_cells': total_cells - known_cells,
            'explored_ratio': known_cells / total_cells,
            'update_count': self.update_count,
            'inserted_points': self.inserted_points
        }

    def save_map(self, filename: str):
        """保存占据概率到 .npy 文件

        Args:
            filename: 文件路径
        """
        from pathlib import Path

        path = Path(filename).with_suffix('.npy')
        path.parent.mkdir(parents=True, exist_ok=True)

        with self._lock:
            probability = 1.0 / (1.0 + np.exp(-self.log_odds))
            probability[~self.known] = 0.5

        np.save(path, probability.astype(np.float32))
        logger.info(f"[地图] 已保存: {path}")
