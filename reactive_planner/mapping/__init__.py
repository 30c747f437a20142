"""
建图模块
包含三维占据体素地图
"""

from .occupancy_map import OccupancyVoxelMap, VoxelMapConfig

__all__ = ['OccupancyVoxelMap', 'VoxelMapConfig']
