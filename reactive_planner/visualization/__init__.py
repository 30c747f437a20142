"""
可视化模块
提供按命名空间批量发布的三维标记显示
"""

from .marker_publisher import MarkerPublisher, Marker, Color, Scale

__all__ = ['MarkerPublisher', 'Marker', 'Color', 'Scale']
