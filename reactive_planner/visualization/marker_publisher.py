"""
标记发布模块
按命名空间批量发布球体、线段、箭头标记，trigger() 提交后用 matplotlib 三维显示
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..geometry import Pose

logger = logging.getLogger(__name__)


class Color(Enum):
    """标记颜色（RGB 0-1）"""
    BLUE = (0.1, 0.1, 0.8)
    ORANGE = (1.0, 0.5, 0.0)
    PURPLE = (0.6, 0.1, 0.8)
    RED = (0.8, 0.1, 0.1)
    YELLOW = (0.9, 0.9, 0.0)
    CYAN = (0.0, 0.8, 0.8)
    DARK_GREY = (0.25, 0.25, 0.25)
    GREEN = (0.1, 0.7, 0.1)
    BLACK = (0.0, 0.0, 0.0)


class Scale(Enum):
    """线宽/尺寸等级"""
    SMALL = 0.5
    MEDIUM = 1.0
    LARGE = 2.0


@dataclass
class Marker:
    """一个显示标记

    Attributes:
        kind: 'sphere' | 'line' | 'arrow'
        namespace: 命名空间（类别）
        color: 颜色
        scale: 尺寸
        points: 球体中心 / 线段两端 / 箭头起点
        direction: 箭头方向（单位向量乘长度），其他类型为None
    """
    kind: str
    namespace: str
    color: Color
    scale: float
    points: np.ndarray
    direction: Optional[np.ndarray] = None


class MarkerPublisher:
    """标记发布器

    批量模式下 publish_* 只进入待提交缓冲区，trigger() 后才对显示可见；
    非批量模式下每次发布立即提交。

    Example:
        >>> viz = MarkerPublisher('world')
        >>> viz.enable_batch_publishing()
        >>> viz.publish_sphere((0, 0, 0), Color.BLUE, 0.3, 'start_pose')
        >>> viz.trigger()
        >>> viz.save('data/plots/plan.png')
    """

    def __init__(self, frame_id: str = 'world', figsize: Tuple[int, int] = (12, 10)):
        self.frame_id = frame_id
        self.figsize = figsize
        self.batch_publishing = False
        self._pending: List[Marker] = []
        self._committed: List[Marker] = []
        self.trigger_count = 0

    def enable_batch_publishing(self, enable: bool = True):
        self.batch_publishing = enable

    def delete_all_markers(self):
        """清除所有已提交和待提交的标记"""
        self._pending.clear()
        self._committed.clear()

    def _publish(self, marker: Marker):
        if self.batch_publishing:
            self._pending.append(marker)
        else:
            self._committed.append(marker)

    def publish_sphere(self, point: Sequence[float], color: Color = Color.BLUE,
                       scale: float = 0.1, namespace: str = 'sphere'):
        self._publish(Marker('sphere', namespace, color, scale,
                             np.asarray(point, dtype=float).reshape(1, 3)))

    def publish_spheres(self, points: Sequence[Sequence[float]], color: Color = Color.BLUE,
                        scale: float = 0.1, namespace: str = 'spheres'):
        """一次发布多个球体（作为一个标记）"""
        array = np.asarray(points, dtype=float).reshape(-1, 3)
        self._publish(Marker('sphere', namespace, color, scale, array))

    def publish_line(self, point1: Sequence[float], point2: Sequence[float],
                     color: Color = Color.BLUE, scale: Scale = Scale.MEDIUM,
                     namespace: str = 'line'):
        points = np.array([point1, point2], dtype=float)
        self._publish(Marker('line', namespace, color, scale.value, points))

    def publish_arrow(self, pose: Pose, color: Color = Color.YELLOW,
                      scale: Scale = Scale.LARGE, length: float = 0.3,
                      namespace: str = 'arrow'):
        """沿位姿x轴方向发布箭头"""
        direction = pose.rotation.apply([length, 0.0, 0.0])
        self._publish(Marker('arrow', namespace, color, scale.value,
                             pose.position.reshape(1, 3), direction))

    def trigger(self) -> int:
        """提交待发布的标记

        Returns:
            本次提交的标记数量
        """
        count = len(self._pending)
        self._committed.extend(self._pending)
        self._pending.clear()
        self.trigger_count += 1
        logger.debug(f"提交标记: {count}个 (第{self.trigger_count}次)")
        return count

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def markers(self, namespace: str = None) -> List[Marker]:
        """已提交的标记（可按命名空间过滤）"""
        if namespace is None:
            return list(self._committed)
        return [m for m in self._committed if m.namespace == namespace]

    def namespaces(self) -> List[str]:
        """已提交标记的命名空间（按首次提交顺序）"""
        seen: Dict[str, None] = {}
        for marker in self._committed:
            seen.setdefault(marker.namespace, None)
        return list(seen)

    def render(self, ax=None):
        """在 matplotlib 三维坐标轴上绘制已提交的标记

        Args:
            ax: 三维坐标轴，None则新建图形

        Returns:
            绘制使用的坐标轴
        """
        import matplotlib.pyplot as plt

        if ax is None:
            fig = plt.figure(figsize=self.figsize)
            ax = fig.add_subplot(111, projection='3d')

        for marker in self._committed:
            color = marker.color.value
            if marker.kind == 'sphere':
                pts = marker.points
                ax.scatter(pts[:, 0], pts[:, 1], pts[:, 2], color=color,
                           s=max(1.0, marker.scale * 100))
            elif marker.kind == 'line':
                pts = marker.points
                ax.plot(pts[:, 0], pts[:, 1], pts[:, 2], color=color,
                        linewidth=marker.scale)
            elif marker.kind == 'arrow':
                origin = marker.points[0]
                d = marker.direction
                ax.quiver(origin[0], origin[1], origin[2], d[0], d[1], d[2],
                          color=color, linewidth=marker.scale)

        ax.set_xlabel('X (m)')
        ax.set_ylabel('Y (m)')
        ax.set_zlabel('Z (m)')
        ax.set_title(f'Reactive Planner [{self.frame_id}]')
        return ax

    def save(self, filename: str):
        """绘制并保存为图片"""
        from pathlib import Path
        import matplotlib.pyplot as plt

        path = Path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)

        ax = self.render()
        ax.figure.savefig(path, dpi=100)
        plt.close(ax.figure)
        logger.info(f"[可视化] 已保存: {path}")
