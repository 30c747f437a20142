"""
reactive_planner - 单次反应式三维路径规划
由流式点云构建体素地图，地图就绪后生成搜索空间、连接节点并搜索路径
"""

__version__ = '0.1.0'
