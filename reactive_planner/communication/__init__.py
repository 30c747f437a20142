"""
通信模块
支持串口实时接收和记录文件回放两种点云输入方式
"""

from .cloud_receiver import CloudReceiver
from .cloud_player import CloudPlayer, save_recording, load_recording
from .protocol import PointCloudData, parse_cloud_message, cloud_from_dict


def create_cloud_source(source_type='serial', **kwargs):
    """
    工厂函数：创建点云输入源

    Args:
        source_type: 输入类型，'serial'(串口) 或 'replay'(文件回放)
        **kwargs: 连接参数
            - serial模式: port, baudrate, timeout
            - replay模式: filename, rate, loop

    Returns:
        CloudReceiver或CloudPlayer对象

    Example:
        >>> source = create_cloud_source('serial', port='/dev/ttyUSB0', baudrate=921600)
        >>> source = create_cloud_source('replay', filename='data/recordings/wall.jsonl')
    """
    if source_type.lower() in ['serial', 'com', 'uart']:
        port = kwargs.get('port', '/dev/ttyUSB0')
        baudrate = kwargs.get('baudrate', 921600)
        return CloudReceiver(port=port, baudrate=baudrate, timeout=kwargs.get('timeout', 0.1))

    elif source_type.lower() in ['replay', 'file']:
        filename = kwargs.get('filename', None)
        if not filename:
            raise ValueError("回放模式需要提供filename参数")
        return CloudPlayer(filename=filename,
                           rate=kwargs.get('rate', 5.0),
                           loop=kwargs.get('loop', False))

    else:
        raise ValueError(f"不支持的输入类型: {source_type}，请使用'serial'或'replay'")


__all__ = [
    'CloudReceiver',
    'CloudPlayer',
    'create_cloud_source',
    'save_recording',
    'load_recording',
    'PointCloudData',
    'parse_cloud_message',
    'cloud_from_dict',
]
