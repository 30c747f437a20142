"""
点云通信测试（协议解析、接收、回放）
"""

import pytest
import json
import time
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from reactive_planner.mapping import OccupancyVoxelMap
from reactive_planner.communication import (
    PointCloudData, CloudReceiver, CloudPlayer, create_cloud_source,
    parse_cloud_message, save_recording, load_recording
)


@pytest.fixture
def cloud():
    return PointCloudData(
        timestamp=1234,
        frame_id='world',
        translation=[0.0, 0.0, 0.5],
        rotation=[0.0, 0.0, 0.0, 1.0],
        points=np.array([[1.0, 0.0, 0.0], [2.0, 1.0, 0.0]])
    )


# ============================================================================
# 协议解析
# ============================================================================

def test_parse_cloud_message(cloud):
    parsed = parse_cloud_message(cloud.to_json())

    assert parsed is not None
    assert parsed.timestamp == 1234
    assert parsed.point_count == 2
    assert np.allclose(parsed.points, cloud.points)
    assert np.allclose(parsed.world_points(), [[1.0, 0.0, 0.5], [2.0, 1.0, 0.5]])


def test_parse_default_transform():
    """缺少变换时使用单位变换"""
    parsed = parse_cloud_message(json.dumps({'type': 'CLOUD', 'points': [[1, 2, 3]]}))

    assert np.allclose(parsed.sensor_origin, (0.0, 0.0, 0.0))
    assert np.allclose(parsed.world_points(), [[1.0, 2.0, 3.0]])


def test_parse_invalid_messages():
    assert parse_cloud_message('') is None
    assert parse_cloud_message('DEBUG: hello') is None
    assert parse_cloud_message('{"type": "CLOUD", ') is None
    assert parse_cloud_message('{"type": "STATUS", "points": []}') is None
    assert parse_cloud_message('{"type": "CLOUD"}') is None
    assert parse_cloud_message(
        '{"type": "CLOUD", "transform": {"translation": [0, 0]}, "points": []}') is None


def test_points_reshaped():
    cloud = PointCloudData(0, 'world', [0, 0, 0], [0, 0, 0, 1], points=[1.0, 2.0, 3.0])
    assert cloud.points.shape == (1, 3)


# ============================================================================
# 串口接收（不打开串口，直接处理数据行）
# ============================================================================

def test_receiver_handle_line(cloud):
    receiver = CloudReceiver(port='/dev/null')
    received = []
    receiver.on_cloud_update = received.append

    assert receiver.handle_line(cloud.to_json()) is not None
    assert receiver.handle_line('garbage') is None

    assert receiver.cloud_count == 1
    assert len(received) == 1
    assert receiver.latest_cloud.timestamp == 1234
    assert not receiver.is_connected()


class FakeSerial:
    """模拟串口：一次性提供缓冲区中的全部数据"""

    def __init__(self, data: bytes):
        self.data = data
        self.is_open = True

    @property
    def in_waiting(self):
        return len(self.data)

    def read(self, size):
        chunk, self.data = self.data[:size], self.data[size:]
        return chunk

    def close(self):
        self.is_open = False


def wait_until(condition, timeout=2.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


def test_receiver_survives_callback_error(cloud):
    """回调抛出异常后接收线程继续运行"""
    received = []

    def on_cloud(c):
        if not received:
            received.append(None)
            raise RuntimeError("回调失败")
        received.append(c)

    data = (cloud.to_json() + '\n') * 2
    receiver = CloudReceiver(port='/dev/null')
    receiver.serial = FakeSerial(data.encode('utf-8'))
    receiver.on_cloud_update = on_cloud

    assert receiver.start()
    try:
        assert wait_until(lambda: len(received) == 2)
        assert receiver.receive_thread.is_alive()
    finally:
        receiver.stop()


def test_receiver_nan_cloud_into_map(cloud):
    """含NaN的点云帧不会中断后续点云的插入"""
    voxel_map = OccupancyVoxelMap()
    nan_line = '{"type": "CLOUD", "points": [[1, 0, 0], [NaN, 0, 0]]}'
    assert parse_cloud_message(nan_line) is not None

    data = nan_line + '\n' + cloud.to_json() + '\n'
    receiver = CloudReceiver(port='/dev/null')
    receiver.serial = FakeSerial(data.encode('utf-8'))
    receiver.on_cloud_update = voxel_map.insert_pointcloud

    assert receiver.start()
    try:
        assert wait_until(lambda: voxel_map.get_statistics()['update_count'] == 2)
        assert receiver.receive_thread.is_alive()
        assert receiver.cloud_count == 2
        assert len(voxel_map.get_all_occupied_boxes()) > 0
    finally:
        receiver.stop()


def test_create_cloud_source(tmp_path):
    assert isinstance(create_cloud_source('serial', port='/dev/null'), CloudReceiver)
    assert isinstance(create_cloud_source('replay', filename=str(tmp_path / 'x.jsonl')),
                      CloudPlayer)

    with pytest.raises(ValueError):
        create_cloud_source('replay')
    with pytest.raises(ValueError):
        create_cloud_source('tcp')


# ============================================================================
# 记录与回放
# ============================================================================

def test_recording_skips_bad_lines(cloud, tmp_path):
    path = save_recording(str(tmp_path / 'rec' / 'clouds.jsonl'), [cloud, cloud])
    with open(path, 'a', encoding='utf-8') as f:
        f.write('not json\n')

    clouds = load_recording(str(path))
    assert len(clouds) == 2


def test_player_plays_all(cloud):
    player = CloudPlayer(rate=100.0, clouds=[cloud, cloud, cloud])
    received = []
    player.on_cloud_update = received.append

    assert player.start()
    assert player.finished.wait(timeout=2.0)
    player.stop()

    assert player.played_count == 3
    assert len(received) == 3
    assert not player.running


def test_player_from_file(cloud, tmp_path):
    path = save_recording(str(tmp_path / 'clouds.jsonl'), [cloud])
    player = CloudPlayer(str(path), rate=100.0)

    assert player.start()
    assert player.finished.wait(timeout=2.0)
    assert player.played_count == 1


def test_player_survives_callback_error(cloud):
    """回调抛出异常时继续回放，结束后设置finished"""
    received = []

    def on_cloud(c):
        if not received:
            received.append(None)
            raise RuntimeError("回调失败")
        received.append(c)

    player = CloudPlayer(rate=100.0, clouds=[cloud, cloud, cloud])
    player.on_cloud_update = on_cloud

    assert player.start()
    assert player.finished.wait(timeout=2.0)
    assert player.played_count == 3
    assert len(received) == 3
    assert not player.running


def test_player_missing_file(tmp_path):
    player = CloudPlayer(str(tmp_path / 'missing.jsonl'))
    assert not player.start()


def test_player_invalid_rate():
    with pytest.raises(ValueError):
        CloudPlayer(rate=0.0, clouds=[])


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
