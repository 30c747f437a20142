"""
规划参数与配置测试
"""

import pytest
import json
import logging
import dataclasses
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from reactive_planner import config
from reactive_planner.planning import ParameterStore, robot_from_config


def test_snapshot_defaults():
    """默认参数来自配置模块"""
    params = ParameterStore.from_config(config).snapshot()

    assert tuple(params.start.position) == tuple(config.PLAN_START)
    assert tuple(params.end.position) == tuple(config.PLAN_END)
    assert params.connection_radius == config.PLAN_CONNECTION_RAD
    assert params.grid_size == tuple(float(v) for v in config.PLAN_GRID_SIZE)
    assert params.dist_to_goal == config.PLAN_DIST_TO_GOAL
    assert params.tree_progress_display_freq == config.PLAN_TREE_PROGRESS_DISPLAY_FREQ
    assert params.search_strategy == config.PLAN_SEARCH_STRATEGY
    # 起点和终点朝向为零
    assert params.start.yaw == 0.0
    assert params.end.phi == 0.0


def test_snapshot_is_immutable():
    store = ParameterStore.from_config(config)
    params = store.snapshot()

    store.set('start_x', 3.0)
    assert params.start.x == config.PLAN_START[0]
    assert store.snapshot().start.x == 3.0

    with pytest.raises(dataclasses.FrozenInstanceError):
        params.connection_radius = 2.0


def test_missing_parameter():
    with pytest.raises(KeyError):
        ParameterStore({'start_x': 0.0}).snapshot()


def test_load_json(tmp_path, caplog):
    filename = tmp_path / 'params.json'
    filename.write_text(json.dumps({'end_x': 8.0, 'unknown_param': 1}), encoding='utf-8')

    store = ParameterStore.from_config(config)
    with caplog.at_level(logging.WARNING):
        store.load_json(str(filename))

    assert store.get('end_x') == 8.0
    assert store.snapshot().end.x == 8.0
    assert 'unknown_param' in caplog.text


def test_load_json_not_object(tmp_path):
    filename = tmp_path / 'params.json'
    filename.write_text('[1, 2, 3]', encoding='utf-8')

    with pytest.raises(ValueError):
        ParameterStore.from_config(config).load_json(str(filename))


def test_validate_config():
    assert config.validate_config()


def test_robot_from_config():
    robot = robot_from_config(config)

    assert robot.name == config.ROBOT_NAME
    assert len(robot.sensors) == len(config.ROBOT_SENSORS)
    assert robot.half_extents[2] == pytest.approx(config.ROBOT_HEIGHT / 2)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
