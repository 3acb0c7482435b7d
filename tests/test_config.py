import json

from ski_manager import config


def test_get_config_reads_nested_keys():
    assert config.get_config('race_engine.tick_seconds') == 2.0
    assert config.get_config('outcome.points_table')[0] == 25


def test_get_config_falls_back_to_default(capsys):
    assert config.get_config('race_engine.no_such_key', 42) == 42
    assert "Could not find config key" in capsys.readouterr().out


def test_load_config_missing_file(tmp_path, capsys):
    assert config.load_config(tmp_path / "absent.json") is None
    assert "FATAL ERROR" in capsys.readouterr().out


def test_load_config_from_custom_path(tmp_path):
    path = tmp_path / "balance.json"
    path.write_text(json.dumps({"race_engine": {"tick_seconds": 1.0}}))
    assert config.load_config(path) == {"race_engine": {"tick_seconds": 1.0}}


def test_config_section_returns_dicts_only():
    assert config.config_section('race_engine')['group_gap'] == 8.0
    assert config.config_section('missing') == {}


def test_find_config_value_walks_any_mapping_quietly(capsys):
    data = {"draft": {"leader_power": 0.98, "spare": None}, "tick_seconds": 2.0}
    assert config.find_config_value(data, 'draft.leader_power') == 0.98
    assert config.find_config_value(data, 'draft.spare', 'fallback') is None
    assert config.find_config_value(data, 'draft.missing', 'fallback') == 'fallback'
    assert config.find_config_value(data, 'tick_seconds.deeper', 7) == 7
    assert capsys.readouterr().out == ""
