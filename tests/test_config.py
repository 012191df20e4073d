import logging
from datetime import timedelta

import pytest
import yaml

from livemedia.config import (
    DEFAULT_CONFIG_PATH,
    EXAMPLE_PUSHER,
    ServerConfig,
    generate_config,
    load_config,
)


def _write(tmp_path, text):
    path = tmp_path / "conf.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_missing_keys_keep_defaults(tmp_path):
    cfg = load_config(_write(tmp_path, "rtmp_gop_num: 4\n"))
    expected = ServerConfig()
    expected.gop_num = 4
    assert cfg == expected


def test_empty_file_gives_defaults(tmp_path):
    assert load_config(_write(tmp_path, "")) == ServerConfig()


def test_duration_parsed(tmp_path):
    cfg = load_config(_write(tmp_path, "hls_keep_ts_cache: 1m30s\n"))
    assert cfg.hls_keep_ts_cache == timedelta(minutes=1, seconds=30)


def test_default_yaml_fixes_duration_text():
    assert "hls_keep_ts_cache: 1m0s" in ServerConfig().to_yaml().splitlines()


def test_to_yaml_omits_empty_values():
    data = yaml.safe_load(ServerConfig().to_yaml())
    assert "level" not in data
    assert "pusher" not in data
    assert "flv_api_info" not in data
    assert data["rtmp_enable_tls_verify"] is True


def test_to_yaml_round_trip(tmp_path):
    cfg = ServerConfig(level="info", hflv_info=True, pusher={"room": "rtmp://localhost/live"})
    cfg.hls_keep_ts_cache = timedelta(seconds=2, milliseconds=500)
    loaded = load_config(_write(tmp_path, cfg.to_yaml()))
    assert loaded == cfg


def test_unknown_keys_ignored(tmp_path):
    assert load_config(_write(tmp_path, "something_else: 1\n")) == ServerConfig()


def test_bad_int_raises(tmp_path):
    with pytest.raises(ValueError):
        load_config(_write(tmp_path, "rtmp_gop_num: abc\n"))


def test_bad_duration_raises(tmp_path):
    with pytest.raises(ValueError):
        load_config(_write(tmp_path, "hls_keep_ts_cache: bogus\n"))


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "absent.yaml"))


def test_level_sets_logger(tmp_path):
    cfg = load_config(_write(tmp_path, "level: debug\n"))
    assert cfg.level == "debug"
    assert logging.getLogger("livemedia").level == logging.DEBUG
    cfg = load_config(_write(tmp_path, "level: error\n"))
    assert cfg.level == "error"
    assert logging.getLogger("livemedia").level == logging.ERROR


def test_generate_config_writes_file(tmp_path):
    path = str(tmp_path / "gen.yaml")
    text = generate_config(path)
    with open(path, encoding="utf-8") as handle:
        assert handle.read() == text
    loaded = load_config(path)
    assert loaded.pusher == {"example": EXAMPLE_PUSHER}


def test_generate_config_prints_for_default_name(capsys):
    text = generate_config(DEFAULT_CONFIG_PATH)
    assert capsys.readouterr().out == text + "\n"
    assert yaml.safe_load(text)["pusher"]["example"] == EXAMPLE_PUSHER