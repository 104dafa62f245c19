import pytest

from onionhttp import config
from onionhttp.config import Config


@pytest.fixture
def fresh_conf(monkeypatch):
    conf = Config()
    monkeypatch.setattr(config, "conf", conf)
    return conf


def test_defaults(fresh_conf):
    config.configure_from_file(None)
    assert fresh_conf == Config()
    assert fresh_conf.max_headers == 16
    assert fresh_conf.line_terminator == "\n"

def test_override_from_file(fresh_conf, tmp_path):
    path = tmp_path / "onionhttp.toml"
    path.write_text(
        'proxy_addr = "10.0.0.1"\n'
        'proxy_port = 9150\n'
        'max_headers = 64\n'
        'line_terminator = "\\r\\n"\n'
    )
    config.configure_from_file(str(path))
    assert fresh_conf.proxy_addr == "10.0.0.1"
    assert fresh_conf.proxy_port == 9150
    assert fresh_conf.max_headers == 64
    assert fresh_conf.line_terminator == "\r\n"

def test_unknown_key(fresh_conf, tmp_path):
    path = tmp_path / "onionhttp.toml"
    path.write_text('dns_server_addr = "1.1.1.1"\n')
    with pytest.raises(ValueError, match="unknown config key"):
        config.configure_from_file(str(path))

def test_bad_line_terminator(fresh_conf, tmp_path):
    path = tmp_path / "onionhttp.toml"
    path.write_text('line_terminator = "\\r"\n')
    with pytest.raises(ValueError, match="unsupported line terminator"):
        config.configure_from_file(str(path))
