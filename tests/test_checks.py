from datetime import timedelta

import pytest

from uptime_monitor import config
from uptime_monitor.checks import (
    ConfigError,
    ProbeKind,
    checks_path,
    load_checks,
    parse_duration,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("5s", timedelta(seconds=5)),
        ("500ms", timedelta(milliseconds=500)),
        ("1m30s", timedelta(seconds=90)),
        ("1h", timedelta(hours=1)),
        ("1.5s", timedelta(seconds=1.5)),
        ("250us", timedelta(microseconds=250)),
        ("0", timedelta(0)),
        (2, timedelta(seconds=2)),
        (0.25, timedelta(milliseconds=250)),
        ("3", timedelta(seconds=3)),
    ],
)
def test_parse_duration(value, expected):
    assert parse_duration(value) == expected


@pytest.mark.parametrize("value", ["", "fast", "5 parsecs", "-1s", -3, True, None, "nan"])
def test_parse_duration_rejects(value):
    with pytest.raises(ConfigError):
        parse_duration(value)


def test_load_checks_assigns_stable_indexes(tmp_path):
    path = tmp_path / "checks.yml"
    path.write_text(
        "checks:\n"
        "  - {name: web, type: http, dest: 'http://localhost', repeat: 5s}\n"
        "  - {name: dns, type: ICMP, dest: 1.1.1.1, repeat: 500ms}\n"
        "  - {name: odd, type: ftp, dest: ftp.example.com, repeat: 1}\n"
    )
    eps = load_checks(str(path))
    assert [e.index for e in eps] == [0, 1, 2]
    assert [e.name for e in eps] == ["web", "dns", "odd"]
    assert eps[0].probe_kind is ProbeKind.HTTP
    assert eps[1].probe_kind is ProbeKind.ICMP
    assert eps[1].interval == timedelta(milliseconds=500)
    # unknown kinds survive loading; the dispatcher reports them
    assert eps[2].kind == "ftp"
    assert eps[2].probe_kind is None


def test_load_checks_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="cannot read"):
        load_checks(str(tmp_path / "nope.yml"))


@pytest.mark.parametrize(
    "text",
    [
        "checks: [unclosed",
        "just a string",
        "checks: {name: x}",
        "checks:\n  - {name: x, type: http, dest: y}\n",
        "checks:\n  - plain\n",
        "checks:\n  - {name: x, type: http, dest: y, repeat: soon}\n",
    ],
)
def test_load_checks_malformed(tmp_path, text):
    path = tmp_path / "checks.yml"
    path.write_text(text)
    with pytest.raises(ConfigError):
        load_checks(str(path))


def test_checks_path_env_override(monkeypatch):
    monkeypatch.delenv(config.CHECKS_FILE_ENV, raising=False)
    assert checks_path() == config.CHECKS_FILE
    monkeypatch.setenv(config.CHECKS_FILE_ENV, "/etc/monitor/checks.yml")
    assert checks_path() == "/etc/monitor/checks.yml"
