import json

from click.testing import CliRunner

from kairo.config import load_settings
from kairo.history import HistoryLog, SessionLogEntry, start_of_day_ms
from kairo.main import build_engine, cli, format_minutes, render_line
from kairo.modes import SessionFamily


def _invoke(tmp_path, *args, input=None):
    return CliRunner().invoke(cli, ["--home", str(tmp_path), *args], input=input)


def test_status_without_session(tmp_path):
    result = _invoke(tmp_path, "status")
    assert result.exit_code == 0
    assert "No session in progress." in result.output


def test_status_shows_paused_snapshot(tmp_path):
    engine = build_engine(str(tmp_path), tick_factory=lambda token, deliver, interval: _Quiet())
    engine.start()
    engine.pause()
    engine.shutdown()
    result = _invoke(tmp_path, "status")
    assert result.exit_code == 0
    assert "FOCUS 03  25:00  paused  (session #1)" in result.output


def test_config_round_trip(tmp_path):
    result = _invoke(tmp_path, "config", "--focus-seconds", "90", "--auto", "--ambient", "DEEP_SPACE")
    assert result.exit_code == 0
    assert "custom_focus_seconds = 90" in result.output
    settings = load_settings(str(tmp_path / "prefs.json"))
    assert settings.custom_focus_seconds == 90
    assert settings.auto_start_timer is True
    assert settings.ambient_sound == "DEEP_SPACE"


def test_history_listing_and_clear(tmp_path):
    log = HistoryLog(str(tmp_path / "history.json"))
    log.append(SessionLogEntry(1.5, 1_760_000_000_000, "C", SessionFamily.FOCUS))
    log.append(SessionLogEntry(5.0, 1_760_000_100_000, "B1", SessionFamily.BREAK))

    result = _invoke(tmp_path, "history")
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert "FOCUS" in lines[0] and lines[0].endswith("1m 30s")
    assert "BREAK" in lines[1] and lines[1].endswith("5m")

    result = _invoke(tmp_path, "history", "--clear", input="y\n")
    assert "History cleared." in result.output
    assert json.loads((tmp_path / "history.json").read_text(encoding="utf-8")) == []
    assert "No completed sessions yet." in _invoke(tmp_path, "history").output



def test_history_today_shows_only_todays_sessions(tmp_path):
    midnight = start_of_day_ms()
    log = HistoryLog(str(tmp_path / "history.json"))
    log.append(SessionLogEntry(25.0, midnight - 60_000, "03", SessionFamily.FOCUS))
    log.append(SessionLogEntry(10.0, midnight, "02", SessionFamily.FOCUS))

    result = _invoke(tmp_path, "history", "--today")
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert len(lines) == 2
    assert lines[0].endswith("10m")
    assert lines[1] == "Today: 1 focus sessions, 10m focused."


def test_run_rejects_unknown_mode_label(tmp_path):
    result = _invoke(tmp_path, "run", "--mode", "07")
    assert result.exit_code == 2
    assert "--mode" in result.output


def test_formatting():
    assert format_minutes(25.0) == "25m"
    assert format_minutes(1.5) == "1m 30s"


def test_formatting_sums_that_land_just_under_a_minute():
    log = HistoryLog()
    for i in range(10):
        log.append(SessionLogEntry(duration_minutes=6 / 60, completed_at_ms=1000 + i, mode_label="C",
                                   family=SessionFamily.FOCUS))
    assert format_minutes(log.total_minutes_since(0)) == "1m"
    assert format_minutes(0.9999999999999999) == "1m"
    assert format_minutes(59.999) == "60m"


def test_render_line_idle(tmp_path):
    engine = build_engine(str(tmp_path))
    assert render_line(engine) == "FOCUS 03  25:00  idle"


class _Quiet:
    def start(self):
        pass

    def stop(self):
        pass
