import json
import os

from kairo.config import KairoSettings, data_dir, load_settings, save_settings, session_path


def test_missing_file_gives_defaults(tmp_path):
    settings = load_settings(str(tmp_path / "prefs.json"))
    assert settings == KairoSettings()
    assert settings.standard_mode_label == "03"
    assert settings.custom_focus_seconds == 0
    assert settings.auto_start_timer is False


def test_saved_values_merge_over_defaults(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text(json.dumps({"auto_start_timer": True, "custom_break_seconds": 90}), encoding="utf-8")
    settings = load_settings(str(path))
    assert settings.auto_start_timer is True
    assert settings.custom_break_seconds == 90
    assert settings.sound_enabled is True


def test_bad_values_fall_back_per_key(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text(
        json.dumps(
            {
                "sound_enabled": "yes",
                "custom_focus_seconds": -20,
                "custom_break_seconds": "NaN",
                "ambient_sound": "WHALES",
                "tick_interval_s": 0,
                "standard_mode_label": "",
                "show_tips": False,
                "unknown_key": 1,
            }
        ),
        encoding="utf-8",
    )
    settings = load_settings(str(path))
    assert settings.sound_enabled is True
    assert settings.custom_focus_seconds == 0
    assert settings.custom_break_seconds == 0
    assert settings.ambient_sound == "OFF"
    assert settings.tick_interval_s == 1.0
    assert settings.standard_mode_label == "03"
    assert settings.show_tips is False


def test_corrupt_file_gives_defaults(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text("<xml/>", encoding="utf-8")
    assert load_settings(str(path)) == KairoSettings()


def test_save_then_load(tmp_path):
    path = str(tmp_path / "nested" / "prefs.json")
    settings = KairoSettings(custom_focus_seconds=95, notifications_enabled=True, ambient_sound="DEEP_SPACE")
    save_settings(settings, path)
    assert load_settings(path) == settings


def test_kairo_home_env(monkeypatch, tmp_path):
    monkeypatch.setenv("KAIRO_HOME", str(tmp_path))
    assert data_dir() == str(tmp_path)
    assert session_path() == os.path.join(str(tmp_path), "session.json")
    monkeypatch.delenv("KAIRO_HOME")
    assert data_dir().endswith(".kairo")
