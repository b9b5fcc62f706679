#!/usr/bin/env python3
"""Tests for settings loading"""

import sys
sys.path.append('.')


def test_settings_defaults_and_normalization():
    from fleetbook.config import Settings

    settings = Settings(log_level=" debug ", _env_file=None)
    assert settings.log_level == "DEBUG"
    assert settings.session_header == "X-User-Id"
    assert settings.admin_room == "admins"
    assert settings.highlight_seconds == 3.0
    print("[PASS] settings defaults")


def test_highlight_seconds_must_be_positive():
    from pydantic import ValidationError

    from fleetbook.config import Settings

    try:
        Settings(highlight_seconds=0, _env_file=None)
        raise AssertionError("Expected ValidationError")
    except ValidationError:
        pass
    print("[PASS] highlight_seconds validated")


def test_settings_from_environment():
    import os

    from fleetbook.config import Settings

    previous = os.environ.get("FLASK_ENV")
    os.environ["FLASK_ENV"] = "Production"
    try:
        assert not Settings(_env_file=None).is_dev()
    finally:
        if previous is None:
            os.environ.pop("FLASK_ENV", None)
        else:
            os.environ["FLASK_ENV"] = previous
    assert Settings(flask_env="development", _env_file=None).is_dev()
    print("[PASS] settings from environment")


if __name__ == "__main__":
    test_settings_defaults_and_normalization()
    test_highlight_seconds_must_be_positive()
    test_settings_from_environment()
    print("[SUCCESS] All config tests passed")
