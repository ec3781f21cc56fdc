"""Tests for settings loading."""

import pytest
from pydantic import ValidationError

from source_rcon_mcp.config import RconSettings, load_settings


def test_defaults():
    settings = load_settings(env={})
    assert settings == RconSettings()
    assert settings.address == ("localhost", 25575)
    assert settings.timeout == 5.0


def test_env_overrides():
    env = {
        "RCON_HOST": " mc.example.org ",
        "RCON_PORT": "25580",
        "RCON_PASS": " s3cret ",
        "RCON_TIMEOUT": "1.5",
        "RCON_LOG_LEVEL": "debug",
    }
    settings = load_settings(env=env)
    assert settings.address == ("mc.example.org", 25580)
    assert settings.password == " s3cret "
    assert settings.timeout == 1.5
    assert settings.log_level == "DEBUG"


def test_blank_env_values_ignored():
    settings = load_settings(env={"RCON_HOST": "   ", "RCON_PORT": ""})
    assert settings.address == ("localhost", 25575)


def test_explicit_overrides_win():
    env = {"RCON_HOST": "from-env", "RCON_PORT": "1234"}
    settings = load_settings(env=env, host="explicit", port=None)
    assert settings.address == ("explicit", 1234)


@pytest.mark.parametrize("port", ["0", "70000", "abc"])
def test_invalid_port(port):
    with pytest.raises(ValidationError):
        load_settings(env={"RCON_PORT": port})


def test_invalid_timeout():
    with pytest.raises(ValidationError):
        load_settings(env={"RCON_TIMEOUT": "0"})


def test_invalid_log_level():
    with pytest.raises(ValidationError):
        load_settings(env={"RCON_LOG_LEVEL": "verbose"})


def test_log_level_normalised():
    assert load_settings(env={"RCON_LOG_LEVEL": " warning "}).log_level == "WARNING"
