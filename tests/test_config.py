import dataclasses

import pytest

import config
from config import get_config

ENV_VARS = [
    "CAMPUS_API_URL",
    "CAMPUS_FORCE_DEMO_MODE",
    "CAMPUS_REQUEST_TIMEOUT_S",
    "CAMPUS_CREDENTIAL_FILE",
    "CAMPUS_AUTO_REFRESH_S",
    "CAMPUS_DEMO_SEED",
    "CAMPUS_ROLE",
    "CAMPUS_USER_ID",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # no .env from the developer's checkout
    monkeypatch.setattr(config, "load_dotenv", lambda **kwargs: False)


def test_defaults():
    cfg = get_config()
    assert cfg.api_url == "http://localhost:5000"
    assert cfg.auto_refresh_s == 30
    assert cfg.demo_seed == 7
    assert cfg.role == "admin"
    assert cfg.user_id == "admin-demo-001"
    assert not cfg.starts_in_demo_mode


def test_empty_api_url_starts_in_demo_mode(monkeypatch):
    monkeypatch.setenv("CAMPUS_API_URL", "")
    assert get_config().starts_in_demo_mode


def test_force_demo_mode(monkeypatch):
    monkeypatch.setenv("CAMPUS_FORCE_DEMO_MODE", "TRUE")
    assert get_config().starts_in_demo_mode


def test_trailing_slash_stripped(monkeypatch):
    monkeypatch.setenv("CAMPUS_API_URL", "https://school.example/ ")
    assert get_config().api_url == "https://school.example"


def test_role_picks_matching_demo_user(monkeypatch):
    monkeypatch.setenv("CAMPUS_ROLE", "Parent")
    cfg = get_config()
    assert cfg.role == "parent"
    assert cfg.user_id == "parent-demo-001"


def test_invalid_values_fall_back(monkeypatch):
    monkeypatch.setenv("CAMPUS_ROLE", "janitor")
    monkeypatch.setenv("CAMPUS_AUTO_REFRESH_S", "soon")
    monkeypatch.setenv("CAMPUS_REQUEST_TIMEOUT_S", "-3")
    cfg = get_config()
    assert cfg.role == "admin"
    assert cfg.auto_refresh_s == 30
    assert cfg.request_timeout_s == 0.1


def test_config_is_frozen():
    cfg = get_config()
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.role = "student"
