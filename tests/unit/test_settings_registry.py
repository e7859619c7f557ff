from pathlib import Path

import pytest

from config import AppConfig, FlowSettings, load_config, resolve_registry
from config.registry import MONITOR_KEY, bind_model, clear_models, get_model, is_bound
from config.settings import Settings
from flow_manager.agents import AGENT_SCHEMAS

ROOT = Path(__file__).resolve().parents[2]


def test_settings_defaults():
    settings = Settings(_env_file=None)
    assert settings.APP_CONFIG_PATH == "app_config.json"
    assert settings.MAX_ATTEMPTS_PLANNED == 3
    assert settings.MAX_FOLLOW_UP_STREAK == 3


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("MAX_ATTEMPTS_PLANNED", "5")
    monkeypatch.setenv("CLOSING_STATEMENT", "Bye.")
    flow = FlowSettings.from_settings(Settings(_env_file=None))
    assert flow.max_attempts == 5
    assert flow.closing_statement == "Bye."
    assert flow.topic_count == 2


def test_registry_bind_and_retrieve():
    marker = object()
    bind_model(MONITOR_KEY, lambda *_: marker)
    model = get_model(MONITOR_KEY)
    assert model() is marker
    clear_models()
    assert not is_bound(MONITOR_KEY)
    with pytest.raises(KeyError):
        get_model(MONITOR_KEY)


def test_shipped_app_config_resolves_every_agent():
    cfg = load_config(ROOT / "app_config.json")
    registry = resolve_registry(cfg, AGENT_SCHEMAS)
    assert set(registry) == set(AGENT_SCHEMAS)
    route, _ = registry["flow_manager.monitor_agent"]
    assert route.sequential is True
    assert route.extra_body["stream"] is False
    assert cfg.flow.max_attempts == 3


def test_resolve_registry_rejects_unknown_route():
    cfg = AppConfig.model_validate(
        {"llm_routes": {}, "registry": {"flow_manager.planner_agent": "missing"}}
    )
    with pytest.raises(KeyError):
        resolve_registry(cfg, {"flow_manager.planner_agent": AGENT_SCHEMAS["flow_manager.planner_agent"]})
