"""Configuration package for the interview flow engine."""
from .registry import (
    INTERVIEWER_KEY,
    MONITOR_KEY,
    PLANNER_KEY,
    REPORTER_KEY,
    bind_model,
    clear_models,
    get_model,
    is_bound,
)
from .routes import AppConfig, FlowSettings, LlmRoute, load_app_registry, load_config, resolve_registry
from .settings import Settings, settings

__all__ = [
    "AppConfig",
    "FlowSettings",
    "LlmRoute",
    "load_app_registry",
    "load_config",
    "resolve_registry",
    "INTERVIEWER_KEY",
    "MONITOR_KEY",
    "PLANNER_KEY",
    "REPORTER_KEY",
    "bind_model",
    "clear_models",
    "get_model",
    "is_bound",
    "Settings",
    "settings",
]
