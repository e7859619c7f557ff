"""LLM route and flow configuration loaded from the JSON app config."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Tuple, Type

from pydantic import BaseModel, Field

from .settings import Settings, settings as default_settings


class LlmRoute(BaseModel):
    """LLM endpoint configuration."""

    name: str
    base_url: str
    endpoint: str
    model: str
    timeout_s: float = Field(ge=0.1)
    api_key_env: str | None = None
    response_format: str | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    extra_body: Dict[str, Any] = Field(default_factory=dict)
    sequential: bool = False
    enforce_json: bool = True


class FlowSettings(BaseModel):
    """Ceilings and plan shape used by the turn orchestrator."""

    max_attempts: int = Field(default=3, ge=1)
    max_follow_up_streak: int = Field(default=3, ge=0)
    topic_count: int = Field(default=2, ge=1)
    questions_per_topic: int = Field(default=3, ge=1)
    closing_statement: str = "Thank you for your time. This concludes the interview."

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "FlowSettings":
        """Build flow settings from environment-backed settings."""

        env = source or default_settings
        return cls(
            max_attempts=env.MAX_ATTEMPTS_PLANNED,
            max_follow_up_streak=env.MAX_FOLLOW_UP_STREAK,
            topic_count=env.PLAN_TOPIC_COUNT,
            questions_per_topic=env.PLAN_QUESTIONS_PER_TOPIC,
            closing_statement=env.CLOSING_STATEMENT,
        )


class AppConfig(BaseModel):
    """Application configuration root."""

    llm_routes: Dict[str, LlmRoute]
    registry: Dict[str, str]
    flow: FlowSettings = Field(default_factory=FlowSettings.from_settings)


def load_config(path: Path) -> AppConfig:
    """Load configuration from disk."""

    data = path.read_text(encoding="utf-8")
    return AppConfig.model_validate_json(data)


def resolve_registry(
    cfg: AppConfig, schemas: Dict[str, Type[BaseModel]]
) -> Dict[str, Tuple[LlmRoute, Type[BaseModel]]]:
    """Map each registry target onto its route and output schema.

    Raises:
        KeyError: If a target or its route is missing from ``cfg``.
        TypeError: If a schema is not a pydantic model.
    """

    resolved: Dict[str, Tuple[LlmRoute, Type[BaseModel]]] = {}
    for target, schema in schemas.items():
        if target not in cfg.registry:
            raise KeyError(f"Registry entry missing for '{target}'")
        route_id = cfg.registry[target]
        if route_id not in cfg.llm_routes:
            raise KeyError(f"Route '{route_id}' missing for '{target}'")
        if not isinstance(schema, type) or not issubclass(schema, BaseModel):
            raise TypeError(f"Schema for '{target}' must be BaseModel")
        resolved[target] = (cfg.llm_routes[route_id], schema)
    return resolved


def load_app_registry(
    path: Path, schemas: Dict[str, Type[BaseModel]]
) -> Dict[str, Tuple[LlmRoute, Type[BaseModel]]]:
    """Load configuration and build registry."""

    cfg = load_config(path)
    return resolve_registry(cfg, schemas)


__all__ = [
    "AppConfig",
    "FlowSettings",
    "LlmRoute",
    "load_app_registry",
    "load_config",
    "resolve_registry",
]
