from __future__ import annotations  # FastAPI server exposing the adaptive interview flow

import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router
from config import settings
from flow_manager.agents import bind_llm_collaborators
from services.sessions import configure_flow


logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).resolve().parent / settings.APP_CONFIG_PATH


def create_app(config_path: Path | None = None) -> FastAPI:  # Build the app and bind LLM collaborators when configured
    path = config_path or CONFIG_PATH
    if path.exists():
        try:
            configure_flow(bind_llm_collaborators(path))
        except (KeyError, TypeError, ValueError, OSError) as exc:
            logger.warning("Failed to load LLM config from %s: %s", path, exc)
    else:
        logger.warning("LLM config not found at %s; collaborators must be bound manually", path)

    application = FastAPI(title="Adaptive Interview API")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.include_router(router)
    return application


app = create_app()
