from __future__ import annotations

from fastapi import FastAPI

from stockhold.infrastructure.bootstrap import build_services
from stockhold.infrastructure.config import Settings
from stockhold.infrastructure.logging_config import configure_logging
from stockhold.infrastructure.web.fastapi_app import create_app


def create_asgi_app() -> FastAPI:
    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_json)
    return create_app(build_services(settings))
