"""ASGI entry point: ``uvicorn gateway.main:app``."""

from gateway.core.app_factory import create_app

app = create_app()
