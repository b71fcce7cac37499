"""ASGI entry point: ``uvicorn inventory_api.asgi:app``."""

from inventory_api.main import create_app

app = create_app()
