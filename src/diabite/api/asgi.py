"""ASGI entrypoint: ``uvicorn diabite.api.asgi:app``."""

from diabite.api.app import create_app
from diabite.config import Settings
from diabite.containers import build_container

settings = Settings()
app = create_app(build_container(settings))
