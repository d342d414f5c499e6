"""ASGI entrypoint for the Code Cup API."""

from code_cup.api.app import create_app
from code_cup.containers import build_container

app = create_app(build_container())
