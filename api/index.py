"""Vercel serverless entrypoint."""

from code_cup.api.asgi import app

__all__ = ["app"]
