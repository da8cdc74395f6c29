"""HTTP surface: the chatbot endpoint and the tool channel over HTTP."""

from toolrelay.server.app import create_app

__all__ = ["create_app"]
