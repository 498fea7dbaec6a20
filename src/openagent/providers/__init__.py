"""Concrete model clients."""

from .openai_client import ClientSettings, OpenAIModelClient

__all__ = ["ClientSettings", "OpenAIModelClient"]
