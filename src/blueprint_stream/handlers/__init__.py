"""Handlers for HTTP requests."""

from .generate import GenerateHandler

__all__ = ["GenerateHandler"]
