"""Prompt text and the platform table."""

from .platforms import Platform, PlatformProfile, TechStack, PLATFORMS, get_profile, all_platforms
from .builder import PromptBuilder

__all__ = [
    "Platform",
    "PlatformProfile",
    "TechStack",
    "PLATFORMS",
    "get_profile",
    "all_platforms",
    "PromptBuilder",
]
