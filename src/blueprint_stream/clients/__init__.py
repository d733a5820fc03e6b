"""
Client modules for external service communication
"""

from .upstream import UpstreamClient, UpstreamConfig, UpstreamEvent, parse_event_line, classify_status

__all__ = ["UpstreamClient", "UpstreamConfig", "UpstreamEvent", "parse_event_line", "classify_status"]
