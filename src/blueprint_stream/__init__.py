"""
Blueprint Stream
Relays streamed LLM completions to browsers as SSE blueprint frames.
"""

__version__ = "1.0.0"
