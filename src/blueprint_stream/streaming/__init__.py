"""
Streaming Module
Relay pipeline, SSE transport and client-side session.
"""

from .frames import ChunkFrame, CompleteFrame, ErrorFrame, StreamFrame, encode_frame
from .relay import (
    RelayPipeline,
    RelayConfig,
    RelayOutcome,
    PipelineState,
    FrameWriter,
    FragmentSource,
)
from .sse import EventStreamResponse, ASGIFrameWriter, SSE_HEADERS
from .session import StreamSession, ClientStreamState, SessionStatus, BlueprintStreamClient

__all__ = [
    "ChunkFrame",
    "CompleteFrame",
    "ErrorFrame",
    "StreamFrame",
    "encode_frame",
    "RelayPipeline",
    "RelayConfig",
    "RelayOutcome",
    "PipelineState",
    "FrameWriter",
    "FragmentSource",
    "EventStreamResponse",
    "ASGIFrameWriter",
    "SSE_HEADERS",
    "StreamSession",
    "ClientStreamState",
    "SessionStatus",
    "BlueprintStreamClient",
]
