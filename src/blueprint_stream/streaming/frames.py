"""
Stream Frames
Browser-facing SSE events: chunk, complete, error.
"""

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..core.json import dumps

SSE_PREFIX = "data: "


class FrameModel(BaseModel):
    """Base frame: camelCase on the wire, immutable."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class ChunkFrame(FrameModel):
    type: Literal["chunk"] = "chunk"
    content: str
    full_content: str
    blueprint_id: str


class CompleteFrame(FrameModel):
    type: Literal["complete"] = "complete"
    blueprint_id: str
    full_content: str


class ErrorFrame(FrameModel):
    type: Literal["error"] = "error"
    error: str
    blueprint_id: str | None = None


StreamFrame = Union[ChunkFrame, CompleteFrame, ErrorFrame]


def encode_frame(frame: StreamFrame) -> bytes:
    """Serialize a frame as one SSE event (``data: <json>\\n\\n``)."""
    payload = frame.model_dump(by_alias=True, exclude_none=True)
    return f"{SSE_PREFIX}{dumps(payload)}\n\n".encode("utf-8")
