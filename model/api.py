# model/api.py
from typing import Any, List, Literal, Optional, Union
from pydantic import BaseModel, Field
from model.provider import ChatMessage


class DomSnapshot(BaseModel):
    html: str = ""
    title: Optional[str] = None


class SummarizeRequest(BaseModel):
    # url stays optional here so a missing URL surfaces as an invalid_request
    # error event instead of a framework-level 422.
    url: Optional[str] = None
    title: Optional[str] = None
    domSnapshot: Optional[DomSnapshot] = None
    question: Optional[str] = None
    format: Literal["text", "json"] = "text"


class ChatStreamRequest(BaseModel):
    messages: List[ChatMessage] = Field(min_length=1)


EventKind = Literal["progress", "delta", "final", "error", "done"]


class StreamEvent(BaseModel):
    kind: EventKind
    payload: Union[str, dict[str, Any]] = ""
    code: Optional[str] = None  # ErrorCode value, error events only
