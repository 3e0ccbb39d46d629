# model/provider.py
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

Role = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    role: Role
    content: str


# Embeddings
class EmbeddingRow(BaseModel):
    embedding: List[float] = Field(min_length=1)
    index: Optional[int] = None


class EmbeddingResponse(BaseModel):
    data: List[EmbeddingRow]


# Chat completions (non-streamed)
class ChoiceMessage(BaseModel):
    role: Optional[str] = None
    content: Optional[str] = None


class Choice(BaseModel):
    message: ChoiceMessage


class ChatCompletionResponse(BaseModel):
    choices: List[Choice] = Field(min_length=1)


# Chat completions (streamed)
class ChunkDelta(BaseModel):
    content: Optional[str] = None


class ChunkChoice(BaseModel):
    delta: ChunkDelta = Field(default_factory=ChunkDelta)


class ChatCompletionChunk(BaseModel):
    # Some providers send a trailing usage-only chunk with no choices.
    choices: List[ChunkChoice] = Field(default_factory=list)
