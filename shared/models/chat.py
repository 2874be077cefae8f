"""Pydantic models for retrieval results, chat messages and stream frames."""

from typing import Literal

from shared.models.document import CamelModel


class SourceItem(CamelModel):
    """A single retrieved passage used as grounding context.

    score is the vector index's native cosine similarity.
    """

    text: str
    file_name: str
    chunk_index: int
    score: float


class RetrievalResult(CamelModel):
    """Retrieved passages ordered by descending score, plus the assembled context string."""

    sources: list[SourceItem]
    context: str


class Message(CamelModel):
    """One message of a single question/answer exchange. Never persisted."""

    role: Literal["system", "user", "assistant"]
    content: str
    sources: list[SourceItem] | None = None


class SourceCitation(CamelModel):
    """Citation entry of the terminal sources frame."""

    file_name: str
    chunk_index: int
    score: float


class ContentFrame(CamelModel):
    content: str


class SourcesFrame(CamelModel):
    sources: list[SourceCitation]
    done: bool = True


class ErrorFrame(CamelModel):
    error: str
