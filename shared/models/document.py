"""Pydantic models for uploaded documents and their chunks.

Hierarchy:
  Document: registry entry for one uploaded file, owned by one user.
  Chunk: one overlapping slice of a document's text, the unit of embedding.

Both serialise with camelCase keys (fileName, chunkCount, ...) on the wire.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads snake_case or camelCase and dumps camelCase with by_alias=True."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Document(CamelModel):
    """Registry entry for an uploaded document.

    The id is generated once at ingestion and never changes. chunk_count is
    the source of truth for the deterministic vector delete path.
    """

    id: str
    owner_id: str
    file_name: str
    file_type: str
    uploaded_at: datetime
    chunk_count: int


class Chunk(CamelModel):
    """A bounded, overlapping slice of a document's text.

    index is zero-based and contiguous within a document. start_index is the
    offset of the chunk's first character in the source text.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    text: str
    document_id: str
    owner_id: str
    file_name: str
    index: int
    created_at: datetime
    start_index: int = 0
