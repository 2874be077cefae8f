"""Vector index records, identifiers and query results."""

from datetime import datetime

from pydantic import BaseModel

from shared.models.document import CamelModel, Chunk

# Bound on the chunk text copied into vector metadata.
METADATA_TEXT_MAX_CHARS = 1000


def make_namespace(owner_id: str) -> str:
    """Per-owner partition key. Every index operation is scoped to one namespace."""
    return f"user-{owner_id}"


def make_vector_id(document_id: str, chunk_index: int) -> str:
    """Deterministic vector id, reconstructable from (document_id, chunk_index) without a lookup."""
    return f"{document_id}-chunk-{chunk_index}"


class VectorMetadata(CamelModel):
    """Metadata stored alongside each vector.

    Carries every Chunk field except the full text; text holds a bounded copy
    used as retrieval context. Stored with camelCase keys, so the document
    filter key is "documentId".
    """

    text: str
    document_id: str
    owner_id: str
    file_name: str
    chunk_index: int
    created_at: str

    @classmethod
    def from_chunk(cls, chunk: Chunk) -> "VectorMetadata":
        return cls(
            text=chunk.text[:METADATA_TEXT_MAX_CHARS],
            document_id=chunk.document_id,
            owner_id=chunk.owner_id,
            file_name=chunk.file_name,
            chunk_index=chunk.index,
            created_at=chunk.created_at.isoformat() if isinstance(chunk.created_at, datetime) else str(chunk.created_at),
        )


class VectorRecord(BaseModel):
    """One embedded chunk as written to the vector index."""

    id: str
    embedding: list[float]
    metadata: VectorMetadata

    @classmethod
    def from_chunk(cls, chunk: Chunk, embedding: list[float]) -> "VectorRecord":
        return cls(
            id=make_vector_id(chunk.document_id, chunk.index),
            embedding=embedding,
            metadata=VectorMetadata.from_chunk(chunk),
        )


class QueryMatch(BaseModel):
    """A single similarity match. score is the backend's native cosine similarity."""

    id: str
    score: float
    metadata: VectorMetadata


class UpsertResult(BaseModel):
    """Outcome of a batched upsert: every batch succeeded."""

    upserted: int
    batches: int
