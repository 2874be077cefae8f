from datetime import datetime, timezone

from shared.clients.rag.models.VectorRecord import (
    METADATA_TEXT_MAX_CHARS,
    VectorMetadata,
    VectorRecord,
    make_namespace,
    make_vector_id,
)
from shared.models.document import Chunk


def _chunk(text: str, index: int = 3) -> Chunk:
    return Chunk(
        text=text,
        document_id="doc-42",
        owner_id="user_abc",
        file_name="contract.pdf",
        index=index,
        created_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    )


def test_namespace_and_vector_id_are_deterministic():
    assert make_namespace("user_abc") == "user-user_abc"
    assert make_vector_id("doc-42", 0) == "doc-42-chunk-0"
    assert [make_vector_id("d", i) for i in range(3)] == ["d-chunk-0", "d-chunk-1", "d-chunk-2"]


def test_record_from_chunk_uses_camel_case_metadata():
    record = VectorRecord.from_chunk(_chunk("Payment is due in 30 days."), [0.1, 0.2])

    assert record.id == "doc-42-chunk-3"
    assert record.metadata.model_dump(by_alias=True) == {
        "text": "Payment is due in 30 days.",
        "documentId": "doc-42",
        "ownerId": "user_abc",
        "fileName": "contract.pdf",
        "chunkIndex": 3,
        "createdAt": "2024-05-01T12:00:00+00:00",
    }


def test_metadata_text_is_truncated():
    metadata = VectorMetadata.from_chunk(_chunk("y" * 1500))
    assert len(metadata.text) == METADATA_TEXT_MAX_CHARS


def test_metadata_accepts_camel_case_input():
    metadata = VectorMetadata.model_validate(
        {"text": "t", "documentId": "d", "ownerId": "o", "fileName": "f.txt", "chunkIndex": 1, "createdAt": "x"}
    )
    assert metadata.document_id == "d"
    assert metadata.chunk_index == 1
