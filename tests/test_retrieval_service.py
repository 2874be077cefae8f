import pytest

from services.chat.RetrievalService import RetrievalService
from services.ingestion.DocumentService import DocumentService
from shared.errors import NoRelevantContextError


@pytest.fixture
def document_service(helper_config, embed_client, rag_client, registry) -> DocumentService:
    return DocumentService(helper_config=helper_config, embed_client=embed_client, rag_client=rag_client, registry=registry)


@pytest.fixture
def retrieval_service(helper_config, embed_client, rag_client) -> RetrievalService:
    return RetrievalService(helper_config=helper_config, embed_client=embed_client, rag_client=rag_client)


async def test_empty_namespace_raises_no_relevant_context(retrieval_service):
    with pytest.raises(NoRelevantContextError) as exc_info:
        await retrieval_service.do_retrieve("nobody", "anything?")
    assert exc_info.value.status_code == 404
    assert exc_info.value.message.startswith("No relevant documents found.")


async def test_sources_are_ordered_and_context_is_formatted(document_service, retrieval_service):
    await document_service.do_ingest("alice", "rent.txt", "text/plain", "Rent is due on the first day of every month.")
    await document_service.do_ingest("alice", "pets.txt", "text/plain", "Cats and dogs are allowed in the garden.")

    result = await retrieval_service.do_retrieve("alice", "When is rent due?")

    scores = [source.score for source in result.sources]
    assert scores == sorted(scores, reverse=True)
    assert result.sources[0].file_name == "rent.txt"
    assert result.context.startswith("[Source: rent.txt, Chunk 0]\nRent is due on the first day of every month.")
    assert result.context.count("[Source: ") == len(result.sources)
    assert "\n\n[Source: pets.txt, Chunk 0]\n" in result.context


async def test_retrieval_never_crosses_owners(document_service, retrieval_service):
    await document_service.do_ingest("alice", "secret.txt", "text/plain", "The vault code is 1234.")

    with pytest.raises(NoRelevantContextError):
        await retrieval_service.do_retrieve("bob", "What is the vault code?")


async def test_document_filter_restricts_sources(document_service, retrieval_service, rag_client):
    rent = await document_service.do_ingest("alice", "rent.txt", "text/plain", "Rent is due on the first.")
    await document_service.do_ingest("alice", "other.txt", "text/plain", "Rent for the garage is due later.")

    result = await retrieval_service.do_retrieve("alice", "When is rent due?", document_id=rent.id)

    assert {source.file_name for source in result.sources} == {"rent.txt"}
    assert rag_client.query_calls[-1]["filter"] == {"documentId": rent.id}
    assert rag_client.query_calls[-1]["namespace"] == "user-alice"


async def test_top_k_is_configurable(document_service, helper_config, embed_client, rag_client, monkeypatch):
    monkeypatch.setenv("RETRIEVAL_TOP_K", "2")
    for i in range(4):
        await document_service.do_ingest("alice", f"note{i}.txt", "text/plain", f"Note number {i} about rent.")

    service = RetrievalService(helper_config=helper_config, embed_client=embed_client, rag_client=rag_client)
    result = await service.do_retrieve("alice", "rent")

    assert len(result.sources) == 2
    assert rag_client.query_calls[-1]["top_k"] == 2
