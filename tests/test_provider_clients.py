import json

import httpx
import pytest

from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.embed.huggingface.EmbedClientHuggingface import EmbedClientHuggingface
from shared.clients.embed.ollama.EmbedClientOllama import EmbedClientOllama
from shared.clients.embed.openai.EmbedClientOpenai import EmbedClientOpenai
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.llm.groq.LLMClientGroq import LLMClientGroq
from shared.clients.llm.ollama.LLMClientOllama import LLMClientOllama
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.errors import ProviderConfigError, UpstreamServiceError

PROVIDER_VARIABLES = [
    "AI_PROVIDER", "EMBED_ENGINE", "LLM_ENGINE", "RAG_ENGINE",
    "EMBED_HUGGINGFACE_API_KEY", "LLM_GROQ_API_KEY", "EMBED_OPENAI_API_KEY", "LLM_OPENAI_API_KEY",
    "EMBED_OLLAMA_DIMENSIONS", "EMBED_MODEL_MAX_CHARS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in PROVIDER_VARIABLES:
        monkeypatch.delenv(name, raising=False)


##########################################
########### PROVIDER SELECTION ###########
##########################################

def test_default_provider_is_huggingface_with_groq(helper_config, monkeypatch):
    monkeypatch.setenv("EMBED_HUGGINGFACE_API_KEY", "hf")
    monkeypatch.setenv("LLM_GROQ_API_KEY", "gq")

    embed_client = EmbedClientManager(helper_config=helper_config).get_client()
    llm_client = LLMClientManager(helper_config=helper_config).get_client()

    assert isinstance(embed_client, EmbedClientHuggingface)
    assert embed_client.get_vector_size() == 384
    assert isinstance(llm_client, LLMClientGroq)
    assert llm_client.chat_model == "llama-3.1-8b-instant"


@pytest.mark.parametrize("provider, dims", [("ollama", 768), ("openai", 1536), ("groq", 384)])
def test_provider_table_fixes_embedding_dimensions(helper_config, monkeypatch, provider, dims):
    monkeypatch.setenv("AI_PROVIDER", provider)
    monkeypatch.setenv("EMBED_HUGGINGFACE_API_KEY", "hf")
    monkeypatch.setenv("EMBED_OPENAI_API_KEY", "oa")

    embed_client = EmbedClientManager(helper_config=helper_config).get_client()

    assert embed_client.get_vector_size() == dims


def test_engine_override_wins_over_provider(helper_config, monkeypatch):
    monkeypatch.setenv("AI_PROVIDER", "openai")
    monkeypatch.setenv("LLM_ENGINE", "ollama")

    llm_client = LLMClientManager(helper_config=helper_config).get_client()

    assert isinstance(llm_client, LLMClientOllama)


def test_unknown_provider_is_rejected(helper_config, monkeypatch):
    monkeypatch.setenv("AI_PROVIDER", "cohere")
    with pytest.raises(ProviderConfigError) as exc_info:
        EmbedClientManager(helper_config=helper_config)
    assert "cohere" in exc_info.value.message


def test_unknown_engine_is_rejected(helper_config, monkeypatch):
    monkeypatch.setenv("RAG_ENGINE", "weaviate")
    with pytest.raises(ProviderConfigError):
        RAGClientManager(helper_config=helper_config)


def test_missing_credential_fails_before_any_request(helper_config, monkeypatch):
    monkeypatch.setenv("AI_PROVIDER", "groq")
    monkeypatch.setenv("EMBED_HUGGINGFACE_API_KEY", "hf")
    with pytest.raises(ProviderConfigError) as exc_info:
        LLMClientManager(helper_config=helper_config)
    assert "LLM_GROQ_API_KEY" in exc_info.value.message


##########################################
############### EMBEDDING ################
##########################################

async def test_ollama_embed_round_trip(helper_config, monkeypatch):
    monkeypatch.setenv("EMBED_OLLAMA_DIMENSIONS", "3")
    seen: list[dict] = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"embeddings": [[0.1, 0.2, 0.3]]})

    client = EmbedClientOllama(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(handler))

    vector = await client.do_embed_query("what is due?")

    assert vector == [0.1, 0.2, 0.3]
    assert seen == [{"model": "nomic-embed-text", "input": ["what is due?"]}]
    await client.close()


async def test_embedding_dimension_mismatch_is_an_upstream_error(helper_config):
    client = EmbedClientOllama(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"embeddings": [[0.1, 0.2]]})))

    with pytest.raises(UpstreamServiceError):
        await client.do_embed_query("text")
    await client.close()


async def test_openai_embeddings_are_reordered_by_index(helper_config, monkeypatch):
    monkeypatch.setenv("EMBED_OPENAI_API_KEY", "oa")
    monkeypatch.setenv("EMBED_OPENAI_DIMENSIONS", "2")

    def handler(request):
        assert request.headers["Authorization"] == "Bearer oa"
        return httpx.Response(200, json={"data": [
            {"index": 1, "embedding": [0.0, 1.0]},
            {"index": 0, "embedding": [1.0, 0.0]},
        ]})

    client = EmbedClientOpenai(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(handler))

    assert await client.do_embed(["first", "second"]) == [[1.0, 0.0], [0.0, 1.0]]
    await client.close()


async def test_huggingface_error_body_is_an_upstream_error(helper_config, monkeypatch):
    monkeypatch.setenv("EMBED_HUGGINGFACE_API_KEY", "hf")
    client = EmbedClientHuggingface(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"error": "Model is loading"})))

    with pytest.raises(UpstreamServiceError):
        await client.do_embed_query("text")
    await client.close()


async def test_unreachable_backend_is_an_upstream_error(helper_config):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = EmbedClientOllama(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(handler))

    with pytest.raises(UpstreamServiceError):
        await client.do_embed_query("text")
    await client.close()


##########################################
############### GENERATION ###############
##########################################

async def test_groq_streams_sse_fragments(helper_config, monkeypatch):
    monkeypatch.setenv("LLM_GROQ_API_KEY", "gq")
    seen: list[dict] = []
    sse = (
        'data: {"choices": [{"delta": {"role": "assistant"}}]}\n\n'
        'data: {"choices": [{"delta": {"content": "Pay"}}]}\n\n'
        ': keep-alive\n\n'
        'data: {"choices": [{"delta": {"content": "ment is due."}}]}\n\n'
        "data: [DONE]\n\n"
    )

    def handler(request):
        seen.append(json.loads(request.content))
        assert request.url == "https://api.groq.com/openai/v1/chat/completions"
        return httpx.Response(200, content=sse.encode(), headers={"Content-Type": "text/event-stream"})

    client = LLMClientGroq(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(handler))

    fragments = [f async for f in client.do_generate("Be helpful.", "[Source: a.txt, Chunk 0]\nx", "When is payment due?")]

    assert "".join(fragments) == "Payment is due."
    body = seen[0]
    assert body["stream"] is True
    assert body["temperature"] == 0.7
    assert body["messages"][0] == {"role": "system", "content": "Be helpful."}
    assert body["messages"][1]["content"] == (
        "Context from documents:\n[Source: a.txt, Chunk 0]\nx\n\nUser question: When is payment due?"
    )
    await client.close()


async def test_ollama_streams_ndjson_fragments(helper_config):
    ndjson = (
        '{"message": {"role": "assistant", "content": "Hel"}, "done": false}\n'
        '{"message": {"role": "assistant", "content": "lo"}, "done": false}\n'
        '{"message": {"role": "assistant", "content": ""}, "done": true}\n'
    )
    client = LLMClientOllama(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=ndjson.encode())))

    fragments = [f async for f in client.do_generate("sys", "ctx", "q")]

    assert "".join(fragments) == "Hello"
    await client.close()


async def test_generation_error_status_is_an_upstream_error(helper_config):
    client = LLMClientOllama(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(500, content=b"model not found")))

    with pytest.raises(UpstreamServiceError):
        async for _ in client.do_generate("sys", "ctx", "q"):
            pass
    await client.close()
