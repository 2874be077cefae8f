"""In-process fakes for the providers and the vector index."""

import math

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorRecord import QueryMatch, UpsertResult, VectorRecord
from shared.errors import UpstreamServiceError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

FAKE_VECTOR_SIZE = 16


def fake_embedding(text: str) -> list[float]:
    """Deterministic bag-of-words vector. Texts sharing words point the same way."""
    vector = [0.0] * FAKE_VECTOR_SIZE
    for word in text.lower().split():
        word = word.strip(".,?!:;")
        if word:
            vector[sum(ord(c) for c in word) % FAKE_VECTOR_SIZE] += 1.0
    norm = math.sqrt(sum(v * v for v in vector)) or 1.0
    return [v / norm for v in vector]


class FakeEmbedClient:
    def __init__(self, fail_on: str | None = None):
        self.calls: list[str] = []
        self.fail_on = fail_on

    def get_engine_name(self) -> str:
        return "fake"

    def get_vector_size(self) -> int:
        return FAKE_VECTOR_SIZE

    async def do_embed_query(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail_on is not None and self.fail_on in text:
            raise UpstreamServiceError("Embedding request failed with status 503.")
        return fake_embedding(text)


class FakeLLMClient:
    """Streams a fixed list of fragments. An Exception in the list is raised at that point."""

    def __init__(self, fragments: list | None = None):
        self.fragments = fragments if fragments is not None else ["Hello", " world"]
        self.calls: list[tuple[str, str, str]] = []
        self.closed = False

    def get_engine_name(self) -> str:
        return "fake"

    async def do_generate(self, system_prompt: str, context: str, question: str):
        self.calls.append((system_prompt, context, question))
        try:
            for fragment in self.fragments:
                if isinstance(fragment, Exception):
                    raise fragment
                yield fragment
        finally:
            self.closed = True


class InMemoryRAGClient(RAGClientInterface):
    """Vector index held in a dict of namespaces. Cosine similarity, equality filters on camelCase metadata."""

    def __init__(self, helper_config: HelperConfig, fail_upsert_after: int | None = None):
        super().__init__(helper_config=helper_config)
        self.namespaces: dict[str, dict[str, VectorRecord]] = {}
        self.fail_upsert_after = fail_upsert_after
        self.upsert_calls = 0
        self.delete_calls: list[list[str]] = []
        self.query_calls: list[dict] = []

    def _get_engine_name(self) -> str:
        return "Memory"

    def _get_required_config(self) -> list[EnvConfig]:
        return []

    def _get_auth_header(self) -> dict:
        return {}

    def _get_base_url(self) -> str:
        return "memory://"

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    def _get_endpoint_upsert(self) -> str:
        return ""

    def _get_endpoint_query(self) -> str:
        return ""

    def _get_endpoint_delete(self) -> str:
        return ""

    def get_upsert_payload(self, namespace, records):
        return {}

    def get_query_payload(self, namespace, vector, top_k, filter):
        return {}

    def get_delete_payload(self, namespace, ids):
        return {}

    def extract_query_matches(self, raw_response):
        return []

    async def _do_prepare_index(self, vector_size: int) -> None:
        pass

    async def do_upsert(self, namespace: str, records: list[VectorRecord]) -> UpsertResult:
        self._check_namespace(namespace)
        store = self.namespaces.setdefault(namespace, {})
        for record in records:
            if self.fail_upsert_after is not None and self.upsert_calls >= self.fail_upsert_after:
                raise UpstreamServiceError("Vector upsert failed at batch 2 of 2", completed=1, total=2)
            store[record.id] = record
            self.upsert_calls += 1
        return UpsertResult(upserted=len(records), batches=1)

    async def do_query(self, namespace, vector, top_k, filter=None) -> list[QueryMatch]:
        self._check_namespace(namespace)
        self.query_calls.append({"namespace": namespace, "top_k": top_k, "filter": filter})
        matches = []
        for record in self.namespaces.get(namespace, {}).values():
            metadata = record.metadata.model_dump(by_alias=True)
            if filter and any(metadata.get(key) != value for key, value in filter.items()):
                continue
            score = sum(a * b for a, b in zip(vector, record.embedding))
            matches.append(QueryMatch(id=record.id, score=score, metadata=record.metadata))
        return sorted(matches, key=lambda match: match.score, reverse=True)[:top_k]

    async def do_delete(self, namespace: str, ids: list[str]) -> int:
        self._check_namespace(namespace)
        self.delete_calls.append(list(ids))
        store = self.namespaces.get(namespace, {})
        for vector_id in ids:
            store.pop(vector_id, None)
        return len(ids)
