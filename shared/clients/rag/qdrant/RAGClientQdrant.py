"""Qdrant implementation of RAGClientInterface.

Qdrant has no namespaces, so all owners share one collection and the
namespace lives in each point's payload. Every search, scroll and delete
injects the namespace as a mandatory filter condition; callers cannot
remove it. Point ids must be UUIDs, so the readable vector id is mapped to a
deterministic UUIDv5 and kept in the payload as "vectorId".
"""

import uuid

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.Scroll import ScrollResult
from shared.clients.rag.models.VectorRecord import QueryMatch, VectorMetadata, VectorRecord
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

# Fixed namespace for deterministic UUIDv5 point IDs.
# Changing this value would invalidate all existing point IDs in Qdrant.
_POINT_ID_NAMESPACE = uuid.UUID("6f4d3c2b-1a09-4e5f-8b7c-6d5e4f3a2b1c")
SCROLL_PAGE_SIZE = 1000


class RAGClientQdrant(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collection_name = self.get_config_val("COLLECTION", default="brainvault", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    def make_point_id(self, namespace: str, vector_id: str) -> str:
        """Map a namespaced vector id to the UUID Qdrant stores it under."""
        return str(uuid.uuid5(_POINT_ID_NAMESPACE, f"{namespace}:{vector_id}"))

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string", default="brainvault"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_upsert(self) -> str:
        return f"/collections/{self._collection_name}/points?wait=true"

    def _get_upsert_method(self) -> str:
        return "PUT"

    def _get_endpoint_query(self) -> str:
        return f"/collections/{self._collection_name}/points/search"

    def _get_endpoint_delete(self) -> str:
        return f"/collections/{self._collection_name}/points/delete?wait=true"

    def _get_endpoint_scroll(self) -> str:
        return f"/collections/{self._collection_name}/points/scroll"

    def _get_endpoint_collection(self) -> str:
        return f"/collections/{self._collection_name}"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def _get_filter(self, namespace: str, filter: dict[str, str] | None = None) -> dict:
        # the namespace condition is always first and always present
        must = [{"key": "namespace", "match": {"value": namespace}}]
        for key, value in (filter or {}).items():
            must.append({"key": key, "match": {"value": value}})
        return {"must": must}

    def get_upsert_payload(self, namespace: str, records: list[VectorRecord]) -> dict:
        return {
            "points": [
                {
                    "id": self.make_point_id(namespace, record.id),
                    "vector": record.embedding,
                    "payload": {
                        **record.metadata.model_dump(by_alias=True),
                        "namespace": namespace,
                        "vectorId": record.id,
                    },
                }
                for record in records
            ]
        }

    def get_query_payload(self, namespace: str, vector: list[float], top_k: int, filter: dict[str, str] | None) -> dict:
        return {
            "vector": vector,
            "limit": top_k,
            "with_payload": True,
            "filter": self._get_filter(namespace, filter),
        }

    def get_delete_payload(self, namespace: str, ids: list[str]) -> dict:
        # point ids embed the namespace, so ids of other owners can never match
        return {"points": [self.make_point_id(namespace, vector_id) for vector_id in ids]}

    def get_scroll_payload(self, namespace: str, filter: dict[str, str], offset: str | int | None = None) -> dict:
        payload = {
            "filter": self._get_filter(namespace, filter),
            "limit": SCROLL_PAGE_SIZE,
            "with_payload": ["vectorId"],
            "with_vector": False,
        }
        if offset is not None:
            payload["offset"] = offset
        return payload

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_query_matches(self, raw_response: dict) -> list[QueryMatch]:
        matches: list[QueryMatch] = []
        for point in raw_response.get("result", []):
            payload = dict(point.get("payload") or {})
            vector_id = payload.pop("vectorId", str(point.get("id")))
            payload.pop("namespace", None)
            matches.append(
                QueryMatch(
                    id=vector_id,
                    score=point.get("score", 0.0),
                    metadata=VectorMetadata.model_validate(payload),
                )
            )
        return matches

    def extract_scroll_content(self, raw_response: dict) -> ScrollResult:
        result = raw_response.get("result", {})
        return ScrollResult(
            result=result.get("points", []),
            next_page_offset=result.get("next_page_offset"),
        )

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _do_prepare_index(self, vector_size: int) -> None:
        """Create the collection with cosine distance and keyword indexes if it does not exist yet."""
        resp = await self.do_request(method="GET", endpoint=f"{self._get_endpoint_collection()}/exists", raise_on_error=True)
        if resp.json().get("result", {}).get("exists"):
            self.logging.info("Qdrant collection %r already exists.", self._collection_name)
            return

        await self.do_request(
            method="PUT",
            json={"vectors": {"size": vector_size, "distance": "Cosine"}},
            endpoint=self._get_endpoint_collection(),
            raise_on_error=True,
        )
        for field_name in ("namespace", "documentId"):
            await self.do_request(
                method="PUT",
                json={"field_name": field_name, "field_schema": "keyword"},
                endpoint=f"{self._get_endpoint_collection()}/index",
                raise_on_error=True,
            )
        self.logging.info("Qdrant collection %r created (%d dimensions).", self._collection_name, vector_size)

    async def do_scroll(self, namespace: str, filter: dict[str, str], offset: str | int | None = None) -> ScrollResult:
        """Scroll a single page of points matching the filter within a namespace.

        Args:
            namespace (str): The owner namespace.
            filter (dict[str, str]): Equality conditions on payload keys.
            offset (str | int | None): Cursor from the previous page, None to start.

        Returns:
            ScrollResult: One page of points and the cursor of the next page.
        """
        self._check_namespace(namespace)
        resp = await self.do_request(
            method="POST",
            json=self.get_scroll_payload(namespace, filter, offset),
            endpoint=self._get_endpoint_scroll(),
            raise_on_error=True,
        )
        return self.extract_scroll_content(resp.json())

    async def do_list_document_vector_ids(self, namespace: str, document_id: str) -> list[str]:
        """List all vector ids of a document by paginated scroll. Not bounded by a top-K ceiling."""
        vector_ids: list[str] = []
        offset: str | int | None = None
        page = 1
        while True:
            page_result = await self.do_scroll(namespace, {"documentId": document_id}, offset)
            for point in page_result.result:
                vector_id = (point.get("payload") or {}).get("vectorId")
                if vector_id:
                    vector_ids.append(vector_id)
            self.logging.debug(
                "Scrolled page %d of document '%s', %d vector ids so far.", page, document_id, len(vector_ids)
            )
            offset = page_result.next_page_offset
            if offset is None:
                break
            page += 1
        return vector_ids
