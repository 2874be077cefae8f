"""Pinecone data-plane client.

Talks to the index host directly over REST. Namespaces are native, so each
request carries the owner namespace and Pinecone keeps partitions isolated.
"""

import httpx

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorRecord import QueryMatch, VectorMetadata, VectorRecord
from shared.errors import ProviderConfigError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

PINECONE_API_VERSION = "2024-07"


class RAGClientPinecone(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        host = self.get_config_val("INDEX_HOST", default=None, val_type="string")
        self._base_url = host if host.startswith("http") else f"https://{host}"

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Pinecone"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="INDEX_HOST", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Api-Key": self._api_key, "X-Pinecone-API-Version": PINECONE_API_VERSION}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/describe_index_stats"

    def _get_endpoint_upsert(self) -> str:
        return "/vectors/upsert"

    def _get_endpoint_query(self) -> str:
        return "/query"

    def _get_endpoint_delete(self) -> str:
        return "/vectors/delete"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_upsert_payload(self, namespace: str, records: list[VectorRecord]) -> dict:
        return {
            "namespace": namespace,
            "vectors": [
                {
                    "id": record.id,
                    "values": record.embedding,
                    "metadata": record.metadata.model_dump(by_alias=True),
                }
                for record in records
            ],
        }

    def get_query_payload(self, namespace: str, vector: list[float], top_k: int, filter: dict[str, str] | None) -> dict:
        payload = {
            "namespace": namespace,
            "vector": vector,
            "topK": top_k,
            "includeMetadata": True,
            "includeValues": False,
        }
        if filter:
            payload["filter"] = {key: {"$eq": value} for key, value in filter.items()}
        return payload

    def get_delete_payload(self, namespace: str, ids: list[str]) -> dict:
        return {"namespace": namespace, "ids": ids}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_query_matches(self, raw_response: dict) -> list[QueryMatch]:
        return [
            QueryMatch(
                id=match["id"],
                score=match.get("score", 0.0),
                metadata=VectorMetadata.model_validate(match.get("metadata") or {}),
            )
            for match in raw_response.get("matches", [])
        ]

    def _is_delete_success(self, response: httpx.Response) -> bool:
        # Pinecone answers 404 when the namespace does not exist (yet or anymore)
        return response.is_success or response.status_code == 404

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _do_prepare_index(self, vector_size: int) -> None:
        """Verify that the index dimension matches the embedding provider.

        Pinecone indexes are created outside the service; a mismatch would make
        every upsert fail, so it is reported at startup instead.

        Raises:
            ProviderConfigError: If the index dimension differs from vector_size.
        """
        response = await self.do_request(method="GET", endpoint="/describe_index_stats", raise_on_error=True)
        dimension = response.json().get("dimension")
        if dimension is not None and int(dimension) != vector_size:
            raise ProviderConfigError(
                f"Pinecone index at {self._base_url} has {dimension} dimensions but the embedding provider "
                f"produces {vector_size}. Recreate the index with {vector_size} dimensions or change AI_PROVIDER."
            )
        self.logging.info("Pinecone index ready (%s dimensions).", dimension)
