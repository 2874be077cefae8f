from abc import abstractmethod

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.VectorRecord import QueryMatch, UpsertResult, VectorRecord, make_vector_id
from shared.errors import UpstreamServiceError
from shared.helper.HelperConfig import HelperConfig

UPSERT_BATCH_SIZE = 100     # max records per upsert call
DELETE_BATCH_SIZE = 1000    # max ids per delete call
LIST_TOP_K_CEILING = 10000  # max ids discovered by the zero-vector listing fallback


class RAGClientInterface(ClientInterface):
    """Vector index client. Every request method is scoped to exactly one namespace."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._vector_size: int | None = None

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def _check_namespace(self, namespace: str) -> None:
        """Namespaces are mandatory. An empty one would address the whole index."""
        if not namespace or not namespace.strip():
            raise ValueError("A namespace is required for every vector index operation.")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    def get_vector_size(self) -> int | None:
        """Returns the vector dimensionality registered by do_ensure_index(), if any."""
        return self._vector_size

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_upsert(self) -> str:
        """Returns the endpoint path for upsert requests (e.g. "/vectors/upsert")."""
        pass

    @abstractmethod
    def _get_endpoint_query(self) -> str:
        """Returns the endpoint path for similarity queries (e.g. "/query")."""
        pass

    @abstractmethod
    def _get_endpoint_delete(self) -> str:
        """Returns the endpoint path for deleting vectors by id (e.g. "/vectors/delete")."""
        pass

    def _get_upsert_method(self) -> str:
        return "POST"

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_upsert_payload(self, namespace: str, records: list[VectorRecord]) -> dict:
        """
        Builds the backend-specific request payload for upserting one batch of records.

        Args:
            namespace (str): The owner namespace to write into.
            records (list[VectorRecord]): At most UPSERT_BATCH_SIZE records.

        Returns:
            dict: The payload for the upsert request.
        """
        pass

    @abstractmethod
    def get_query_payload(self, namespace: str, vector: list[float], top_k: int, filter: dict[str, str] | None) -> dict:
        """
        Builds the backend-specific request payload for a top-K similarity query.

        Args:
            namespace (str): The owner namespace to search.
            vector (list[float]): The query vector.
            top_k (int): Maximum number of matches.
            filter (dict[str, str] | None): Equality conditions on metadata keys (e.g. {"documentId": "..."}).

        Returns:
            dict: The payload for the query request.
        """
        pass

    @abstractmethod
    def get_delete_payload(self, namespace: str, ids: list[str]) -> dict:
        """
        Builds the backend-specific request payload for deleting one batch of vector ids.

        Args:
            namespace (str): The owner namespace to delete from.
            ids (list[str]): At most DELETE_BATCH_SIZE vector ids.

        Returns:
            dict: The payload for the delete request.
        """
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def extract_query_matches(self, raw_response: dict) -> list[QueryMatch]:
        """
        Extracts the matches from a raw query response.

        Args:
            raw_response (dict): The raw JSON response from the query endpoint.

        Returns:
            list[QueryMatch]: The matches with vector id, score and metadata.
        """
        pass

    def _is_delete_success(self, response: httpx.Response) -> bool:
        """Whether a delete response counts as success. Deleting missing ids is never an error."""
        return response.is_success

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_ensure_index(self, vector_size: int) -> None:
        """Prepare the index for vectors of the given dimensionality and remember it.

        Args:
            vector_size (int): Dimensionality of the configured embedding provider.
        """
        self._vector_size = vector_size
        await self._do_prepare_index(vector_size)

    @abstractmethod
    async def _do_prepare_index(self, vector_size: int) -> None:
        """Backend-specific preparation: create or verify the collection/index."""
        pass

    async def do_upsert(self, namespace: str, records: list[VectorRecord]) -> UpsertResult:
        """Insert or overwrite records in a namespace, in sequential batches.

        Re-upserting a record with the same id overwrites it. Batches are sent one
        after another; the first failing batch aborts the upsert.

        Args:
            namespace (str): The owner namespace.
            records (list[VectorRecord]): The records to write.

        Returns:
            UpsertResult: Number of records and batches written.

        Raises:
            UpstreamServiceError: On the first failing batch. completed/total report how
                                  many batches were written before the failure.
        """
        self._check_namespace(namespace)
        batches = [records[i: i + UPSERT_BATCH_SIZE] for i in range(0, len(records), UPSERT_BATCH_SIZE)]
        upserted = 0
        for batch_no, batch in enumerate(batches):
            try:
                await self.do_request(
                    method=self._get_upsert_method(),
                    json=self.get_upsert_payload(namespace, batch),
                    endpoint=self._get_endpoint_upsert(),
                    raise_on_error=True,
                )
            except UpstreamServiceError as e:
                self.logging.error(
                    "Upsert into namespace '%s' failed at batch %d of %d (%d of %d records written): %s",
                    namespace, batch_no + 1, len(batches), upserted, len(records), e,
                )
                raise UpstreamServiceError(
                    f"Vector upsert failed at batch {batch_no + 1} of {len(batches)} "
                    f"after {upserted} of {len(records)} records were written: {e.message}",
                    completed=batch_no,
                    total=len(batches),
                ) from e
            upserted += len(batch)

        self.logging.debug("Upserted %d records into namespace '%s' in %d batches.", upserted, namespace, len(batches))
        return UpsertResult(upserted=upserted, batches=len(batches))

    async def do_query(self, namespace: str, vector: list[float], top_k: int, filter: dict[str, str] | None = None) -> list[QueryMatch]:
        """Return up to top_k nearest records of a namespace, best first.

        An empty or unknown namespace yields an empty list, not an error.

        Args:
            namespace (str): The owner namespace.
            vector (list[float]): The query vector.
            top_k (int): Maximum number of matches.
            filter (dict[str, str] | None): Optional equality conditions on metadata keys.

        Returns:
            list[QueryMatch]: Matches ordered by descending score.

        Raises:
            UpstreamServiceError: If the query request fails.
        """
        self._check_namespace(namespace)
        if top_k <= 0:
            return []
        response = await self.do_request(
            method="POST",
            json=self.get_query_payload(namespace, vector, top_k, filter),
            endpoint=self._get_endpoint_query(),
            raise_on_error=True,
        )
        matches = self.extract_query_matches(response.json())
        return sorted(matches, key=lambda match: match.score, reverse=True)[:top_k]

    async def do_delete(self, namespace: str, ids: list[str]) -> int:
        """Delete vectors by id from a namespace, in sequential batches.

        Idempotent: deleting ids that do not exist is not an error.

        Args:
            namespace (str): The owner namespace.
            ids (list[str]): The vector ids to delete.

        Returns:
            int: Number of ids submitted for deletion.

        Raises:
            UpstreamServiceError: On the first failing batch, reporting completed batches.
        """
        self._check_namespace(namespace)
        batches = [ids[i: i + DELETE_BATCH_SIZE] for i in range(0, len(ids), DELETE_BATCH_SIZE)]
        deleted = 0
        for batch_no, batch in enumerate(batches):
            response = await self.do_request(
                method="POST",
                json=self.get_delete_payload(namespace, batch),
                endpoint=self._get_endpoint_delete(),
            )
            if not self._is_delete_success(response):
                self.logging.error(
                    "Delete from namespace '%s' failed at batch %d of %d with status %d: %s",
                    namespace, batch_no + 1, len(batches), response.status_code, response.text[:200],
                )
                raise UpstreamServiceError(
                    f"Vector delete failed at batch {batch_no + 1} of {len(batches)} "
                    f"with status {response.status_code} after {deleted} of {len(ids)} ids were deleted",
                    completed=batch_no,
                    total=len(batches),
                )
            deleted += len(batch)
        return deleted

    async def do_list_document_vector_ids(self, namespace: str, document_id: str) -> list[str]:
        """Discover the vector ids of one document without knowing its chunk count.

        Default strategy: a zero-vector query filtered on documentId, bounded by
        LIST_TOP_K_CEILING. Documents with more vectors than the ceiling are only
        partially discovered. Backends with a real listing primitive override this.

        Args:
            namespace (str): The owner namespace.
            document_id (str): The document whose vectors to list.

        Returns:
            list[str]: The discovered vector ids.

        Raises:
            RuntimeError: If do_ensure_index() was never called, so the vector size is unknown.
        """
        if self._vector_size is None:
            raise RuntimeError("Vector size unknown. Call do_ensure_index() before listing vectors.")
        matches = await self.do_query(
            namespace=namespace,
            vector=[0.0] * self._vector_size,
            top_k=LIST_TOP_K_CEILING,
            filter={"documentId": document_id},
        )
        if len(matches) >= LIST_TOP_K_CEILING:
            self.logging.warning(
                "Listing vectors of document '%s' hit the ceiling of %d ids. Some vectors may remain in namespace '%s'.",
                document_id, LIST_TOP_K_CEILING, namespace,
            )
        return [match.id for match in matches]

    async def do_delete_by_document(self, namespace: str, document_id: str, known_chunk_count: int | None = None) -> int:
        """Delete every vector of one document.

        With a known chunk count the ids are rebuilt deterministically and deleted
        without a read. Otherwise they are discovered via do_list_document_vector_ids().

        Args:
            namespace (str): The owner namespace.
            document_id (str): The document to remove.
            known_chunk_count (int | None): Chunk count from the document registry.

        Returns:
            int: Number of ids submitted for deletion.
        """
        if known_chunk_count:
            ids = [make_vector_id(document_id, index) for index in range(known_chunk_count)]
        else:
            self.logging.info(
                "Chunk count of document '%s' unknown, listing its vectors in namespace '%s'.", document_id, namespace
            )
            ids = await self.do_list_document_vector_ids(namespace, document_id)
        if not ids:
            return 0
        deleted = await self.do_delete(namespace, ids)
        self.logging.info("Deleted %d vectors of document '%s' from namespace '%s'.", deleted, document_id, namespace)
        return deleted
