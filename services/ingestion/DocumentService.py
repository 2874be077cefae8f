"""Document service.

Ingests decoded document text into the owner's namespace of the vector
index (chunk -> embed -> upsert -> register), lists an owner's documents
and removes them again.
"""

import asyncio
import uuid
from datetime import datetime, timezone

from services.ingestion.TextSplitter import CHUNK_OVERLAP, CHUNK_SIZE, TextSplitter
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorRecord import VectorRecord, make_namespace
from shared.errors import UpstreamServiceError, ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Chunk, Document
from shared.storage.DocumentRegistryInterface import DocumentRegistryInterface

EMBED_CONCURRENCY = 5   # max parallel embedding requests per document
EMPTY_DOCUMENT_MESSAGE = "File appears to be empty or could not be parsed"


class DocumentService:
    """Owns the document lifecycle across vector index and registry."""

    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
        registry: DocumentRegistryInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client
        self._rag_client = rag_client
        self._registry = registry
        self._splitter = TextSplitter(
            chunk_size=int(helper_config.get_number_val("CHUNK_SIZE", default=CHUNK_SIZE)),
            chunk_overlap=int(helper_config.get_number_val("CHUNK_OVERLAP", default=CHUNK_OVERLAP)),
        )
        self._embed_concurrency = max(1, int(helper_config.get_number_val("EMBED_CONCURRENCY", default=EMBED_CONCURRENCY)))

    ##########################################
    ############### INGESTION ################
    ##########################################

    async def do_ingest(self, owner_id: str, file_name: str, file_type: str, raw_text: str) -> Document:
        """Chunk, embed and index a document, then register it.

        The document only appears in the registry once all of its vectors were
        written. If the upsert or the registration fails, the vectors written so
        far are removed again (best effort) and the error is re-raised.

        Args:
            owner_id (str): The authenticated owner.
            file_name (str): Original file name, kept for citations.
            file_type (str): Declared MIME type of the upload.
            raw_text (str): The decoded document text.

        Returns:
            Document: The registered document.

        Raises:
            ValidationError: If the text is empty or yields no chunks.
            UpstreamServiceError: If embedding or indexing fails.
        """
        if not raw_text or not raw_text.strip():
            raise ValidationError(EMPTY_DOCUMENT_MESSAGE)

        document_id = str(uuid.uuid4())
        chunks = self._splitter.create_chunks(raw_text, document_id=document_id, owner_id=owner_id, file_name=file_name)
        if not chunks:
            raise ValidationError(EMPTY_DOCUMENT_MESSAGE)
        self.logging.info("Ingesting '%s' for owner '%s': %d chunks.", file_name, owner_id, len(chunks))

        embeddings = await self._embed_chunks(chunks)
        records = [VectorRecord.from_chunk(chunk, embedding) for chunk, embedding in zip(chunks, embeddings)]

        namespace = make_namespace(owner_id)
        try:
            await self._rag_client.do_upsert(namespace, records)
        except UpstreamServiceError:
            await self._remove_indexed_vectors(namespace, document_id, len(chunks))
            raise

        document = Document(
            id=document_id,
            owner_id=owner_id,
            file_name=file_name,
            file_type=file_type,
            uploaded_at=datetime.now(timezone.utc),
            chunk_count=len(chunks),
        )
        try:
            await self._registry.do_add(document)
        except Exception:
            # an unregistered document must not keep vectors
            await self._remove_indexed_vectors(namespace, document_id, len(chunks))
            raise
        self.logging.info(
            "Ingested document id=%s ('%s'): %d chunks indexed.", document_id, file_name, len(chunks), color="green"
        )
        return document

    async def _embed_chunks(self, chunks: list[Chunk]) -> list[list[float]]:
        """Embed every chunk with bounded parallelism. Results keep chunk order.

        The first failure cancels all embedding requests still in flight.
        """
        sem = asyncio.Semaphore(self._embed_concurrency)

        async def _embed_one(chunk: Chunk) -> list[float]:
            async with sem:
                return await self._embed_client.do_embed_query(chunk.text)

        tasks = [asyncio.create_task(_embed_one(chunk)) for chunk in chunks]
        try:
            return await asyncio.gather(*tasks)
        except UpstreamServiceError as e:
            self.logging.error("Embedding failed for document id=%s: %s", chunks[0].document_id, e)
            raise
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
                self.logging.debug("Cancelled %d pending embedding requests.", len(pending))

    async def _remove_indexed_vectors(self, namespace: str, document_id: str, chunk_count: int) -> None:
        try:
            await self._rag_client.do_delete_by_document(namespace, document_id, known_chunk_count=chunk_count)
            self.logging.info("Removed indexed vectors of unregistered document id=%s.", document_id)
        except Exception as e:
            self.logging.error("Removing vectors of unregistered document id=%s failed: %s", document_id, e)

    ##########################################
    ################ LISTING #################
    ##########################################

    async def do_list_documents(self, owner_id: str) -> list[Document]:
        """Returns the owner's documents, newest first."""
        return await self._registry.do_list(owner_id)

    ##########################################
    ################ DELETION ################
    ##########################################

    async def do_delete_document(self, owner_id: str, document_id: str) -> None:
        """Remove a document's vectors and its registry entry.

        Vector-side failures are logged and swallowed so the registry entry is
        removed regardless. Deleting an unknown document succeeds.

        Args:
            owner_id (str): The authenticated owner.
            document_id (str): The document to remove.
        """
        document = await self._registry.do_get(owner_id, document_id)
        chunk_count = document.chunk_count if document else None

        try:
            await self._rag_client.do_delete_by_document(
                make_namespace(owner_id), document_id, known_chunk_count=chunk_count
            )
        except Exception as e:
            self.logging.error("Deleting vectors of document id=%s failed: %s", document_id, e)

        removed = await self._registry.do_delete(owner_id, document_id)
        self.logging.info(
            "Deleted document id=%s of owner '%s'%s.", document_id, owner_id, "" if removed else " (not registered)"
        )
