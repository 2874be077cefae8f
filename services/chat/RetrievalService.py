from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorRecord import make_namespace
from shared.errors import NoRelevantContextError
from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import RetrievalResult, SourceItem

RETRIEVAL_TOP_K = 5


class RetrievalService:
    """Finds the passages of one owner's documents that best match a question: embed -> query -> assemble."""

    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client
        self._rag_client = rag_client
        self._top_k = int(helper_config.get_number_val("RETRIEVAL_TOP_K", default=RETRIEVAL_TOP_K))

    ##########################################
    ############### CORE #####################
    ##########################################

    async def do_retrieve(self, owner_id: str, question: str, document_id: str | None = None) -> RetrievalResult:
        """Embed the question and fetch the top-K passages from the owner's namespace.

        Args:
            owner_id (str): The authenticated owner. Only their namespace is searched.
            question (str): The user's question.
            document_id (str | None): Restrict the search to one document.

        Returns:
            RetrievalResult: Sources ordered by descending score and the assembled context.

        Raises:
            NoRelevantContextError: If the index returned no matches.
        """
        self.logging.info(
            "Retrieving top %d passages for owner '%s'%s.",
            self._top_k, owner_id, f" in document '{document_id}'" if document_id else "",
        )
        query_vector = await self._embed_client.do_embed_query(question)
        matches = await self._rag_client.do_query(
            namespace=make_namespace(owner_id),
            vector=query_vector,
            top_k=self._top_k,
            filter={"documentId": document_id} if document_id else None,
        )
        if not matches:
            self.logging.info("No matches for owner '%s'.", owner_id)
            raise NoRelevantContextError()

        matches = sorted(matches, key=lambda match: match.score, reverse=True)
        sources = [
            SourceItem(
                text=match.metadata.text,
                file_name=match.metadata.file_name,
                chunk_index=match.metadata.chunk_index,
                score=match.score,
            )
            for match in matches
        ]
        context = "\n\n".join(
            f"[Source: {source.file_name}, Chunk {source.chunk_index}]\n{source.text}" for source in sources
        )
        self.logging.debug("Retrieved %d passages, best score %.4f.", len(sources), sources[0].score)
        return RetrievalResult(sources=sources, context=context)
