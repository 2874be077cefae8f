from typing import Awaitable, Callable

from services.chat.RetrievalService import RetrievalService
from services.chat.StreamComposer import StreamComposer
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig

SYSTEM_PROMPT = """You are a helpful AI assistant that answers questions based on the provided document context.
- Use the context provided to answer the user's question accurately
- If the context doesn't contain enough information to answer the question, say so
- Cite the source documents when referencing specific information
- Be concise but thorough in your responses
- Format your response in a clear, readable manner"""


class ChatService:
    """Answers one question over the owner's documents: retrieve -> generate -> compose."""

    def __init__(
        self,
        helper_config: HelperConfig,
        retrieval_service: RetrievalService,
        llm_client: LLMClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self._retrieval_service = retrieval_service
        self._llm_client = llm_client

    async def do_chat(
        self,
        owner_id: str,
        question: str,
        document_id: str | None = None,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> StreamComposer:
        """Retrieve context and prepare the answer stream.

        Retrieval completes before anything is streamed, so a missing context is
        still reported with a regular status code. Generation starts lazily when
        the composer's frames are consumed.

        Args:
            owner_id (str): The authenticated owner.
            question (str): The user's question.
            document_id (str | None): Restrict retrieval to one document.
            is_disconnected (Callable | None): Tells whether the client has gone away.

        Returns:
            StreamComposer: Ready to stream content frames and the sources frame.

        Raises:
            NoRelevantContextError: If nothing relevant was found.
        """
        retrieval = await self._retrieval_service.do_retrieve(owner_id, question, document_id)
        fragments = self._llm_client.do_generate(SYSTEM_PROMPT, retrieval.context, question)
        return StreamComposer(
            helper_config=self._helper_config,
            fragments=fragments,
            sources=retrieval.sources,
            is_disconnected=is_disconnected,
        )
