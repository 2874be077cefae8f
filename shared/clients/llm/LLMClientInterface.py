from abc import abstractmethod
from typing import AsyncIterator

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import Message


class LLMClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # chat / completion config
        self.chat_model = self.get_config_val("MODEL", default=self._get_default_model(), val_type="string")
        self.temperature = float(helper_config.get_number_val(f"{self.get_client_type().upper()}_TEMPERATURE", default=0.7))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    @abstractmethod
    def _get_default_model(self) -> str:
        """Returns the default chat model name, e.g. "llama3.2:3b"."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        """Returns the endpoint path for chat/completion requests (e.g. "/api/chat")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_chat_payload(self, messages: list[dict]) -> dict:
        """Build the backend-specific request body for a streaming chat request.

        Args:
            messages (list[dict]): OpenAI-format messages
                (e.g. [{"role": "user", "content": "..."}]).

        Returns:
            dict: JSON-serialisable request body with streaming enabled.
        """
        pass

    def build_messages(self, system_prompt: str, context: str, question: str) -> list[Message]:
        """Build the single-exchange message list sent to the model.

        Args:
            system_prompt (str): Instructions for the assistant.
            context (str): Retrieved passages, each prefixed with its source.
            question (str): The user's question.

        Returns:
            list[Message]: System message followed by one user message.
        """
        return [
            Message(role="system", content=system_prompt),
            Message(role="user", content=f"Context from documents:\n{context}\n\nUser question: {question}"),
        ]

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_stream_fragment(self, line: str) -> str | None:
        """Extract the text fragment carried by one line of a streamed chat response.

        Stream format differs by backend:
        - Ollama /api/chat: NDJSON, {"message": {"content": "..."}, "done": false}
        - OpenAI-compatible: SSE, "data: {"choices": [{"delta": {"content": "..."}}]}"
          terminated by "data: [DONE]"

        Args:
            line (str): One non-empty line of the response body.

        Returns:
            str | None: The fragment text ("" for lines without content), or None
                        when the line marks the end of the stream.

        Raises:
            ValueError: If the line cannot be parsed or carries a backend error.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_chat_stream(self, messages: list[dict]) -> AsyncIterator[str]:
        """Send a streaming chat request and yield text fragments as they arrive.

        Lazy: nothing is sent until the first fragment is requested. Closing the
        generator closes the upstream HTTP response.

        Args:
            messages (list[dict]): OpenAI-format messages.

        Yields:
            str: Text fragments in arrival order (may be empty strings).

        Raises:
            UpstreamServiceError: If the request fails.
            ValueError: If a streamed line cannot be parsed.
        """
        lines = self.do_stream_lines(
            method="POST",
            json=self.get_chat_payload(messages),
            endpoint=self._get_endpoint_chat(),
        )
        try:
            async for line in lines:
                fragment = self.extract_stream_fragment(line)
                if fragment is None:
                    break
                yield fragment
        finally:
            await lines.aclose()

    async def do_generate(self, system_prompt: str, context: str, question: str) -> AsyncIterator[str]:
        """Generate an answer to a question, grounded on retrieved context, as a lazy fragment stream.

        Args:
            system_prompt (str): Instructions for the assistant.
            context (str): Retrieved passages.
            question (str): The user's question.

        Yields:
            str: Text fragments in arrival order.
        """
        messages = [message.model_dump(include={"role", "content"}) for message in self.build_messages(system_prompt, context, question)]
        self.logging.debug("Generating with %s model '%s'", self.get_engine_name(), self.chat_model)
        stream = self.do_chat_stream(messages)
        try:
            async for fragment in stream:
                yield fragment
        finally:
            await stream.aclose()
