from shared.clients.ClientManager import ClientManager
from shared.clients.llm.LLMClientInterface import LLMClientInterface


class LLMClientManager(ClientManager):
    """Manager class to instantiate the configured LLM client."""

    def _get_client_type(self) -> str:
        return "llm"

    def _get_class_prefix(self) -> str:
        return "LLMClient"

    def get_client(self) -> LLMClientInterface:
        """Return the instantiated LLM client."""
        return self.client
