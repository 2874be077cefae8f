from shared.clients.ClientManager import ClientManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface


class RAGClientManager(ClientManager):
    """
    Manager class to instantiate the configured vector index client.
    """

    def _get_client_type(self) -> str:
        return "rag"

    def _get_class_prefix(self) -> str:
        return "RAGClient"

    def _get_engine_from_env(self) -> str:
        """
        Reads the vector index engine from RAG_ENGINE (default "pinecone").

        Returns:
            str: Capitalised engine name (e.g. "Pinecone").
        """
        engine = self.helper_config.get_string_val("RAG_ENGINE", default="pinecone")
        return engine.strip().lower().capitalize()

    def get_client(self) -> RAGClientInterface:
        """
        Returns the instantiated RAG client.

        Returns:
            RAGClientInterface: The RAG client instance.
        """
        return self.client
