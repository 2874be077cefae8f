from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.errors import UpstreamServiceError
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and embedding config
        self.embed_model = self.get_config_val("MODEL", default=self._get_default_model(), val_type="string")
        self.embed_model_max_chars = helper_config.get_number_val(f"{self.get_client_type().upper()}_MODEL_MAX_CHARS", default=0)
        self._vector_size = int(self.get_config_val("DIMENSIONS", default=self._get_default_vector_size(), val_type="number"))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "embed"

    def get_vector_size(self) -> int:
        """
        Returns the dimensionality of the vectors this provider produces.

        A fixed, provider-declared constant (overridable via EMBED_<ENGINE>_DIMENSIONS
        when a different model is configured), never inferred from a response.
        """
        return self._vector_size

    @abstractmethod
    def _get_default_model(self) -> str:
        """Returns the default embedding model name, e.g. "nomic-embed-text"."""
        pass

    @abstractmethod
    def _get_default_vector_size(self) -> int:
        """Returns the output dimensionality of the default model, e.g. 768."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/api/embed")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict | list:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict | list: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict | list) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Response format differs by backend:
        - Ollama /api/embed: {"embeddings": [[...], [...]]}, already ordered
        - OpenAI-compatible: {"data": [{"embedding": [...], "index": 0}]}, needs sorting
        - HuggingFace feature-extraction: [[...], [...]], already ordered

        Args:
            response_data (dict | list): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            ValueError: If the response format is invalid or embeddings are empty.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Send an embedding request and return the extracted vectors.

        Normalises the input to a list, truncates texts to the model's character
        limit if one is configured, sends the request and checks that every vector
        has the declared dimensionality.

        Args:
            texts (list[str] | str): One or more texts to embed.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the inputs.

        Raises:
            UpstreamServiceError: If the request fails, the response holds no usable
                                  embeddings, or a vector has the wrong dimensionality.
        """
        texts = [texts] if isinstance(texts, str) else texts
        if self.embed_model_max_chars:
            texts = [text[: int(self.embed_model_max_chars)] for text in texts]

        body = self.get_embed_payload(texts)
        response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=body)
        if response.status_code != 200:
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise UpstreamServiceError("Embedding request failed with status %d." % response.status_code)

        try:
            vectors = self.extract_embeddings_from_response(response.json())
        except ValueError as e:
            raise UpstreamServiceError(str(e)) from e

        if len(vectors) != len(texts):
            raise UpstreamServiceError(
                "Embedding backend '%s' returned %d vectors for %d inputs." % (self.get_engine_name(), len(vectors), len(texts))
            )
        for vector in vectors:
            if len(vector) != self.get_vector_size():
                raise UpstreamServiceError(
                    "Embedding backend '%s' returned a %d-dimensional vector, expected %d. "
                    "Set EMBED_%s_DIMENSIONS to match the configured model."
                    % (self.get_engine_name(), len(vector), self.get_vector_size(), self.get_engine_name().upper())
                )
        return vectors

    async def do_embed_query(self, text: str) -> list[float]:
        """Embed a single text (a question or one chunk).

        Args:
            text (str): The text to embed.

        Returns:
            list[float]: The embedding vector.
        """
        vectors = await self.do_embed([text])
        return vectors[0]
