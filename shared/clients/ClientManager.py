from abc import ABC, abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.errors import ProviderConfigError
from shared.helper.HelperConfig import HelperConfig

# AI_PROVIDER value -> engine per capability. huggingface has no hosted chat
# endpoint we stream from, so it generates through Groq's OpenAI-compatible API.
AI_PROVIDER_ENGINES: dict[str, dict[str, str]] = {
    "ollama": {"embed": "ollama", "llm": "ollama"},
    "openai": {"embed": "openai", "llm": "openai"},
    "huggingface": {"embed": "huggingface", "llm": "groq"},
    "groq": {"embed": "huggingface", "llm": "groq"},
}
DEFAULT_AI_PROVIDER = "huggingface"


class ClientManager(ABC):
    """
    Resolves the configured engine of one client type and instantiates its client once.

    Engines are plugins found by naming convention: engine "ollama" of type "embed"
    is class EmbedClientOllama in module shared.clients.embed.ollama.EmbedClientOllama.
    Adding a provider means adding a module, nothing here changes.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    @abstractmethod
    def _get_client_type(self) -> str:
        """Returns the client type, e.g. "embed"."""
        pass

    @abstractmethod
    def _get_class_prefix(self) -> str:
        """Returns the class name prefix, e.g. "EmbedClient"."""
        pass

    def _get_engine_from_env(self) -> str:
        """
        Reads the engine for this client type from ENV configuration.

        An explicit "<TYPE>_ENGINE" wins, otherwise the engine is derived from AI_PROVIDER.

        Returns:
            str: Capitalised engine name (e.g. "Ollama").

        Raises:
            ProviderConfigError: If AI_PROVIDER names an unknown provider.
        """
        client_type = self._get_client_type()
        engine = self.helper_config.get_string_val(f"{client_type.upper()}_ENGINE", default="")
        if not engine:
            provider = self.helper_config.get_string_val("AI_PROVIDER", default=DEFAULT_AI_PROVIDER).strip().lower()
            engines = AI_PROVIDER_ENGINES.get(provider)
            if engines is None or client_type not in engines:
                raise ProviderConfigError(
                    f"Unknown AI_PROVIDER '{provider}'. Supported providers: {', '.join(sorted(AI_PROVIDER_ENGINES))}."
                )
            engine = engines[client_type]

        #lowercase all and uppercase first letter to match the class name
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> ClientInterface:
        """
        Instantiates the client for the configured engine.

        Returns:
            ClientInterface: The client instance.

        Raises:
            ProviderConfigError: If the engine is unsupported, or the client's required
                                 configuration is missing (raised by the client itself).
        """
        engine = self._get_engine_from_env()
        client_type = self._get_client_type()
        class_name = f"{self._get_class_prefix()}{engine}"
        try:
            module = __import__(
                f"shared.clients.{client_type}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ProviderConfigError(
                f"Unsupported {client_type.upper()} engine '{engine.lower()}' (set via {client_type.upper()}_ENGINE or AI_PROVIDER). Error: {e}"
            ) from e

        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated %s client for engine: %s", client_type.upper(), engine)
        return client

    def get_client(self) -> ClientInterface:
        """
        Returns the instantiated client.
        """
        return self.client
