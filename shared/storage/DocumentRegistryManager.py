from shared.errors import ProviderConfigError
from shared.helper.HelperConfig import HelperConfig
from shared.storage.DocumentRegistryInterface import DocumentRegistryInterface


class DocumentRegistryManager:
    """
    Manager class to instantiate the configured document registry backend.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.registry = self._initialize_registry()

    def _get_engine_from_env(self) -> str:
        """
        Reads the registry backend from REGISTRY_ENGINE (default "memory").

        Returns:
            str: Capitalised engine name (e.g. "Memory").
        """
        engine = self.helper_config.get_string_val("REGISTRY_ENGINE", default="memory")
        return engine.strip().lower().capitalize()

    def _initialize_registry(self) -> DocumentRegistryInterface:
        engine = self._get_engine_from_env()
        class_name = f"DocumentRegistry{engine}"
        try:
            module = __import__(f"shared.storage.{engine.lower()}.{class_name}", fromlist=[class_name])
            registry_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ProviderConfigError(f"Unsupported REGISTRY_ENGINE '{engine.lower()}'. Error: {e}") from e

        self.logging.debug("Instantiated document registry for engine: %s", engine)
        return registry_class(helper_config=self.helper_config)

    def get_registry(self) -> DocumentRegistryInterface:
        """
        Returns the instantiated registry.
        """
        return self.registry
