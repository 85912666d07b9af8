from abc import ABC, abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class ClientManager(ABC):
    """
    Loads the client implementation selected by ``<TYPE>_ENGINE``.

    The class is imported from ``shared.clients.<type>.<engine>.<Type>Client<Engine>``,
    so adding a backend only needs a new module at that location.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    @abstractmethod
    def _get_client_type(self) -> str:
        """Returns the client type as used in module and class names. E.g. "Embed"."""
        pass

    def _get_default_engine(self) -> str | None:
        """Engine used when ``<TYPE>_ENGINE`` is unset. None makes the variable required."""
        return None

    def _get_engine_from_env(self) -> str:
        """
        Reads the engine from ENV configuration.

        Returns:
            str: The engine name with its first letter uppercased, e.g. "Ollama".

        Raises:
            ValueError: If no engine is specified in the configuration.
        """
        client_type = self._get_client_type()
        engine = self.helper_config.get_string_val(f"{client_type.upper()}_ENGINE", default=self._get_default_engine())
        if not engine:
            raise ValueError(f"No {client_type} engine specified in configuration.")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> ClientInterface:
        """
        Imports and instantiates the client for the configured engine.

        Raises:
            ValueError: If the engine has no implementation.
        """
        client_type = self._get_client_type()
        engine = self._get_engine_from_env()
        class_name = f"{client_type}Client{engine}"
        try:
            module = __import__(
                f"shared.clients.{client_type.lower()}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported {client_type} engine specified: '{engine}'. Error: {e}")
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated %s client for engine: %s", client_type, engine)
        return client

    def get_client(self) -> ClientInterface:
        """
        Returns the instantiated client.
        """
        return self.client
