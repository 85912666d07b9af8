from abc import ABC, abstractmethod
from typing import Any, Callable

from shared.models.config import EnvConfig
from shared.helper.HelperConfig import HelperConfig


class ClientInterface(ABC):
    """Base class of every pluggable client (embed, store, corpus).

    Settings of a client live under ``<TYPE>_<ENGINE>_<KEY>``, e.g.
    ``EMBED_OLLAMA_BASE_URL`` or ``CORPUS_FILESYSTEM_ROOT_PATH``. The keys a
    client declares in :meth:`_get_required_config` are checked on construction
    so a misconfigured engine fails before the index is touched.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self._check_required_config()

    def _check_required_config(self) -> None:
        for entry in self._get_required_config():
            self.get_config_val(raw_key=entry.env_key, default=entry.default, val_type=entry.val_type)

    ##########################################
    ############### IDENTITY #################
    ##########################################

    @abstractmethod
    def _get_client_type(self) -> str:
        """E.g. "embed", "store" or "corpus"."""
        pass

    @abstractmethod
    def _get_engine_name(self) -> str:
        """E.g. "ollama", "local" or "filesystem"."""
        pass

    def get_client_type(self) -> str:
        return self._get_client_type().lower()

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    ##########################################
    ################ CONFIG ##################
    ##########################################

    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        pass

    def _config_readers(self) -> dict[str, Callable[..., Any]]:
        return {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """Read ``<TYPE>_<ENGINE>_<raw_key>`` as ``val_type`` ("string", "number", "bool" or "list").

        Raises:
            ValueError: If the value is missing without default, malformed, or the type is unknown.
        """
        reader = self._config_readers().get(val_type)
        if reader is None:
            raise ValueError(f"Unknown value type '{val_type}' requested for '{raw_key}' by the {self.get_client_type()} client '{self.get_engine_name()}'.")
        env_key = "_".join((self.get_client_type(), self.get_engine_name(), raw_key)).upper()
        return reader(env_key, default=default)

    ##########################################
    ############## LIFECYCLE #################
    ##########################################

    async def boot(self) -> None:
        """Acquire the resources the client needs. Nothing to do by default."""
        return None

    async def close(self) -> None:
        return None
