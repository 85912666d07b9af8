"""Environment backed settings for the index service, runner and API server."""

import os
from typing import Any, Callable

from shared.logging.logging_setup import ColorLogger

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


class HelperConfig:
    """Typed access to environment variables.

    Nothing is cached: each getter reads the environment again, so a changed
    INDEX_INCLUSIONS or INDEX_EXCLUSIONS applies to the next event or run.
    Keys are case-insensitive and blank values count as unset.
    """

    def __init__(self, logger: ColorLogger) -> None:
        self._logger = logger

    ##########################################
    ################ HELPER ##################
    ##########################################

    def _read_raw(self, key: str) -> str | None:
        val = os.getenv(key.upper())
        if val is None or not val.strip():
            return None
        return val.strip()

    def _resolve(self, key: str, default: Any, parse: Callable[[str], Any]) -> Any:
        """Parse the variable, fall back to ``default`` or fail when neither exists."""
        raw = self._read_raw(key)
        if raw is not None:
            return parse(raw)
        if default is None:
            raise ValueError(f"Environment variable '{key.upper()}' is not set.")
        return default

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """
        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        return self._resolve(key, default, lambda raw: raw)

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read an int ("42") or a float ("0.25").

        Raises:
            ValueError: If the variable is missing without default or is not a number.
        """

        def _parse(raw: str) -> float | int:
            try:
                return float(raw) if any(c in raw for c in ".eE") else int(raw)
            except ValueError:
                raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

        return self._resolve(key, default, _parse)

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a flag. Accepts true/false, 1/0, yes/no and on/off.

        Raises:
            ValueError: If the variable is missing without default or is not a flag.
        """

        def _parse(raw: str) -> bool:
            lowered = raw.lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
            raise ValueError(f"Environment variable '{key.upper()}' is not a boolean: '{raw}'.")

        return self._resolve(key, default, _parse)

    def get_list_val(self, key: str, default: list | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a list written as "[elem1,elem2,...]". Empty elements are dropped.

        Raises:
            ValueError: If the variable is missing without default, is not bracketed,
                or an element cannot be cast to ``element_type``.
        """

        def _parse(raw: str) -> list:
            if not (raw.startswith("[") and raw.endswith("]")):
                raise ValueError(f"Environment variable '{key.upper()}' must look like '[a{separator}b]'. Got: '{raw}'")
            try:
                return [element_type(part.strip()) for part in raw[1:-1].split(separator) if part.strip()]
            except ValueError as e:
                raise ValueError(f"Environment variable '{key.upper()}' has an element that is not {element_type.__name__}: {e}")

        return self._resolve(key, default, _parse)

    def get_logger(self) -> ColorLogger:
        return self._logger
