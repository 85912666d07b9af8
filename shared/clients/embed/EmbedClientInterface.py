from abc import abstractmethod
import json

import httpx

from shared.clients.HttpClientInterface import HttpClientInterface
from shared.clients.embed.EmbedErrors import (
    DEFAULT_RATE_LIMIT_MESSAGE,
    EmbedClientError,
    EmbedRateLimitError,
    EmbedUnavailableError,
)
from shared.clients.embed.models.ModelIdentity import ModelIdentity
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(HttpClientInterface):
    """Turns texts into vectors through a provider's HTTP embedding API.

    Shared settings: EMBED_MODEL (unset means embeddings are unavailable) and
    EMBED_MODEL_MAX_CHARS (0 disables truncation). Failures surface as the
    errors of :mod:`shared.clients.embed.EmbedErrors`.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.embed_model = helper_config.get_string_val("EMBED_MODEL", default="")
        self.embed_model_max_chars = int(helper_config.get_number_val("EMBED_MODEL_MAX_CHARS", default=0))

    def _get_client_type(self) -> str:
        return "embed"

    def is_available(self) -> bool:
        return bool(self.embed_model and self.base_url) and self._has_credentials()

    def _has_credentials(self) -> bool:
        return True

    def get_model_identity(self) -> ModelIdentity:
        return ModelIdentity(name=self.embed_model, provider=self.get_engine_name())

    ##########################################
    ############## PROVIDER API ##############
    ##########################################

    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        pass

    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Request body for embedding ``texts`` with the configured model."""
        pass

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Vectors of a successful response, in the order of the input texts.

        Raises:
            ValueError: If the body holds no usable embeddings.
        """
        pass

    ##########################################
    ############ ERROR HANDLING ##############
    ##########################################

    @staticmethod
    def _provider_message(response: httpx.Response) -> str | None:
        # {"error": {"message": ...}}, {"error": "..."} or {"message": ...}
        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError):
            return None
        if not isinstance(body, dict):
            return None
        error = body.get("error")
        if isinstance(error, dict):
            error = error.get("message")
        candidate = error or body.get("message")
        return str(candidate) if candidate else None

    def _check_response(self, response: httpx.Response) -> None:
        """
        Raises:
            EmbedRateLimitError: On status 429 or a body reporting a rate limit.
            EmbedClientError: On any other non-200 status.
        """
        status = response.status_code
        if status == 200:
            return
        message = self._provider_message(response)
        if status == 429 or "rate limit" in (message or "").lower():
            self.logging.warning("Rate limited by %s (status %d).", self.get_engine_name(), status)
            raise EmbedRateLimitError(message or DEFAULT_RATE_LIMIT_MESSAGE, status_code=status)
        self.logging.error("Embedding request to %s failed with %d: %s", self.get_engine_name(), status, response.text[:200])
        raise EmbedClientError(f"Embedding request failed with status {status}: {message or 'no details'}", status_code=status)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Embed one or more texts, each cut to EMBED_MODEL_MAX_CHARS first.

        Raises:
            EmbedUnavailableError: If no model or credentials are configured.
            EmbedRateLimitError: If the provider refuses with a rate limit.
            EmbedClientError: If the request fails or the answer is unusable.
        """
        if not self.is_available():
            raise EmbedUnavailableError(f"Embedding engine '{self.get_engine_name()}' has no model or credentials configured.")
        batch = [texts] if isinstance(texts, str) else list(texts)
        limit = self.embed_model_max_chars
        payload = self.get_embed_payload([t[:limit] if limit else t for t in batch])
        try:
            response = await self.do_request("POST", self.get_endpoint_embedding(), json=payload)
        except httpx.HTTPError as e:
            raise EmbedClientError(f"Embedding request to {self.get_engine_name()} failed: {e}") from e
        self._check_response(response)
        try:
            vectors = self.extract_embeddings_from_response(response.json())
        except ValueError as e:
            raise EmbedClientError(str(e), status_code=response.status_code) from e
        if len(vectors) != len(batch):
            raise EmbedClientError(f"Expected {len(batch)} embeddings, got {len(vectors)}.")
        return vectors

    async def do_embed_query(self, text: str) -> list[float]:
        vectors = await self.do_embed([text])
        return vectors[0]
