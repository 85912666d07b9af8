import asyncio
import time

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.models.ModelIdentity import ModelIdentity
from shared.helper.HelperConfig import HelperConfig


class EmbedGate:
    """Serializes and throttles every call into the embedding provider.

    Calls pass one at a time through an asyncio.Lock and consecutive calls
    are spaced at least ``60 / EMBED_REQUESTS_PER_MINUTE`` seconds apart.
    Errors from the client propagate unchanged, so rate limit rejections
    reach the caller as EmbedRateLimitError.
    """

    def __init__(self, helper_config: HelperConfig, client: EmbedClientInterface):
        self.logging = helper_config.get_logger()
        self.client = client
        requests_per_minute = helper_config.get_number_val("EMBED_REQUESTS_PER_MINUTE", default=60)
        self.min_interval = 60.0 / requests_per_minute if requests_per_minute > 0 else 0.0
        self._lock = asyncio.Lock()
        self._last_call: float | None = None

    def get_model_identity(self) -> ModelIdentity:
        return self.client.get_model_identity()

    def is_available(self) -> bool:
        return self.client.is_available()

    async def _wait_turn(self) -> None:
        if self._last_call is None or self.min_interval <= 0:
            return
        wait = self._last_call + self.min_interval - time.monotonic()
        if wait > 0:
            self.logging.debug("Embedding gate throttling for %.3fs", wait)
            await asyncio.sleep(wait)

    async def embed(self, text: str) -> list[float]:
        """Embed one document text under the rate limit.

        Returns:
            list[float]: The embedding vector.
        """
        async with self._lock:
            await self._wait_turn()
            try:
                return await self.client.do_embed_query(text)
            finally:
                self._last_call = time.monotonic()

    async def embed_query(self, text: str) -> list[float]:
        """Embed a search query. Shares the budget with document embeddings."""
        return await self.embed(text)
