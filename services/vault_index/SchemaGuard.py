"""Checks that the store fits the configured embedding provider before any indexing runs."""

from shared.clients.embed.EmbedErrors import EmbedClientError, is_rate_limit_error
from shared.clients.embed.models.ModelIdentity import ModelIdentity
from shared.clients.store.models.StoreSchema import StoreSchema
from services.vault_index.IndexContext import IndexContext
from services.vault_index.IndexErrors import SchemaProbeError

PROBE_TEXT = "Sample text for embedding"


class SchemaGuard:
    """Detects dimension and model changes and rebuilds the store on either.

    The two checks are independent: two models with the same vector length
    pass the dimension check but fail the model check. Callers hold
    ``context.run_lock`` while a rebuild can happen.
    """

    def __init__(self, context: IndexContext) -> None:
        self.logging = context.helper_config.get_logger()
        self._context = context

    async def do_probe_vector_length(self) -> int:
        """Embed the probe string once and return the vector length.

        Raises:
            EmbedRateLimitError: If the provider rate limits the probe.
            SchemaProbeError: If the probe fails otherwise or returns an empty vector.
        """
        try:
            vector = await self._context.gate.embed(PROBE_TEXT)
        except Exception as e:
            if is_rate_limit_error(e):
                raise
            if not isinstance(e, (EmbedClientError, OSError, ValueError)):
                self.logging.exception("Unexpected error during probe embedding")
            raise SchemaProbeError(f"Probe embedding failed: {e}") from e
        if not vector:
            raise SchemaProbeError("Probe embedding returned a zero-length vector.")
        self.logging.debug("Probe vector length: %d", len(vector))
        return len(vector)

    def ensure_correct_schema(self, vector_length: int) -> bool:
        """Rebuild the store if its schema dimension differs from ``vector_length``.

        Returns:
            bool: True if the store was (re)created.
        """
        store = self._context.store
        if store is None:
            self.logging.info("No index found. Creating a new one with vector length %d.", vector_length)
            self._context.replace_store(StoreSchema(vector_length=vector_length))
            return True
        if store.vector_length != vector_length:
            self.logging.info(
                "Embedding dimension changed from %d to %d. Rebuilding the index from scratch.",
                store.vector_length, vector_length, color="cyan",
            )
            self._context.replace_store(StoreSchema(vector_length=vector_length))
            return True
        return False

    def has_model_changed(self) -> bool:
        """Compare a sampled record's model with the configured one. No provider call."""
        store = self._context.store
        sample = store.sample() if store is not None else None
        if sample is None or not sample.embedding_model:
            self.logging.debug("No previous embedding model found in the index.")
            return False
        previous = ModelIdentity.from_key(sample.embedding_model)
        current = self._context.gate.get_model_identity()
        return not previous.is_equivalent(current)

    async def check_and_handle_embedding_model_change(self) -> bool:
        """Rebuild the store empty when the sampled record was embedded by another model.

        Returns:
            bool: True if the store was rebuilt and a full reindex is required.
        """
        if not self.has_model_changed():
            return False
        store = self._context.store
        self.logging.info(
            "New embedding model detected (%s, was %s). Rebuilding the index from scratch.",
            self._context.gate.get_model_identity().to_key(),
            store.sample().embedding_model,
            color="cyan",
        )
        self._context.replace_store(StoreSchema(vector_length=store.vector_length))
        await self._context.do_persist()
        return True
