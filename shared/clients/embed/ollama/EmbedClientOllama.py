from shared.clients.embed.EmbedClientInterface import EmbedClientInterface


class EmbedClientOllama(EmbedClientInterface):
    """Embeddings from a local or remote Ollama server via POST /api/embed."""

    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_default_base_url(self) -> str:
        return "http://localhost:11434"

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        # {"model": ..., "embeddings": [[...], ...]} in input order
        vectors = response_data.get("embeddings") or []
        if not vectors or not all(vectors):
            raise ValueError(f"Ollama answered without embeddings (keys: {sorted(response_data)}).")
        return vectors
