from shared.clients.embed.EmbedClientInterface import EmbedClientInterface

OPENAI_API_URL = "https://api.openai.com"


class EmbedClientOpenai(EmbedClientInterface):
    """Embeddings from OpenAI or any server speaking its /v1/embeddings dialect."""

    def _get_engine_name(self) -> str:
        return "OpenAI"

    def _get_default_base_url(self) -> str:
        return OPENAI_API_URL

    def _has_credentials(self) -> bool:
        # the hosted API needs a key, self-hosted compatible servers usually don't
        return bool(self.api_key) or self.base_url.rstrip("/") != OPENAI_API_URL

    def get_endpoint_embedding(self) -> str:
        return "/v1/embeddings"

    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts, "encoding_format": "float"}

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Unpack {"data": [{"index": 0, "embedding": [...]}, ...]}.

        The items are reordered by "index" before returning.

        Raises:
            ValueError: If "data" is missing or one of its items carries no vector.
        """
        items = response_data.get("data")
        if not items:
            raise ValueError(f"OpenAI answered without embeddings (keys: {sorted(response_data)}).")
        by_index = {item.get("index", pos): item.get("embedding") for pos, item in enumerate(items)}
        vectors = [by_index[i] for i in sorted(by_index)]
        if not all(vectors):
            raise ValueError("OpenAI answered with an empty embedding.")
        return vectors
