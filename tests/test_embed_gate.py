import asyncio
import time

import pytest

from shared.clients.embed.EmbedErrors import EmbedRateLimitError
from shared.clients.embed.EmbedGate import EmbedGate


class TestEmbedGate:
    @pytest.mark.asyncio
    async def test_calls_are_spaced_by_budget(self, helper_config, embed_client, monkeypatch):
        monkeypatch.setenv("EMBED_REQUESTS_PER_MINUTE", "600")
        gate = EmbedGate(helper_config, embed_client)
        assert gate.min_interval == pytest.approx(0.1)

        started = time.monotonic()
        await asyncio.gather(gate.embed("a"), gate.embed("b"), gate.embed("c"))
        assert time.monotonic() - started >= 0.19
        assert sorted(embed_client.calls) == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_unthrottled_when_budget_is_zero(self, helper_config, embed_client):
        gate = EmbedGate(helper_config, embed_client)
        assert gate.min_interval == 0.0
        vector = await gate.embed("x")
        assert len(vector) == embed_client.dimension

    @pytest.mark.asyncio
    async def test_errors_propagate(self, helper_config, embed_client):
        embed_client.failures["boom"] = EmbedRateLimitError("slow down")
        gate = EmbedGate(helper_config, embed_client)
        with pytest.raises(EmbedRateLimitError):
            await gate.embed("boom")
        # the gate is released after a failure
        assert await gate.embed("fine")
