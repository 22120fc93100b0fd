"""Tests for token decimals resolution."""

import asyncio
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from agent_swap.cache import LookupCache
from agent_swap.core.errors import TransportError
from agent_swap.core.tokens import (
    DecimalsSource,
    JupiterTokenListSource,
    JupiterTokenSource,
    MintAccountSource,
    TokenMetadataResolver,
)

MINT = "7GCihgDB8fe6KNjn2MYtkzZcRjQy3t9GHdC8uHYmW2hr"


class StubSource(DecimalsSource):
    def __init__(self, name: str, result: Optional[object] = None, error: Optional[Exception] = None):
        self.name = name
        self._result = result
        self._error = error
        self.calls = 0

    async def lookup(self, mint: str):
        self.calls += 1
        if self._error is not None:
            raise self._error
        return self._result


class TestTokenMetadataResolver:

    @pytest.mark.asyncio
    async def test_first_answer_wins(self):
        first = StubSource("first", result=9)
        second = StubSource("second", result=6)
        resolver = TokenMetadataResolver([first, second])

        assert await resolver.resolve_decimals(MINT) == 9
        assert second.calls == 0

    @pytest.mark.asyncio
    async def test_failing_source_is_skipped(self):
        broken = StubSource("broken", error=TransportError("timeout", provider="jupiter"))
        empty = StubSource("empty", result=None)
        rpc = StubSource("rpc", result=5)
        resolver = TokenMetadataResolver([broken, empty, rpc])

        assert await resolver.resolve_decimals(MINT) == 5
        assert broken.calls == empty.calls == rpc.calls == 1

    @pytest.mark.asyncio
    async def test_defaults_when_every_source_fails(self):
        resolver = TokenMetadataResolver(
            [StubSource("a", error=RuntimeError("down")), StubSource("b", result=None)],
        )

        assert await resolver.resolve_decimals(MINT) == 6

    @pytest.mark.asyncio
    async def test_configured_default(self):
        resolver = TokenMetadataResolver([StubSource("a")], default_decimals=8)

        assert await resolver.resolve_decimals(MINT) == 8

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad", [-1, 256, "six", True])
    async def test_invalid_values_are_ignored(self, bad):
        resolver = TokenMetadataResolver([StubSource("bad", result=bad), StubSource("good", result=4)])

        assert await resolver.resolve_decimals(MINT) == 4

    @pytest.mark.asyncio
    async def test_numeric_string_is_accepted(self):
        resolver = TokenMetadataResolver([StubSource("a", result="9")])

        assert await resolver.resolve_decimals(MINT) == 9

    @pytest.mark.asyncio
    async def test_cache_shares_one_lookup(self):
        source = StubSource("a", result=9)
        resolver = TokenMetadataResolver([source])
        cache = LookupCache()

        results = await asyncio.gather(
            resolver.resolve_decimals(MINT, cache),
            resolver.resolve_decimals(MINT, cache),
            resolver.resolve_decimals(MINT, cache),
        )

        assert results == [9, 9, 9]
        assert source.calls == 1


class TestDecimalsSources:

    @pytest.mark.asyncio
    async def test_jupiter_token_source(self):
        jupiter = MagicMock()
        jupiter.get_token = AsyncMock(return_value={"address": MINT, "decimals": 6})

        assert await JupiterTokenSource(jupiter).lookup(MINT) == 6
        jupiter.get_token.assert_awaited_once_with(MINT)

    @pytest.mark.asyncio
    async def test_jupiter_token_source_without_match(self):
        jupiter = MagicMock()
        jupiter.get_token = AsyncMock(return_value=None)

        assert await JupiterTokenSource(jupiter).lookup(MINT) is None

    @pytest.mark.asyncio
    async def test_token_list_matches_address_or_id(self):
        jupiter = MagicMock()
        jupiter.get_token_list = AsyncMock(return_value=[
            {"address": "other", "decimals": 9},
            {"id": MINT, "decimals": 3},
        ])

        assert await JupiterTokenListSource(jupiter).lookup(MINT) == 3

    @pytest.mark.asyncio
    async def test_token_list_without_match(self):
        jupiter = MagicMock()
        jupiter.get_token_list = AsyncMock(return_value=[{"address": "other", "decimals": 9}])

        assert await JupiterTokenListSource(jupiter).lookup(MINT) is None

    @pytest.mark.asyncio
    async def test_mint_account_source(self):
        rpc = MagicMock()
        rpc.get_mint_decimals = AsyncMock(return_value=2)

        assert await MintAccountSource(rpc).lookup(MINT) == 2

    @pytest.mark.asyncio
    async def test_attempt_records_errors(self):
        result = await StubSource("x", error=RuntimeError("nope")).attempt(MINT)

        assert result.found is False
        assert result.error == "nope"
        assert result.source == "x"

    @pytest.mark.asyncio
    async def test_from_providers_order(self):
        jupiter = MagicMock()
        jupiter.get_token = AsyncMock(side_effect=TransportError("404", provider="jupiter", status_code=404))
        jupiter.get_token_list = AsyncMock(return_value=[])
        rpc = MagicMock()
        rpc.get_mint_decimals = AsyncMock(return_value=7)

        resolver = TokenMetadataResolver.from_providers(jupiter, rpc)

        assert await resolver.resolve_decimals(MINT) == 7
        jupiter.get_token.assert_awaited_once()
        jupiter.get_token_list.assert_awaited_once()
        rpc.get_mint_decimals.assert_awaited_once_with(MINT)
