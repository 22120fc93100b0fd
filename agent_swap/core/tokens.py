"""
Token decimals resolution.

Decimals are looked up through an ordered list of sources. Each source is
asked only if every earlier one failed or had no answer; a source that raises
is logged and skipped. When no source answers, a fixed default is returned,
so callers must treat the value as advisory.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..cache import LookupCache
from ..providers.jupiter import JupiterUltraProvider
from ..providers.solana import SolanaRpcProvider

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS = 6
MAX_DECIMALS = 255


def _valid_decimals(value: object) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        decimals = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if 0 <= decimals <= MAX_DECIMALS:
        return decimals
    return None


@dataclass(frozen=True)
class DecimalsLookup:
    """Outcome of asking one source for a mint's decimals."""
    source: str
    decimals: Optional[int] = None
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.decimals is not None


class DecimalsSource(ABC):
    """One place decimals can be read from."""

    name: str

    @abstractmethod
    async def lookup(self, mint: str) -> Optional[int]:
        """Return the mint's decimals, or None when this source has no match."""
        pass

    async def attempt(self, mint: str) -> DecimalsLookup:
        try:
            decimals = _valid_decimals(await self.lookup(mint))
        except Exception as exc:  # noqa: BLE001 - every source is best-effort
            return DecimalsLookup(source=self.name, error=str(exc) or type(exc).__name__)
        return DecimalsLookup(source=self.name, decimals=decimals)


class JupiterTokenSource(DecimalsSource):
    """Jupiter per-token metadata endpoint."""

    name = "jupiter-token"

    def __init__(self, jupiter: JupiterUltraProvider):
        self._jupiter = jupiter

    async def lookup(self, mint: str) -> Optional[int]:
        token = await self._jupiter.get_token(mint)
        if not token:
            return None
        return token.get("decimals")


class JupiterTokenListSource(DecimalsSource):
    """Jupiter bulk token list, scanned for the mint."""

    name = "jupiter-token-list"

    def __init__(self, jupiter: JupiterUltraProvider):
        self._jupiter = jupiter

    async def lookup(self, mint: str) -> Optional[int]:
        for item in await self._jupiter.get_token_list():
            if (item.get("address") or item.get("id")) == mint:
                return item.get("decimals")
        return None


class MintAccountSource(DecimalsSource):
    """The mint account itself, read over Solana RPC."""

    name = "solana-mint-account"

    def __init__(self, rpc: SolanaRpcProvider):
        self._rpc = rpc

    async def lookup(self, mint: str) -> Optional[int]:
        return await self._rpc.get_mint_decimals(mint)


class TokenMetadataResolver:
    """Resolves token decimals; never raises."""

    def __init__(self, sources: Sequence[DecimalsSource], default_decimals: int = DEFAULT_DECIMALS):
        self._sources: List[DecimalsSource] = list(sources)
        self.default_decimals = default_decimals

    @classmethod
    def from_providers(
        cls,
        jupiter: JupiterUltraProvider,
        rpc: SolanaRpcProvider,
        default_decimals: int = DEFAULT_DECIMALS,
    ) -> "TokenMetadataResolver":
        return cls(
            [
                JupiterTokenSource(jupiter),
                JupiterTokenListSource(jupiter),
                MintAccountSource(rpc),
            ],
            default_decimals=default_decimals,
        )

    async def resolve_decimals(self, mint: str, cache: Optional[LookupCache] = None) -> int:
        if cache is None:
            return await self._resolve(mint)
        return await cache.get_or_load(("decimals", mint), lambda: self._resolve(mint))

    async def _resolve(self, mint: str) -> int:
        for source in self._sources:
            result = await source.attempt(mint)
            if result.found:
                logger.debug("Resolved decimals for %s via %s: %s", mint, result.source, result.decimals)
                return result.decimals  # type: ignore[return-value]
            if result.error:
                logger.warning("Decimals lookup via %s failed for %s: %s", result.source, mint, result.error)
            else:
                logger.info("No decimals for %s from %s", mint, result.source)

        logger.warning("All decimals sources failed for %s, defaulting to %d", mint, self.default_decimals)
        return self.default_decimals


__all__ = [
    "DEFAULT_DECIMALS",
    "DecimalsLookup",
    "DecimalsSource",
    "JupiterTokenSource",
    "JupiterTokenListSource",
    "MintAccountSource",
    "TokenMetadataResolver",
]
