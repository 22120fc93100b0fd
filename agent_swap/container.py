"""Process-wide service wiring, built once from the settings at startup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from .config import Settings
from .core.balances import ActualBalanceProvider, VirtualBalanceProvider
from .core.exit_strategy import ExitStrategyCalculator
from .core.handlers import TradeEventHandlers
from .core.orchestrator import SwapOrderOrchestrator
from .core.signing import WalletSigner
from .core.tokens import TokenMetadataResolver
from .providers.agent_platform import AgentPlatformProvider
from .providers.jupiter import JupiterUltraProvider, build_jupiter_provider
from .providers.solana import SolanaRpcProvider


@dataclass
class ServiceContainer:
    settings: Settings
    signer: WalletSigner
    jupiter: JupiterUltraProvider
    rpc: SolanaRpcProvider
    platform: AgentPlatformProvider
    resolver: TokenMetadataResolver
    actual_balances: ActualBalanceProvider
    orchestrator: SwapOrderOrchestrator
    handlers: TradeEventHandlers

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        signer: Optional[WalletSigner] = None,
        jupiter: Optional[JupiterUltraProvider] = None,
        rpc: Optional[SolanaRpcProvider] = None,
        platform: Optional[AgentPlatformProvider] = None,
    ) -> "ServiceContainer":
        """Wire every component. Raises KeyLoadError when the wallet key is unusable."""
        signer = signer or WalletSigner.from_secret(settings.private_key)
        jupiter = jupiter or build_jupiter_provider(settings)
        rpc = rpc or SolanaRpcProvider(settings)
        platform = platform or AgentPlatformProvider(settings)

        resolver = TokenMetadataResolver.from_providers(
            jupiter, rpc, default_decimals=settings.default_decimals
        )
        actual_balances = ActualBalanceProvider(jupiter, resolver, signer.address)
        calculator = ExitStrategyCalculator(actual_balances, VirtualBalanceProvider(platform))
        orchestrator = SwapOrderOrchestrator(jupiter, signer)
        handlers = TradeEventHandlers(settings, orchestrator, calculator, resolver)

        return cls(
            settings=settings,
            signer=signer,
            jupiter=jupiter,
            rpc=rpc,
            platform=platform,
            resolver=resolver,
            actual_balances=actual_balances,
            orchestrator=orchestrator,
            handlers=handlers,
        )

    async def aclose(self) -> None:
        await self.jupiter.close()
        await self.rpc.close()
        await self.platform.close()


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container
