from .base import HttpProvider, Provider
from .jupiter import JupiterUltraProvider, MockJupiterUltraProvider, build_jupiter_provider
from .solana import SolanaRpcProvider
from .agent_platform import AgentPlatformProvider

__all__ = [
    "Provider",
    "HttpProvider",
    "JupiterUltraProvider",
    "MockJupiterUltraProvider",
    "build_jupiter_provider",
    "SolanaRpcProvider",
    "AgentPlatformProvider",
]
