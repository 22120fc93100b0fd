import base58
import pytest
from solders.keypair import Keypair

from agent_swap.config import Settings
from agent_swap.core.signing import WalletSigner


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def signer(keypair: Keypair) -> WalletSigner:
    return WalletSigner(keypair)


@pytest.fixture
def secret_b58(keypair: Keypair) -> str:
    return base58.b58encode(bytes(keypair)).decode()


@pytest.fixture
def settings(secret_b58: str) -> Settings:
    return Settings(
        _env_file=None,
        private_key=secret_b58,
        jupiter_api_key="",
        jupiter_base_url="",
        solana_rpc_url="https://api.mainnet-beta.solana.com",
        agent_platform_base_url="",
        agent_platform_api_key="",
        mock_mode=False,
        mock_latency_seconds=0,
        webhook_secret="",
    )
