from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

JUPITER_PRO_URL = "https://api.jup.ag"
JUPITER_LITE_URL = "https://lite-api.jup.ag"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Server Settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log renderer: json or console")

    # Jupiter Ultra API
    jupiter_api_key: str = Field(default="", description="Optional Jupiter API key for enhanced rate limits")
    jupiter_base_url: str = Field(default="", description="Override the Jupiter API base URL")
    token_list_path: str = Field(
        default="/tokens/v1/tagged/verified",
        description="Jupiter path returning the bulk token list",
    )

    # Wallet
    private_key: str = Field(
        default="",
        description="Wallet secret key (base58 string or JSON byte array)",
        validation_alias=AliasChoices("private_key", "PRIVATE_KEY", "SOLANA_PRIVATE_KEY"),
    )
    webhook_secret: str = Field(default="", description="Optional shared secret for inbound webhooks")
    mock_mode: bool = Field(default=False, description="Simulate Jupiter responses (no real transactions)")
    mock_latency_seconds: float = Field(default=0.5, description="Simulated network delay in mock mode")

    # Solana RPC
    solana_rpc_url: str = Field(
        default="https://api.mainnet-beta.solana.com",
        description="Solana JSON-RPC endpoint used for mint account lookups",
    )

    # Agent platform (virtual ledger)
    agent_platform_base_url: str = Field(default="", description="Base URL of the agent platform API")
    agent_platform_api_key: str = Field(default="", description="Bearer token for the agent platform API")

    request_timeout_seconds: float = Field(default=30.0, description="Timeout for outbound HTTP requests")

    # Trading defaults
    signal_trade_amount_sol: float = Field(default=0.1, gt=0, description="SOL spent per trade signal")
    default_decimals: int = Field(default=6, ge=0, le=255, description="Decimals used when no source answers")
    high_risk_mint_suffixes: List[str] = Field(
        default_factory=lambda: ["pump", "moon"],
        description="Mint address suffixes flagged as launchpad / high-risk tokens",
    )
    high_risk_symbols: List[str] = Field(
        default_factory=list,
        description="Token symbols always treated as high-risk",
    )

    @property
    def jupiter_url(self) -> str:
        if self.jupiter_base_url:
            return self.jupiter_base_url.rstrip("/")
        return JUPITER_PRO_URL if self.jupiter_api_key else JUPITER_LITE_URL

    @property
    def agent_platform_url(self) -> Optional[str]:
        if not self.agent_platform_base_url:
            return None
        return self.agent_platform_base_url.rstrip("/")


settings = Settings()
