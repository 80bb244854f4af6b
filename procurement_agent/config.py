"""
Configuration management for the Procurement Agent.

Loads environment variables and provides typed access to configuration values.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# Up to this many PRIMARY_API_KEY_<n> variables are read into the credential pool
MAX_PRIMARY_KEYS = 8


def load_env():
    """Load environment variables from .env file."""
    env_path = Path(__file__).parent.parent / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    else:
        load_dotenv()


def _load_primary_keys() -> list[str]:
    """Collect PRIMARY_API_KEY_1..N, falling back to a single OPENAI_API_KEY."""
    keys = []
    for index in range(1, MAX_PRIMARY_KEYS + 1):
        value = os.environ.get(f"PRIMARY_API_KEY_{index}", "").strip()
        if value:
            keys.append(value)

    if not keys:
        single = os.environ.get("OPENAI_API_KEY", "").strip()
        if single:
            keys.append(single)
    return keys


@dataclass
class Config:
    """Application configuration."""

    # Primary text provider (credential pool rotated on quota errors)
    primary_api_keys: list[str] = field(default_factory=list)
    primary_base_url: Optional[str] = None
    chat_model: str = "gpt-4o"

    # Secondary text provider (OpenAI-compatible endpoint)
    secondary_api_key: str = ""
    secondary_base_url: str = "https://router.huggingface.co/v1"
    secondary_model: str = "meta-llama/Llama-3.1-8B-Instruct"

    # Embeddings for semantic supplier search
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536

    # Back-office
    supabase_url: str = ""
    supabase_key: str = ""

    # Telegram
    telegram_bot_token: str = ""

    # Application settings
    log_level: str = "INFO"
    environment: str = "development"

    # Timeouts (seconds)
    provider_timeout: float = 30.0
    lookup_timeout: float = 10.0

    # Retry / rotation
    retry_backoff: float = 0.5
    secondary_max_attempts: int = 1
    credential_cooldown_hours: float = 24.0

    # Conversation
    history_window: int = 10
    default_search_limit: int = 5
    default_quote_suppliers: int = 2
    session_ttl_hours: float = 12.0

    # Pricing overrides
    tax_rate: float = 0.10
    price_variance: float = 0.15
    shipping_base: float = 40.0

    @classmethod
    def from_env(cls) -> "Config":
        """Create Config from environment variables."""
        load_env()

        return cls(
            primary_api_keys=_load_primary_keys(),
            primary_base_url=os.environ.get("PRIMARY_BASE_URL") or None,
            chat_model=os.environ.get("CHAT_MODEL", "gpt-4o"),
            secondary_api_key=os.environ.get(
                "SECONDARY_API_KEY", os.environ.get("HUGGINGFACE_API_KEY", "")
            ),
            secondary_base_url=os.environ.get(
                "SECONDARY_BASE_URL", "https://router.huggingface.co/v1"
            ),
            secondary_model=os.environ.get(
                "SECONDARY_MODEL", "meta-llama/Llama-3.1-8B-Instruct"
            ),
            embedding_model=os.environ.get("EMBEDDING_MODEL", "text-embedding-3-small"),
            embedding_dimensions=int(os.environ.get("EMBEDDING_DIMENSIONS", "1536")),
            supabase_url=os.environ.get("SUPABASE_URL", ""),
            supabase_key=os.environ.get("SUPABASE_KEY", ""),
            telegram_bot_token=os.environ.get("TELEGRAM_BOT_TOKEN", ""),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            environment=os.environ.get("ENVIRONMENT", "development"),
            provider_timeout=float(os.environ.get("PROVIDER_TIMEOUT", "30")),
            lookup_timeout=float(os.environ.get("LOOKUP_TIMEOUT", "10")),
            retry_backoff=float(os.environ.get("RETRY_BACKOFF", "0.5")),
            secondary_max_attempts=int(os.environ.get("SECONDARY_MAX_ATTEMPTS", "1")),
            credential_cooldown_hours=float(
                os.environ.get("CREDENTIAL_COOLDOWN_HOURS", "24")
            ),
            history_window=int(os.environ.get("HISTORY_WINDOW", "10")),
            default_search_limit=int(os.environ.get("DEFAULT_SEARCH_LIMIT", "5")),
            default_quote_suppliers=int(os.environ.get("DEFAULT_QUOTE_SUPPLIERS", "2")),
            session_ttl_hours=float(os.environ.get("SESSION_TTL_HOURS", "12")),
            tax_rate=float(os.environ.get("TAX_RATE", "0.10")),
            price_variance=float(os.environ.get("PRICE_VARIANCE", "0.15")),
            shipping_base=float(os.environ.get("SHIPPING_BASE", "40")),
        )

    def validate(self) -> list[str]:
        """Validate required configuration values. Returns list of missing keys."""
        missing = []
        if not self.primary_api_keys:
            missing.append("PRIMARY_API_KEY_1 (or OPENAI_API_KEY)")
        if not self.supabase_url:
            missing.append("SUPABASE_URL")
        if not self.supabase_key:
            missing.append("SUPABASE_KEY")
        return missing


# Global config instance (lazy loaded)
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config():
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
