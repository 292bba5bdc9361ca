"""
Sequestre configuration with hybrid YAML + ENV support.

Priority: Environment variables > environment-specific YAML >
default YAML > Pydantic defaults
"""

import os
from pathlib import Path
from typing import Optional, Tuple, Type

import yaml
from pydantic import Field, computed_field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from sequestre.domain.value_objects.program_ids import (
    DEFAULT_ASSOCIATED_TOKEN_PROGRAM_ID,
    DEFAULT_ESCROW_PROGRAM_ID,
    DEFAULT_MEMO_PROGRAM_ID,
    DEFAULT_TOKEN_PROGRAM_ID,
    DEFAULT_WRAPPED_NATIVE_MINT,
    ProgramIds,
)
from sequestre.domain.value_objects.protocol import (
    DEFAULT_PROTOCOL_VERSION,
    PROTOCOLS,
    ProtocolDescriptor,
    get_protocol_descriptor,
)
from sequestre.utils.validation import validate_solana_address

NETWORK_RPC_URLS = {
    "devnet": "https://api.devnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
}


class CircuitBreakerSettings(BaseSettings):
    """Circuit breaker configuration for the RPC endpoint."""

    failure_threshold: int = Field(default=5, ge=1, le=100)
    success_threshold: int = Field(default=3, ge=1, le=10)
    timeout: float = Field(default=60.0, ge=1.0, le=600.0)


class RetrySettings(BaseSettings):
    """Retry configuration for transient read failures."""

    max_attempts: int = Field(default=3, ge=1, le=10)
    initial_delay: float = Field(default=1.0, ge=0.0, le=10.0)
    max_delay: float = Field(default=30.0, ge=0.0, le=300.0)
    exponential_base: float = Field(default=2.0, ge=1.0, le=10.0)
    jitter: bool = Field(default=True)


class TimeoutSettings(BaseSettings):
    """Timeout configuration for operations."""

    rpc_call: float = Field(default=10.0, ge=1.0, le=60.0)


class ResilienceSettings(BaseSettings):
    """Resilience patterns configuration."""

    circuit_breakers: dict = Field(
        default_factory=lambda: {
            "solana_rpc": {
                "failure_threshold": 5,
                "success_threshold": 3,
                "timeout": 30.0,
            },
        }
    )

    retry: dict = Field(
        default_factory=lambda: {
            "rpc_query": {
                "max_attempts": 5,
                "initial_delay": 0.5,
                "max_delay": 5.0,
                "exponential_base": 2.0,
                "jitter": True,
            },
        }
    )

    timeouts: TimeoutSettings = Field(default_factory=TimeoutSettings)


class SequestreConfig(BaseSettings):
    """
    Sequestre configuration schema.

    Identities are referenced by keypair file path and only loaded when an
    orchestrator is built, so pure commands never touch secret material.
    """

    model_config = SettingsConfigDict(
        env_prefix="SEQUESTRE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Network
    solana_rpc_url: Optional[str] = Field(default=None)
    solana_network: str = Field(default="devnet")
    commitment: str = Field(default="confirmed")

    # Protocol
    protocol_version: str = Field(default=DEFAULT_PROTOCOL_VERSION)
    escrow_program_id: str = Field(default=DEFAULT_ESCROW_PROGRAM_ID)
    token_program_id: str = Field(default=DEFAULT_TOKEN_PROGRAM_ID)
    associated_token_program_id: str = Field(
        default=DEFAULT_ASSOCIATED_TOKEN_PROGRAM_ID
    )
    memo_program_id: str = Field(default=DEFAULT_MEMO_PROGRAM_ID)
    wrapped_native_mint: str = Field(default=DEFAULT_WRAPPED_NATIVE_MINT)

    # Identities
    fee_payer_keypair_path: Optional[str] = Field(default=None)
    authority_keypair_path: Optional[str] = Field(default=None)
    hot_wallet_keypair_path: Optional[str] = Field(default=None)
    fee_taker_address: Optional[str] = Field(default=None)

    # Submission
    skip_preflight: bool = Field(default=False)
    confirmation_poll_interval: float = Field(default=5.0, ge=0.0, le=60.0)
    confirmation_max_retries: int = Field(default=10, ge=1, le=1000)

    # Logging
    log_level: str = Field(default="info")
    log_dir: Optional[str] = Field(default=None)

    # Resilience configuration
    resilience: ResilienceSettings = Field(default_factory=ResilienceSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # YAML values arrive as init kwargs; environment must win over them
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @computed_field
    @property
    def rpc_url(self) -> str:
        """Explicit RPC URL, or the public endpoint of the network."""
        return self.solana_rpc_url or NETWORK_RPC_URLS[self.solana_network]

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = ["debug", "info", "warning", "error", "critical"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"Invalid log_level. Must be one of: {allowed}")
        return v_lower

    @field_validator("solana_network")
    @classmethod
    def validate_network(cls, v: str) -> str:
        """Validate Solana network."""
        allowed = list(NETWORK_RPC_URLS)
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"Invalid network. Must be one of: {allowed}")
        return v_lower

    @field_validator("commitment")
    @classmethod
    def validate_commitment(cls, v: str) -> str:
        allowed = ["processed", "confirmed", "finalized"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"Invalid commitment. Must be one of: {allowed}")
        return v_lower

    @field_validator("protocol_version")
    @classmethod
    def validate_protocol_version(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in PROTOCOLS:
            raise ValueError(
                f"Invalid protocol_version. Must be one of: {sorted(PROTOCOLS)}"
            )
        return v_lower

    @field_validator(
        "escrow_program_id",
        "token_program_id",
        "associated_token_program_id",
        "memo_program_id",
        "wrapped_native_mint",
        "fee_taker_address",
    )
    @classmethod
    def validate_address(cls, v: Optional[str]) -> Optional[str]:
        """Validate base58 address fields."""
        if v is not None and not validate_solana_address(v):
            raise ValueError(f"Invalid Solana address: {v!r}")
        return v

    @field_validator(
        "fee_payer_keypair_path",
        "authority_keypair_path",
        "hot_wallet_keypair_path",
    )
    @classmethod
    def expand_keypair_path(cls, v: Optional[str]) -> Optional[str]:
        """Expand home directory in keypair path."""
        if v:
            return os.path.expanduser(v)
        return v

    def get_program_ids(self) -> ProgramIds:
        """Program identifiers as injected into the escrow client."""
        return ProgramIds.from_strings(
            escrow_program=self.escrow_program_id,
            token_program=self.token_program_id,
            associated_token_program=self.associated_token_program_id,
            memo_program=self.memo_program_id,
            wrapped_native_mint=self.wrapped_native_mint,
        )

    def get_protocol(self) -> ProtocolDescriptor:
        """Wire format selected by ``protocol_version``."""
        return get_protocol_descriptor(self.protocol_version)

    def get_circuit_breaker_config(self, service: str) -> CircuitBreakerSettings:
        """Get circuit breaker config for a specific service."""
        config = self.resilience.circuit_breakers.get(service, {})
        return CircuitBreakerSettings(**config)

    def get_retry_config(self, operation: str) -> RetrySettings:
        """Get retry config for a specific operation."""
        config = self.resilience.retry.get(operation, {})
        return RetrySettings(**config)


def get_config_dir() -> Path:
    """Directory holding the YAML configuration files."""
    override = os.getenv("SEQUESTRE_CONFIG_DIR")
    if override:
        return Path(override)
    current_file = Path(__file__).resolve()
    project_root = current_file.parent.parent.parent.parent
    return project_root / "config"


def _read_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with open(path, "r") as f:
        loaded = yaml.safe_load(f)
    return loaded or {}


def load_config(config_file: Optional[str] = None) -> SequestreConfig:
    """
    Load configuration from YAML files.

    Priority: Environment variables > environment-specific YAML > default YAML

    Args:
        config_file: Optional YAML filename override

    Returns:
        SequestreConfig instance
    """
    env = os.getenv("ENV", "production")

    config_map = {
        "production": "production.yaml",
        "development": "development.yaml",
        "test": "test.yaml",
    }

    config_dir = get_config_dir()
    merged_config = _read_yaml(config_dir / "default.yaml")

    if config_file is None:
        config_file = os.getenv("SEQUESTRE_CONFIG")
        if not config_file:
            config_file = config_map.get(env, "production.yaml")

    merged_config.update(_read_yaml(config_dir / config_file))

    return SequestreConfig(**merged_config)


# Global settings instance
_settings: Optional[SequestreConfig] = None


def get_settings() -> SequestreConfig:
    """
    Get singleton settings instance.

    Returns:
        SequestreConfig instance
    """
    global _settings
    if _settings is None:
        _settings = load_config()
    return _settings


def reset_settings() -> None:
    """Drop the cached singleton (used after changing ENV in tests)."""
    global _settings
    _settings = None
