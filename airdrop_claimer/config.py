from typing import Any

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings
from solders.pubkey import Pubkey

from airdrop_claimer.errors import ConfigError

DEFAULT_RPC = "https://api.mainnet-beta.solana.com"
MERKLE_DISTRIBUTOR_PROGRAM_ID = "MRKGLMizK9XSTaD1d1jbVkdHZbQVCSnPpYiTw9aKQv8"


def to_pubkey(value: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"{value!r} is not a valid pubkey: {exc}") from exc


class Settings(BaseSettings):
    distributor_address: str
    airdrop_base_url: str
    mint_address: str
    merkle_distributor_program_id: str = MERKLE_DISTRIBUTOR_PROGRAM_ID
    solana_rpc: str = DEFAULT_RPC
    token_decimals: int = 6
    proof_request_timeout: float = 15.0
    rpc_timeout: float = 30.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @field_validator("distributor_address", "mint_address", "merkle_distributor_program_id")
    @classmethod
    def check_pubkey(cls, value: str) -> str:
        to_pubkey(value)
        return value

    @field_validator("airdrop_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("must not be empty")
        return value

    @property
    def distributor(self) -> Pubkey:
        return to_pubkey(self.distributor_address)

    @property
    def mint(self) -> Pubkey:
        return to_pubkey(self.mint_address)

    @property
    def program_id(self) -> Pubkey:
        return to_pubkey(self.merkle_distributor_program_id)


def load_settings(**overrides: Any) -> Settings:
    """Build settings from the environment (and ``.env``), failing with a ConfigError.

    Keyword overrides win over the environment; ``_env_file=None`` disables the
    ``.env`` lookup.
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        problems = []
        for err in exc.errors():
            field = ".".join(str(part) for part in err["loc"]) or "settings"
            problems.append(f"{field.upper()}: {err['msg']}")
        raise ConfigError("Invalid configuration: " + "; ".join(problems)) from exc
