"""
Static, read-only chain configuration.

One ChainConfig per chain, resolved once at startup and handed to every
transition through the handler context.
"""
import json
from decimal import Decimal
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from indexer.exceptions import UnknownChainError


def normalize_address(address: str) -> str:
    return address.lower()


class TokenOverride(BaseModel):
    """Static ERC-20 metadata that takes precedence over RPC lookups."""

    model_config = ConfigDict(frozen=True)

    address: str = Field(..., description="Token address")
    symbol: str = Field(..., description="Token symbol")
    name: str = Field(..., description="Token name")
    decimals: int = Field(..., ge=0, description="Token decimals")
    total_supply: Optional[int] = Field(None, description="Total supply in raw units")

    @field_validator("address")
    @classmethod
    def lower_address(cls, value: str) -> str:
        return normalize_address(value)


class ChainConfig(BaseModel):
    """Per-chain pricing and indexing configuration."""

    model_config = ConfigDict(frozen=True)

    chain_id: int = Field(..., description="EVM chain id")
    factory_address: str = Field(..., description="UniswapV3Factory address")
    wrapped_native_address: str = Field(..., description="Wrapped native asset (WETH)")
    stablecoin_wrapped_native_pool_address: str = Field(
        ..., description="Stablecoin/wrapped-native pool used for the native USD price"
    )
    stablecoin_is_token0: bool = Field(
        ..., description="Whether the stablecoin is token0 of the reference pool"
    )
    stablecoin_addresses: FrozenSet[str] = Field(default_factory=frozenset)
    whitelist_tokens: FrozenSet[str] = Field(default_factory=frozenset)
    minimum_native_locked: Decimal = Field(
        Decimal(0), description="Native liquidity a pool needs to be used for pricing"
    )
    token_overrides: Dict[str, TokenOverride] = Field(default_factory=dict)
    pools_to_index: Optional[FrozenSet[str]] = Field(
        None, description="Pools to index; None indexes every pool"
    )
    pools_to_skip: FrozenSet[str] = Field(default_factory=frozenset)

    @field_validator("factory_address", "wrapped_native_address", "stablecoin_wrapped_native_pool_address")
    @classmethod
    def lower_address(cls, value: str) -> str:
        return normalize_address(value)

    @field_validator("stablecoin_addresses", "whitelist_tokens", "pools_to_skip", mode="before")
    @classmethod
    def lower_addresses(cls, value: Iterable[str]) -> FrozenSet[str]:
        return frozenset(normalize_address(address) for address in value)

    @field_validator("pools_to_index", mode="before")
    @classmethod
    def lower_optional_addresses(cls, value: Optional[Iterable[str]]) -> Optional[FrozenSet[str]]:
        if value is None:
            return None
        return frozenset(normalize_address(address) for address in value)

    @field_validator("token_overrides", mode="before")
    @classmethod
    def key_overrides(cls, value) -> Dict[str, TokenOverride]:
        # Accept either a mapping or a list of override definitions
        if isinstance(value, dict):
            items = value.values()
        else:
            items = value
        overrides = {}
        for item in items:
            override = item if isinstance(item, TokenOverride) else TokenOverride.model_validate(item)
            overrides[override.address] = override
        return overrides

    @model_validator(mode="after")
    def validate_native_is_whitelisted(self) -> "ChainConfig":
        """The wrapped native asset anchors the pricing graph."""
        if self.whitelist_tokens and self.wrapped_native_address not in self.whitelist_tokens:
            raise ValueError("wrapped_native_address must be in whitelist_tokens")
        return self

    def is_whitelisted(self, token_address: str) -> bool:
        return normalize_address(token_address) in self.whitelist_tokens

    def should_index_pool(self, pool_address: str) -> bool:
        pool_address = normalize_address(pool_address)
        if pool_address in self.pools_to_skip:
            return False
        return self.pools_to_index is None or pool_address in self.pools_to_index


class ChainConfigTable:
    """Read-only mapping of chain id to ChainConfig."""

    def __init__(self, configs: Iterable[ChainConfig]):
        self._configs: Dict[int, ChainConfig] = {config.chain_id: config for config in configs}

    def get(self, chain_id: int) -> ChainConfig:
        try:
            return self._configs[chain_id]
        except KeyError:
            raise UnknownChainError(chain_id)

    def __contains__(self, chain_id: int) -> bool:
        return chain_id in self._configs

    def __iter__(self):
        return iter(self._configs.values())

    def __len__(self) -> int:
        return len(self._configs)

    @classmethod
    def from_json_file(cls, path: Path) -> "ChainConfigTable":
        """Load a table from a JSON list of ChainConfig objects."""
        path = Path(path)
        if not path.is_file():
            raise ValueError(f"Invalid chain config file path {path}")

        with open(path, "r") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("chains", [])
        return cls(ChainConfig.model_validate(item) for item in data)
