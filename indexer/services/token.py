"""
ERC-20 metadata resolution.

Static overrides from the chain configuration take precedence over live RPC
lookups. Symbol, name and total supply degrade to placeholders on failure;
decimals have no safe default and come back as None.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel
from web3 import Web3
from web3.contract import AsyncContract

from indexer.models.config import TokenOverride, normalize_address
from indexer.utils.env import TOKEN_METADATA_TIMEOUT
from indexer.utils.web3 import AsyncWeb3Helper

logger = logging.getLogger(__name__)

UNKNOWN = "UNKNOWN"


class TokenMetadata(BaseModel):
    symbol: str
    name: str
    decimals: Optional[int]
    total_supply: int


def get_static_definition(
    address: str, token_overrides: Mapping[str, TokenOverride]
) -> Optional[TokenOverride]:
    return token_overrides.get(normalize_address(address))


class TokenMetadataResolver(ABC):
    """Resolves ERC-20 metadata for newly seen tokens."""

    @abstractmethod
    async def fetch_token_decimals(
        self, address: str, token_overrides: Mapping[str, TokenOverride], chain_id: int
    ) -> Optional[int]:
        pass

    @abstractmethod
    async def fetch_token_symbol(
        self, address: str, token_overrides: Mapping[str, TokenOverride], chain_id: int
    ) -> str:
        pass

    @abstractmethod
    async def fetch_token_name(
        self, address: str, token_overrides: Mapping[str, TokenOverride], chain_id: int
    ) -> str:
        pass

    @abstractmethod
    async def fetch_token_total_supply(
        self, address: str, token_overrides: Mapping[str, TokenOverride], chain_id: int
    ) -> int:
        pass

    async def fetch_token_metadata(
        self, address: str, token_overrides: Mapping[str, TokenOverride], chain_id: int
    ) -> TokenMetadata:
        """Resolve all four fields concurrently."""
        decimals, symbol, name, total_supply = await asyncio.gather(
            self.fetch_token_decimals(address, token_overrides, chain_id),
            self.fetch_token_symbol(address, token_overrides, chain_id),
            self.fetch_token_name(address, token_overrides, chain_id),
            self.fetch_token_total_supply(address, token_overrides, chain_id),
        )
        return TokenMetadata(
            symbol=symbol, name=name, decimals=decimals, total_supply=total_supply
        )


class Erc20MetadataResolver(TokenMetadataResolver):
    """TokenMetadataResolver reading ERC-20 contracts over RPC."""

    def __init__(
        self,
        timeout: float = TOKEN_METADATA_TIMEOUT,
        rpc_urls: Optional[Dict[int, str]] = None,
    ):
        """
        Initialize the resolver.

        Args:
            timeout: Seconds allowed for a single contract call
            rpc_urls: Optional chain id to RPC URL mapping; defaults to the
                environment-configured endpoints
        """
        self.timeout = timeout
        self.rpc_urls = rpc_urls
        self._web3_helpers: Dict[int, AsyncWeb3Helper] = {}

    def _make_token_contract(self, address: str, chain_id: int) -> AsyncContract:
        if chain_id not in self._web3_helpers:
            self._web3_helpers[chain_id] = AsyncWeb3Helper.make_web3(chain_id, self.rpc_urls)
        return self._web3_helpers[chain_id].make_contract_by_name(name="ERC20", addr=address)

    async def _call(self, address: str, chain_id: int, function_name: str) -> Any:
        contract = self._make_token_contract(address, chain_id)
        method = getattr(contract.functions, function_name)
        return await asyncio.wait_for(method().call(), timeout=self.timeout)

    async def fetch_token_symbol(
        self, address: str, token_overrides: Mapping[str, TokenOverride], chain_id: int
    ) -> str:
        static_definition = get_static_definition(address, token_overrides)
        if static_definition is not None:
            return static_definition.symbol

        if not Web3.is_address(address):
            return UNKNOWN

        try:
            symbol = await self._call(address, chain_id, "symbol")
            return symbol if symbol is not None else UNKNOWN
        except Exception as e:
            logger.warning(f"Failed to fetch symbol for token {address} on chain {chain_id}: {e}")
            return UNKNOWN

    async def fetch_token_name(
        self, address: str, token_overrides: Mapping[str, TokenOverride], chain_id: int
    ) -> str:
        static_definition = get_static_definition(address, token_overrides)
        if static_definition is not None:
            return static_definition.name

        if not Web3.is_address(address):
            return UNKNOWN

        try:
            name = await self._call(address, chain_id, "name")
            return name if name is not None else UNKNOWN
        except Exception as e:
            logger.warning(f"Failed to fetch name for token {address} on chain {chain_id}: {e}")
            return UNKNOWN

    async def fetch_token_total_supply(
        self, address: str, token_overrides: Mapping[str, TokenOverride], chain_id: int
    ) -> int:
        static_definition = get_static_definition(address, token_overrides)
        if static_definition is not None and static_definition.total_supply is not None:
            return static_definition.total_supply

        if not Web3.is_address(address):
            return 0

        try:
            total_supply = await self._call(address, chain_id, "totalSupply")
            return int(total_supply) if total_supply is not None else 0
        except Exception as e:
            logger.warning(
                f"Failed to fetch total supply for token {address} on chain {chain_id}: {e}"
            )
            return 0

    async def fetch_token_decimals(
        self, address: str, token_overrides: Mapping[str, TokenOverride], chain_id: int
    ) -> Optional[int]:
        static_definition = get_static_definition(address, token_overrides)
        if static_definition is not None:
            return static_definition.decimals

        if not Web3.is_address(address):
            return None

        try:
            decimals = await self._call(address, chain_id, "decimals")
            return int(decimals) if decimals is not None else None
        except Exception as e:
            logger.warning(f"Failed to fetch decimals for token {address} on chain {chain_id}: {e}")
            return None
