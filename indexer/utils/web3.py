import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.contract import AsyncContract

from indexer.utils.env import BASE_RPC, MAINNET_RPC

DEFAULT_ABI_PATH = Path(__file__).parent / "abis"
CHAIN_ID_TO_RPC = {
    1: MAINNET_RPC,
    8453: BASE_RPC,
}


@lru_cache(maxsize=None)
def load_abi(path: Path) -> Any:
    """Read an ABI file once; accepts a bare ABI list or a Hardhat-style artifact."""
    if not path.is_file():
        raise ValueError(f"Invalid ABI file path {path}")

    with open(path, "r") as f:
        abi_data = json.load(f)
    if isinstance(abi_data, dict):
        return abi_data.get("abi", abi_data)
    return abi_data


class AsyncWeb3Helper:
    """Async web3 connection for one chain, used to build read-only contracts."""

    def __init__(self, chain_id: int, web3: Optional[AsyncWeb3] = None) -> None:
        self.chain_id = chain_id
        self.web3 = web3

    @classmethod
    def make_web3(cls, chain_id: int, rpc_urls: Optional[Dict[int, str]] = None) -> "AsyncWeb3Helper":
        """
        Connect to `chain_id` through its configured RPC endpoint.

        Args:
            chain_id: Chain to connect to
            rpc_urls: Chain id to RPC URL mapping; defaults to CHAIN_ID_TO_RPC
        """
        rpc_urls = CHAIN_ID_TO_RPC if rpc_urls is None else rpc_urls
        rpc_url = rpc_urls.get(chain_id)
        if not rpc_url:
            raise ValueError(f"No RPC endpoint configured for chain {chain_id}")
        return cls(chain_id, AsyncWeb3(AsyncHTTPProvider(rpc_url)))

    def make_contract(self, abi_path: Path, addr: str) -> AsyncContract:
        if self.web3 is None:
            raise ValueError(f"Web3 not initialized for chain {self.chain_id}")
        return self.web3.eth.contract(address=Web3.to_checksum_address(addr), abi=load_abi(abi_path))

    def make_contract_by_name(self, name: str, addr: str) -> AsyncContract:
        """Contract at `addr` using the bundled `abis/<name>.json`."""
        return self.make_contract(DEFAULT_ABI_PATH / f"{name}.json", addr)
