import pytest

from indexer.utils.env import get_env_variable
from indexer.utils.web3 import DEFAULT_ABI_PATH, AsyncWeb3Helper, load_abi

from builders import USDC


class TestGetEnvVariable:
    def test_unset_returns_default(self, monkeypatch):
        monkeypatch.delenv("INDEXER_TEST_VALUE", raising=False)
        assert get_env_variable("INDEXER_TEST_VALUE", int, 7) == 7
        assert get_env_variable("INDEXER_TEST_VALUE", str, None) is None

    def test_blank_returns_default(self, monkeypatch):
        monkeypatch.setenv("INDEXER_TEST_VALUE", "  ")
        assert get_env_variable("INDEXER_TEST_VALUE", float, 2.5) == 2.5

    def test_value_is_converted(self, monkeypatch):
        monkeypatch.setenv("INDEXER_TEST_VALUE", " 12 ")
        assert get_env_variable("INDEXER_TEST_VALUE", int, 3) == 12

    def test_bad_value_names_variable(self, monkeypatch):
        monkeypatch.setenv("INDEXER_TEST_VALUE", "twelve")
        with pytest.raises(ValueError, match="INDEXER_TEST_VALUE"):
            get_env_variable("INDEXER_TEST_VALUE", int, 3)


class TestAsyncWeb3Helper:
    def test_erc20_abi_is_bundled(self):
        abi = load_abi(DEFAULT_ABI_PATH / "ERC20.json")
        names = {entry.get("name") for entry in abi}
        assert {"symbol", "name", "decimals", "totalSupply"} <= names

    def test_missing_abi_file(self, tmp_path):
        with pytest.raises(ValueError):
            load_abi(tmp_path / "Missing.json")

    def test_unknown_chain(self):
        with pytest.raises(ValueError, match="chain 42"):
            AsyncWeb3Helper.make_web3(42, rpc_urls={1: "http://localhost:8545"})

    def test_contract_uses_checksum_address(self):
        helper = AsyncWeb3Helper.make_web3(1, rpc_urls={1: "http://localhost:8545"})

        contract = helper.make_contract_by_name("ERC20", USDC)

        assert helper.chain_id == 1
        assert contract.address.lower() == USDC
        assert contract.address != USDC

    def test_uninitialized_helper(self):
        with pytest.raises(ValueError):
            AsyncWeb3Helper(1).make_contract_by_name("ERC20", USDC)
