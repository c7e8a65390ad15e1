"""
Built-in chain configurations for Ethereum mainnet and Base.
"""
import logging
from decimal import Decimal

from indexer.models.config import ChainConfig, ChainConfigTable, TokenOverride
from indexer.utils.env import CHAIN_CONFIG_FILE

logger = logging.getLogger(__name__)

ETH_MAINNET_ID = 1
BASE_MAINNET_ID = 8453

# Ethereum mainnet
MAINNET_WETH = "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
MAINNET_DAI = "0x6b175474e89094c44da98b954eedeac495271d0f"
MAINNET_USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
MAINNET_USDT = "0xdac17f958d2ee523a2206206994597c13d831ec7"
MAINNET_TUSD = "0x0000000000085d4780b73119b644ae5ecd22b376"
MAINNET_FEI = "0x956f47f50a910163d8bf957cf5846d573e7f87ca"

ETH_MAINNET = ChainConfig(
    chain_id=ETH_MAINNET_ID,
    factory_address="0x1F98431c8aD98523631AE4a59f267346ea31F984",
    wrapped_native_address=MAINNET_WETH,
    # USDC/WETH 0.3%
    stablecoin_wrapped_native_pool_address="0x8ad599c3a0ff1de082011efddc58f1908eb6e6d8",
    stablecoin_is_token0=True,
    stablecoin_addresses=[MAINNET_DAI, MAINNET_USDC, MAINNET_USDT, MAINNET_TUSD, MAINNET_FEI],
    whitelist_tokens=[
        MAINNET_WETH,
        MAINNET_DAI,
        MAINNET_USDC,
        MAINNET_USDT,
        MAINNET_TUSD,
        MAINNET_FEI,
        "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599",  # WBTC
        "0x5d3a536e4d6dbd6114cc1ead35777bab948e3643",  # cDAI
        "0x39aa39c021dfbae8fac545936693ac917d5e7563",  # cUSDC
        "0x57ab1ec28d129707052df4df418d58a2d46d5f51",  # sUSD
        "0x9f8f72aa9304c8b593d555f12ef6589cc3a579a2",  # MKR
        "0xc00e94cb662c3520282e6f5717214004a7f26888",  # COMP
        "0x514910771af9ca656af840dff83e8264ecf986ca",  # LINK
        "0xc011a73ee8576fb46f5e1c5751ca3b9fe0af2a6f",  # SNX
        "0x0bc529c00c6401aef6d220be8c6ea1667f6ad93e",  # YFI
        "0x7d1afa7b718fb893db30a3abc0cfc608aacfebb0",  # MATIC
        "0x7fc66500c84a76ad7e9c93437bfc5ac33e2ddae9",  # AAVE
    ],
    minimum_native_locked=Decimal("60"),
    token_overrides=[
        TokenOverride(
            address="0xe0b7927c4af23765cb51314a0e0521a9645f0e2a",
            symbol="DGD",
            name="DGD",
            decimals=9,
        ),
        TokenOverride(
            address="0x7fc66500c84a76ad7e9c93437bfc5ac33e2ddae9",
            symbol="AAVE",
            name="Aave Token",
            decimals=18,
        ),
        TokenOverride(
            address="0xeb9951021698b42e4399f9cbb6267aa35f82d59d",
            symbol="LIF",
            name="Lif",
            decimals=18,
        ),
        TokenOverride(
            address="0xbb9bc244d798123fde783fcc1c72d3bb8c189413",
            symbol="TheDAO",
            name="TheDAO",
            decimals=16,
        ),
    ],
    # Legacy pool with corrupt swap history
    pools_to_skip=["0x9663f2ca0454accad3e094448ea6f77443880454"],
)

# Base
BASE_WETH = "0x4200000000000000000000000000000000000006"
BASE_USDC = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"
BASE_USDBC = "0xd9aaec86b65d86f6a7b5b1b0c42ffa531710b6ca"
BASE_DAI = "0x50c5725949a6f0c72e6c4a641f24049a917db0cb"

BASE_MAINNET = ChainConfig(
    chain_id=BASE_MAINNET_ID,
    factory_address="0x33128a8fC17869897dcE68Ed026d694621f6FDfD",
    wrapped_native_address=BASE_WETH,
    # WETH/USDC 0.05%
    stablecoin_wrapped_native_pool_address="0xd0b53D9277642d899DF5C87A3966A349A798F224",
    stablecoin_is_token0=False,
    stablecoin_addresses=[BASE_USDC, BASE_USDBC, BASE_DAI],
    whitelist_tokens=[
        BASE_WETH,
        BASE_USDC,
        BASE_USDBC,
        BASE_DAI,
        "0x2ae3f1ec7f1f5012cfeab0185bfc7aa3cf0dec22",  # cbETH
    ],
    minimum_native_locked=Decimal("1"),
    pools_to_index=[
        "0x9fee7385a2979D15277C3467Db7D99EF1A2669D7",  # tbtc/WETH 0.3
        "0xecA826E450a8AC6Cf9Ab228AE12B84D0407212a7",  # tbtc/USDC 0.3
        "0xbD268aC461969eb956707Fb35cE486f1A89c9167",  # SKR/WETH 0.3
        "0xd0b53D9277642d899DF5C87A3966A349A798F224",  # WETH/USDC 0.05
        "0x455fd3AE52a8AB80f319a1bF912457AA8296695a",  # IHF/WETH 1%
        "0xe9Ed60539a8eA7A4dA04eBFa524e631B1Fd48525",  # WETH/SKOP 1%
    ],
)


def default_chain_configs() -> ChainConfigTable:
    """
    Chain configuration table used by the CLI.

    CHAIN_CONFIG_FILE, when set, replaces the built-in table.
    """
    if CHAIN_CONFIG_FILE:
        logger.info(f"Loading chain configuration from {CHAIN_CONFIG_FILE}")
        return ChainConfigTable.from_json_file(CHAIN_CONFIG_FILE)
    return ChainConfigTable([ETH_MAINNET, BASE_MAINNET])
