"""
Exact decimal helpers and Uniswap V3 tick math.

All monetary values are `decimal.Decimal`; raw on-chain amounts stay `int`.
"""
from decimal import Context, Decimal, ROUND_HALF_EVEN
from typing import Dict, Tuple

from indexer.exceptions import UnsupportedFeeTierError

ZERO_BD = Decimal(0)
ONE_BD = Decimal(1)

# Arithmetic context every transition runs under
DECIMAL_CONTEXT = Context(prec=50, rounding=ROUND_HALF_EVEN)


def exponent_to_decimal(decimals: int) -> Decimal:
    """Return 10^decimals as an exact Decimal."""
    return ONE_BD.scaleb(decimals)


def safe_div(amount0: Decimal, amount1: Decimal) -> Decimal:
    """Divide, returning zero if the denominator is zero."""
    if amount1 == ZERO_BD:
        return ZERO_BD
    return amount0 / amount1


def fast_exponentiation(value: Decimal, power: int) -> Decimal:
    """
    Exponentiation by squaring.

    Negative powers are the reciprocal of the positive result, so
    fast_exponentiation(x, -n) == 1 / fast_exponentiation(x, n) exactly.
    """
    if power < 0:
        return safe_div(ONE_BD, fast_exponentiation(value, -power))

    if power == 0:
        return ONE_BD

    if power == 1:
        return value

    half_result = fast_exponentiation(value, power // 2)

    # x^(2n) = (x^n)^2
    result = half_result * half_result

    # x^(2n+1) = x^(2n) * x
    if power % 2 == 1:
        result = result * value
    return result


def convert_token_to_decimal(token_amount: int, exchange_decimals: int) -> Decimal:
    """Scale a raw token amount by the token's decimals."""
    if exchange_decimals == 0:
        return Decimal(token_amount)
    return Decimal(token_amount) / exponent_to_decimal(exchange_decimals)


class UniswapV3Math:
    """
    Decimal Uniswap V3 price helpers.
    """

    Q96 = 1 << 96
    Q192 = Q96 * Q96
    MIN_TICK = -887272
    MAX_TICK = 887272

    TICK_BASE = Decimal("1.0001")

    FEE_TIER_TO_TICK_SPACING: Dict[int, int] = {
        10000: 200,
        3000: 60,
        500: 10,
        100: 1,
    }

    @staticmethod
    def price_at_tick(tick: int) -> Decimal:
        """
        Price of token0 in token1 at a tick (1.0001^tick), before decimal
        adjustment.
        """
        if tick < UniswapV3Math.MIN_TICK or tick > UniswapV3Math.MAX_TICK:
            raise ValueError(f"Tick {tick} outside [{UniswapV3Math.MIN_TICK}, {UniswapV3Math.MAX_TICK}]")
        return fast_exponentiation(UniswapV3Math.TICK_BASE, tick)

    @staticmethod
    def sqrt_price_x96_to_token_prices(sqrt_price_x96: int, token0, token1) -> Tuple[Decimal, Decimal]:
        """
        Convert sqrtPriceX96 to (token0Price, token1Price).

        token1Price is token1 per token0 and token0Price its reciprocal,
        both adjusted by the tokens' decimals. A zero sqrt price yields (0, 0).

        Args:
            sqrt_price_x96: Q64.96 square root price from the pool
            token0: Anything with a `decimals` attribute
            token1: Anything with a `decimals` attribute

        Returns:
            Tuple of (token0_price, token1_price)
        """
        num = Decimal(sqrt_price_x96 * sqrt_price_x96)
        denom = Decimal(UniswapV3Math.Q192)
        price1 = (
            safe_div(num, denom)
            * exponent_to_decimal(token0.decimals)
            / exponent_to_decimal(token1.decimals)
        )
        price0 = safe_div(ONE_BD, price1)
        return price0, price1

    @staticmethod
    def fee_tier_to_tick_spacing(fee_tier: int) -> int:
        try:
            return UniswapV3Math.FEE_TIER_TO_TICK_SPACING[int(fee_tier)]
        except KeyError:
            raise UnsupportedFeeTierError(fee_tier)
