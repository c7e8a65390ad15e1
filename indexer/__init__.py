"""
Incremental Uniswap V3 state aggregation.

Turns an ordered stream of decoded factory and pool events into pool, token,
protocol and time-bucket snapshots priced in the native asset and USD.
"""
__version__ = "0.1.0"
