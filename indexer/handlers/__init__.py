from indexer.handlers.context import HandlerContext
from indexer.handlers.factory import handle_pool_created
from indexer.handlers.pool import (
    handle_burn,
    handle_collect,
    handle_initialize,
    handle_mint,
    handle_swap,
)

__all__ = [
    "HandlerContext",
    "handle_pool_created",
    "handle_initialize",
    "handle_mint",
    "handle_burn",
    "handle_collect",
    "handle_swap",
]
