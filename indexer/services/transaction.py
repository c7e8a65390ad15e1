from indexer.models.entities import Transaction
from indexer.repositories.store import EntityStore


async def get_and_set_transaction(
    store: EntityStore,
    transaction_hash: str,
    block_number: int,
    timestamp: int,
) -> Transaction:
    """
    Get or create the Transaction shared by all events of one transaction.

    Block number and timestamp are refreshed on every touch. Gas fields stay
    at zero: gas used and price need the receipt, which events do not carry.
    """
    transaction = await store.get(Transaction, transaction_hash)
    if transaction is None:
        transaction = Transaction(
            id=transaction_hash,
            block_number=block_number,
            timestamp=timestamp,
        )

    transaction = transaction.replace(
        block_number=block_number,
        timestamp=timestamp,
        gas_used=0,
        gas_price=0,
    )
    await store.set(transaction)
    return transaction
