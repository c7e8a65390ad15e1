"""
Main entry point for the Uniswap V3 event indexer.

Replays a JSON-lines file of decoded pool events into the entity store.
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from indexer.chains import default_chain_configs
from indexer.exceptions import IndexerError
from indexer.models.config import ChainConfigTable
from indexer.models.events import Event, parse_event
from indexer.processor import EventProcessor
from indexer.repositories.store import EntityStore, InMemoryEntityStore
from indexer.services.token import Erc20MetadataResolver

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler('indexer.log'),
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


def get_config():
    """Load configuration from environment and arguments."""
    load_dotenv()

    parser = argparse.ArgumentParser(description='Uniswap V3 event indexer')
    parser.add_argument('--events', type=str, required=True, help='JSON-lines file of decoded events')
    parser.add_argument('--db-url', type=str, help='Entity store database URL (defaults to INDEXER_DB_URL)')
    parser.add_argument('--chain-config', type=str, help='JSON file with chain configurations')
    parser.add_argument('--dry-run', action='store_true', help='Apply events to an in-memory store only')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')

    return parser.parse_args()


def load_events(path: Path) -> List[Event]:
    """Parse one decoded event per non-empty line."""
    events = []
    with open(path, "r") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                events.append(parse_event(json.loads(line)))
            except ValueError as e:
                raise ValueError(f"{path}:{line_number}: {e}") from e
    return events


async def run(args) -> int:
    chains = (
        ChainConfigTable.from_json_file(args.chain_config)
        if args.chain_config
        else default_chain_configs()
    )
    events = load_events(Path(args.events))
    logger.info(f"Loaded {len(events)} events for {len(chains)} configured chains")

    store: EntityStore
    if args.dry_run:
        store = InMemoryEntityStore()
    else:
        # Tortoise is only needed for the persistent store
        from indexer.models.snapshots import close_db, init_db
        from indexer.repositories.snapshot import TortoiseEntityStore

        await init_db(args.db_url)
        store = TortoiseEntityStore()

    processor = EventProcessor(store, chains, Erc20MetadataResolver())
    try:
        summary = await processor.run(events)
    except IndexerError as e:
        logger.error(f"Indexing stopped: {e}")
        return 1
    finally:
        if not args.dry_run:
            await close_db()

    if args.dry_run:
        logger.info(f"Dry run finished with {len(store)} snapshots in memory")
    logger.info(f"Applied {sum(summary.values())} of {len(events)} events")
    return 0


def main():
    """Main indexer entry point."""
    args = get_config()
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    logger.info("Starting Uniswap V3 indexer")
    sys.exit(asyncio.run(run(args)))


if __name__ == '__main__':
    main()
