"""Process settings read from the environment (and a local .env file)."""
import os
from typing import Optional, Type, TypeVar

from dotenv import load_dotenv

load_dotenv()

T = TypeVar("T")


def get_env_variable(name: str, type_: Type[T], default: Optional[T]) -> Optional[T]:
    """
    Read `name` from the environment and convert it with `type_`.

    An unset or blank variable yields `default` unconverted, so a `None`
    default stays `None`.
    """
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default

    try:
        return type_(raw.strip())
    except ValueError as e:
        raise ValueError(
            f"Environment variable '{name}'={raw!r} is not a valid {type_.__name__}"
        ) from e


# RPC endpoints used for ERC-20 metadata lookups
MAINNET_RPC = get_env_variable("MAINNET_RPC", str, "https://eth.llamarpc.com")
BASE_RPC = get_env_variable("BASE_RPC", str, "https://base.llamarpc.com")

# Seconds before a single metadata call is abandoned
TOKEN_METADATA_TIMEOUT = get_env_variable("TOKEN_METADATA_TIMEOUT", float, 10.0)

# Entity store
INDEXER_DB_URL = get_env_variable("INDEXER_DB_URL", str, "sqlite://indexer.sqlite3")
DB_MAX_RETRIES = get_env_variable("DB_MAX_RETRIES", int, 3)

# JSON file replacing the built-in chain table
CHAIN_CONFIG_FILE = get_env_variable("CHAIN_CONFIG_FILE", str, "")
