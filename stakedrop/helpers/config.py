"""Configuration management and environment variable utilities."""

import os

from dotenv import load_dotenv

from stakedrop.helpers.constants import (
    DEFAULT_AVERAGE_BLOCKS_PER_SECOND,
    DEFAULT_CACHE_DIR,
)


# Load environment variables from .env file
load_dotenv()

DEFAULT_DATABASE_URL = f"sqlite+aiosqlite:///{DEFAULT_CACHE_DIR}/blocks.db"


def get_required_env(key: str) -> str:
    """Get a required environment variable.

    Args:
        key: Environment variable name

    Returns:
        Environment variable value

    Raises:
        ValueError: If the environment variable is not set

    Example:
        ```python
        from stakedrop.helpers.config import get_required_env

        contract = get_required_env("STAKEDROP_CONTRACT_ADDRESS")
        ```
    """
    value = os.getenv(key)
    if not value:
        msg = f"{key} environment variable is not set"
        raise ValueError(msg)
    return value


def get_optional_env(key: str, default: str | None = None) -> str | None:
    """Get an optional environment variable with a default value.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default
    """
    return os.getenv(key, default)


def get_eth_rpc_url(rpc_url: str | None = None) -> str:
    """Get Ethereum RPC URL from parameter or environment.

    Args:
        rpc_url: Optional RPC URL to use directly

    Returns:
        Ethereum RPC URL

    Raises:
        ValueError: If RPC URL is not provided and ETH_RPC_URL env var is not set

    Example:
        ```python
        from stakedrop.helpers.config import get_eth_rpc_url

        # Get from environment
        rpc_url = get_eth_rpc_url()

        # Or provide explicitly
        rpc_url = get_eth_rpc_url("https://eth.llamarpc.com")
        ```
    """
    if rpc_url:
        return rpc_url

    env_rpc_url = os.getenv("ETH_RPC_URL")
    if not env_rpc_url:
        msg = "ETH_RPC_URL must be provided or set in environment variables"
        raise ValueError(msg)

    return env_rpc_url


def get_database_url() -> str:
    """Get the block timestamp cache database URL.

    Returns:
        SQLAlchemy async database URL from STAKEDROP_DATABASE_URL, or a local
        SQLite file under the cache directory.
    """
    return os.getenv("STAKEDROP_DATABASE_URL") or DEFAULT_DATABASE_URL


def get_average_blocks_per_second() -> float:
    """Get the average block production rate used to seed block searches.

    Returns:
        Blocks per second from STAKEDROP_AVERAGE_BLOCKS_PER_SECOND, or the
        mainnet default (one block every 13 seconds).

    Raises:
        ValueError: If the variable is set but is not a positive number
    """
    raw = os.getenv("STAKEDROP_AVERAGE_BLOCKS_PER_SECOND")
    if not raw:
        return DEFAULT_AVERAGE_BLOCKS_PER_SECOND

    try:
        value = float(raw)
    except ValueError:
        msg = f"STAKEDROP_AVERAGE_BLOCKS_PER_SECOND is not a number: {raw}"
        raise ValueError(msg) from None

    if value <= 0:
        msg = f"STAKEDROP_AVERAGE_BLOCKS_PER_SECOND must be positive, got {raw}"
        raise ValueError(msg)
    return value


def get_subgraph_url(subgraph_url: str | None = None) -> str | None:
    """Get an explicit subgraph endpoint, if one was configured.

    Args:
        subgraph_url: Optional endpoint to use directly

    Returns:
        The endpoint, STAKEDROP_SUBGRAPH_URL, or None to fall back to the
        per-chain defaults.
    """
    return subgraph_url or get_optional_env("STAKEDROP_SUBGRAPH_URL") or None


__all__ = [
    "DEFAULT_DATABASE_URL",
    "get_average_blocks_per_second",
    "get_database_url",
    "get_eth_rpc_url",
    "get_optional_env",
    "get_required_env",
    "get_subgraph_url",
]
