"""Common configuration constants used across the application."""

# HTTP and Network Constants
DEFAULT_TIMEOUT = 30.0
"""Default HTTP request timeout in seconds"""

EXTENDED_TIMEOUT = 60.0
"""Extended timeout for batch RPC and subgraph requests"""

# Retry Configuration
MAX_RETRIES = 5
"""Default maximum number of retry attempts"""

RETRY_BASE_DELAY = 1.0
"""Base delay for exponential backoff in seconds"""

RETRY_MAX_DELAY = 60.0
"""Maximum delay between retries in seconds"""

# Concurrency Limits
DEFAULT_CONCURRENCY = 5
"""Default number of outstanding requests against a rate-limited upstream"""

# Event retrieval
DEFAULT_BLOCK_BATCH_SIZE = 1_000_000
"""Number of blocks covered by a single eth_getLogs request"""

SUBGRAPH_PAGE_SIZE = 1000
"""Number of stake sets returned per subgraph page (The Graph's maximum)"""

SUBGRAPH_MAX_PAGES = 1000
"""Upper bound on subgraph pages fetched for a single snapshot"""

# Block search
DEFAULT_AVERAGE_BLOCKS_PER_SECOND = 1 / 13
"""Fallback block production rate used to seed the date -> block search"""

SECONDS_PER_DAY = 24 * 60 * 60
"""Seconds in one day"""

# Token amounts
TOKEN_DECIMALS = 18
"""Decimals of the distributed token"""

# Snapshot document
DEFAULT_FREQUENCY = "month"
"""Default distribution frequency used for APY annualisation"""

DEFAULT_CACHE_DIR = ".cache"
"""Directory for locally stored snapshots and the block timestamp database"""


__all__ = [
    "DEFAULT_AVERAGE_BLOCKS_PER_SECOND",
    "DEFAULT_BLOCK_BATCH_SIZE",
    "DEFAULT_CACHE_DIR",
    "DEFAULT_CONCURRENCY",
    "DEFAULT_FREQUENCY",
    "DEFAULT_TIMEOUT",
    "EXTENDED_TIMEOUT",
    "MAX_RETRIES",
    "RETRY_BASE_DELAY",
    "RETRY_MAX_DELAY",
    "SECONDS_PER_DAY",
    "SUBGRAPH_MAX_PAGES",
    "SUBGRAPH_PAGE_SIZE",
    "TOKEN_DECIMALS",
]
