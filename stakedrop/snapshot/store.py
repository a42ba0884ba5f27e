"""Reading and writing snapshot documents on the local disk."""

from pathlib import Path

from stakedrop.helpers.constants import DEFAULT_CACHE_DIR
from stakedrop.helpers.logging import get_logger
from stakedrop.snapshot.manifest import Snapshot


logger = get_logger(__name__)

FILE_NAME_TEMPLATE = "{prefix}snapshot-{period}.json"

PREFIX_BY_CHAIN_ID = {
    1: "",
    42: "kovan-",
}


def snapshot_file_name(chain_id: int, period: int | str) -> str:
    """File name of a period's snapshot, e.g. ``snapshot-3.json`` on mainnet.

    Chains without a dedicated prefix use their id, so snapshots of several
    chains can share a directory.
    """
    prefix = PREFIX_BY_CHAIN_ID.get(chain_id, f"{chain_id}-")
    return FILE_NAME_TEMPLATE.format(prefix=prefix, period=period)


def store_on_local_cache(
    chain_id: int,
    period: int | str,
    snapshot: Snapshot,
    directory: str | Path = DEFAULT_CACHE_DIR,
) -> Path:
    """Write a snapshot as JSON and return the file path.

    The directory is created if needed and an existing file for the same
    period is replaced.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    path = directory / snapshot_file_name(chain_id, period)
    path.write_text(snapshot.to_json(), encoding="utf-8")
    logger.info("Stored snapshot for period %s at %s", period, path)
    return path


def load_snapshot(path: str | Path) -> Snapshot:
    """Read a snapshot written by store_on_local_cache.

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If the file is not a snapshot document
    """
    return Snapshot.model_validate_json(Path(path).read_text(encoding="utf-8"))


__all__ = [
    "PREFIX_BY_CHAIN_ID",
    "load_snapshot",
    "snapshot_file_name",
    "store_on_local_cache",
]
