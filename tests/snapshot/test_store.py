"""Tests for local snapshot storage."""

from pathlib import Path

import pytest
from eth_utils import to_checksum_address

from stakedrop.snapshot.creator import build_snapshot
from stakedrop.snapshot.manifest import Snapshot
from stakedrop.snapshot.models import AddressAverage
from stakedrop.snapshot.store import load_snapshot, snapshot_file_name, store_on_local_cache


ALICE = to_checksum_address("0x" + "a1" * 20)


@pytest.fixture
def snapshot() -> Snapshot:
    """Single-claim snapshot."""
    averages = {ALICE: AddressAverage(address=ALICE, average_value=10**30)}
    return build_snapshot(averages, 10**24, 1234)


class TestSnapshotFileName:
    """Tests for snapshot_file_name function."""

    @pytest.mark.parametrize(
        ("chain_id", "expected"),
        [
            (1, "snapshot-3.json"),
            (42, "kovan-snapshot-3.json"),
            (100, "100-snapshot-3.json"),
        ],
    )
    def test_prefix_by_chain(self, chain_id: int, expected: str) -> None:
        """Test mainnet is unprefixed and other chains are told apart."""
        assert snapshot_file_name(chain_id, 3) == expected


class TestLocalCache:
    """Tests for store_on_local_cache and load_snapshot."""

    def test_store_and_load(self, tmp_path: Path, snapshot: Snapshot) -> None:
        """Test a stored snapshot reads back identically."""
        directory = tmp_path / "nested" / "cache"

        path = store_on_local_cache(1, 7, snapshot, directory)

        assert path == directory / "snapshot-7.json"
        assert '"merkleTree"' in path.read_text(encoding="utf-8")
        assert load_snapshot(path) == snapshot

    def test_store_overwrites(self, tmp_path: Path, snapshot: Snapshot) -> None:
        """Test storing a period twice keeps the latest document."""
        store_on_local_cache(1, 7, snapshot, tmp_path)
        updated = snapshot.model_copy(update={"block_height": 9999})

        path = store_on_local_cache(1, 7, updated, tmp_path)

        assert load_snapshot(path).block_height == 9999
        assert len(list(tmp_path.iterdir())) == 1

    def test_load_missing_file(self, tmp_path: Path) -> None:
        """Test a missing snapshot is reported as such."""
        with pytest.raises(FileNotFoundError):
            load_snapshot(tmp_path / "snapshot-1.json")
