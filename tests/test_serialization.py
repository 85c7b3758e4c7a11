"""
Tests for snapshot serialization.
"""

import orjson
import pytest

from horizon.config import HorizonConfig
from horizon.core.horizon_sync import HorizonSyncValidators
from horizon.core.serialization import (
    SNAPSHOT_VERSION,
    dump_snapshot,
    load_snapshot,
    snapshot_to_dict,
)
from horizon.core.storage import BlockchainDatabase, MmrTree
from horizon.exceptions import SnapshotError


@pytest.fixture
def snapshot_path(tmp_path, backend):
    path = tmp_path / "chain.json"
    dump_snapshot(backend, path)
    return path


class TestSnapshot:
    """Tests for dump_snapshot / load_snapshot."""

    def test_layout(self, snapshot_path, backend):
        """Test the document layout."""
        data = orjson.loads(snapshot_path.read_bytes())

        assert data["version"] == SNAPSHOT_VERSION
        assert len(data["headers"]) == len(backend.headers)
        assert set(data["outputs"][0]) == {"output", "height", "spent_height"}
        assert set(data["kernels"][0]) == {"kernel", "height"}

    def test_load_preserves_state(self, snapshot_path, backend, builder):
        """Test a loaded snapshot has the same headers, leaves and roots."""
        loaded = load_snapshot(snapshot_path)

        assert loaded.headers == backend.headers
        assert loaded.fetch_all_utxos() == backend.fetch_all_utxos()
        assert loaded.fetch_all_kernels() == backend.fetch_all_kernels()
        assert loaded.mmr_root_at(MmrTree.UTXO, builder.height) == backend.mmr_root_at(MmrTree.UTXO, builder.height)
        assert [e.spent_height for e in loaded.output_entries] == [e.spent_height for e in backend.output_entries]

    def test_loaded_state_validates(self, snapshot_path, rules, factory, builder):
        """Test a loaded snapshot still passes every horizon check."""
        db = BlockchainDatabase(load_snapshot(snapshot_path))
        validators = HorizonSyncValidators.full_consensus(
            db, rules, factory, HorizonConfig(check_mmr_roots=True)
        )

        validators.header.validate(db.fetch_tip_header())
        validators.final_state.validate(builder.height)

    def test_dump_is_deterministic(self, tmp_path, backend, snapshot_path):
        """Test dumping twice gives identical bytes."""
        again = tmp_path / "again.json"
        dump_snapshot(backend, again)
        assert again.read_bytes() == snapshot_path.read_bytes()


class TestMalformedSnapshots:
    """Tests for snapshot errors."""

    def write(self, tmp_path, data) -> str:
        path = tmp_path / "bad.json"
        path.write_bytes(orjson.dumps(data))
        return str(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(SnapshotError) as exc_info:
            load_snapshot(tmp_path / "nope.json")
        assert exc_info.value.path.endswith("nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(SnapshotError):
            load_snapshot(path)

    def test_wrong_version(self, tmp_path, backend):
        data = snapshot_to_dict(backend)
        data["version"] = 99
        with pytest.raises(SnapshotError, match="version"):
            load_snapshot(self.write(tmp_path, data))

    def test_missing_section(self, tmp_path, backend):
        data = snapshot_to_dict(backend)
        del data["kernels"]
        with pytest.raises(SnapshotError, match="missing"):
            load_snapshot(self.write(tmp_path, data))

    def test_bad_commitment(self, tmp_path, backend):
        data = snapshot_to_dict(backend)
        data["outputs"][0]["output"]["commitment"] = "zz" * 32
        with pytest.raises(SnapshotError) as exc_info:
            load_snapshot(self.write(tmp_path, data))
        assert exc_info.value.path is not None

    def test_duplicate_output(self, tmp_path, backend):
        data = snapshot_to_dict(backend)
        data["outputs"].append(data["outputs"][0])
        with pytest.raises(SnapshotError):
            load_snapshot(self.write(tmp_path, data))

    @pytest.mark.parametrize("field,value", [
        ("output_mr", "zz"),
        ("prev_hash", "ab"),
        ("timestamp", -5),
        ("version", 2**16),
    ])
    def test_bad_header_field(self, tmp_path, backend, field, value):
        """Test a header the hash cannot encode is rejected on load."""
        data = snapshot_to_dict(backend)
        data["headers"][-1][field] = value
        with pytest.raises(SnapshotError, match="Invalid snapshot"):
            load_snapshot(self.write(tmp_path, data))

    @pytest.mark.parametrize("section", ["outputs", "kernels"])
    def test_leaves_out_of_height_order(self, tmp_path, backend, section):
        """Test leaves must be stored in height order."""
        data = snapshot_to_dict(backend)
        data[section][0]["height"] = data[section][-1]["height"] + 1
        with pytest.raises(SnapshotError, match="height"):
            load_snapshot(self.write(tmp_path, data))

    def test_not_an_object(self, tmp_path):
        with pytest.raises(SnapshotError):
            load_snapshot(self.write(tmp_path, [1, 2, 3]))
