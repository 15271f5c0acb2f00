"""Tests for JSON persistence of the trader baseline."""

import json

from copytrade.copy_trading import AccountSnapshot, JsonBaselineStore, Position, Side


def _snapshot():
    return AccountSnapshot(
        positions=[
            Position("BTC", Side.LONG, 1.0, 10_000.0, 10.0, 1_000.0, stop_loss=9_000.0, opened_at=1_700_000_000_000),
            Position("ETH", Side.SHORT, 2.0, 2_000.0, 5.0, 800.0, take_profit=1_500.0),
        ],
        total_equity=5_000.0,
        free_balance=3_200.0,
    )


def test_missing_file_is_cold_start(tmp_path):
    assert JsonBaselineStore(tmp_path / "none.json").load() is None


def test_save_then_load(tmp_path):
    store = JsonBaselineStore(tmp_path / "state" / "baseline.json")
    original = _snapshot()

    store.save(original)
    loaded = store.load()

    assert loaded.positions == original.positions
    assert loaded.total_equity == 5_000.0
    assert loaded.fetched_at == original.fetched_at


def test_save_replaces_previous(tmp_path):
    store = JsonBaselineStore(tmp_path / "baseline.json")
    store.save(_snapshot())
    store.save(AccountSnapshot(positions=[], total_equity=1.0))

    assert store.load().positions == []
    assert not (tmp_path / "baseline.json.tmp").exists()


def test_file_layout(tmp_path):
    path = tmp_path / "baseline.json"
    JsonBaselineStore(path).save(_snapshot())

    data = json.loads(path.read_text())
    assert set(data) == {"snapshot", "updated_at"}
    assert data["snapshot"]["positions"][1]["side"] == "short"


def test_corrupt_file_is_cold_start(tmp_path):
    path = tmp_path / "baseline.json"
    path.write_text("{not json")
    assert JsonBaselineStore(path).load() is None


def test_wrong_shape_is_cold_start(tmp_path):
    path = tmp_path / "baseline.json"
    path.write_text(json.dumps({"snapshot": {"positions": [{"symbol": "BTC"}]}}))
    assert JsonBaselineStore(path).load() is None


def test_clear(tmp_path):
    store = JsonBaselineStore(tmp_path / "baseline.json")
    store.save(_snapshot())
    store.clear()
    store.clear()

    assert store.load() is None
