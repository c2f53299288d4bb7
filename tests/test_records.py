"""Tests for netdisco_sync/sync/records.py — entry types, wire codec, record_entry."""
import json

import pytest

from netdisco_sync.sync.keys import SyncKey
from netdisco_sync.sync.records import (
    COLLECTIONS,
    DecodeError,
    Favorite,
    NetworkProfile,
    QualitySample,
    SpeedTestEntry,
    collection_counts,
    decode_collection,
    encode_collection,
    entry_from_wire,
    entry_to_wire,
    load_entries,
    record_entry,
)


def _speed(t, down=50.0):
    return SpeedTestEntry(timestamp=t, download_mbps=down, upload_mbps=10.0, latency_ms=12.0)


class TestWireFormat:
    def test_speed_test_field_names(self):
        wire = entry_to_wire(SpeedTestEntry(100.0, 50.0, 10.0, 12.5, location="Office"))
        assert wire == {"date": 100.0, "download": 50.0, "upload": 10.0,
                        "latency": 12.5, "location": "Office"}

    def test_absent_optional_is_omitted(self):
        wire = entry_to_wire(_speed(100.0))
        assert "location" not in wire

    def test_quality_sample_field_names(self):
        wire = entry_to_wire(QualitySample(1.0, 20.0, 3.0, 0.5))
        assert set(wire) == {"date", "latency", "jitter", "packetLoss"}

    def test_favorite_field_names(self):
        assert entry_to_wire(Favorite("ip", "8.8.8.8")) == {"type": "ip", "value": "8.8.8.8"}

    def test_profile_field_names(self):
        wire = entry_to_wire(NetworkProfile("Home", 10.0, 3, avg_latency=15.0))
        assert wire == {"ssid": "Home", "lastSeen": 10.0, "testCount": 3, "avgLatency": 15.0}

    def test_absent_optional_round_trips_as_absent(self):
        blob = encode_collection([NetworkProfile("Home", 10.0, 3)])
        assert "avgDownload" not in blob
        [profile] = decode_collection(blob, NetworkProfile)
        assert profile.avg_download is None
        assert profile.avg_upload is None
        assert profile.avg_latency is None

    def test_encoding_is_compact_json_array(self):
        blob = encode_collection([Favorite("host", "example.com", label="Web")])
        assert blob == '[{"type":"host","value":"example.com","label":"Web"}]'


class TestDecode:
    def test_null_optional_decodes_as_absent(self):
        entry = entry_from_wire(SpeedTestEntry, {
            "date": 1, "download": 2, "upload": 3, "latency": 4, "location": None,
        })
        assert entry.location is None

    def test_unknown_fields_are_ignored(self):
        entry = entry_from_wire(Favorite, {"type": "ip", "value": "1.1.1.1", "pinned": True})
        assert entry == Favorite("ip", "1.1.1.1")

    def test_missing_required_field(self):
        with pytest.raises(DecodeError, match="packetLoss"):
            entry_from_wire(QualitySample, {"date": 1, "latency": 2, "jitter": 3})

    def test_wrong_type(self):
        with pytest.raises(DecodeError):
            entry_from_wire(Favorite, {"type": "ip", "value": 42})

    def test_bool_is_not_a_number(self):
        with pytest.raises(DecodeError):
            entry_from_wire(QualitySample, {"date": 1, "latency": True, "jitter": 3, "packetLoss": 0})

    def test_non_finite_number_rejected(self):
        with pytest.raises(DecodeError):
            decode_collection('[{"date": NaN, "latency": 1, "jitter": 1, "packetLoss": 0}]',
                              QualitySample)

    def test_integral_float_accepted_for_int_field(self):
        profile = entry_from_wire(NetworkProfile, {"ssid": "Cafe", "lastSeen": 5, "testCount": 4.0})
        assert profile.sample_count == 4
        assert isinstance(profile.sample_count, int)

    def test_fractional_float_rejected_for_int_field(self):
        with pytest.raises(DecodeError):
            entry_from_wire(NetworkProfile, {"ssid": "Cafe", "lastSeen": 5, "testCount": 4.5})

    def test_malformed_json(self):
        with pytest.raises(DecodeError):
            decode_collection("[{not json", Favorite)

    def test_non_array_payload(self):
        with pytest.raises(DecodeError):
            decode_collection('{"type": "ip", "value": "8.8.8.8"}', Favorite)

    def test_bytes_and_parsed_lists_accepted(self):
        raw = [{"type": "ip", "value": "8.8.8.8"}]
        assert decode_collection(json.dumps(raw).encode("utf-8"), Favorite) == [Favorite("ip", "8.8.8.8")]
        assert decode_collection(raw, Favorite) == [Favorite("ip", "8.8.8.8")]

    def test_decode_error_is_value_error(self):
        assert issubclass(DecodeError, ValueError)


class TestCollectionSpecs:
    def test_caps(self):
        assert COLLECTIONS[SyncKey.SPEED_TEST_HISTORY].cap == 50
        assert COLLECTIONS[SyncKey.QUALITY_HISTORY].cap == 2880
        assert COLLECTIONS[SyncKey.FAVORITES].cap == 20
        assert COLLECTIONS[SyncKey.NETWORK_PROFILES].cap == 30

    def test_favorites_keep_append_order(self):
        assert COLLECTIONS[SyncKey.FAVORITES].order_key is None

    def test_decode_or_empty_on_garbage(self):
        assert COLLECTIONS[SyncKey.FAVORITES].decode_or_empty("garbage") == []
        assert COLLECTIONS[SyncKey.FAVORITES].decode_or_empty(None) == []


class TestRecordEntry:
    def test_newest_first(self, local_store):
        record_entry(local_store, SyncKey.SPEED_TEST_HISTORY, _speed(100.0))
        record_entry(local_store, SyncKey.SPEED_TEST_HISTORY, _speed(300.0))
        record_entry(local_store, SyncKey.SPEED_TEST_HISTORY, _speed(200.0))
        entries = load_entries(local_store, SyncKey.SPEED_TEST_HISTORY)
        assert [e.timestamp for e in entries] == [300.0, 200.0, 100.0]

    def test_same_identity_replaces(self, local_store):
        record_entry(local_store, SyncKey.SPEED_TEST_HISTORY, _speed(100.0, down=50.0))
        record_entry(local_store, SyncKey.SPEED_TEST_HISTORY, _speed(100.0, down=90.0))
        entries = load_entries(local_store, SyncKey.SPEED_TEST_HISTORY)
        assert len(entries) == 1
        assert entries[0].download_mbps == 90.0

    def test_favorites_append(self, local_store):
        record_entry(local_store, SyncKey.FAVORITES, Favorite("ip", "8.8.8.8"))
        record_entry(local_store, SyncKey.FAVORITES, Favorite("ip", "1.1.1.1"))
        values = [f.value for f in load_entries(local_store, SyncKey.FAVORITES)]
        assert values == ["8.8.8.8", "1.1.1.1"]

    def test_cap_drops_oldest(self, local_store):
        for t in range(51):
            assert record_entry(local_store, SyncKey.SPEED_TEST_HISTORY, _speed(float(t))) is True
        entries = load_entries(local_store, SyncKey.SPEED_TEST_HISTORY)
        assert len(entries) == 50
        assert entries[-1].timestamp == 1.0

    def test_entry_older_than_full_collection_not_kept(self, local_store):
        for t in range(10, 60):
            record_entry(local_store, SyncKey.SPEED_TEST_HISTORY, _speed(float(t)))
        assert record_entry(local_store, SyncKey.SPEED_TEST_HISTORY, _speed(1.0)) is False
        assert len(load_entries(local_store, SyncKey.SPEED_TEST_HISTORY)) == 50

    def test_wrong_entry_type(self, local_store):
        with pytest.raises(TypeError):
            record_entry(local_store, SyncKey.FAVORITES, _speed(1.0))

    def test_scalar_key_rejected(self, local_store):
        with pytest.raises(KeyError):
            record_entry(local_store, SyncKey.GEEK_MODE, Favorite("ip", "8.8.8.8"))

    def test_corrupt_existing_blob_is_replaced(self, local_store):
        local_store.set(SyncKey.FAVORITES.value, "not json")
        record_entry(local_store, SyncKey.FAVORITES, Favorite("ip", "8.8.8.8"))
        assert load_entries(local_store, SyncKey.FAVORITES) == [Favorite("ip", "8.8.8.8")]


class TestCollectionCounts:
    def test_counts_every_collection(self, local_store):
        record_entry(local_store, SyncKey.FAVORITES, Favorite("ip", "8.8.8.8"))
        counts = collection_counts(local_store)
        assert counts == {
            "SpeedTestHistory": 0,
            "QualityHistory": 0,
            "Favorites": 1,
            "NetworkProfiles": 0,
        }
