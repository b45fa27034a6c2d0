import json

import pytest
import requests

from firewatch.data.incident_collect import (
    FirestoreIncidentSource,
    JsonFileIncidentSource,
    SourceError,
    decode_firestore_document,
)
from firewatch.data.incident_store import IncidentStore, normalize_documents


def test_normalize_keeps_source_order_and_drops_invalid():
    documents = [
        {"id": "a", "latitude": 49.28, "longitude": -123.10},
        {"id": "b", "latitude": "49.29", "longitude": "-123.11"},
        {"id": "c", "latitude": None, "longitude": -123.0},
        {"id": "d", "latitude": 49.0, "longitude": 181.0},
        {"id": "e", "latitude": float("nan"), "longitude": -123.0},
        {"id": "f", "latitude": True, "longitude": -123.0},
        {"id": "", "latitude": 49.0, "longitude": -123.0},
        {"id": "g", "latitude": "north", "longitude": -123.0},
        {"id": "h", "latitude": -90, "longitude": 180},
    ]

    records, dropped = normalize_documents(documents)

    assert [r.id for r in records] == ["a", "b", "h"]
    assert records[1].coordinates == (-123.11, 49.29)
    assert dropped == 6


def test_duplicate_ids_keep_first_document():
    documents = [
        {"id": "a", "latitude": 1.0, "longitude": 2.0},
        {"id": "b", "latitude": 3.0, "longitude": 4.0},
        {"id": "a", "latitude": 5.0, "longitude": 6.0},
    ]
    records, dropped = normalize_documents(documents)
    assert [(r.id, r.latitude) for r in records] == [("a", 1.0), ("b", 3.0)]
    assert dropped == 1


def test_attributes_and_live_flag_are_carried():
    records, _ = normalize_documents(
        [
            {"id": 7, "latitude": 1.0, "longitude": 2.0, "isLiveStream": True, "title": "x"},
            {"id": "v", "latitude": 1.0, "longitude": 2.0, "playbackId": "pb-9"},
            {"id": "s", "latitude": 1.0, "longitude": 2.0, "liveFlag": "false"},
        ]
    )
    live, vod, plain = records

    assert live.id == "7"
    assert live.live_flag
    assert live.attributes["title"] == "x"
    assert "latitude" not in live.attributes
    assert vod.playback_id == "pb-9"
    assert not vod.live_flag
    assert not plain.live_flag


def test_empty_input():
    assert normalize_documents([]) == ([], 0)


def test_refresh_swaps_snapshot_and_counts_sequence():
    store = IncidentStore()
    first = store.refresh([{"id": "a", "latitude": 1.0, "longitude": 2.0}])
    second = store.refresh([])

    assert first.sequence == 1
    assert second.sequence == 2
    assert len(first) == 1
    assert len(second) == 0
    assert store.snapshot is second


def test_record_failure_keeps_snapshot(capsys):
    store = IncidentStore()
    snapshot = store.refresh([{"id": "a", "latitude": 1.0, "longitude": 2.0}])

    kept = store.record_failure(SourceError("timeout"))

    assert kept is snapshot
    assert store.snapshot is snapshot
    assert store.failures == 1
    assert store.last_error == "timeout"
    assert "[ERROR]" in capsys.readouterr().out


def test_decode_firestore_document():
    document = {
        "name": "projects/p/databases/(default)/documents/videos/abc123",
        "fields": {
            "latitude": {"doubleValue": 49.28},
            "longitude": {"doubleValue": -123.1},
            "isLiveStream": {"booleanValue": True},
            "views": {"integerValue": "12"},
            "tags": {"arrayValue": {"values": [{"stringValue": "smoke"}]}},
            "meta": {"mapValue": {"fields": {"playbackId": {"stringValue": "pb"}}}},
            "deleted": {"nullValue": None},
        },
    }

    decoded = decode_firestore_document(document)

    assert decoded == {
        "id": "abc123",
        "latitude": 49.28,
        "longitude": -123.1,
        "isLiveStream": True,
        "views": 12,
        "tags": ["smoke"],
        "meta": {"playbackId": "pb"},
        "deleted": None,
    }


def test_firestore_source_follows_pages(fake_session):
    session = fake_session(
        {
            "documents": [
                {"name": "x/videos/a", "fields": {"latitude": {"doubleValue": 1.0}}},
            ],
            "nextPageToken": "t1",
        },
        {"documents": [{"name": "x/videos/b", "fields": {}}]},
    )
    source = FirestoreIncidentSource("demo", api_key="k", session=session)

    documents = source.fetch()

    assert [d["id"] for d in documents] == ["a", "b"]
    assert session.calls[0]["url"].endswith(
        "/projects/demo/databases/(default)/documents/videos"
    )
    assert session.calls[0]["params"] == {"pageSize": 300, "key": "k"}
    assert session.calls[1]["params"]["pageToken"] == "t1"


def test_firestore_source_wraps_transport_errors(fake_session):
    source = FirestoreIncidentSource(
        "demo", session=fake_session(requests.exceptions.ConnectionError("refused"))
    )
    with pytest.raises(SourceError):
        source.fetch()


def test_firestore_source_requires_project():
    with pytest.raises(ValueError):
        FirestoreIncidentSource("")


def test_json_file_source(tmp_path):
    path = tmp_path / "incidents.json"
    path.write_text(json.dumps({"documents": [{"id": "a"}, "junk"]}))

    assert JsonFileIncidentSource(str(path)).fetch() == [{"id": "a"}]

    with pytest.raises(SourceError):
        JsonFileIncidentSource(str(tmp_path / "missing.json")).fetch()

    path.write_text("{not json")
    with pytest.raises(SourceError):
        JsonFileIncidentSource(str(path)).fetch()


def test_non_mapping_documents_count_as_dropped():
    records, dropped = normalize_documents(
        [{"id": "a", "latitude": 1.0, "longitude": 2.0}, "junk", None, ["x"]]
    )
    assert [r.id for r in records] == ["a"]
    assert dropped == 3
    assert normalize_documents(["junk"]) == ([], 1)


def test_integer_too_large_for_float_is_dropped():
    records, dropped = normalize_documents(
        [
            {"id": "a", "latitude": 10**400, "longitude": 1.0},
            {"id": "b", "latitude": 1.0, "longitude": 2.0},
        ]
    )
    assert [r.id for r in records] == ["b"]
    assert dropped == 1
