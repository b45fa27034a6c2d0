import argparse
import json
import sys

import pytest

from firewatch import EngineConfig
from firewatch import main as cli
from firewatch.data.incident_collect import FirestoreIncidentSource


@pytest.fixture
def incident_file(tmp_path):
    path = tmp_path / "incidents.json"
    path.write_text(
        json.dumps(
            [
                {"id": "a", "latitude": 49.28, "longitude": -123.10},
                {"id": "b", "latitude": 49.2801, "longitude": -123.1001},
                {"id": "c", "latitude": 49.0, "longitude": -122.0},
            ]
        )
    )
    return path


def test_once_writes_geojson(monkeypatch, tmp_path, incident_file, capsys):
    output = tmp_path / "clusters.geojson"
    monkeypatch.setattr(
        sys,
        "argv",
        ["firewatch", "--source-file", str(incident_file), "--zoom", "11", "--once", "--output", str(output)],
    )

    cli.main()

    collection = json.loads(output.read_text())
    centers = [f for f in collection["features"] if f["properties"]["feature_type"] == "cluster_center"]
    assert [f["properties"]["incident_ids"] for f in centers] == [["a", "b"], ["c"]]
    out = capsys.readouterr().out
    assert "ADD" in out
    assert "Clusters: 2" in out


def test_invalid_config_exits_with_usage_error(monkeypatch, incident_file):
    monkeypatch.setattr(
        sys,
        "argv",
        ["firewatch", "--source-file", str(incident_file), "--once", "--poll-interval", "-1"],
    )
    with pytest.raises(SystemExit) as excinfo:
        cli.main()
    assert excinfo.value.code == 2


def test_missing_keys_disable_enrichment(capsys):
    assert cli.create_enrichment(EngineConfig(news_api_key="key")) is None
    assert "[WARNING]" in capsys.readouterr().out


def test_firestore_source_from_environment(monkeypatch):
    monkeypatch.setenv("FIRESTORE_PROJECT_ID", "env-project")
    monkeypatch.setenv("FIRESTORE_COLLECTION", "reports")
    args = argparse.Namespace(
        source_file=None, firestore_project=None, collection=None, firestore_api_key=None
    )

    source = cli.create_source(args)

    assert isinstance(source, FirestoreIncidentSource)
    assert source.url.endswith("/projects/env-project/databases/(default)/documents/reports")


def test_missing_source_is_rejected(monkeypatch):
    monkeypatch.delenv("FIRESTORE_PROJECT_ID", raising=False)
    args = argparse.Namespace(
        source_file=None, firestore_project=None, collection=None, firestore_api_key=None
    )
    with pytest.raises(ValueError):
        cli.create_source(args)
