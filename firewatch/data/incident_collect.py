"""
Incident Data Source Helper Module

Fetches the current set of incident documents from the external document store.
Sources return raw documents as plain dicts; validation and normalization happen
in the incident store.
"""

import json
import os
from typing import Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

FIRESTORE_BASE = "https://firestore.googleapis.com/v1"
DEFAULT_COLLECTION = "videos"
PAGE_SIZE = 300
TIMEOUT = (10, 30)  # (connect, read) seconds


class SourceError(RuntimeError):
    """Raised when an incident source cannot produce a document list."""


def create_session(accept: str = "application/json") -> requests.Session:
    """Create a requests session with retry strategy."""
    session = requests.Session()

    retry_strategy = Retry(
        total=3,
        status_forcelist=[429, 500, 502, 503, 504],
        backoff_factor=1,  # Wait 1, 2, 4 seconds between retries
        raise_on_status=False,
    )

    adapter = HTTPAdapter(max_retries=retry_strategy, pool_connections=4, pool_maxsize=8)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.headers.update(
        {
            "User-Agent": "firewatch/1.0",
            "Accept": accept,
            "Connection": "keep-alive",
        }
    )

    return session


def decode_firestore_value(value: Dict):
    """Convert a Firestore REST typed value into a plain Python value."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return value["timestampValue"]
    if "referenceValue" in value:
        return value["referenceValue"]
    if "geoPointValue" in value:
        point = value["geoPointValue"]
        return {
            "latitude": point.get("latitude", 0.0),
            "longitude": point.get("longitude", 0.0),
        }
    if "mapValue" in value:
        return decode_firestore_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_firestore_value(v) for v in value["arrayValue"].get("values", [])]
    return None


def decode_firestore_fields(fields: Dict) -> Dict:
    return {name: decode_firestore_value(value) for name, value in fields.items()}


def decode_firestore_document(document: Dict) -> Dict:
    """Flatten a Firestore document, taking its id from the resource name."""
    data = decode_firestore_fields(document.get("fields", {}))
    name = document.get("name", "")
    if name:
        data.setdefault("id", name.rsplit("/", 1)[-1])
    return data


class FirestoreIncidentSource:
    """Reads every document of one Firestore collection over the REST API."""

    def __init__(
        self,
        project_id: str,
        collection: str = DEFAULT_COLLECTION,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        database: str = "(default)",
    ):
        if not project_id:
            raise ValueError("project_id is required for the Firestore source")
        self.url = (
            f"{FIRESTORE_BASE}/projects/{project_id}/databases/{database}"
            f"/documents/{collection}"
        )
        self.api_key = api_key
        self.session = session or create_session()

    def fetch(self) -> List[Dict]:
        """
        Fetch all incident documents, following pagination.

        Returns:
            List of flattened documents

        Raises:
            SourceError: If any page cannot be fetched or decoded
        """
        documents = []
        page_token = None

        while True:
            params = {"pageSize": PAGE_SIZE}
            if self.api_key:
                params["key"] = self.api_key
            if page_token:
                params["pageToken"] = page_token

            try:
                r = self.session.get(self.url, params=params, timeout=TIMEOUT)
                r.raise_for_status()
                payload = r.json()
            except requests.exceptions.Timeout as e:
                raise SourceError(
                    f"Timeout after {TIMEOUT[0]}s connect + {TIMEOUT[1]}s read"
                ) from e
            except requests.exceptions.HTTPError as e:
                raise SourceError(f"HTTP {e.response.status_code} - {e}") from e
            except requests.exceptions.RequestException as e:
                raise SourceError(f"Request failed - {str(e)[:100]}") from e
            except ValueError as e:
                raise SourceError(f"Invalid JSON payload - {e}") from e

            documents.extend(
                decode_firestore_document(doc) for doc in payload.get("documents", [])
            )
            page_token = payload.get("nextPageToken")
            if not page_token:
                return documents

    def close(self):
        self.session.close()


class JsonFileIncidentSource:
    """Reads incident documents from a JSON file (a list, or {"documents": [...]})."""

    def __init__(self, path: str):
        self.path = path

    def fetch(self) -> List[Dict]:
        if not os.path.exists(self.path):
            raise SourceError(f"Incident file not found: {self.path}")
        try:
            with open(self.path) as f:
                payload = json.load(f)
        except (OSError, ValueError) as e:
            raise SourceError(f"Failed to read {self.path}: {e}") from e

        if isinstance(payload, dict):
            payload = payload.get("documents", [])
        if not isinstance(payload, list):
            raise SourceError(f"Expected a list of documents in {self.path}")
        return [doc for doc in payload if isinstance(doc, dict)]


class StaticIncidentSource:
    """In-memory source; `documents` can be replaced between polls."""

    def __init__(self, documents: Optional[List[Dict]] = None):
        self.documents = list(documents or [])

    def fetch(self) -> List[Dict]:
        return list(self.documents)
