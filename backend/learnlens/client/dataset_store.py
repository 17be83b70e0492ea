# This module keeps the single active dataset on the client.
# An in-memory mirror is authoritative for the session; a JSON key-value file
# plays the role of browser localStorage so the dataset survives restarts.
# Nothing outside DatasetStore should touch the storage file directly.

import json
import logging
import os
import tempfile
from pathlib import Path

from learnlens.client.config import ClientConfig
from learnlens.client.models import Dataset

logger = logging.getLogger(__name__)

STORAGE_KEY = "studentDashboardDataset"

# Same order of magnitude as a browser's per-origin localStorage quota
DEFAULT_QUOTA_BYTES = 10 * 1024 * 1024


class StorageQuotaExceeded(OSError):
    """Raised when a write would grow the storage file past its quota."""


class JsonFileStorage:
    """Small string key-value store persisted as one JSON object on disk."""

    def __init__(self, path, quota_bytes=DEFAULT_QUOTA_BYTES):
        self.path = Path(path)
        self.quota_bytes = quota_bytes

    def _read_all(self):
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def _write_all(self, data):
        payload = json.dumps(data)
        if len(payload.encode("utf-8")) > self.quota_bytes:
            raise StorageQuotaExceeded(f"storage quota of {self.quota_bytes} bytes exceeded")

        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a sibling temp file then swap it in, so readers never see half a file
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def _read_for_write(self):
        # An unreadable file must not block later writes; it gets overwritten
        try:
            return self._read_all()
        except ValueError as e:
            logger.warning("Discarding unreadable storage file %s: %s", self.path, e)
            return {}

    def get_item(self, key):
        return self._read_all().get(key)

    def set_item(self, key, value):
        data = self._read_for_write()
        data[key] = value
        self._write_all(data)

    def remove_item(self, key):
        data = self._read_for_write()
        data.pop(key, None)
        self._write_all(data)


class DatasetStore:
    """
    get/set/has/clear access to the one active dataset.

    Persistence is best effort: storage failures are logged and never reach
    the caller, and the in-memory mirror stays authoritative for the session.
    """

    def __init__(self, storage, key=STORAGE_KEY):
        self._storage = storage
        self._key = key
        self._dataset = None
        self._hydrated = False

    def set(self, dataset):
        """Replace the active dataset (no merge with the previous one)."""
        self._dataset = dataset
        self._hydrated = True
        try:
            self._storage.set_item(self._key, json.dumps(dataset.to_dict()))
            logger.info("Dataset stored: %d records", dataset.record_count)
        except (OSError, ValueError, TypeError) as e:
            logger.error("Error saving dataset to storage: %s", e)

    def get(self):
        """Return the active dataset, reading storage once per session if needed."""
        if not self._hydrated:
            self._dataset = self._load()
            self._hydrated = True
        return self._dataset

    def has(self):
        dataset = self.get()
        return dataset is not None and len(dataset.students) > 0

    def clear(self):
        self._dataset = None
        self._hydrated = True
        try:
            self._storage.remove_item(self._key)
        except (OSError, ValueError) as e:
            logger.error("Error clearing dataset from storage: %s", e)
        logger.info("Uploaded dataset cleared")

    def _load(self):
        try:
            saved = self._storage.get_item(self._key)
            if not saved:
                return None
            return Dataset.from_dict(json.loads(saved))
        except (OSError, ValueError, TypeError, KeyError) as e:
            logger.error("Error loading dataset from storage: %s", e)
            return None


# Process-wide store used by the command line client
dataset_store = DatasetStore(JsonFileStorage(ClientConfig.from_env().store_path))
