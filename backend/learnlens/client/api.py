# HTTP access to the dashboard API.
# Transport and decoding failures are turned into UploadError / FetchError
# here so the rest of the client only deals with typed errors.

import logging
import threading
from contextlib import contextmanager
from enum import Enum

import requests

from learnlens.client.models import AnalyticsSummary, StudentRecord

logger = logging.getLogger(__name__)

UPLOAD_FAILED = "Upload failed"


class UploadErrorKind(Enum):
    SERVER_REJECTED = "server_rejected"
    NETWORK_FAILURE = "network_failure"
    MALFORMED_RESPONSE = "malformed_response"


class FetchErrorKind(Enum):
    NETWORK_FAILURE = "network_failure"
    MALFORMED_RESPONSE = "malformed_response"


class UploadError(Exception):
    def __init__(self, kind: UploadErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class FetchError(Exception):
    def __init__(self, kind: FetchErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


def _json_body(response):
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


class ApiClient:
    """
    Thin wrapper around the /api endpoints.

    Calls arrive from worker threads. Without an explicit session every thread
    gets its own requests.Session; a session passed in is shared, so calls on
    it are made one at a time.
    """

    def __init__(self, base_url, session=None, timeout=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._shared_session = session
        self._shared_lock = threading.Lock()
        self._local = threading.local()

    @contextmanager
    def _session(self):
        if self._shared_session is not None:
            with self._shared_lock:
                yield self._shared_session
            return
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = requests.Session()
        yield session

    def _url(self, path):
        return f"{self.base_url}{path}"

    def upload_dataset(self, candidate):
        """
        POST the file as multipart field `file` to /api/upload-dataset.

        Returns:
            dict: The response body of a successful upload

        Raises:
            UploadError: Network failure, rejection (non-2xx or success false),
                or an unreadable success response
        """
        try:
            with open(candidate.path, "rb") as fh, self._session() as session:
                response = session.post(
                    self._url("/api/upload-dataset"),
                    files={"file": (candidate.name, fh, "text/csv")},
                    timeout=self.timeout,
                )
        except requests.RequestException as e:
            raise UploadError(UploadErrorKind.NETWORK_FAILURE, f"Could not reach the server: {e}")
        except OSError as e:
            raise UploadError(UploadErrorKind.NETWORK_FAILURE, f"Could not read {candidate.name}: {e}")

        body = _json_body(response)
        if not response.ok:
            message = (body or {}).get("error") or UPLOAD_FAILED
            raise UploadError(UploadErrorKind.SERVER_REJECTED, str(message))
        if body is None:
            raise UploadError(UploadErrorKind.MALFORMED_RESPONSE, UPLOAD_FAILED)
        if body.get("success") is not True:
            raise UploadError(UploadErrorKind.SERVER_REJECTED, str(body.get("error") or UPLOAD_FAILED))
        return body

    def _get_data(self, path):
        try:
            with self._session() as session:
                response = session.get(self._url(path), timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(FetchErrorKind.NETWORK_FAILURE, f"GET {path} failed: {e}")

        body = _json_body(response)
        if body is None:
            raise FetchError(FetchErrorKind.MALFORMED_RESPONSE, f"GET {path} returned a non-JSON body")
        if not body.get("success"):
            raise FetchError(
                FetchErrorKind.MALFORMED_RESPONSE,
                f"GET {path} reported an error: {body.get('error') or response.status_code}",
            )
        return body.get("data")

    def get_students(self):
        data = self._get_data("/api/students")
        if data is None:
            return []
        try:
            return [StudentRecord.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise FetchError(FetchErrorKind.MALFORMED_RESPONSE, f"Malformed student record: {e}")

    def get_analytics(self):
        data = self._get_data("/api/analytics")
        try:
            return AnalyticsSummary.from_dict(data)
        except (AttributeError, TypeError, ValueError) as e:
            raise FetchError(FetchErrorKind.MALFORMED_RESPONSE, f"Malformed analytics payload: {e}")
