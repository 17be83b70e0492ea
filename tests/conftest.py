import io
import sys
import threading
from pathlib import Path

import pytest
import requests

sys.path.append(str(Path(__file__).resolve().parent.parent / "backend"))

from config import TestingConfig  # noqa: E402
from learnlens import create_app  # noqa: E402

HEADER = "student_id,name,class,comprehension,attention,focus,retention,assessment_score,engagement_time"

SAMPLE_ROWS = [
    "S001,Amara Okafor,10A,82,75,78,80,84,120",
    "S002,Liam Chen,10A,65,60,58,62,61,85",
    "S003,Sofia Rossi,10B,91,88,90,87,93,140",
    "S004,Noah Patel,10B,55,48,50,53,49,60",
    "S005,Yuki Tanaka,10A,74,70,72,76,75,110",
    "S006,Mateo Garcia,10C,68,72,65,70,69,95",
    "S007,Aisha Bello,10C,88,84,86,90,89,135",
    "S008,Ethan Novak,10B,47,52,45,50,46,55",
    "S009,Chloe Martin,10A,79,81,77,74,80,115",
    "S010,Omar Haddad,10C,60,58,62,57,59,80",
    "S011,Hana Kim,10B,85,79,83,86,87,125",
    "S012,Lucas Silva,10C,71,66,69,68,70,100",
]


def make_csv(rows=None, header=HEADER):
    rows = SAMPLE_ROWS if rows is None else rows
    return "\n".join([header] + list(rows)) + "\n"


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sample_csv_text():
    return make_csv()


@pytest.fixture
def write_csv(tmp_path):
    """Write text to a file under tmp_path and return its path."""
    def _write(text, name="students.csv"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write


def upload(client, text, filename="students.csv"):
    return client.post(
        "/api/upload-dataset",
        data={"file": (io.BytesIO(text.encode("utf-8")), filename)},
        content_type="multipart/form-data",
    )


class FakeResponse:
    """Just enough of requests.Response for ApiClient."""

    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self._text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._text is not None:
            raise ValueError("Expecting value")
        return self._body


class FakeSession:
    """Records calls and answers with canned responses (or raises)."""

    def __init__(self, get=None, post=None):
        self.get_responses = dict(get or {})
        self.post_response = post
        self.calls = []

    def _answer(self, answer):
        if isinstance(answer, Exception):
            raise answer
        return answer

    def get(self, url, timeout=None):
        self.calls.append(("GET", url))
        for path, answer in self.get_responses.items():
            if url.endswith(path):
                return self._answer(answer)
        raise requests.ConnectionError(f"no route for {url}")

    def post(self, url, files=None, timeout=None):
        name, fh, _ = files["file"]
        self.calls.append(("POST", url, name, fh.read()))
        return self._answer(self.post_response)


class FlaskSession:
    """Routes ApiClient traffic into a Flask test client, one request at a time."""

    def __init__(self, client):
        self.client = client
        self.lock = threading.Lock()
        self.calls = []

    @staticmethod
    def _path(url):
        return "/" + url.split("://", 1)[-1].split("/", 1)[1]

    @staticmethod
    def _wrap(response):
        return FakeResponse(response.status_code, response.get_json(silent=True))

    def get(self, url, timeout=None):
        with self.lock:
            self.calls.append(("GET", self._path(url)))
            return self._wrap(self.client.get(self._path(url)))

    def post(self, url, files=None, timeout=None):
        name, fh, mimetype = files["file"]
        with self.lock:
            self.calls.append(("POST", self._path(url)))
            return self._wrap(self.client.post(
                self._path(url),
                data={"file": (io.BytesIO(fh.read()), name, mimetype)},
                content_type="multipart/form-data",
            ))
