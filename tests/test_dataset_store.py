import json
import logging

import pytest

from learnlens.client.dataset_store import STORAGE_KEY, DatasetStore, JsonFileStorage
from learnlens.client.models import Dataset, StudentRecord


def make_student(student_id, score=70.0):
    return StudentRecord(
        student_id=student_id,
        name=f"Student {student_id}",
        class_name="10A",
        comprehension=70.0,
        attention=65.0,
        focus=60.0,
        retention=75.0,
        assessment_score=score,
        engagement_time=90.0,
    )


@pytest.fixture
def dataset_a():
    return Dataset.create([make_student("A1"), make_student("A2")], "a.csv")


@pytest.fixture
def dataset_b():
    return Dataset.create([make_student("B1", 88.0)], "b.csv")


@pytest.fixture
def storage_path(tmp_path):
    return tmp_path / "storage.json"


class BrokenStorage:
    def get_item(self, key):
        raise OSError("storage unavailable")

    def set_item(self, key, value):
        raise OSError("storage unavailable")

    def remove_item(self, key):
        raise OSError("storage unavailable")


def test_set_then_get_returns_same_value(storage_path, dataset_a):
    store = DatasetStore(JsonFileStorage(storage_path))
    store.set(dataset_a)
    assert store.get() == dataset_a
    assert store.has()


def test_later_write_wins(storage_path, dataset_a, dataset_b):
    store = DatasetStore(JsonFileStorage(storage_path))
    store.set(dataset_a)
    store.set(dataset_b)

    assert store.get() == dataset_b
    assert [s.student_id for s in store.get().students] == ["B1"]


def test_new_session_hydrates_from_storage(storage_path, dataset_a):
    DatasetStore(JsonFileStorage(storage_path)).set(dataset_a)

    fresh = DatasetStore(JsonFileStorage(storage_path))
    assert fresh.get() == dataset_a


def test_persisted_layout(storage_path, dataset_b):
    DatasetStore(JsonFileStorage(storage_path)).set(dataset_b)

    saved = json.loads(json.loads(storage_path.read_text())[STORAGE_KEY])
    assert set(saved) == {"students", "uploadedAt", "filename", "recordCount"}
    assert saved["recordCount"] == 1
    assert saved["students"][0]["class"] == "10A"


def test_has_is_false_without_records(storage_path):
    store = DatasetStore(JsonFileStorage(storage_path))
    assert not store.has()

    store.set(Dataset.create([], "empty.csv"))
    assert not store.has()


def test_clear_removes_mirror_and_persisted_copy(storage_path, dataset_a):
    store = DatasetStore(JsonFileStorage(storage_path))
    store.set(dataset_a)
    store.clear()

    assert store.get() is None
    assert DatasetStore(JsonFileStorage(storage_path)).get() is None


def test_quota_exceeded_keeps_in_memory_copy(storage_path, dataset_a, caplog):
    store = DatasetStore(JsonFileStorage(storage_path, quota_bytes=10))
    with caplog.at_level(logging.ERROR):
        store.set(dataset_a)

    assert store.get() == dataset_a
    assert "quota" in caplog.text
    assert DatasetStore(JsonFileStorage(storage_path)).get() is None


def test_unavailable_storage_never_raises(dataset_a):
    store = DatasetStore(BrokenStorage())
    assert store.get() is None

    store.set(dataset_a)
    assert store.get() == dataset_a
    store.clear()
    assert store.get() is None


def test_corrupt_storage_reads_as_empty(storage_path):
    storage_path.write_text("{not json")
    assert DatasetStore(JsonFileStorage(storage_path)).get() is None


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
def test_corrupt_storage_is_overwritten_on_next_set(storage_path, dataset_a, content, caplog):
    storage_path.write_text(content)
    with caplog.at_level(logging.WARNING):
        DatasetStore(JsonFileStorage(storage_path)).set(dataset_a)

    assert DatasetStore(JsonFileStorage(storage_path)).get() == dataset_a
    assert "Discarding unreadable storage file" in caplog.text


def test_clear_recovers_corrupt_storage(storage_path, dataset_a):
    storage_path.write_text("{not json")
    store = DatasetStore(JsonFileStorage(storage_path))
    store.clear()

    assert json.loads(storage_path.read_text()) == {}
    store.set(dataset_a)
    assert DatasetStore(JsonFileStorage(storage_path)).get() == dataset_a


def test_record_count_must_match_students():
    with pytest.raises(ValueError):
        Dataset(students=(make_student("X"),), uploaded_at="now", filename="x.csv", record_count=2)


def test_from_csv_keeps_blank_text_cells_empty(tmp_path):
    path = tmp_path / "blanks.csv"
    path.write_text(
        "student_id,name,class,comprehension,attention,focus,retention,assessment_score,engagement_time\n"
        "S1,,,70,71,72,73,74,75\n"
        "S2,Bo,9B,50,51,52,53,54,55\n"
    )
    dataset = Dataset.from_csv(path, "blanks.csv")

    assert (dataset.students[0].name, dataset.students[0].class_name) == ("", "")
    assert dataset.students[1].name == "Bo"
    assert dataset.record_count == 2
