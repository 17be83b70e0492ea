import asyncio
import threading

import pytest

from learnlens.client.api import FetchError, FetchErrorKind
from learnlens.client.models import AnalyticsSummary, StudentRecord
from learnlens.client.synchronizer import RefreshToken
from learnlens.client.views import (
    ChartsView,
    InsightsView,
    OverviewView,
    StudentsTableView,
    ViewState,
)


def student(student_id, class_name="10A", score=80.0, attention=70.0, cluster=None):
    return StudentRecord(
        student_id=student_id, name=f"Name {student_id}", class_name=class_name,
        comprehension=75.0, attention=attention, focus=72.0, retention=78.0,
        assessment_score=score, engagement_time=100.0, cluster=cluster,
    )


FULL_ANALYTICS = AnalyticsSummary.from_dict({
    "correlations": {"comprehension": 0.9, "engagement_time": -0.2},
    "clusters": {
        "0": {"name": "High Achievers", "count": 1, "averageScore": 91.25,
              "characteristics": {"comprehension": 90, "attention": 85, "focus": 88, "retention": 87}},
        "1": {"name": "Needs Support", "count": 3, "averageScore": 55.0, "characteristics": {}},
    },
    "keyFindings": ["Comprehension matters most."],
    "featureImportance": [{"feature": "assessment_score", "importance": 0.6}],
    "modelPerformance": {"accuracy": 0.8333, "r2Score": 0.71},
})


class FakeApi:
    def __init__(self, students=(), analytics=None, error=None):
        self.students = list(students)
        self.analytics = analytics
        self.error = error

    def get_students(self):
        if self.error:
            raise self.error
        return self.students

    def get_analytics(self):
        if self.error:
            raise self.error
        return self.analytics


def refreshed(view_cls, api):
    view = view_cls(api, RefreshToken())
    applied = asyncio.run(view.refresh())
    assert applied
    return view


@pytest.mark.parametrize("view_cls", [OverviewView, ChartsView, StudentsTableView])
def test_empty_students_render_empty_state(view_cls):
    view = refreshed(view_cls, FakeApi(students=[], analytics=AnalyticsSummary()))

    assert view.state is ViewState.EMPTY
    assert view.model is None
    assert "No student data available" in view.render()


@pytest.mark.parametrize("view_cls", [OverviewView, ChartsView, StudentsTableView, InsightsView])
def test_network_failure_degrades_to_empty(view_cls, caplog):
    error = FetchError(FetchErrorKind.NETWORK_FAILURE, "connection refused")
    view = refreshed(view_cls, FakeApi(error=error))

    assert view.state is ViewState.EMPTY
    assert "connection refused" in caplog.text


def test_overview_cards():
    students = [student("S1", "10A", 80.0), student("S2", "10B", 60.0), student("S3", "10A", 70.0)]
    view = refreshed(OverviewView, FakeApi(students, FULL_ANALYTICS))

    assert view.state is ViewState.READY
    assert dict(view.model.cards()) == {
        "Total Students": "3",
        "Average Score": "70.0",
        "Average Engagement": "100.0 min",
        "Classes": "2",
        "Learning Personas": "2",
    }


def test_overview_without_analytics_shows_placeholder():
    view = refreshed(OverviewView, FakeApi([student("S1")], None))
    assert dict(view.model.cards())["Learning Personas"] == "N/A"


def test_charts_series():
    students = [student("S1", attention=60.0, score=70.0), student("S2", attention=90.0, score=95.0)]
    view = refreshed(ChartsView, FakeApi(students, FULL_ANALYTICS))
    model = view.model

    assert [(bar.skill, bar.correlation, bar.value) for bar in model.skill_bars] == [
        ("Comprehension", 0.9, 0.9),
        ("Engagement time", 0.2, -0.2),
    ]
    assert [(p.attention, p.assessment_score) for p in model.scatter] == [(60.0, 70.0), (90.0, 95.0)]


def test_charts_without_correlations_still_render():
    view = refreshed(ChartsView, FakeApi([student("S1")], AnalyticsSummary()))
    assert view.state is ViewState.READY
    assert "N/A" in view.render()


def test_table_rows_and_filter():
    students = [student("S1", "10A", cluster=0), student("S2", "10B")]
    view = refreshed(StudentsTableView, FakeApi(students))

    rows = view.model.rows
    assert rows[0].persona == "Cluster 0"
    assert rows[1].persona == "N/A"
    assert rows[0].assessment_score == "80.0"
    assert [r.student_id for r in view.model.filter("10b").rows] == ["S2"]
    assert view.model.filter("  ").rows == rows


def test_insights_full_payload():
    view = refreshed(InsightsView, FakeApi(analytics=FULL_ANALYTICS))
    model = view.model

    assert model.model_accuracy == "83.3%"
    assert model.top_predictor == "Assessment score"
    assert model.persona_count == 2
    assert model.personas[0].students == "1 student"
    assert model.personas[0].average_score == "91.2"
    assert model.personas[1].students == "3 students"
    assert dict(model.personas[1].characteristics)["Focus"] == "N/A"


def test_insights_missing_numbers_render_placeholders():
    analytics = AnalyticsSummary.from_dict({
        "clusters": {"2": {"characteristics": {"focus": "NaN"}}},
        "featureImportance": [{"feature": "focus"}],
    })
    view = refreshed(InsightsView, FakeApi(analytics=analytics))
    text = view.render()

    assert view.model.model_accuracy == "N/A"
    assert view.model.personas[0].title == "Cluster 2"
    assert view.model.personas[0].students == "N/A"
    assert "nan" not in text.lower()
    assert "No key findings available" in text


def test_insights_without_model_or_clusters_is_empty():
    view = refreshed(InsightsView, FakeApi(analytics=AnalyticsSummary()))

    assert view.state is ViewState.EMPTY
    assert "too small to generate meaningful insights" in view.message


def test_insights_without_payload_is_empty():
    view = refreshed(InsightsView, FakeApi(analytics=None))
    assert view.message == InsightsView.empty_message


class SlowFirstApi(FakeApi):
    """The first students request blocks until released; later ones return at once."""

    def __init__(self, first, later):
        super().__init__()
        self.first = first
        self.later = later
        self.calls = 0
        self.release = threading.Event()

    def get_students(self):
        self.calls += 1
        if self.calls == 1:
            self.release.wait(timeout=5)
            return self.first
        return self.later


def test_stale_response_does_not_overwrite_newer_token():
    api = SlowFirstApi(first=[student("OLD")], later=[student("NEW")])
    token = RefreshToken()
    view = StudentsTableView(api, token)

    async def scenario():
        view.mount()
        await asyncio.sleep(0.01)
        token.bump()
        for _ in range(100):
            if view.rendered_token == 1:
                break
            await asyncio.sleep(0.01)
        api.release.set()
        await asyncio.gather(*view._tasks)

    asyncio.run(scenario())

    assert view.rendered_token == 1
    assert [row.student_id for row in view.model.rows] == ["NEW"]


def test_mounted_views_refetch_on_token_change():
    api = FakeApi([student("S1")])
    token = RefreshToken()
    views = [OverviewView(api, token), StudentsTableView(api, token)]

    async def scenario():
        await asyncio.gather(*(view.mount() for view in views))
        api.students = [student("S1"), student("S2")]
        token.bump()
        await asyncio.gather(*(task for view in views for task in list(view._tasks)))

    asyncio.run(scenario())

    assert all(view.rendered_token == 1 for view in views)
    assert views[0].model.total_students == 2
    assert len(views[1].model.rows) == 2

    views[0].unmount()
    assert len(token._subscribers) == 1


class BrokenApi(FakeApi):
    def get_students(self):
        raise RuntimeError("unexpected payload")


@pytest.mark.parametrize("view_cls", [OverviewView, ChartsView, StudentsTableView])
def test_unexpected_error_leaves_loading_state(view_cls, caplog):
    view = refreshed(view_cls, BrokenApi(analytics=FULL_ANALYTICS))

    assert view.state is ViewState.EMPTY
    assert view.rendered_token == 0
    assert view.message == view_cls.empty_message
    assert "unexpected payload" in caplog.text
