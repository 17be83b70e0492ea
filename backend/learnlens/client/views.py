# Dashboard panels. Each view fetches its own data on mount and again every
# time the shared refresh token changes, then builds an immutable render model.
#
# Fetch failures degrade to the empty state with a logged diagnostic, and a
# response that belongs to an older token never replaces newer state.

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from learnlens.client.api import FetchError
from learnlens.client.models import (
    UNAVAILABLE,
    format_number,
    format_percent,
    humanize,
    optional_number,
)

logger = logging.getLogger(__name__)


class ViewState(Enum):
    LOADING = "loading"
    EMPTY = "empty"
    READY = "ready"


def _mean(values) -> Optional[float]:
    numbers = [v for v in (optional_number(x) for x in values) if v is not None]
    if not numbers:
        return None
    return sum(numbers) / len(numbers)


@dataclass(frozen=True)
class Empty:
    """Returned by load() to show the empty state with a specific message."""
    message: str


class DependentView:
    """Base class handling the fetch cycle shared by every panel."""

    title = "View"
    empty_message = "No data available."

    def __init__(self, api, token):
        self.api = api
        self.token = token
        self.state = ViewState.LOADING
        self.model = None
        self.message = None
        self.rendered_token = None
        self._requested_token = None
        self._tasks = set()
        self._unsubscribe = None

    def mount(self):
        """Start the initial fetch and follow the refresh token. Needs a running loop."""
        self._unsubscribe = self.token.subscribe(self._on_token)
        return self._spawn(self.token.value)

    def unmount(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_token(self, value):
        self._spawn(value)

    def _spawn(self, value):
        task = asyncio.get_running_loop().create_task(self.refresh(value))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self):
        """Fetch tasks that have not finished yet."""
        return list(self._tasks)

    async def refresh(self, token_value=None):
        """
        Fetch and rebuild the render model for one token value.

        Returns True when the result was applied, False when a newer token
        had been requested in the meantime and the result was dropped.
        """
        if token_value is None:
            token_value = self.token.value
        self._requested_token = token_value
        self.state = ViewState.LOADING

        try:
            model = await self.load()
        except Exception:
            logger.exception("%s: failed to build view for token %s", self.title, token_value)
            model = None

        if token_value != self._requested_token:
            logger.debug("%s: dropping stale response for token %s", self.title, token_value)
            return False

        self.rendered_token = token_value
        if model is None or isinstance(model, Empty):
            self.model = None
            self.state = ViewState.EMPTY
            self.message = model.message if isinstance(model, Empty) else self.empty_message
        else:
            self.model = model
            self.state = ViewState.READY
            self.message = None
        return True

    async def load(self):
        """Fetch data and return a render model, or None / Empty(...) for the empty state."""
        raise NotImplementedError

    async def fetch_students(self):
        try:
            return await asyncio.to_thread(self.api.get_students)
        except FetchError as e:
            logger.error("%s: failed to fetch students: %s", self.title, e.message)
            return []

    async def fetch_analytics(self):
        try:
            return await asyncio.to_thread(self.api.get_analytics)
        except FetchError as e:
            logger.error("%s: failed to fetch analytics: %s", self.title, e.message)
            return None

    def render(self) -> str:
        """Plain-text rendering used by the command line client."""
        if self.state is ViewState.LOADING:
            return f"{self.title}\n  Loading..."
        if self.state is ViewState.EMPTY:
            return f"{self.title}\n  {self.message}"
        return f"{self.title}\n" + "\n".join(f"  {line}" for line in self.model.lines())


# ------------------------------------------
# Overview cards
# ------------------------------------------
@dataclass(frozen=True)
class OverviewModel:
    total_students: int
    class_count: int
    average_score: Optional[float]
    average_engagement: Optional[float]
    persona_count: Optional[int]

    def cards(self) -> List[Tuple[str, str]]:
        return [
            ("Total Students", str(self.total_students)),
            ("Average Score", format_number(self.average_score)),
            ("Average Engagement", format_number(self.average_engagement, suffix=" min")),
            ("Classes", str(self.class_count)),
            ("Learning Personas", UNAVAILABLE if self.persona_count is None else str(self.persona_count)),
        ]

    def lines(self):
        return [f"{label}: {value}" for label, value in self.cards()]


class OverviewView(DependentView):
    title = "Overview"
    empty_message = "No student data available. Please upload a dataset."

    async def load(self):
        students, analytics = await asyncio.gather(self.fetch_students(), self.fetch_analytics())
        if not students:
            return None
        return OverviewModel(
            total_students=len(students),
            class_count=len({s.class_name for s in students}),
            average_score=_mean(s.assessment_score for s in students),
            average_engagement=_mean(s.engagement_time for s in students),
            persona_count=len(analytics.clusters) if analytics and analytics.clusters else None,
        )


# ------------------------------------------
# Charts
# ------------------------------------------
@dataclass(frozen=True)
class SkillBar:
    skill: str
    correlation: float
    value: float


@dataclass(frozen=True)
class ScatterPoint:
    attention: float
    assessment_score: float
    name: str


@dataclass(frozen=True)
class ChartsModel:
    skill_bars: Tuple[SkillBar, ...]
    scatter: Tuple[ScatterPoint, ...]

    def lines(self):
        lines = ["Cognitive Skills Correlation with Assessment Score"]
        if self.skill_bars:
            lines += [f"  {bar.skill:<16} {bar.value:+.2f}" for bar in self.skill_bars]
        else:
            lines.append(f"  {UNAVAILABLE}")
        lines.append(f"Attention vs Assessment Score: {len(self.scatter)} points")
        return lines


class ChartsView(DependentView):
    title = "Charts"
    empty_message = "No student data available. Please upload a dataset to view charts."

    async def load(self):
        students, analytics = await asyncio.gather(self.fetch_students(), self.fetch_analytics())
        if not students:
            return Empty(self.empty_message + (
                " Analytics data is available but no student records found."
                if analytics is not None else " No analytics data available."
            ))

        correlations = analytics.correlations if analytics else {}
        bars = tuple(
            SkillBar(skill=humanize(skill), correlation=abs(value), value=value)
            for skill, value in correlations.items()
        )
        scatter = tuple(
            ScatterPoint(
                attention=s.attention,
                assessment_score=s.assessment_score,
                name=s.name or "Unknown",
            )
            for s in students
        )
        return ChartsModel(skill_bars=bars, scatter=scatter)


# ------------------------------------------
# Students table
# ------------------------------------------
@dataclass(frozen=True)
class TableRow:
    student_id: str
    name: str
    class_name: str
    assessment_score: str
    engagement_time: str
    persona: str


@dataclass(frozen=True)
class TableModel:
    rows: Tuple[TableRow, ...]

    def filter(self, query: str) -> "TableModel":
        """Rows whose id, name or class contains the query (case-insensitive)."""
        needle = query.strip().lower()
        if not needle:
            return self
        return TableModel(tuple(
            row for row in self.rows
            if needle in row.student_id.lower()
            or needle in row.name.lower()
            or needle in row.class_name.lower()
        ))

    def lines(self):
        header = f"{'ID':<10} {'Name':<22} {'Class':<8} {'Score':>7} {'Engage':>8}  Persona"
        body = [
            f"{r.student_id:<10} {r.name:<22} {r.class_name:<8} {r.assessment_score:>7} "
            f"{r.engagement_time:>8}  {r.persona}"
            for r in self.rows
        ]
        return [header] + body


class StudentsTableView(DependentView):
    title = "Students"
    empty_message = "No student data available. Please upload a dataset."

    async def load(self):
        students = await self.fetch_students()
        if not students:
            return None
        return TableModel(tuple(
            TableRow(
                student_id=s.student_id,
                name=s.name,
                class_name=s.class_name,
                assessment_score=format_number(optional_number(s.assessment_score)),
                engagement_time=format_number(optional_number(s.engagement_time), digits=0),
                persona=UNAVAILABLE if s.cluster is None else f"Cluster {s.cluster}",
            )
            for s in students
        ))


# ------------------------------------------
# Insights
# ------------------------------------------
@dataclass(frozen=True)
class PersonaCard:
    title: str
    students: str
    average_score: str
    characteristics: Tuple[Tuple[str, str], ...]


@dataclass(frozen=True)
class InsightsModel:
    model_accuracy: Optional[str]
    top_predictor: Optional[str]
    persona_count: int
    findings: Tuple[str, ...]
    personas: Tuple[PersonaCard, ...]

    def lines(self):
        lines = []
        if self.model_accuracy is not None:
            lines.append(f"Model Accuracy: {self.model_accuracy}")
        if self.top_predictor is not None:
            lines.append(f"Top Predictor: {self.top_predictor}")
        if self.persona_count:
            lines.append(f"Learning Personas: {self.persona_count}")
        if self.findings:
            lines.append("Research Findings:")
            lines += [f"  - {finding}" for finding in self.findings]
        else:
            lines.append("No key findings available. The dataset might be too small to generate insights.")
        for card in self.personas:
            lines.append(f"{card.title} ({card.students}) - Average Score: {card.average_score}")
            lines.append("  " + ", ".join(f"{label}: {value}" for label, value in card.characteristics))
        return lines


CHARACTERISTIC_FIELDS = ["comprehension", "attention", "focus", "retention"]


class InsightsView(DependentView):
    title = "Insights"
    empty_message = "No analytics data available. Please upload a dataset to view insights."

    async def load(self):
        analytics = await self.fetch_analytics()
        if analytics is None:
            return None

        top_feature = analytics.feature_importance[0] if analytics.feature_importance else None
        if top_feature is None and not analytics.clusters:
            return Empty(
                "No insights data available. The dataset might be too small "
                "to generate meaningful insights."
            )

        accuracy = None
        top_predictor = None
        if top_feature is not None:
            performance = analytics.model_performance
            accuracy = format_percent(performance.accuracy if performance else None)
            top_predictor = humanize(top_feature.feature)

        personas = tuple(
            PersonaCard(
                title=cluster.display_name,
                students=UNAVAILABLE if cluster.count is None else
                f"{cluster.count} {'student' if cluster.count == 1 else 'students'}",
                average_score=format_number(cluster.average_score),
                characteristics=tuple(
                    (humanize(name), format_number(cluster.characteristics.get(name)))
                    for name in CHARACTERISTIC_FIELDS
                ),
            )
            for cluster in analytics.clusters.values()
        )

        return InsightsModel(
            model_accuracy=accuracy,
            top_predictor=top_predictor,
            persona_count=len(analytics.clusters),
            findings=tuple(analytics.key_findings),
            personas=personas,
        )
