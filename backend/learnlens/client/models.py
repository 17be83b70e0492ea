# Data types exchanged between the API, the dataset store and the views.
#
# Every numeric field the analytics service may omit is modelled as Optional;
# views render None through format_number() instead of guarding ad hoc.

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import pandas as pd

from learnlens.schema import NUMERIC_COLUMNS, REQUIRED_COLUMNS

UNAVAILABLE = "N/A"


def optional_number(value) -> Optional[float]:
    """Coerce a payload value to float; None when missing or not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def format_number(value: Optional[float], digits: int = 1, suffix: str = "") -> str:
    if value is None:
        return UNAVAILABLE
    return f"{value:.{digits}f}{suffix}"


def format_percent(fraction: Optional[float], digits: int = 1) -> str:
    if fraction is None:
        return UNAVAILABLE
    return format_number(fraction * 100, digits, "%")


def humanize(feature: str) -> str:
    """'assessment_score' -> 'Assessment score'."""
    text = feature.replace("_", " ")
    return text[:1].upper() + text[1:]


@dataclass(frozen=True)
class StudentRecord:
    student_id: str
    name: str
    class_name: str
    comprehension: float
    attention: float
    focus: float
    retention: float
    assessment_score: float
    engagement_time: float
    cluster: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "StudentRecord":
        """Build a record from its JSON form. Raises KeyError/TypeError/ValueError when malformed."""
        cluster = data.get("cluster")
        return cls(
            student_id=str(data["student_id"]),
            name=str(data["name"]),
            class_name=str(data["class"]),
            cluster=None if cluster is None else int(cluster),
            **{col: float(data[col]) for col in NUMERIC_COLUMNS},
        )

    def to_dict(self) -> dict:
        data = {
            "student_id": self.student_id,
            "name": self.name,
            "class": self.class_name,
            "comprehension": self.comprehension,
            "attention": self.attention,
            "focus": self.focus,
            "retention": self.retention,
            "assessment_score": self.assessment_score,
            "engagement_time": self.engagement_time,
        }
        if self.cluster is not None:
            data["cluster"] = self.cluster
        return data


@dataclass(frozen=True)
class Dataset:
    """The active uploaded dataset plus its upload metadata."""
    students: Tuple[StudentRecord, ...]
    uploaded_at: str
    filename: str
    record_count: int

    def __post_init__(self):
        if self.record_count != len(self.students):
            raise ValueError(
                f"recordCount {self.record_count} does not match {len(self.students)} students"
            )

    @classmethod
    def create(cls, students, filename: str) -> "Dataset":
        students = tuple(students)
        return cls(
            students=students,
            uploaded_at=datetime.now(timezone.utc).isoformat(),
            filename=filename,
            record_count=len(students),
        )

    @classmethod
    def from_dict(cls, data: dict) -> "Dataset":
        return cls(
            students=tuple(StudentRecord.from_dict(s) for s in data["students"]),
            uploaded_at=str(data["uploadedAt"]),
            filename=str(data["filename"]),
            record_count=int(data["recordCount"]),
        )

    def to_dict(self) -> dict:
        return {
            "students": [s.to_dict() for s in self.students],
            "uploadedAt": self.uploaded_at,
            "filename": self.filename,
            "recordCount": self.record_count,
        }

    @classmethod
    def from_csv(cls, path, filename: str) -> "Dataset":
        """Read a validated student CSV from disk into a Dataset."""
        df = pd.read_csv(path, dtype=str, skip_blank_lines=True)
        df.columns = [str(c).strip().lower() for c in df.columns]
        df = df[REQUIRED_COLUMNS].dropna(how="all").fillna("")
        students = [
            StudentRecord.from_dict({k: (v.strip() if isinstance(v, str) else v) for k, v in row.items()})
            for row in df.to_dict(orient="records")
        ]
        return cls.create(students, filename)


@dataclass(frozen=True)
class ClusterSummary:
    cluster_id: str
    name: Optional[str] = None
    count: Optional[int] = None
    average_score: Optional[float] = None
    characteristics: Dict[str, Optional[float]] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.name or f"Cluster {self.cluster_id}"


@dataclass(frozen=True)
class FeatureImportance:
    feature: str
    importance: Optional[float] = None


@dataclass(frozen=True)
class ModelPerformance:
    accuracy: Optional[float] = None
    r2_score: Optional[float] = None


@dataclass(frozen=True)
class AnalyticsSummary:
    correlations: Dict[str, float] = field(default_factory=dict)
    clusters: Dict[str, ClusterSummary] = field(default_factory=dict)
    key_findings: List[str] = field(default_factory=list)
    feature_importance: List[FeatureImportance] = field(default_factory=list)
    model_performance: Optional[ModelPerformance] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "AnalyticsSummary":
        """
        Build a summary from the analytics payload, tolerating absent fields.

        Missing sections become empty, missing or non-numeric numbers become
        None. Raises TypeError only when the payload itself is not a mapping.
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise TypeError(f"analytics payload must be an object, got {type(data).__name__}")

        correlations = {}
        for skill, value in (data.get("correlations") or {}).items():
            number = optional_number(value)
            if number is not None:
                correlations[str(skill)] = number

        clusters = {}
        for cluster_id, raw in (data.get("clusters") or {}).items():
            raw = raw if isinstance(raw, dict) else {}
            count = optional_number(raw.get("count"))
            characteristics = raw.get("characteristics") or {}
            clusters[str(cluster_id)] = ClusterSummary(
                cluster_id=str(cluster_id),
                name=raw.get("name") or None,
                count=None if count is None else int(count),
                average_score=optional_number(raw.get("averageScore")),
                characteristics={
                    str(k): optional_number(v) for k, v in characteristics.items()
                } if isinstance(characteristics, dict) else {},
            )

        importance = [
            FeatureImportance(feature=str(item["feature"]), importance=optional_number(item.get("importance")))
            for item in (data.get("featureImportance") or [])
            if isinstance(item, dict) and item.get("feature")
        ]

        performance = data.get("modelPerformance")
        model_performance = None
        if isinstance(performance, dict):
            model_performance = ModelPerformance(
                accuracy=optional_number(performance.get("accuracy")),
                r2_score=optional_number(performance.get("r2Score")),
            )

        return cls(
            correlations=correlations,
            clusters=clusters,
            key_findings=[str(f) for f in (data.get("keyFindings") or [])],
            feature_importance=importance,
            model_performance=model_performance,
        )
