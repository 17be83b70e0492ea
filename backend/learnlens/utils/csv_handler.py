# learnlens/utils/csv_handler.py

import io
import logging

import pandas as pd

from learnlens import db
from learnlens.models.model import DatasetUpload, StudentRecord
from learnlens.schema import NUMERIC_COLUMNS, REQUIRED_COLUMNS
from learnlens.services.analytics_service import assign_clusters

logger = logging.getLogger(__name__)


class DatasetError(ValueError):
    """Raised when an uploaded CSV cannot become the active dataset."""


def read_student_csv(content):
    """
    Parse raw CSV bytes into a clean student DataFrame.

    Headers are stripped and lowercased, required columns are checked, numeric
    columns are coerced and student_id must be unique.

    Args:
        content (bytes): The uploaded file content

    Returns:
        pd.DataFrame: One row per student with exactly the required columns

    Raises:
        DatasetError: If the content does not describe a usable dataset
    """
    try:
        df = pd.read_csv(io.BytesIO(content), dtype=str, skip_blank_lines=True)
    except pd.errors.EmptyDataError:
        raise DatasetError("CSV file must contain at least a header and one data row")
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise DatasetError(f"Could not parse CSV: {e}")

    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise DatasetError(f"Missing required columns: {', '.join(missing)}")

    df = df[REQUIRED_COLUMNS].dropna(how="all")
    if df.empty:
        raise DatasetError("CSV file must contain at least a header and one data row")

    for col in ["student_id", "name", "class"]:
        df[col] = df[col].fillna("").astype(str).str.strip()
    if (df["student_id"] == "").any():
        raise DatasetError("Every row needs a student_id")

    for col in NUMERIC_COLUMNS:
        coerced = pd.to_numeric(df[col].str.strip(), errors="coerce")
        if coerced.isna().any():
            bad_row = int(coerced.isna().to_numpy().nonzero()[0][0]) + 2
            raise DatasetError(f"Column '{col}' must be numeric (line {bad_row})")
        df[col] = coerced.astype(float)

    duplicated = df.loc[df["student_id"].duplicated(), "student_id"].unique().tolist()
    if duplicated:
        raise DatasetError(f"Duplicate student_id values: {', '.join(duplicated[:5])}")

    return df.reset_index(drop=True)


def replace_dataset(df, filename, max_clusters=3, random_state=42):
    """
    Replace the active dataset with the given students in one transaction.

    Cluster labels are computed before anything is written, so a failure
    leaves the previous dataset untouched.

    Returns:
        DatasetUpload: Metadata row of the new active dataset
    """
    labels = assign_clusters(df, max_clusters=max_clusters, random_state=random_state)

    try:
        StudentRecord.query.delete()
        DatasetUpload.query.delete()

        for position, row in df.iterrows():
            cluster = labels[position] if labels is not None else None
            db.session.add(StudentRecord(
                position=int(position),
                student_id=row["student_id"],
                name=row["name"],
                class_name=row["class"],
                comprehension=float(row["comprehension"]),
                attention=float(row["attention"]),
                focus=float(row["focus"]),
                retention=float(row["retention"]),
                assessment_score=float(row["assessment_score"]),
                engagement_time=float(row["engagement_time"]),
                cluster=None if cluster is None else int(cluster),
            ))

        upload = DatasetUpload(filename=filename, record_count=len(df))
        db.session.add(upload)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("✅ Dataset replaced: %d records from %s", len(df), filename)
    return upload


def clear_dataset():
    """Remove the active dataset and its metadata."""
    try:
        removed = StudentRecord.query.delete()
        DatasetUpload.query.delete()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("🧹 Dataset cleared (%d records removed)", removed)
    return removed


def load_students_frame():
    """Return the active dataset as a DataFrame (empty when nothing uploaded)."""
    students = StudentRecord.query.order_by(StudentRecord.position).all()
    return pd.DataFrame(
        [s.to_dict() for s in students],
        columns=REQUIRED_COLUMNS + ["cluster"],
    )
