from datetime import datetime, timezone

from learnlens import db


def _utcnow():
    # Naive UTC, which is what the DateTime column stores
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ------------------------------------------
# TABLE 1: StudentRecord
# One row per student of the active dataset, in upload order
# ------------------------------------------
class StudentRecord(db.Model):
    __tablename__ = 'student_record'
    position = db.Column(db.Integer, primary_key=True, autoincrement=False)
    student_id = db.Column(db.String(50), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    class_name = db.Column('class', db.String(50), nullable=False)
    comprehension = db.Column(db.Float, nullable=False)
    attention = db.Column(db.Float, nullable=False)
    focus = db.Column(db.Float, nullable=False)
    retention = db.Column(db.Float, nullable=False)
    assessment_score = db.Column(db.Float, nullable=False)
    engagement_time = db.Column(db.Float, nullable=False)

    # Assigned by the analytics service after each upload
    cluster = db.Column(db.Integer, nullable=True)

    def to_dict(self):
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

    def __repr__(self):
        return f"<StudentRecord {self.student_id}>"


# ------------------------------------------
# TABLE 2: DatasetUpload
# Metadata of the active dataset; at most one row
# ------------------------------------------
class DatasetUpload(db.Model):
    __tablename__ = 'dataset_upload'
    id = db.Column(db.Integer, primary_key=True)
    filename = db.Column(db.String(255), nullable=False)
    record_count = db.Column(db.Integer, nullable=False)
    uploaded_at = db.Column(db.DateTime, default=_utcnow)

    def to_dict(self):
        return {
            "filename": self.filename,
            "recordCount": self.record_count,
            "uploadedAt": self.uploaded_at.isoformat() + "Z",
        }

    def __repr__(self):
        return f"<DatasetUpload {self.filename} ({self.record_count})>"
