# This module provides read endpoints for the active dataset:
# the student records themselves and the upload metadata.

import logging

from flask import Blueprint, jsonify

from learnlens.models.model import DatasetUpload, StudentRecord
from learnlens.utils.csv_handler import clear_dataset

logger = logging.getLogger(__name__)

students_bp = Blueprint("students", __name__)


@students_bp.route("/api/students", methods=["GET"])
def get_students():
    """
    Return every student of the active dataset in upload order.

    Returns:
        - Success (200): {"success": true, "data": [StudentRecord, ...]}
          (an empty list when nothing has been uploaded)
        - Error (500): {"success": false, "error": str}
    """
    try:
        students = StudentRecord.query.order_by(StudentRecord.position).all()
        return jsonify({"success": True, "data": [s.to_dict() for s in students]}), 200
    except Exception as e:
        logger.exception("Failed to load students")
        return jsonify({"success": False, "error": str(e)}), 500


@students_bp.route("/api/dataset", methods=["GET"])
def get_dataset_info():
    """Metadata of the active dataset, or null data when none is active."""
    dataset = DatasetUpload.query.first()
    return jsonify({"success": True, "data": dataset.to_dict() if dataset else None}), 200


@students_bp.route("/api/dataset", methods=["DELETE"])
def delete_dataset():
    try:
        removed = clear_dataset()
    except Exception as e:
        logger.exception("Failed to clear dataset")
        return jsonify({"success": False, "error": str(e)}), 500
    return jsonify({"success": True, "removed": removed}), 200
