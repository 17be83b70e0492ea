# This module provides the endpoint that ingests a student CSV.
# A successful upload atomically replaces the active dataset and recomputes
# the cluster labels the analytics endpoint reports.

import logging

from flask import Blueprint, current_app, jsonify, request
from werkzeug.utils import secure_filename

from learnlens.schema import has_csv_extension
from learnlens.utils.csv_handler import DatasetError, read_student_csv, replace_dataset

logger = logging.getLogger(__name__)

# Create a Blueprint for dataset ingestion routes
upload = Blueprint("upload", __name__)


@upload.route("/api/upload-dataset", methods=["POST"])
def upload_dataset():
    """
    Handle a CSV upload and make it the active dataset.

    Form Data:
        file: The CSV file (columns student_id, name, class, comprehension,
              attention, focus, retention, assessment_score, engagement_time)

    Returns:
        JSON response containing:
        - Success (200): {
            "success": true,
            "recordCount": int,
            "filename": str,
            "uploadedAt": str
          }
        - Error (400): {
            "success": false,
            "error": "No file provided" / "Please select a CSV file" / ...
          }
        - Error (500): {
            "success": false,
            "error": "Error processing dataset: <details>"
          }
    """
    file = request.files.get("file")
    if not file or not file.filename:
        return jsonify({"success": False, "error": "No file provided"}), 400

    if not has_csv_extension(file.filename):
        return jsonify({"success": False, "error": "Please select a CSV file"}), 400

    content = file.read()
    if len(content) > current_app.config["MAX_UPLOAD_BYTES"]:
        return jsonify({"success": False, "error": "File size should be less than 5MB"}), 400

    filename = secure_filename(file.filename) or "dataset.csv"

    try:
        df = read_student_csv(content)
    except DatasetError as e:
        logger.warning("Rejected upload %s: %s", filename, e)
        return jsonify({"success": False, "error": str(e)}), 400

    try:
        dataset = replace_dataset(
            df,
            filename,
            max_clusters=current_app.config["ANALYTICS_MAX_CLUSTERS"],
            random_state=current_app.config["ANALYTICS_RANDOM_STATE"],
        )
    except Exception as e:
        logger.exception("Failed to store dataset %s", filename)
        return jsonify({"success": False, "error": f"Error processing dataset: {e}"}), 500

    return jsonify({"success": True, **dataset.to_dict()}), 200
