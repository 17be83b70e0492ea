# This module provides the analytics endpoint consumed by the dashboard panels.

import logging

from flask import Blueprint, current_app, jsonify

from learnlens.services.analytics_service import build_analytics_summary
from learnlens.utils.csv_handler import load_students_frame

logger = logging.getLogger(__name__)

analytics = Blueprint("analytics", __name__)


@analytics.route("/api/analytics", methods=["GET"])
def get_analytics():
    """
    Compute correlations, clusters, feature importance and findings.

    Returns:
        - Success (200): {"success": true, "data": {
              "correlations": {skill: float},
              "clusters": {id: {name, count, averageScore, characteristics}},
              "keyFindings": [str],
              "featureImportance": [{feature, importance}],
              "modelPerformance": {accuracy, r2Score}   # omitted for tiny datasets
          }}
        - Error (500): {"success": false, "error": str}
    """
    try:
        df = load_students_frame()
        summary = build_analytics_summary(
            df, random_state=current_app.config["ANALYTICS_RANDOM_STATE"]
        )
        return jsonify({"success": True, "data": summary}), 200
    except Exception as e:
        logger.exception("Analytics computation failed")
        return jsonify({"success": False, "error": str(e)}), 500
