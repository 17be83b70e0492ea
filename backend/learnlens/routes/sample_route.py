# Serves the sample CSV users can download as a template for their own data.

from flask import Blueprint, current_app, send_from_directory

sample = Blueprint("sample", __name__)

SAMPLE_FILENAME = "sample-student-data.csv"


@sample.route(f"/{SAMPLE_FILENAME}", methods=["GET"])
def download_sample():
    return send_from_directory(
        current_app.static_folder,
        SAMPLE_FILENAME,
        mimetype="text/csv",
        as_attachment=True,
    )
