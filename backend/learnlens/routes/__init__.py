# This module initializes and registers all route blueprints for the Flask application.
# Each blueprint represents a group of related endpoints that handle specific functionality.

from .upload_route import upload as upload_blueprint
from .students_route import students_bp
from .analytics_route import analytics as analytics_blueprint
from .sample_route import sample as sample_blueprint


def register_routes(app):
    """
    Register all route blueprints with the Flask application.

    This function registers the following blueprints:
    - upload_blueprint: Ingests CSV uploads and replaces the active dataset
    - students_bp: Serves student records and dataset metadata
    - analytics_blueprint: Serves correlations, clusters and feature importance
    - sample_blueprint: Serves the downloadable sample CSV

    Args:
        app: Flask application instance
    """
    app.register_blueprint(upload_blueprint)
    app.register_blueprint(students_bp)
    app.register_blueprint(analytics_blueprint)
    app.register_blueprint(sample_blueprint)
