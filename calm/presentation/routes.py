import logging

from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from calm.errors import CalmError


logger = logging.getLogger(__name__)

CORS_METHODS = {
    "/api/notion-data": "GET, OPTIONS",
    "/api/save-time": "POST, OPTIONS",
}
TRUTHY = {"1", "true", "yes", "on"}


def _flag(value):
    return (value or "").strip().lower() in TRUTHY


def register_routes(app, service_factory):
    """Attach the chart and save-time endpoints.

    service_factory(require_database) builds a ChartService for the current
    configuration and raises ConfigurationError when a secret is missing.
    """

    @app.after_request
    def add_cors_headers(response):
        if request.path.startswith("/api/"):
            response.headers["Access-Control-Allow-Origin"] = "*"
            response.headers["Access-Control-Allow-Methods"] = CORS_METHODS.get(
                request.path, "GET, POST, OPTIONS"
            )
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    @app.errorhandler(CalmError)
    def handle_calm_error(exc):
        return jsonify(exc.to_payload()), exc.status_code

    @app.errorhandler(405)
    def handle_method_not_allowed(exc):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc):
        if isinstance(exc, HTTPException):
            return exc
        logger.exception("unhandled error", extra={"path": request.path})
        return jsonify({"error": "Internal error", "message": str(exc)}), 500

    @app.route("/healthz", methods=["GET"])
    def healthz():
        return {"status": "ok"}

    @app.route("/api/notion-data", methods=["GET", "OPTIONS"])
    def notion_data():
        if request.method == "OPTIONS":
            return "", 204
        service = service_factory(require_database=True)
        chart = service.chart_for(
            request.args.get("date"),
            request.args.get("period") or "week",
            include_all=_flag(request.args.get("all")),
        )
        response = jsonify(chart)
        max_age = current_app.config.get("CHART_CACHE_MAX_AGE", 60)
        response.headers["Cache-Control"] = f"public, max-age={max_age}"
        return response

    @app.route("/api/save-time", methods=["POST", "OPTIONS"])
    def save_time():
        if request.method == "OPTIONS":
            return "", 204
        service = service_factory(require_database=False)
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            payload = {}
        result = service.add_tracked_time(payload.get("taskId"), payload.get("seconds"))
        return jsonify(result)
