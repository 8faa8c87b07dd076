import asyncio
import logging
from typing import Any

from flask import Blueprint, current_app, jsonify, request

from defi_watchdog.errors import AllModelsFailedError, InvalidInputError

logger = logging.getLogger(__name__)

main_bp = Blueprint("main", __name__)


async def _analyze_on_request_loop(service, payload: dict):
    # Each request gets its own event loop; provider clients must not outlive it
    try:
        return await service.run_analysis(
            payload.get("contractSource", ""),
            payload.get("contractName", ""),
            mode=payload.get("mode") or "normal",
            custom_prompt=payload.get("customPrompt"),
        )
    finally:
        await service.aclose()


@main_bp.route("/api/analyze", methods=["POST"])
def api_analyze() -> Any:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400

    service = current_app.extensions.get("analysis_service")
    if service is None:
        return jsonify({"error": "Model provider not configured (set OPENROUTER_API_KEY)"}), 503

    try:
        report = asyncio.run(_analyze_on_request_loop(service, payload))
    except InvalidInputError as e:
        return jsonify({"error": str(e)}), 400
    except AllModelsFailedError as e:
        return jsonify({"error": str(e), "modelErrors": e.errors}), 502

    return jsonify(report.to_dict())


@main_bp.route("/api/reports", methods=["GET"])
def list_reports() -> Any:
    repository = current_app.extensions["report_repository"]
    try:
        limit = int(request.args.get("limit", 20))
    except ValueError:
        return jsonify({"error": "limit must be an integer"}), 400
    return jsonify({"reports": repository.list_recent(limit=min(limit, 100))})


@main_bp.route("/api/reports/<report_id>", methods=["GET"])
def get_report(report_id: str) -> Any:
    repository = current_app.extensions["report_repository"]
    report = repository.get(report_id)
    if report is None:
        return jsonify({"error": f"Report {report_id} not found"}), 404
    return jsonify(report)


@main_bp.route("/health")
def health_check() -> Any:
    return "OK", 200
