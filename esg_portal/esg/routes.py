import logging

from flask import Blueprint, Response, jsonify, request
from flask_login import login_required

from esg_portal.access import company_for, error, json_body, period_arg
from esg_portal.report import REPORT_FORMATS, XLSX_CONTENT_TYPE, build_report, report_workbook
from esg_portal.scoring import load_scorecard, recalculate_scorecard, stored_scores

logger = logging.getLogger(__name__)

esg_bp = Blueprint("esg", __name__, url_prefix="/api/esg")


@esg_bp.route("/calculate/<int:company_id>", methods=["POST"])
@login_required
def calculate(company_id):
    """Recompute the stored scorecard for one period from its metric records."""
    _company, denied = company_for(company_id, "edit")
    if denied:
        return denied
    period, bad = period_arg(json_body().get("period"))
    if bad:
        return bad
    if not period:
        return error("'period' is required.")

    score = recalculate_scorecard(company_id, period)
    if score is None:
        return jsonify({"scorecard": None, "message": f"No metrics submitted for {period}."})
    return jsonify({"scorecard": load_scorecard(company_id, period)["scorecard"]})


@esg_bp.route("/scorecard/<int:company_id>")
@login_required
def scorecard(company_id):
    _company, denied = company_for(company_id)
    if denied:
        return denied
    period, bad = period_arg(request.args.get("period"))
    if bad:
        return bad
    return jsonify(load_scorecard(company_id, period))


@esg_bp.route("/score/<int:company_id>")
@login_required
def score_history(company_id):
    _company, denied = company_for(company_id)
    if denied:
        return denied
    scores = stored_scores(company_id)
    return jsonify({"scores": [s.to_dict() for s in reversed(scores)]})


@esg_bp.route("/report/<int:company_id>")
@login_required
def report(company_id):
    company, denied = company_for(company_id)
    if denied:
        return denied

    fmt = request.args.get("format", "json").lower()
    if fmt == "pdf":
        return error("PDF export is not available. Use format=json or format=excel.")
    if fmt not in REPORT_FORMATS:
        return error(f"Unknown report format '{fmt}'.")

    period, bad = period_arg(request.args.get("period"))
    if bad:
        return bad
    loaded = load_scorecard(company_id, period)
    card = loaded["scorecard"]
    if period is None:
        if card is None:
            return error("No scorecard has been calculated yet.", 404)
        period = card["period"]

    data = build_report(company, period, card)
    logger.info(f"Generated {fmt} report for company {company_id} period {period}")
    if fmt == "json":
        return jsonify(data)

    filename = f"esg-report-{company_id}-{period}.xlsx"
    return Response(
        report_workbook(data),
        mimetype=XLSX_CONTENT_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
