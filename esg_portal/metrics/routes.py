import logging

from flask import Blueprint, jsonify, request
from flask_login import login_required

from esg_portal import db
from esg_portal.access import accessible_companies, company_for, error, json_body, period_arg
from esg_portal.esg_requirements import PILLAR_SLUGS
from esg_portal.metric_store import (
    DuplicateRecordError, MetricValidationError, create_record, delete_record, update_record,
)
from esg_portal.models import METRIC_MODELS, metric_periods_for
from esg_portal.periods import InvalidPeriodError, current_period, sort_periods
from esg_portal.scoring import PILLAR_KEYS, recalculate_scorecard

logger = logging.getLogger(__name__)

metrics_bp = Blueprint("metrics", __name__, url_prefix="/api/metrics")


def _pillar_for(slug):
    pillar = PILLAR_SLUGS.get(slug)
    if pillar is None:
        return None, error(f"Unknown pillar '{slug}'.", 404)
    return pillar, None


def _record_for(slug, record_id, required):
    """Load a metric record and check access to its company."""
    pillar, bad = _pillar_for(slug)
    if bad:
        return None, bad
    record = db.session.get(METRIC_MODELS[pillar], record_id)
    if not record:
        return None, error("Metric record not found.", 404)
    _company, denied = company_for(record.company_id, required)
    if denied:
        return None, denied
    return record, None


@metrics_bp.route("/periods")
@login_required
def list_periods():
    """Known periods, newest first. Always includes the current quarter."""
    company_id = request.args.get("companyId", type=int)
    if company_id is not None:
        _company, denied = company_for(company_id)
        if denied:
            return denied
        company_ids = [company_id]
    else:
        company_ids = [c.id for c in accessible_companies()]

    periods = {current_period()}
    for cid in company_ids:
        periods |= metric_periods_for(cid)
    return jsonify({"periods": sort_periods(periods, newest_first=True)})


@metrics_bp.route("/<slug>", methods=["POST"])
@login_required
def create_metrics(slug):
    pillar, bad = _pillar_for(slug)
    if bad:
        return bad
    data = json_body()
    company_id = data.get("companyId")
    if not isinstance(company_id, int) or isinstance(company_id, bool):
        return error("'companyId' is required.")
    _company, denied = company_for(company_id, "edit")
    if denied:
        return denied

    try:
        record = create_record(pillar, company_id, data.get("period"), data)
    except DuplicateRecordError as e:
        return error(str(e), 409)
    except (InvalidPeriodError, MetricValidationError) as e:
        return error(str(e))

    recalculate_scorecard(company_id, record.period)
    return jsonify({"metric": record.to_dict()}), 201


@metrics_bp.route("/<slug>/<int:record_id>")
@login_required
def get_metrics(slug, record_id):
    record, bad = _record_for(slug, record_id, "view")
    if bad:
        return bad
    return jsonify({"metric": record.to_dict()})


@metrics_bp.route("/<slug>/<int:record_id>", methods=["PUT"])
@login_required
def update_metrics(slug, record_id):
    record, bad = _record_for(slug, record_id, "edit")
    if bad:
        return bad
    data = json_body()
    if "period" in data and data["period"] != record.period:
        return error("The period of an existing record cannot be changed.")
    try:
        update_record(record, data)
    except MetricValidationError as e:
        db.session.rollback()
        return error(str(e))

    recalculate_scorecard(record.company_id, record.period)
    return jsonify({"metric": record.to_dict()})


@metrics_bp.route("/<slug>/<int:record_id>", methods=["DELETE"])
@login_required
def delete_metrics(slug, record_id):
    record, bad = _record_for(slug, record_id, "edit")
    if bad:
        return bad
    company_id, period = delete_record(record)
    recalculate_scorecard(company_id, period)
    return jsonify({"message": "Metric record deleted."})


@metrics_bp.route("/<int:company_id>")
@login_required
def company_metrics(company_id):
    """All metric records of a company, grouped by pillar, newest period first."""
    _company, denied = company_for(company_id)
    if denied:
        return denied
    period, bad = period_arg(request.args.get("period"))
    if bad:
        return bad

    result = {}
    for pillar, model in METRIC_MODELS.items():
        query = model.query.filter_by(company_id=company_id)
        if period:
            query = query.filter_by(period=period)
        rows = query.all()
        order = {p: i for i, p in enumerate(sort_periods((r.period for r in rows), newest_first=True))}
        result[PILLAR_KEYS[pillar]] = [r.to_dict() for r in sorted(rows, key=lambda r: order[r.period])]
    return jsonify(result)
