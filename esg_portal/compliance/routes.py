from flask import Blueprint, jsonify, request
from flask_login import login_required

from esg_portal.access import company_for, period_arg
from esg_portal.models import metric_periods_for, metric_records_for
from esg_portal.periods import current_period, sort_periods
from esg_portal.readiness import compliance_dashboard
from esg_portal.scoring import evaluate_all

compliance_bp = Blueprint("compliance", __name__, url_prefix="/api/compliance")


def latest_period(company_id):
    """Most recent period with metric data, else the current quarter."""
    periods = sort_periods(metric_periods_for(company_id), newest_first=True)
    return periods[0] if periods else current_period()


@compliance_bp.route("/dashboard/<int:company_id>")
@login_required
def dashboard(company_id):
    _company, denied = company_for(company_id)
    if denied:
        return denied
    period, bad = period_arg(request.args.get("period"))
    if bad:
        return bad
    period = period or latest_period(company_id)

    evaluations = evaluate_all(metric_records_for(company_id, period))
    return jsonify(compliance_dashboard(period, evaluations))
