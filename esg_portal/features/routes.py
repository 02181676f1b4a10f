from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required, current_user

from esg_portal.access import company_for
from esg_portal.plans import MAX_USERS, feature_list, has_feature, plan_messaging, resolve_plan, trial_status

features_bp = Blueprint("features", __name__, url_prefix="/api/features")


def _context():
    """(plan, company, error response) for the current user and optional ?companyId."""
    company_id = request.args.get("companyId", type=int) or current_user.company_id
    company = None
    if company_id is not None:
        company, denied = company_for(company_id)
        if denied:
            return None, None, denied
    plan = resolve_plan(current_user, company, current_app.config.get("ADMIN_PLAN_OVERRIDES"))
    return plan, company, None


@features_bp.route("")
@login_required
def features():
    plan, company, denied = _context()
    if denied:
        return denied
    return jsonify({
        "plan": plan,
        "features": feature_list(plan, company),
        "customFeatures": list(company.custom_features or []) if company else [],
        "maxUsers": MAX_USERS[plan],
        "trial": trial_status(company),
        "messaging": plan_messaging(plan),
    })


@features_bp.route("/check/<feature_id>")
@login_required
def check(feature_id):
    plan, company, denied = _context()
    if denied:
        return denied
    return jsonify({"featureId": feature_id, "plan": plan, "hasAccess": has_feature(plan, feature_id, company)})
