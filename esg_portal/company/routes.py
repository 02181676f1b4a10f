import logging
import os
from datetime import date

from flask import Blueprint, current_app, jsonify
from flask_login import login_required, current_user

from esg_portal import db
from esg_portal.access import accessible_companies, company_for, error, json_body
from esg_portal.metric_store import MetricValidationError, coerce_field
from esg_portal.models import Company, ESGScore, Evidence, TaskState, METRIC_MODELS, PLANS

logger = logging.getLogger(__name__)

company_bp = Blueprint("company", __name__, url_prefix="/api/company")


def _apply_profile(company, data):
    """Copy editable profile fields onto a company. Returns an error message or None."""
    if "name" in data:
        name = str(data["name"] or "").strip()
        if not name:
            return "Company name is required."
        company.name = name
    for key, attr in (("industry", "industry"), ("location", "location")):
        if key in data:
            setattr(company, attr, str(data[key] or "").strip())

    for key, attr, kind in (
        ("employeeCount", "employee_count", "integer"),
        ("annualRevenue", "annual_revenue", "number"),
        ("reportingYear", "reporting_year", "integer"),
    ):
        if key not in data:
            continue
        value = data[key]
        try:
            value = None if value is None else coerce_field(key, kind, value)
        except MetricValidationError as e:
            return str(e)
        setattr(company, attr, value)

    # Subscription fields are managed by administrators
    if current_user.is_admin:
        if "plan" in data:
            if data["plan"] not in PLANS:
                return f"Plan must be one of {', '.join(PLANS)}."
            company.plan = data["plan"]
        if "isTrial" in data:
            company.is_trial = bool(data["isTrial"])
        if "trialEndDate" in data:
            try:
                company.trial_end_date = date.fromisoformat(data["trialEndDate"]) if data["trialEndDate"] else None
            except (TypeError, ValueError):
                return "'trialEndDate' must be a date (YYYY-MM-DD)."
        if "customFeatures" in data:
            features = data["customFeatures"] or []
            if not isinstance(features, list):
                return "'customFeatures' must be a list of feature ids."
            company.custom_features = [str(f) for f in features]
        if "featureOverrides" in data:
            overrides = data["featureOverrides"] or {}
            if not isinstance(overrides, dict) or not all(isinstance(v, bool) for v in overrides.values()):
                return "'featureOverrides' must map feature ids to true or false."
            company.feature_overrides = {str(k): v for k, v in overrides.items()}
    return None


@company_bp.route("")
@login_required
def list_companies():
    return jsonify({"companies": [c.to_dict() for c in accessible_companies()]})


@company_bp.route("", methods=["POST"])
@login_required
def create_company():
    if current_user.is_auditor:
        return error("Auditors cannot create companies.", 403)
    data = json_body()
    if not str(data.get("name") or "").strip():
        return error("Company name is required.")

    company = Company(user_id=current_user.id, plan=current_user.plan or "starter")
    message = _apply_profile(company, data)
    if message:
        return error(message)
    db.session.add(company)
    db.session.flush()
    if current_user.company_id is None and not current_user.is_admin:
        current_user.company_id = company.id
    db.session.commit()
    logger.info(f"User {current_user.id} created company {company.id} ({company.name})")
    return jsonify({"company": company.to_dict()}), 201


@company_bp.route("/<int:company_id>")
@login_required
def get_company(company_id):
    company, denied = company_for(company_id)
    if denied:
        return denied
    return jsonify({"company": company.to_dict()})


@company_bp.route("/<int:company_id>", methods=["PUT"])
@login_required
def update_company(company_id):
    company, denied = company_for(company_id, "edit")
    if denied:
        return denied
    message = _apply_profile(company, json_body())
    if message:
        db.session.rollback()
        return error(message)
    db.session.commit()
    logger.info(f"Company {company.id} updated by user {current_user.id}")
    return jsonify({"company": company.to_dict()})


@company_bp.route("/<int:company_id>", methods=["DELETE"])
@login_required
def delete_company(company_id):
    if not current_user.is_admin:
        return error("Admin access required.", 403)
    company = db.session.get(Company, company_id)
    if not company:
        return error("Company not found.", 404)

    upload_dir = current_app.config["UPLOAD_FOLDER"]
    for evidence in Evidence.query.filter_by(company_id=company_id):
        path = os.path.join(upload_dir, evidence.filename)
        if os.path.exists(path):
            os.remove(path)
    for model in list(METRIC_MODELS.values()) + [ESGScore, Evidence, TaskState]:
        model.query.filter_by(company_id=company_id).delete()
    for member in company.members:
        member.company_id = None
    db.session.delete(company)
    db.session.commit()
    logger.info(f"Admin {current_user.id} deleted company {company_id}")
    return jsonify({"message": "Company deleted."})
