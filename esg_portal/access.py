"""Shared request helpers for the API blueprints."""

import logging
from functools import wraps

from flask import jsonify, request
from flask_login import current_user
from sqlalchemy import or_

from esg_portal import db
from esg_portal.models import Company
from esg_portal.periods import InvalidPeriodError, normalize_period

logger = logging.getLogger(__name__)


def error(message, status=400):
    return jsonify({"error": message}), status


def json_body():
    """Request JSON as a dict; malformed or non-object bodies become {}."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not current_user.is_admin:
            logger.warning(f"User {current_user.id} denied admin route {request.path}")
            return error("Admin access required.", 403)
        return view(*args, **kwargs)
    return wrapper


def company_for(company_id, required="view"):
    """Load a company the current user may access.

    Returns (company, None) when allowed, or (None, error response).
    """
    company = db.session.get(Company, company_id)
    if not company:
        return None, error("Company not found.", 404)
    if not company.user_can(current_user, required):
        logger.warning(f"User {current_user.id} denied {required} access to company {company_id}")
        return None, error("Access denied.", 403)
    return company, None


def accessible_companies():
    if current_user.is_admin:
        return Company.query.order_by(Company.created_at.desc()).all()
    query = Company.query.filter(
        or_(Company.user_id == current_user.id, Company.id == current_user.company_id)
    )
    return query.order_by(Company.created_at.desc()).all()


def period_arg(value):
    """Normalise an optional period; returns (period, None) or (None, error response)."""
    if value in (None, ""):
        return None, None
    try:
        return normalize_period(value), None
    except InvalidPeriodError as e:
        return None, error(str(e))
