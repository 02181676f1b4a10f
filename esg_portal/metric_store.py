"""Metric record store: validation and persistence of per-period pillar records."""

import logging
import math

from sqlalchemy.exc import IntegrityError

from esg_portal import db
from esg_portal.esg_requirements import METRIC_FIELDS
from esg_portal.models import METRIC_MODELS
from esg_portal.periods import normalize_period

logger = logging.getLogger(__name__)


class MetricValidationError(ValueError):
    pass


class DuplicateRecordError(ValueError):
    pass


def coerce_field(field, kind, value):
    if kind == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        raise MetricValidationError(f"'{field}' must be true or false.")

    if kind == "text":
        return str(value)

    if isinstance(value, bool):
        raise MetricValidationError(f"'{field}' must be a number.")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MetricValidationError(f"'{field}' must be a number.")
    if math.isnan(number) or math.isinf(number):
        raise MetricValidationError(f"'{field}' must be a finite number.")
    if number < 0:
        raise MetricValidationError(f"'{field}' cannot be negative.")
    if kind == "percent" and number > 100:
        raise MetricValidationError(f"'{field}' must be between 0 and 100.")
    if kind == "integer":
        if number != int(number):
            raise MetricValidationError(f"'{field}' must be a whole number.")
        return int(number)
    return number


def clean_metric_data(pillar, payload):
    """Validate submitted fields for a pillar.

    Unknown keys are ignored. Keys sent as null (or blank numbers) come back
    as None so that an update can clear them.
    """
    kinds = METRIC_FIELDS[pillar]
    cleaned = {}
    for field, kind in kinds.items():
        if field not in payload:
            continue
        value = payload[field]
        cleaned[field] = None if value is None else coerce_field(field, kind, value)
    return cleaned


def _strip_nones(data):
    return {k: v for k, v in data.items() if v is not None}


def _existing(model, company_id, period):
    return model.query.filter_by(company_id=company_id, period=period).first()


def create_record(pillar, company_id, period, payload):
    period = normalize_period(period)
    model = METRIC_MODELS[pillar]
    duplicate = f"{pillar} metrics for {period} already exist. Edit the existing record instead."
    if _existing(model, company_id, period):
        raise DuplicateRecordError(duplicate)
    record = model(company_id=company_id, period=period, data=_strip_nones(clean_metric_data(pillar, payload)))
    db.session.add(record)
    try:
        db.session.commit()
    except IntegrityError:
        # concurrent create for the same company and period
        db.session.rollback()
        raise DuplicateRecordError(duplicate)
    logger.info(f"Created {pillar} metrics for company {company_id} period {period}")
    return record


def update_record(record, payload):
    """Apply submitted fields to an existing record; null clears a field."""
    cleaned = clean_metric_data(record.pillar, payload)
    data = dict(record.data or {})
    data.update(cleaned)
    record.data = _strip_nones(data)
    db.session.commit()
    logger.info(f"Updated {record.pillar} metrics {record.id} ({record.period})")
    return record


def delete_record(record):
    company_id, period = record.company_id, record.period
    db.session.delete(record)
    db.session.commit()
    logger.info(f"Deleted {record.pillar} metrics for company {company_id} period {period}")
    return company_id, period
