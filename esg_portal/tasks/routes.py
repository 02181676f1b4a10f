import logging
from datetime import date

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required, current_user

from esg_portal import db
from esg_portal.access import company_for, error, json_body, period_arg
from esg_portal.compliance.routes import latest_period
from esg_portal.models import Evidence, TaskState, PILLARS, metric_records_for
from esg_portal.scoring import evaluate_all, score_pillar
from esg_portal.task_tracker import (
    TaskTransitionError, compute_tasks, parse_task_id, tasks_dashboard, validate_transition,
)

logger = logging.getLogger(__name__)

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")


def _company_tasks(company_id, period, today):
    records = metric_records_for(company_id, period)
    evaluations = evaluate_all(records)
    scores = {p: score_pillar(evaluations[p], records[p]) for p in PILLARS}
    evidence = Evidence.query.filter_by(company_id=company_id).all()
    states = {
        s.task_key: s.status
        for s in TaskState.query.filter_by(company_id=company_id, period=period)
    }
    return compute_tasks(
        company_id, period, evaluations, scores, evidence, states, today,
        expiry_warning_days=current_app.config.get("EXPIRY_WARNING_DAYS", 30),
    )


@tasks_bp.route("/dashboard/<int:company_id>")
@login_required
def dashboard(company_id):
    _company, denied = company_for(company_id)
    if denied:
        return denied
    period, bad = period_arg(request.args.get("period"))
    if bad:
        return bad
    period = period or latest_period(company_id)

    today = date.today()
    result = tasks_dashboard(_company_tasks(company_id, period, today), today)
    result["period"] = period
    return jsonify(result)


@tasks_bp.route("/<task_id>/status", methods=["PUT"])
@login_required
def update_status(task_id):
    parsed = parse_task_id(task_id)
    if parsed is None:
        return error("Task not found.", 404)
    company_id, period, key = parsed

    data = json_body()
    if data.get("period") and data["period"] != period:
        return error("Period does not match the task.")
    _company, denied = company_for(company_id, "edit")
    if denied:
        return denied

    today = date.today()
    task = next((t for t in _company_tasks(company_id, period, today) if t["key"] == key), None)
    if task is None:
        return error("Task not found.", 404)

    new_status = data.get("status")
    try:
        validate_transition(task["status"], new_status)
    except TaskTransitionError as e:
        logger.info(f"Rejected task {task_id} transition {task['status']} -> {new_status}: {e}")
        return error(str(e))

    state = TaskState.query.filter_by(company_id=company_id, period=period, task_key=key).first()
    if state is None:
        state = TaskState(company_id=company_id, period=period, task_key=key)
        db.session.add(state)
    state.status = new_status
    state.updated_by = current_user.id
    db.session.commit()
    logger.info(f"Task {task_id}: {task['status']} -> {new_status} by user {current_user.id}")

    task = next(t for t in _company_tasks(company_id, period, today) if t["key"] == key)
    return jsonify({"task": task})
