"""
Alerts & Tasks

Tasks are not stored. They are derived on every read from the gaps in a
period's metric data, low pillar scores and evidence that needs attention.
Only the status a user sets on a task is persisted (TaskState).

Status flow:
    Pending     -> In Progress | Completed
    In Progress -> Completed
    Overdue     -> Completed                  (Overdue is time-driven only)
    Completed   -> (terminal)
"""

import logging
import re
from datetime import timedelta

from esg_portal.esg_requirements import get_requirement_by_id, is_policy_requirement
from esg_portal.models import PILLARS
from esg_portal.periods import period_end

logger = logging.getLogger(__name__)

PENDING = "Pending"
IN_PROGRESS = "In Progress"
COMPLETED = "Completed"
OVERDUE = "Overdue"
STATUSES = (PENDING, IN_PROGRESS, COMPLETED, OVERDUE)

ALLOWED_TRANSITIONS = {
    PENDING: {IN_PROGRESS, COMPLETED},
    IN_PROGRESS: {COMPLETED},
    OVERDUE: {COMPLETED},
    COMPLETED: set(),
}

DUE_AFTER_PERIOD_END = {"High": 15, "Medium": 30, "Low": 45}
PRIORITY_RANK = {"High": 0, "Medium": 1, "Low": 2}
STATUS_RANK = {OVERDUE: 0, IN_PROGRESS: 1, PENDING: 2, COMPLETED: 3}

LOW_SCORE_THRESHOLD = 60
TODAY_FOCUS_LIMIT = 3

TASK_ID_RE = re.compile(r"^c(\d+)-(\d{4}-Q[1-4])-(.+)$")


class TaskTransitionError(ValueError):
    pass


def task_id(company_id, period, key):
    return f"c{company_id}-{period}-{key}"


def parse_task_id(value):
    """Return (company_id, period, key) or None for a malformed id."""
    match = TASK_ID_RE.match(value or "")
    if not match:
        return None
    return int(match.group(1)), match.group(2), match.group(3)


def validate_transition(current, new_status):
    if new_status not in STATUSES:
        raise TaskTransitionError(f"Unknown task status '{new_status}'.")
    if new_status == OVERDUE:
        raise TaskTransitionError("Overdue is set automatically when a task passes its due date.")
    if current == COMPLETED:
        raise TaskTransitionError("Task is already completed.")
    if current == new_status:
        raise TaskTransitionError(f"Task is already {current.lower()}.")
    if new_status not in ALLOWED_TRANSITIONS[current]:
        raise TaskTransitionError(f"Cannot move a task from {current} to {new_status}.")


def effective_status(stored_status, due_date, today):
    status = stored_status or PENDING
    if status != COMPLETED and due_date < today:
        return OVERDUE
    return status


def _due_label(due_date, today):
    days = (due_date - today).days
    if days < 0:
        return f"{-days} day{'s' if days != -1 else ''} overdue"
    if days == 0:
        return "Due today"
    return f"Due in {days} day{'s' if days != 1 else ''}"


def _candidate_tasks(evaluations, scores, evidence_items, today, expiry_warning_days):
    """(key, title, relatedTo, esgArea, priority, impact) for every open gap."""
    candidates = []
    for pillar in PILLARS:
        ev = evaluations[pillar]
        for item in ev["missing"]:
            req = get_requirement_by_id(item["id"])
            if req["critical"]:
                priority, impact = "High", "Blocks BRSR readiness and lowers the score"
            elif req["mandatory"]:
                priority, impact = "Medium", "Required for BRSR core disclosure"
            else:
                priority, impact = "Low", "Improves data completeness"
            related = "Compliance" if is_policy_requirement(req) else "Data"
            candidates.append((req["id"], req["action"], related, pillar, priority, impact))

        score = scores.get(pillar)
        if ev["hasRecord"] and score is not None and score < LOW_SCORE_THRESHOLD:
            candidates.append((
                f"SCORE-{pillar[:3].upper()}",
                f"Improve {pillar} score (currently {score})",
                "Score",
                pillar,
                "Medium",
                f"{pillar} score is below {LOW_SCORE_THRESHOLD}",
            ))

    for evidence in evidence_items:
        expiring = evidence.expiry_date is not None and evidence.expiry_date <= today + timedelta(days=expiry_warning_days)
        if evidence.expiry_date is not None and evidence.expiry_date < today:
            title, priority = f"Replace expired evidence: {evidence.evidence_type}", "High"
        elif expiring:
            title, priority = f"Renew evidence expiring {evidence.expiry_date.isoformat()}: {evidence.evidence_type}", "Medium"
        elif evidence.status == "Pending":
            title, priority = f"Link evidence to a metric: {evidence.evidence_type}", "Low"
        else:
            continue
        candidates.append((
            f"EVD-{evidence.id}", title, "Evidence", evidence.esg_area, priority,
            "Unsupported disclosures weaken assurance readiness",
        ))
    return candidates


def compute_tasks(company_id, period, evaluations, scores, evidence_items, states, today,
                  expiry_warning_days=30):
    """Derive the task list for a company/period.

    `states` maps task key -> stored status. The result is sorted by status
    (overdue first), priority, then due date.
    """
    end = period_end(period)
    tasks = []
    for key, title, related, area, priority, impact in _candidate_tasks(
        evaluations, scores, evidence_items, today, expiry_warning_days
    ):
        due_date = end + timedelta(days=DUE_AFTER_PERIOD_END[priority])
        status = effective_status(states.get(key), due_date, today)
        tasks.append({
            "_id": task_id(company_id, period, key),
            "key": key,
            "title": title,
            "relatedTo": related,
            "esgArea": area,
            "due": _due_label(due_date, today) if status != COMPLETED else "Done",
            "dueDate": due_date.isoformat(),
            "impact": impact,
            "priority": priority,
            "status": status,
        })
    tasks.sort(key=lambda t: (STATUS_RANK[t["status"]], PRIORITY_RANK[t["priority"]], t["dueDate"], t["key"]))
    return tasks


def tasks_dashboard(tasks, today):
    open_tasks = [t for t in tasks if t["status"] != COMPLETED]
    week_end = (today + timedelta(days=7)).isoformat()
    focus = sorted(
        open_tasks,
        key=lambda t: (t["status"] != OVERDUE, PRIORITY_RANK[t["priority"]], t["dueDate"]),
    )[:TODAY_FOCUS_LIMIT]
    return {
        "statistics": {
            "pendingTasks": sum(1 for t in tasks if t["status"] in (PENDING, IN_PROGRESS)),
            "overdueTasks": sum(1 for t in tasks if t["status"] == OVERDUE),
            "dueThisWeek": sum(
                1 for t in open_tasks
                if t["status"] != OVERDUE and today.isoformat() <= t["dueDate"] <= week_end
            ),
            "completedTasks": sum(1 for t in tasks if t["status"] == COMPLETED),
        },
        "todayFocus": len(focus),
        "todayFocusTasks": focus,
        "taskTable": tasks,
    }
