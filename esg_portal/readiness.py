"""
BRSR Compliance Readiness

Maps pillar requirement coverage onto a BRSR-style checklist and derives
the ranked "next steps" list shown in the compliance center and on the
scorecard.
"""

from esg_portal.esg_requirements import BRSR_PRINCIPLES, get_requirement_by_id
from esg_portal.models import PILLARS
from esg_portal.scoring import round_half_up

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}

# (minimum readiness, tier, message), checked top-down
READINESS_TIERS = [
    (80, "ready", "You're on track for BRSR reporting. Keep evidence current for assurance."),
    (60, "progressing", "BRSR readiness is progressing. Close the remaining gaps before filing."),
    (30, "gaps", "Significant BRSR gaps remain. Prioritise the critical requirements below."),
    (0, "early", "BRSR readiness is at an early stage. Start with the high-priority items below."),
]

NO_DATA_MESSAGE = "No ESG data for this period yet. Add environmental, social and governance metrics to see your BRSR readiness."


def _has_data(evaluations):
    return any(ev["hasRecord"] for ev in evaluations.values())


def readiness_message(readiness, has_data=True):
    if not has_data:
        return NO_DATA_MESSAGE
    for minimum, _tier, message in READINESS_TIERS:
        if readiness >= minimum:
            return message
    return READINESS_TIERS[-1][2]


def breakdown_status(missing, missing_critical):
    if missing == 0:
        return "complete"
    if missing_critical:
        return "critical"
    return "warning"


def build_breakdown(evaluations):
    """One entry per pillar, always in Environmental, Social, Governance order."""
    breakdown = []
    for pillar in PILLARS:
        ev = evaluations[pillar]
        covered = len(ev["completed"])
        missing = len(ev["missing"])
        requirements = [
            {**item, "covered": True} for item in ev["completed"]
        ] + [
            {**item, "covered": False} for item in ev["missing"]
        ]
        requirements.sort(key=lambda r: r["id"])
        breakdown.append({
            "area": pillar,
            "covered": covered,
            "total": covered + missing,
            "missing": missing,
            "status": breakdown_status(missing, ev["missingCritical"]),
            "completeness": ev["completeness"],
            "requirements": requirements,
        })
    return breakdown


def principle_coverage(evaluations):
    """Coverage per BRSR principle across all pillars."""
    coverage = {}
    for ev in evaluations.values():
        for covered, items in ((True, ev["completed"]), (False, ev["missing"])):
            for item in items:
                principle = get_requirement_by_id(item["id"])["principle"]
                entry = coverage.setdefault(principle, {
                    "principle": principle,
                    "title": BRSR_PRINCIPLES[principle],
                    "covered": 0,
                    "total": 0,
                })
                entry["total"] += 1
                if covered:
                    entry["covered"] += 1
    return [coverage[p] for p in sorted(coverage)]


def generate_next_steps(evaluations):
    """Ranked remediation list.

    high: missing critical requirements, medium: missing mandatory ones,
    low: everything else. Ties keep pillar order, then catalog order.
    Returns [] when no pillar has a record for the period.
    """
    if not _has_data(evaluations):
        return []

    steps = []
    for pillar_index, pillar in enumerate(PILLARS):
        for item in evaluations[pillar]["missing"]:
            req = get_requirement_by_id(item["id"])
            if req["critical"]:
                priority = "high"
            elif req["mandatory"]:
                priority = "medium"
            else:
                priority = "low"
            steps.append((PRIORITY_ORDER[priority], pillar_index, req["id"], {
                "priority": priority,
                "action": req["action"],
                "area": pillar,
                "requirement": req["requirement"],
                "requirementId": req["id"],
                "link": req["link"],
            }))
    steps.sort(key=lambda s: s[:3])
    return [s[3] for s in steps]


def compliance_dashboard(period, evaluations):
    """Payload of the compliance center for one period."""
    breakdown = build_breakdown(evaluations)
    covered = sum(b["covered"] for b in breakdown)
    total = sum(b["total"] for b in breakdown)
    has_data = _has_data(evaluations)
    readiness = round_half_up(covered / total * 100) if total and has_data else 0
    return {
        "period": period,
        "readiness": readiness,
        "message": readiness_message(readiness, has_data),
        "hasData": has_data,
        "breakdown": breakdown,
        "principles": principle_coverage(evaluations),
        "nextSteps": generate_next_steps(evaluations),
    }
