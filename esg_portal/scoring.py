"""
ESG Scoring Engine

Turns the three metric records of a company/period into a scorecard:

1. Completeness: which catalog requirements each pillar covers.
2. Pillar score (0-100):
   - 70 points of baseline, proportional to the weight of covered requirements
   - up to 30 quality points from value rules (renewable share, recycling
     rate, incident counts, board independence, ...), each applied only
     when all of its inputs are reported and never negative
   - 5 points off for every missing critical requirement
   - clamped to 0-100; a pillar with nothing reported scores 0
   Reporting a previously missing field can only raise a pillar's score.
3. Overall score: 40% Environmental, 30% Social, 30% Governance, rounded
   with Python's round() (ties to even, so 4.5 -> 4). Completeness,
   readiness and pillar scores round half-up instead.
4. Grade and risk tier from fixed thresholds.
"""

import logging
import math
from datetime import datetime, timezone

from esg_portal import db
from esg_portal.esg_requirements import get_requirements_by_pillar, is_reported
from esg_portal.models import (
    ESGScore, PILLARS, PILLAR_ENVIRONMENTAL, PILLAR_SOCIAL, PILLAR_GOVERNANCE,
    metric_records_for,
)
from esg_portal.periods import previous_period, sort_periods

logger = logging.getLogger(__name__)

OVERALL_WEIGHTS = {
    PILLAR_ENVIRONMENTAL: 0.40,
    PILLAR_SOCIAL: 0.30,
    PILLAR_GOVERNANCE: 0.30,
}

BASELINE_POINTS = 70
QUALITY_POINTS = 30
CRITICAL_PENALTY = 5

# (minimum score, grade, label, color), checked top-down
GRADE_TABLE = [
    (80, "A", "Strong", "green"),
    (60, "B", "Moderate", "yellow"),
    (40, "C", "Weak", "orange"),
    (0, "D", "Poor", "red"),
]

RISK_TABLE = [
    (80, "Low", "green"),
    (60, "Medium", "yellow"),
    (0, "High", "red"),
]

PILLAR_KEYS = {
    PILLAR_ENVIRONMENTAL: "environmental",
    PILLAR_SOCIAL: "social",
    PILLAR_GOVERNANCE: "governance",
}


def round_half_up(value):
    return int(math.floor(value + 0.5))


def _clamp(value, low=0.0, high=1.0):
    return max(low, min(high, value))


# ---------------------------------------------------------------------------
# Completeness
# ---------------------------------------------------------------------------

def evaluate_pillar(pillar, record):
    """Split a pillar's requirements into completed and missing.

    `record` is the submitted field dict, or None when nothing was submitted
    for the period.
    """
    requirements = get_requirements_by_pillar()[pillar]
    data = record or {}

    completed = []
    missing = []
    categories = {}
    weight_total = 0
    weight_completed = 0
    for req in requirements:
        covered = any(is_reported(data.get(f)) for f in req["fields"])
        item = {
            "id": req["id"],
            "requirement": req["requirement"],
            "category": req["category"],
            "critical": req["critical"],
            "mandatory": req["mandatory"],
        }
        cat = categories.setdefault(req["category"], {"completed": 0, "total": 0})
        cat["total"] += 1
        weight_total += req["weight"]
        if covered:
            completed.append(item)
            cat["completed"] += 1
            weight_completed += req["weight"]
        else:
            missing.append(item)

    total = len(requirements)
    for cat in categories.values():
        cat["completeness"] = round_half_up(cat["completed"] / cat["total"] * 100)

    return {
        "pillar": pillar,
        "hasRecord": record is not None,
        "total": total,
        "completed": completed,
        "missing": missing,
        "missingCritical": [m for m in missing if m["critical"]],
        "completeness": round_half_up(len(completed) / total * 100) if total else 0,
        "weightCompleted": weight_completed,
        "weightTotal": weight_total,
        "categories": categories,
    }


# ---------------------------------------------------------------------------
# Quality rules: (points, input fields, fn(values) -> 0..1)
# ---------------------------------------------------------------------------

def _ratio(part, whole):
    return _clamp(part / whole) if whole else 0.0


QUALITY_RULES = {
    PILLAR_ENVIRONMENTAL: [
        (12, ["renewableEnergyPercent"], lambda v: _clamp(v["renewableEnergyPercent"] / 100)),
        (8, ["recycledWasteTonnes", "totalWasteTonnes"],
         lambda v: _ratio(v["recycledWasteTonnes"], v["totalWasteTonnes"])),
        (4, ["hazardousWasteTonnes", "totalWasteTonnes"],
         lambda v: 1 - _ratio(v["hazardousWasteTonnes"], v["totalWasteTonnes"]) if v["totalWasteTonnes"] else 0.0),
        (3, ["waterReuseRecyclingPractices"], lambda v: 1.0),
        (3, ["energySavingsPrograms"], lambda v: 1.0),
    ],
    PILLAR_SOCIAL: [
        (8, ["accidentIncidents"], lambda v: 1 / (1 + v["accidentIncidents"])),
        (6, ["totalTrainingHoursPerEmployee"], lambda v: _clamp(v["totalTrainingHoursPerEmployee"] / 40)),
        (6, ["femalePercentWorkforce"], lambda v: _clamp(v["femalePercentWorkforce"] / 40)),
        (4, ["womenInManagementPercent"], lambda v: _clamp(v["womenInManagementPercent"] / 30)),
        (3, ["employeeTurnoverPercent"], lambda v: _clamp(1 - v["employeeTurnoverPercent"] / 50)),
        (3, ["accessibilityMeasures"], lambda v: 1.0),
    ],
    PILLAR_GOVERNANCE: [
        (10, ["independentDirectors", "boardMembers"],
         lambda v: _clamp(_ratio(v["independentDirectors"], v["boardMembers"]) / 0.5)),
        (8, ["complianceViolations"], lambda v: 1 / (1 + v["complianceViolations"])),
        (4, ["boardDiversityPercent"], lambda v: _clamp(v["boardDiversityPercent"] / 30)),
        (4, ["auditResults"], lambda v: 1.0),
        (4, ["monitoringEscalationMechanisms"], lambda v: 1.0),
    ],
}


def quality_points(pillar, record):
    data = record or {}
    points = 0.0
    for max_points, fields, fn in QUALITY_RULES[pillar]:
        if all(is_reported(data.get(f)) for f in fields):
            points += max_points * _clamp(fn({f: data[f] for f in fields}))
    return points


def score_pillar(evaluation, record):
    """0-100 score for one pillar."""
    if not evaluation["completed"]:
        return 0
    baseline = BASELINE_POINTS * evaluation["weightCompleted"] / evaluation["weightTotal"]
    bonus = quality_points(evaluation["pillar"], record)
    penalty = CRITICAL_PENALTY * len(evaluation["missingCritical"])
    return round_half_up(_clamp(baseline + bonus - penalty, 0, 100))


# ---------------------------------------------------------------------------
# Grades and aggregation
# ---------------------------------------------------------------------------

def grade_for(score):
    for minimum, grade, label, color in GRADE_TABLE:
        if score >= minimum:
            return {"grade": grade, "label": label, "color": color}
    return {"grade": "D", "label": "Poor", "color": "red"}


def risk_for(score):
    for minimum, level, color in RISK_TABLE:
        if score >= minimum:
            return {"level": level, "color": color}
    return {"level": "High", "color": "red"}


def overall_score(environmental, social, governance):
    return round(
        OVERALL_WEIGHTS[PILLAR_ENVIRONMENTAL] * environmental
        + OVERALL_WEIGHTS[PILLAR_SOCIAL] * social
        + OVERALL_WEIGHTS[PILLAR_GOVERNANCE] * governance
    )


def evaluate_all(records):
    """{pillar: evaluation} for the three records of a period."""
    return {p: evaluate_pillar(p, records.get(p)) for p in PILLARS}


def compute_scorecard(company_id, period, records):
    """Pure scorecard projection of one period's metric records.

    `records` maps pillar -> field dict (or None). Previous-period deltas are
    attached when the stored card is read back by `load_scorecard`.
    """
    evaluations = evaluate_all(records)
    scores = {p: score_pillar(evaluations[p], records.get(p)) for p in PILLARS}

    e, s, g = scores[PILLAR_ENVIRONMENTAL], scores[PILLAR_SOCIAL], scores[PILLAR_GOVERNANCE]
    overall = overall_score(e, s, g)
    completeness = round_half_up(sum(ev["completeness"] for ev in evaluations.values()) / len(PILLARS))

    pillars = {}
    for p in PILLARS:
        ev = evaluations[p]
        pillars[PILLAR_KEYS[p]] = {
            "score": scores[p],
            "grade": grade_for(scores[p]),
            "risk": risk_for(scores[p]),
            "completeness": ev["completeness"],
            "completed": ev["completed"],
            "missing": ev["missing"],
            "missingCritical": ev["missingCritical"],
            "categories": ev["categories"],
        }

    from esg_portal.readiness import generate_next_steps

    return {
        "companyId": company_id,
        "period": period,
        "overallScore": overall,
        "overallGrade": grade_for(overall),
        "overallRisk": risk_for(overall),
        "dataCompleteness": completeness,
        "environmentalScore": e,
        "environmentalGrade": grade_for(e),
        "socialScore": s,
        "socialGrade": grade_for(s),
        "governanceScore": g,
        "governanceGrade": grade_for(g),
        "pillars": pillars,
        "nextSteps": generate_next_steps(evaluations),
        "previousPeriod": None,
    }


def trend_direction(change):
    if change is None or change == 0:
        return "flat"
    return "up" if change > 0 else "down"


def score_delta(current, previous):
    """Period-over-period change between two stored scores."""
    change = current.overall_score - previous.overall_score
    return {
        "period": previous.period,
        "overallScore": previous.overall_score,
        "change": change,
        "direction": trend_direction(change),
        "environmentalChange": current.environmental_score - previous.environmental_score,
        "socialChange": current.social_score - previous.social_score,
        "governanceChange": current.governance_score - previous.governance_score,
    }


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

def recalculate_scorecard(company_id, period):
    """Recompute and overwrite the stored scorecard for one period.

    When the period no longer has any metric record the stored score is
    removed and None is returned.
    """
    records = metric_records_for(company_id, period)
    existing = ESGScore.query.filter_by(company_id=company_id, period=period).first()

    if all(r is None for r in records.values()):
        if existing:
            db.session.delete(existing)
            db.session.commit()
            logger.info(f"Removed scorecard for company {company_id} period {period}: no metrics left")
        return None

    card = compute_scorecard(company_id, period, records)
    score = existing or ESGScore(company_id=company_id, period=period)
    score.overall_score = card["overallScore"]
    score.environmental_score = card["environmentalScore"]
    score.social_score = card["socialScore"]
    score.governance_score = card["governanceScore"]
    score.data_completeness = card["dataCompleteness"]
    score.details = card
    score.calculated_at = datetime.now(timezone.utc)
    if not existing:
        db.session.add(score)
    db.session.commit()
    logger.info(
        f"Scorecard for company {company_id} period {period}: overall={score.overall_score} "
        f"E={score.environmental_score} S={score.social_score} G={score.governance_score}"
    )
    return score


def stored_scores(company_id):
    """Stored scores ordered oldest period first."""
    scores = ESGScore.query.filter_by(company_id=company_id).all()
    order = {p: i for i, p in enumerate(sort_periods(s.period for s in scores))}
    return sorted(scores, key=lambda s: order[s.period])


def load_scorecard(company_id, period=None):
    """Return {scorecard, trends, periods} for the scorecard endpoint."""
    scores = stored_scores(company_id)
    if not scores:
        return {"scorecard": None, "trends": [], "periods": []}

    by_period = {s.period: s for s in scores}
    trends = []
    prev = None
    for s in scores:
        trends.append({
            "period": s.period,
            "overallScore": s.overall_score,
            "environmentalScore": s.environmental_score,
            "socialScore": s.social_score,
            "governanceScore": s.governance_score,
            "calculatedAt": s.calculated_at.isoformat() if s.calculated_at else None,
            "change": {
                "overall": s.overall_score - prev.overall_score,
                "environmental": s.environmental_score - prev.environmental_score,
                "social": s.social_score - prev.social_score,
                "governance": s.governance_score - prev.governance_score,
            } if prev else None,
        })
        prev = s

    periods = [s.period for s in reversed(scores)]
    current = by_period.get(period) if period else scores[-1]
    if current is None:
        return {"scorecard": None, "trends": trends, "periods": periods}

    card = dict(current.details or {})
    card["calculatedAt"] = current.calculated_at.isoformat() if current.calculated_at else None
    prior = previous_period(current.period, by_period.keys())
    card["previousPeriod"] = score_delta(current, by_period[prior]) if prior else None
    return {"scorecard": card, "trends": trends, "periods": periods}
