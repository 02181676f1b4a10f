from esg_portal.models import PILLAR_ENVIRONMENTAL, PILLAR_GOVERNANCE, PILLAR_SOCIAL, PILLARS
from esg_portal.readiness import NO_DATA_MESSAGE, compliance_dashboard, generate_next_steps
from esg_portal.scoring import evaluate_all

ENERGY = {"electricityKwh": 50000, "fuelLitres": 5000, "scope1Emissions": 10, "scope2Emissions": 5}


def _evaluations(env=None, soc=None, gov=None):
    return evaluate_all({PILLAR_ENVIRONMENTAL: env, PILLAR_SOCIAL: soc, PILLAR_GOVERNANCE: gov})


def test_empty_state_has_no_next_steps():
    evaluations = _evaluations()
    assert generate_next_steps(evaluations) == []

    dashboard = compliance_dashboard("2026-Q1", evaluations)
    assert dashboard["readiness"] == 0
    assert dashboard["hasData"] is False
    assert dashboard["message"] == NO_DATA_MESSAGE
    assert dashboard["nextSteps"] == []
    assert [b["area"] for b in dashboard["breakdown"]] == list(PILLARS)


def test_breakdown_counts_add_up():
    dashboard = compliance_dashboard("2026-Q1", _evaluations(env=ENERGY, gov={"codeOfConductExists": True}))
    for entry in dashboard["breakdown"]:
        assert entry["covered"] + entry["missing"] == entry["total"]
        assert 0 <= entry["covered"] <= entry["total"]
        assert len(entry["requirements"]) == entry["total"]


def test_breakdown_status():
    # Environmental has its critical fields, Social has nothing
    dashboard = compliance_dashboard("2026-Q1", _evaluations(env=ENERGY, soc={}))
    status = {b["area"]: b["status"] for b in dashboard["breakdown"]}
    assert status[PILLAR_ENVIRONMENTAL] == "warning"
    assert status[PILLAR_SOCIAL] == "critical"
    assert status[PILLAR_GOVERNANCE] == "critical"


def test_readiness_is_share_of_covered_requirements():
    dashboard = compliance_dashboard("2026-Q1", _evaluations(env=ENERGY))
    total = sum(b["total"] for b in dashboard["breakdown"])
    assert dashboard["readiness"] == round(4 / total * 100)
    assert dashboard["hasData"] is True
    assert dashboard["message"] != NO_DATA_MESSAGE


def test_next_steps_ordering():
    steps = generate_next_steps(_evaluations(env=ENERGY))
    rank = {"high": 0, "medium": 1, "low": 2}
    pillar_rank = {p: i for i, p in enumerate(PILLARS)}
    keys = [(rank[s["priority"]], pillar_rank[s["area"]], s["requirementId"]) for s in steps]
    assert keys == sorted(keys)

    # No environmental critical gaps remain, so the first step is Social's headcount
    assert steps[0]["priority"] == "high"
    assert steps[0]["requirementId"] == "SOC-01"
    assert all(s["link"].startswith("/dashboard/") for s in steps)


def test_next_steps_priorities_follow_requirement_flags():
    steps = {s["requirementId"]: s["priority"] for s in generate_next_steps(_evaluations(env={}))}
    assert steps["ENV-01"] == "high"
    assert steps["ENV-02"] == "medium"
    assert steps["ENV-07"] == "low"


def test_principle_coverage_totals_match_catalog():
    dashboard = compliance_dashboard("2026-Q1", _evaluations(env=ENERGY))
    assert sum(p["total"] for p in dashboard["principles"]) == sum(b["total"] for b in dashboard["breakdown"])
    p6 = next(p for p in dashboard["principles"] if p["principle"] == "P6")
    assert p6["covered"] == 4
