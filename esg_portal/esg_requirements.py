"""
ESG Requirement Catalog

Defines, for each pillar, the metric fields the data-entry forms accept and
the requirements a complete BRSR-aligned ESG disclosure is expected to cover.

Each requirement has:
- id: Unique identifier (ENV-xx, SOC-xx, GOV-xx)
- pillar: Environmental, Social or Governance
- category: Sub-area within the pillar (the forms' tabs)
- fields: Metric fields that satisfy the requirement (any one reported value counts)
- requirement: Description of what must be reported
- critical: Missing it blocks compliance and costs a fixed scoring penalty
- mandatory: Expected in a BRSR core disclosure
- weight: Relative weight in the pillar's completeness baseline
- principle: BRSR (NGRBC) principle the disclosure supports
- action: Remediation wording shown in next steps and tasks
- link: Data-entry route where the gap is fixed

Field kinds:
- number: non-negative float
- integer: non-negative whole number
- percent: float within 0..100
- boolean: policy flag, only True counts as reported
- text: free text, blank counts as not reported
"""

from esg_portal.models import PILLAR_ENVIRONMENTAL, PILLAR_SOCIAL, PILLAR_GOVERNANCE, PILLARS

BRSR_PRINCIPLES = {
    "P1": "Ethics, transparency and accountability",
    "P2": "Sustainable and safe goods and services",
    "P3": "Employee well-being",
    "P4": "Stakeholder responsiveness",
    "P5": "Human rights",
    "P6": "Environmental protection",
    "P7": "Responsible public policy advocacy",
    "P8": "Inclusive growth",
    "P9": "Consumer value",
}

PILLAR_LINKS = {
    PILLAR_ENVIRONMENTAL: "/dashboard/environment/create",
    PILLAR_SOCIAL: "/dashboard/social/create",
    PILLAR_GOVERNANCE: "/dashboard/governance/create",
}

# URL segment used by the metrics API for each pillar
PILLAR_SLUGS = {
    "environment": PILLAR_ENVIRONMENTAL,
    "environmental": PILLAR_ENVIRONMENTAL,
    "social": PILLAR_SOCIAL,
    "governance": PILLAR_GOVERNANCE,
}


def _kinds(**groups):
    fields = {}
    for kind, names in groups.items():
        for name in names:
            fields[name] = kind
    return fields


METRIC_FIELDS = {
    PILLAR_ENVIRONMENTAL: _kinds(
        number=[
            "totalEnergyConsumption", "electricityKwh", "fuelLitres",
            "scope1Emissions", "scope2Emissions", "scope3Emissions", "emissionsIntensity",
            "waterUsageKL", "waterSourceSurface", "waterSourceGroundwater",
            "waterSourceMunicipal", "waterSourceOther",
            "totalWasteTonnes", "hazardousWasteTonnes", "nonHazardousWasteTonnes",
            "recycledWasteTonnes", "divertedFromDisposalTonnes",
        ],
        percent=["renewableEnergyPercent", "nonRenewableEnergyPercent"],
        text=[
            "wastewaterTreatmentMetrics", "waterReuseRecyclingPractices",
            "recyclingInitiatives", "materialsReuse", "energySavingsPrograms",
            "waterEfficiencyImprovements", "environmentalPolicyDocument",
            "riskAssessmentDetails",
        ],
        boolean=["environmentalPolicyExists", "complianceWithLocalLaws", "environmentalRiskAssessments"],
    ),
    PILLAR_SOCIAL: _kinds(
        integer=[
            "totalEmployeesPermanent", "totalEmployeesContractual", "accidentIncidents",
            "nearMissIncidents", "safetyDrillsConducted",
            "totalEmployees", "femaleEmployees", "workplaceIncidents",
        ],
        number=["totalTrainingHoursPerEmployee", "medianRemuneration", "payRatio", "csrSpend", "avgTrainingHours"],
        percent=["femalePercentWorkforce", "womenInManagementPercent", "csrSpendPercent", "employeeTurnoverPercent"],
        text=[
            "vulnerableGroupsRepresentation", "healthSafetyPolicies", "awarenessSessions",
            "fairWagePolicyDetails", "grievanceRedressalMechanism", "humanRightsTraining",
            "accessibilityMeasuresDetails", "antiHarassmentProcessDetails", "csrActivities",
            "communityEngagementPrograms", "impactAssessments", "keyStakeholderGroups",
            "engagementFrequency", "engagementType", "communicationOutcomes",
        ],
        boolean=["fairWagePolicyExists", "accessibilityMeasures", "antiHarassmentProcessExists"],
    ),
    PILLAR_GOVERNANCE: _kinds(
        integer=["boardMembers", "independentDirectors", "complianceViolations"],
        percent=["boardDiversityPercent"],
        text=[
            "esgCommitteeStructure", "boardEsgDiscussionFrequency", "codeOfConductDetails",
            "antiCorruptionPolicyDetails", "whistleblowerPolicyDetails", "identifiedEsgRisks",
            "riskMitigationPlans", "monitoringEscalationMechanisms", "auditResults",
            "materialEsgRisksDetails", "reportingGovernancePolicies", "thirdPartyAuditDetails",
            "supplierEsgGuidelinesDetails", "fairBusinessPractices", "contractualGovernanceClauses",
        ],
        boolean=[
            "esgCommitteeExists", "codeOfConductExists", "antiCorruptionPolicy",
            "whistleblowerPolicyExists", "materialEsgRisksDisclosed", "thirdPartyAuditExists",
            "supplierEsgGuidelinesExists", "dataPrivacyPolicy",
        ],
    ),
}


def _req(req_id, pillar, category, fields, requirement, action, weight=1,
         critical=False, mandatory=False, principle="P6"):
    return {
        "id": req_id,
        "pillar": pillar,
        "category": category,
        "fields": fields,
        "requirement": requirement,
        "critical": critical,
        "mandatory": mandatory or critical,
        "weight": weight,
        "principle": principle,
        "action": action,
        "link": PILLAR_LINKS[pillar],
    }


ESG_REQUIREMENTS = [
    # =========================================================================
    # ENVIRONMENTAL
    # =========================================================================
    _req("ENV-01", PILLAR_ENVIRONMENTAL, "Energy & Emissions", ["electricityKwh"],
         "Total electricity consumption (kWh)",
         "Add electricity consumption for the period", weight=3, critical=True),
    _req("ENV-02", PILLAR_ENVIRONMENTAL, "Energy & Emissions", ["fuelLitres"],
         "Fuel consumption (litres)",
         "Add fuel consumption for the period", weight=2, mandatory=True),
    _req("ENV-03", PILLAR_ENVIRONMENTAL, "Energy & Emissions", ["scope1Emissions"],
         "Scope 1 GHG emissions (tCO2e)",
         "Report Scope 1 emissions", weight=3, critical=True),
    _req("ENV-04", PILLAR_ENVIRONMENTAL, "Energy & Emissions", ["scope2Emissions"],
         "Scope 2 GHG emissions (tCO2e)",
         "Report Scope 2 emissions", weight=3, critical=True),
    _req("ENV-05", PILLAR_ENVIRONMENTAL, "Energy Mix", ["renewableEnergyPercent"],
         "Share of renewable energy in total consumption",
         "Add renewable energy share", weight=2, mandatory=True),
    _req("ENV-06", PILLAR_ENVIRONMENTAL, "Energy Mix", ["totalEnergyConsumption"],
         "Total energy consumption (GJ)",
         "Add total energy consumption"),
    _req("ENV-07", PILLAR_ENVIRONMENTAL, "Climate", ["scope3Emissions"],
         "Scope 3 GHG emissions (tCO2e)",
         "Estimate Scope 3 emissions"),
    _req("ENV-08", PILLAR_ENVIRONMENTAL, "Climate", ["emissionsIntensity"],
         "Emissions intensity per unit of revenue",
         "Calculate emissions intensity"),
    _req("ENV-09", PILLAR_ENVIRONMENTAL, "Water", ["waterUsageKL"],
         "Total water consumption (KL)",
         "Add water consumption", weight=2, mandatory=True),
    _req("ENV-10", PILLAR_ENVIRONMENTAL, "Water",
         ["waterSourceSurface", "waterSourceGroundwater", "waterSourceMunicipal", "waterSourceOther"],
         "Water withdrawal by source",
         "Break down water withdrawal by source"),
    _req("ENV-11", PILLAR_ENVIRONMENTAL, "Waste", ["totalWasteTonnes"],
         "Total waste generated (tonnes)",
         "Add total waste generated", weight=2, mandatory=True),
    _req("ENV-12", PILLAR_ENVIRONMENTAL, "Waste", ["hazardousWasteTonnes"],
         "Hazardous waste generated (tonnes)",
         "Report hazardous waste", mandatory=True),
    _req("ENV-13", PILLAR_ENVIRONMENTAL, "Waste", ["recycledWasteTonnes", "divertedFromDisposalTonnes"],
         "Waste recycled or diverted from disposal",
         "Report recycled or diverted waste"),
    _req("ENV-14", PILLAR_ENVIRONMENTAL, "Policy", ["environmentalPolicyExists"],
         "Board-approved environmental policy",
         "Adopt and record an environmental policy", weight=2, mandatory=True),
    _req("ENV-15", PILLAR_ENVIRONMENTAL, "Policy", ["complianceWithLocalLaws"],
         "Compliance with applicable environmental laws",
         "Confirm compliance with environmental laws", mandatory=True),
    _req("ENV-16", PILLAR_ENVIRONMENTAL, "Policy", ["environmentalRiskAssessments"],
         "Environmental risk assessments conducted",
         "Conduct an environmental risk assessment"),
    # =========================================================================
    # SOCIAL
    # =========================================================================
    _req("SOC-01", PILLAR_SOCIAL, "Workforce", ["totalEmployeesPermanent", "totalEmployees"],
         "Employee headcount",
         "Add permanent employee headcount", weight=3, critical=True, principle="P3"),
    _req("SOC-02", PILLAR_SOCIAL, "Workforce", ["totalEmployeesContractual"],
         "Contractual workforce headcount",
         "Add contractual workforce headcount", principle="P3"),
    _req("SOC-03", PILLAR_SOCIAL, "Diversity", ["femalePercentWorkforce", "femaleEmployees"],
         "Women in the workforce",
         "Report gender diversity of the workforce", weight=2, mandatory=True, principle="P5"),
    _req("SOC-04", PILLAR_SOCIAL, "Diversity", ["womenInManagementPercent"],
         "Women in management",
         "Report women in management", principle="P5"),
    _req("SOC-05", PILLAR_SOCIAL, "Health & Safety", ["accidentIncidents", "workplaceIncidents"],
         "Workplace accidents and incidents",
         "Record workplace safety incidents", weight=2, mandatory=True, principle="P3"),
    _req("SOC-06", PILLAR_SOCIAL, "Health & Safety", ["safetyDrillsConducted"],
         "Safety drills conducted",
         "Record safety drills", principle="P3"),
    _req("SOC-07", PILLAR_SOCIAL, "Training", ["totalTrainingHoursPerEmployee", "avgTrainingHours"],
         "Training hours per employee",
         "Add training hours per employee", weight=2, mandatory=True, principle="P3"),
    _req("SOC-08", PILLAR_SOCIAL, "Labour Practices", ["antiHarassmentProcessExists"],
         "POSH / anti-harassment policy and internal committee",
         "Set up a POSH policy and internal committee", weight=3, critical=True, principle="P5"),
    _req("SOC-09", PILLAR_SOCIAL, "Labour Practices", ["fairWagePolicyExists"],
         "Fair wage policy",
         "Adopt a fair wage policy", weight=2, mandatory=True, principle="P5"),
    _req("SOC-10", PILLAR_SOCIAL, "Labour Practices", ["grievanceRedressalMechanism"],
         "Grievance redressal mechanism",
         "Describe the grievance redressal mechanism", mandatory=True, principle="P5"),
    _req("SOC-11", PILLAR_SOCIAL, "Labour Practices", ["medianRemuneration"],
         "Median remuneration",
         "Report median remuneration", principle="P5"),
    _req("SOC-12", PILLAR_SOCIAL, "Human Rights", ["humanRightsTraining"],
         "Human rights training",
         "Record human rights training", principle="P5"),
    _req("SOC-13", PILLAR_SOCIAL, "Community", ["csrSpend", "csrSpendPercent"],
         "CSR spend",
         "Report CSR spend", mandatory=True, principle="P8"),
    _req("SOC-14", PILLAR_SOCIAL, "Community", ["communityEngagementPrograms"],
         "Community engagement programmes",
         "Describe community engagement programmes", principle="P8"),
    _req("SOC-15", PILLAR_SOCIAL, "Stakeholders", ["keyStakeholderGroups"],
         "Key stakeholder groups identified",
         "Identify key stakeholder groups", principle="P4"),
    # =========================================================================
    # GOVERNANCE
    # =========================================================================
    _req("GOV-01", PILLAR_GOVERNANCE, "Board & Leadership", ["boardMembers"],
         "Board size",
         "Add board composition", weight=2, mandatory=True, principle="P1"),
    _req("GOV-02", PILLAR_GOVERNANCE, "Board & Leadership", ["independentDirectors"],
         "Independent directors",
         "Add number of independent directors", weight=2, mandatory=True, principle="P1"),
    _req("GOV-03", PILLAR_GOVERNANCE, "Board & Leadership", ["boardDiversityPercent"],
         "Board diversity",
         "Report board diversity", principle="P1"),
    _req("GOV-04", PILLAR_GOVERNANCE, "Board & Leadership", ["esgCommitteeExists"],
         "Board-level ESG committee",
         "Designate a board committee for ESG oversight", principle="P1"),
    _req("GOV-05", PILLAR_GOVERNANCE, "Policies & Ethics", ["codeOfConductExists"],
         "Code of conduct",
         "Adopt a code of conduct", weight=3, critical=True, principle="P1"),
    _req("GOV-06", PILLAR_GOVERNANCE, "Policies & Ethics", ["antiCorruptionPolicy"],
         "Anti-corruption and anti-bribery policy",
         "Adopt an anti-corruption policy", weight=3, critical=True, principle="P1"),
    _req("GOV-07", PILLAR_GOVERNANCE, "Policies & Ethics", ["whistleblowerPolicyExists"],
         "Whistleblower policy",
         "Adopt a whistleblower policy", weight=2, mandatory=True, principle="P1"),
    _req("GOV-08", PILLAR_GOVERNANCE, "Policies & Ethics", ["dataPrivacyPolicy"],
         "Data privacy policy",
         "Adopt a data privacy policy", mandatory=True, principle="P9"),
    _req("GOV-09", PILLAR_GOVERNANCE, "Risk Management", ["identifiedEsgRisks"],
         "Material ESG risks identified",
         "Identify material ESG risks", mandatory=True, principle="P1"),
    _req("GOV-10", PILLAR_GOVERNANCE, "Risk Management", ["riskMitigationPlans"],
         "Risk mitigation plans",
         "Document risk mitigation plans", principle="P1"),
    _req("GOV-11", PILLAR_GOVERNANCE, "Risk Management", ["complianceViolations"],
         "Regulatory compliance violations",
         "Report compliance violations (zero if none)", weight=2, mandatory=True, principle="P1"),
    _req("GOV-12", PILLAR_GOVERNANCE, "Transparency & Reporting", ["materialEsgRisksDisclosed"],
         "Material ESG risks disclosed",
         "Disclose material ESG risks", principle="P1"),
    _req("GOV-13", PILLAR_GOVERNANCE, "Transparency & Reporting", ["thirdPartyAuditExists"],
         "Third-party ESG audit or assurance",
         "Arrange a third-party ESG review", principle="P1"),
    _req("GOV-14", PILLAR_GOVERNANCE, "Supplier Governance", ["supplierEsgGuidelinesExists"],
         "Supplier ESG guidelines",
         "Issue ESG guidelines to suppliers", principle="P2"),
]


def get_requirements_by_pillar():
    """Group requirements by pillar, in pillar order."""
    pillars = {p: [] for p in PILLARS}
    for r in ESG_REQUIREMENTS:
        pillars[r["pillar"]].append(r)
    return pillars


def get_requirement_by_id(requirement_id):
    for r in ESG_REQUIREMENTS:
        if r["id"] == requirement_id:
            return r
    return None


def is_reported(value):
    """True when a submitted value counts as reported."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return bool(value.strip())
    return True


def is_policy_requirement(requirement):
    """Policy flags map to compliance tasks rather than data-entry tasks."""
    kinds = METRIC_FIELDS[requirement["pillar"]]
    return all(kinds.get(f) == "boolean" for f in requirement["fields"])
