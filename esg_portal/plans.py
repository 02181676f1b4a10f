"""Subscription plans and feature entitlement."""

import logging
from datetime import date

from esg_portal.models import PLANS

logger = logging.getLogger(__name__)

DEFAULT_PLAN = "starter"

# feature id -> (name, description)
FEATURE_CATALOG = {
    "esgTrackingDashboard": ("ESG tracking dashboard", "Track environmental, social and governance metrics per period"),
    "unlimitedReportExports": ("Unlimited report exports", "Export scorecards and reports without limits"),
    "yearOnYearComparison": ("Year-on-year comparison", "Compare scores against the previous period"),
    "multiYearTrendAnalysis": ("Multi-year trend analysis", "Score trends across every reported period"),
    "brsrCompliantTemplates": ("BRSR-compliant templates", "Report templates aligned with BRSR disclosures"),
    "industrySpecificTemplates": ("Industry-specific templates", "Templates tailored to your sector"),
    "customReportBranding": ("Custom report branding", "Company logo and colours on exported reports"),
    "basicEsgScoring": ("Basic ESG scoring", "Pillar and overall scores with grades"),
    "advancedAnalytics": ("Advanced analytics", "Category-level drill-down and quality insights"),
    "benchmarking": ("Benchmarking", "Compare against industry peers"),
    "complianceDeadlineAlerts": ("Compliance deadline alerts", "Task and deadline reminders"),
    "customComplianceFrameworks": ("Custom compliance frameworks", "Map metrics to your own frameworks"),
    "emailSupport": ("Email support", "Support by email"),
    "priorityEmailSupport": ("Priority email support", "Faster email response times"),
    "dedicatedAccountManager": ("Dedicated account manager", "A named contact for your account"),
    "dedicatedSuccessManager": ("Dedicated success manager", "Hands-on help reaching your ESG goals"),
    "trainingOnboardingSupport": ("Training & onboarding", "Guided onboarding for your team"),
    "support247": ("24/7 support", "Round-the-clock support"),
    "apiAccess": ("API access", "Programmatic access to your ESG data"),
    "whiteLabelOptions": ("White-label options", "Serve the portal under your own brand"),
    "customIntegrations": ("Custom integrations", "Connect ERP, HR and utility systems"),
    "advancedSecuritySSO": ("Advanced security & SSO", "Single sign-on and security controls"),
    "onPremiseDeployment": ("On-premise deployment", "Run the portal in your own infrastructure"),
    "customSLAGuarantees": ("Custom SLA guarantees", "Contractual uptime and response guarantees"),
}

_STARTER = {
    "esgTrackingDashboard", "unlimitedReportExports", "yearOnYearComparison",
    "brsrCompliantTemplates", "basicEsgScoring", "complianceDeadlineAlerts", "emailSupport",
}
_PRO = _STARTER | {
    "multiYearTrendAnalysis", "industrySpecificTemplates", "customReportBranding",
    "advancedAnalytics", "benchmarking", "priorityEmailSupport", "dedicatedAccountManager",
    "trainingOnboardingSupport", "apiAccess",
}

PLAN_FEATURES = {
    "starter": frozenset(_STARTER),
    "pro": frozenset(_PRO),
    "enterprise": frozenset(FEATURE_CATALOG),
}

# -1 means unlimited
MAX_USERS = {"starter": 5, "pro": 20, "enterprise": -1}

PLAN_MESSAGING = {
    "starter": {
        "upgradePrompt": "Upgrade to Pro to unlock enterprise-ready insights.",
        "statusMessage": "Starter Plan",
        "readinessMessage": "Getting started with ESG compliance",
        "auditReady": "Upgrade to Pro for audit-ready reporting.",
    },
    "pro": {
        "upgradePrompt": "You're enterprise-ready.",
        "statusMessage": "Pro Plan - Enterprise Ready",
        "readinessMessage": "You're enterprise-ready.",
        "auditReady": "Upgrade to Enterprise for fully audit-ready compliance.",
    },
    "enterprise": {
        "upgradePrompt": "Fully audit-ready.",
        "statusMessage": "Enterprise Plan - Fully Audit Ready",
        "readinessMessage": "Fully audit-ready.",
        "auditReady": "Fully audit-ready.",
    },
}


def trial_status(company, today=None):
    """{isTrial, isExpired, daysRemaining, trialEndDate} for a company."""
    if company is None or not company.is_trial or not company.trial_end_date:
        return {"isTrial": False, "isExpired": False, "daysRemaining": None, "trialEndDate": None}
    today = today or date.today()
    days = (company.trial_end_date - today).days
    expired = days <= 0
    return {
        "isTrial": True,
        "isExpired": expired,
        "daysRemaining": 0 if expired else days,
        "trialEndDate": company.trial_end_date.isoformat(),
    }


def resolve_plan(user, company=None, overrides=None, today=None):
    """Effective plan for a user, optionally in the context of a company.

    `overrides` maps user id (or email) to a plan and is honoured for ADMIN
    users only, which is how administrators preview other tiers.
    """
    if overrides and user is not None and user.is_admin:
        override = overrides.get(user.id) or overrides.get(user.email)
        if override in PLANS:
            return override

    plan = None
    if company is not None and company.plan in PLANS:
        plan = company.plan
    elif user is not None and user.plan in PLANS:
        plan = user.plan
    plan = plan or DEFAULT_PLAN

    if plan == "pro" and trial_status(company, today)["isExpired"]:
        logger.info(f"Trial expired for company {company.id}; using starter features")
        return "starter"
    return plan


def feature_list(plan, company=None):
    """Every catalog feature with its enabled state, then company custom features."""
    overrides = dict(company.feature_overrides or {}) if company is not None else {}
    custom = list(company.custom_features or []) if company is not None else []
    enabled_by_plan = PLAN_FEATURES.get(plan, PLAN_FEATURES[DEFAULT_PLAN])

    features = []
    for feature_id, (name, description) in FEATURE_CATALOG.items():
        if feature_id in overrides:
            enabled, source = bool(overrides[feature_id]), "custom"
        else:
            enabled, source = feature_id in enabled_by_plan, "plan"
        features.append({
            "id": feature_id,
            "name": name,
            "description": description,
            "enabled": enabled,
            "source": source,
        })
    for feature_id in custom:
        if feature_id in FEATURE_CATALOG:
            continue
        features.append({
            "id": feature_id,
            "name": feature_id,
            "description": "Custom feature enabled for this company",
            "enabled": True,
            "source": "custom",
        })
    return features


def has_feature(plan, feature_id, company=None):
    for feature in feature_list(plan, company):
        if feature["id"] == feature_id:
            return feature["enabled"]
    return False


def plan_messaging(plan):
    return PLAN_MESSAGING.get(plan, PLAN_MESSAGING[DEFAULT_PLAN])


def upgrade_message(current, target):
    if current == "starter" and target == "pro":
        return PLAN_MESSAGING["starter"]["upgradePrompt"]
    if target == "enterprise" and current in ("starter", "pro"):
        return "Upgrade to Enterprise for fully audit-ready compliance."
    return plan_messaging(current)["upgradePrompt"]
