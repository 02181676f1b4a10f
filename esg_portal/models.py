from datetime import datetime, timezone

from flask import current_app
from flask_login import UserMixin
from itsdangerous import URLSafeTimedSerializer, BadData
from werkzeug.security import generate_password_hash, check_password_hash

from esg_portal import db, login_manager

ROLE_USER = "USER"
ROLE_ADMIN = "ADMIN"
ROLE_AUDITOR = "AUDITOR"
ROLES = (ROLE_USER, ROLE_ADMIN, ROLE_AUDITOR)

PLANS = ("starter", "pro", "enterprise")

PILLAR_ENVIRONMENTAL = "Environmental"
PILLAR_SOCIAL = "Social"
PILLAR_GOVERNANCE = "Governance"
PILLARS = (PILLAR_ENVIRONMENTAL, PILLAR_SOCIAL, PILLAR_GOVERNANCE)

EVIDENCE_STATUSES = ("Linked", "Pending", "Missing")

_TOKEN_SALT = "esg-portal-auth"


def _utcnow():
    return datetime.now(timezone.utc)


def _token_serializer():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=_TOKEN_SALT)


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


@login_manager.request_loader
def load_user_from_request(request):
    """Authenticate API calls from the `Authorization: Bearer <token>` header."""
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    return User.verify_token(header[len("Bearer "):].strip())


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=ROLE_USER)
    plan = db.Column(db.String(20), nullable=False, default="starter")
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=True)
    must_change_password = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=_utcnow)

    company = db.relationship("Company", foreign_keys=[company_id], backref=db.backref("members", lazy="dynamic"))

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def generate_token(self):
        return _token_serializer().dumps({"uid": self.id})

    @staticmethod
    def verify_token(token):
        try:
            data = _token_serializer().loads(token, max_age=current_app.config["TOKEN_MAX_AGE"])
        except BadData:
            return None
        return db.session.get(User, data.get("uid"))

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    @property
    def is_auditor(self):
        return self.role == ROLE_AUDITOR

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "plan": self.plan,
            "companyId": self.company_id,
            "mustChangePassword": bool(self.must_change_password),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class Company(db.Model):
    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(256), nullable=False)
    industry = db.Column(db.String(128), default="")
    employee_count = db.Column(db.Integer, nullable=True)
    annual_revenue = db.Column(db.Float, nullable=True)
    location = db.Column(db.String(256), default="")
    reporting_year = db.Column(db.Integer, nullable=True)
    plan = db.Column(db.String(20), nullable=False, default="starter")
    is_trial = db.Column(db.Boolean, default=False)
    trial_end_date = db.Column(db.Date, nullable=True)
    custom_features = db.Column(db.JSON, default=list)
    feature_overrides = db.Column(db.JSON, default=dict)
    # Owning user; no FK constraint since users.company_id already points here
    user_id = db.Column(db.Integer, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    owner = db.relationship("User", primaryjoin="User.id == Company.user_id", foreign_keys=[user_id], viewonly=True)

    def user_can(self, user, required="view"):
        """Tenant check: owner and members may view; auditors never edit."""
        if user.is_admin:
            return True
        is_member = self.user_id == user.id or user.company_id == self.id
        if not is_member:
            return False
        if required == "edit":
            return not user.is_auditor
        return True

    def to_dict(self):
        return {
            "_id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "industry": self.industry,
            "employeeCount": self.employee_count,
            "annualRevenue": self.annual_revenue,
            "location": self.location,
            "reportingYear": self.reporting_year,
            "plan": self.plan,
            "isTrial": bool(self.is_trial),
            "trialEndDate": self.trial_end_date.isoformat() if self.trial_end_date else None,
            "customFeatures": list(self.custom_features or []),
            "featureOverrides": dict(self.feature_overrides or {}),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class _MetricRecord:
    """Columns shared by the three pillar metric tables.

    `data` holds the submitted fields keyed by their form names; a missing
    key means the field was not reported for the period.
    """

    id = db.Column(db.Integer, primary_key=True)
    period = db.Column(db.String(10), nullable=False, index=True)
    data = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        result = dict(self.data or {})
        result.update({
            "_id": self.id,
            "companyId": self.company_id,
            "period": self.period,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        })
        return result


class EnvironmentalMetric(_MetricRecord, db.Model):
    __tablename__ = "environmental_metrics"
    __table_args__ = (db.UniqueConstraint("company_id", "period", name="uq_env_company_period"),)

    pillar = PILLAR_ENVIRONMENTAL
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False)


class SocialMetric(_MetricRecord, db.Model):
    __tablename__ = "social_metrics"
    __table_args__ = (db.UniqueConstraint("company_id", "period", name="uq_social_company_period"),)

    pillar = PILLAR_SOCIAL
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False)


class GovernanceMetric(_MetricRecord, db.Model):
    __tablename__ = "governance_metrics"
    __table_args__ = (db.UniqueConstraint("company_id", "period", name="uq_gov_company_period"),)

    pillar = PILLAR_GOVERNANCE
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False)


METRIC_MODELS = {
    PILLAR_ENVIRONMENTAL: EnvironmentalMetric,
    PILLAR_SOCIAL: SocialMetric,
    PILLAR_GOVERNANCE: GovernanceMetric,
}


def metric_records_for(company_id, period):
    """Return {pillar: data dict or None} for one company and period."""
    records = {}
    for pillar, model in METRIC_MODELS.items():
        row = model.query.filter_by(company_id=company_id, period=period).first()
        records[pillar] = dict(row.data or {}) if row else None
    return records


def metric_periods_for(company_id):
    periods = set()
    for model in METRIC_MODELS.values():
        for (period,) in db.session.query(model.period).filter_by(company_id=company_id).distinct():
            periods.add(period)
    return periods


class ESGScore(db.Model):
    __tablename__ = "esg_scores"
    __table_args__ = (db.UniqueConstraint("company_id", "period", name="uq_score_company_period"),)

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    period = db.Column(db.String(10), nullable=False)
    overall_score = db.Column(db.Integer, nullable=False, default=0)
    environmental_score = db.Column(db.Integer, nullable=False, default=0)
    social_score = db.Column(db.Integer, nullable=False, default=0)
    governance_score = db.Column(db.Integer, nullable=False, default=0)
    data_completeness = db.Column(db.Integer, nullable=False, default=0)
    # Full computed scorecard, minus the previous-period deltas
    details = db.Column(db.JSON, nullable=False, default=dict)
    calculated_at = db.Column(db.DateTime, default=_utcnow)

    def to_dict(self):
        return {
            "_id": self.id,
            "companyId": self.company_id,
            "period": self.period,
            "overallScore": self.overall_score,
            "environmentalScore": self.environmental_score,
            "socialScore": self.social_score,
            "governanceScore": self.governance_score,
            "dataCompleteness": self.data_completeness,
            "calculatedAt": self.calculated_at.isoformat() if self.calculated_at else None,
        }


class Evidence(db.Model):
    __tablename__ = "evidence"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    evidence_type = db.Column(db.String(128), nullable=False)
    esg_area = db.Column(db.String(20), nullable=False)
    linked_to = db.Column(db.String(256), default="")
    status = db.Column(db.String(20), nullable=False, default="Pending")
    expiry_date = db.Column(db.Date, nullable=True)
    filename = db.Column(db.String(256), nullable=False)
    original_name = db.Column(db.String(256), nullable=False)
    file_size = db.Column(db.Integer, default=0)
    uploaded_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    uploaded_at = db.Column(db.DateTime, default=_utcnow)

    uploader = db.relationship("User")

    def effective_status(self, today):
        if self.expiry_date and self.expiry_date < today:
            return "Missing"
        return self.status

    def to_dict(self, today):
        return {
            "_id": self.id,
            "evidenceType": self.evidence_type,
            "esgArea": self.esg_area,
            "linkedTo": self.linked_to or "",
            "status": self.effective_status(today),
            "expiryDate": self.expiry_date.isoformat() if self.expiry_date else None,
            "fileName": self.original_name,
            "fileSize": self.file_size,
            "uploadedAt": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }


class TaskState(db.Model):
    """User-driven status of a derived task."""
    __tablename__ = "task_states"
    __table_args__ = (db.UniqueConstraint("company_id", "period", "task_key", name="uq_task_state"),)

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    period = db.Column(db.String(10), nullable=False)
    task_key = db.Column(db.String(64), nullable=False)
    status = db.Column(db.String(20), nullable=False)
    updated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)
