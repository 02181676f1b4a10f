import logging
import re

from flask import Blueprint, jsonify
from flask_login import login_required, current_user

from esg_portal import db
from esg_portal.access import admin_required, error, json_body
from esg_portal.models import User, Company, Evidence, TaskState, ROLES, ROLE_USER, PLANS

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")
admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

MIN_PASSWORD_LENGTH = 8
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _validate_password(password):
    """Check password meets minimum strength requirements."""
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
    if not re.search(r'[A-Za-z]', password):
        return "Password must contain at least one letter."
    if not re.search(r'[0-9]', password):
        return "Password must contain at least one number."
    return None


def _validate_new_user(data):
    email = str(data.get("email", "")).strip().lower()
    name = str(data.get("name", "")).strip()
    password = str(data.get("password", ""))
    if not email or not name or not password:
        return None, "Name, email and password are required."
    if not EMAIL_RE.match(email):
        return None, "Invalid email address."
    if User.query.filter_by(email=email).first():
        return None, "Email already registered."
    pw_error = _validate_password(password)
    if pw_error:
        return None, pw_error
    return {"email": email, "name": name, "password": password}, None


@auth_bp.route("/register", methods=["POST"])
def register():
    fields, message = _validate_new_user(json_body())
    if message:
        status = 409 if message == "Email already registered." else 400
        return error(message, status)

    user = User(email=fields["email"], name=fields["name"], role=ROLE_USER, plan="starter")
    user.set_password(fields["password"])
    db.session.add(user)
    db.session.commit()
    logger.info(f"Registered user {user.id} ({user.email})")
    return jsonify({"token": user.generate_token(), "user": user.to_dict()}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    data = json_body()
    email = str(data.get("email", "")).strip().lower()
    password = str(data.get("password", ""))
    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        logger.warning(f"Failed login for {email!r}")
        return error("Invalid email or password.", 401)
    return jsonify({"token": user.generate_token(), "user": user.to_dict()})


@auth_bp.route("/me")
@login_required
def me():
    return jsonify({"user": current_user.to_dict()})


@auth_bp.route("/change-password", methods=["POST"])
@login_required
def change_password():
    data = json_body()
    current_pw = str(data.get("currentPassword", ""))
    new_pw = str(data.get("newPassword", ""))

    if not current_user.check_password(current_pw):
        return error("Current password is incorrect.")
    pw_error = _validate_password(new_pw)
    if pw_error:
        return error(pw_error)
    current_user.set_password(new_pw)
    current_user.must_change_password = False
    db.session.commit()
    logger.info(f"User {current_user.id} changed password")
    return jsonify({"message": "Password changed successfully."})


# ---------------------------------------------------------------------------
# Admin user management
# ---------------------------------------------------------------------------

def _apply_user_fields(user, data):
    """Role, plan and company assignment shared by create and edit."""
    if "role" in data:
        if data["role"] not in ROLES:
            return f"Role must be one of {', '.join(ROLES)}."
        user.role = data["role"]
    if "plan" in data:
        if data["plan"] not in PLANS:
            return f"Plan must be one of {', '.join(PLANS)}."
        user.plan = data["plan"]
    if "companyId" in data:
        company_id = data["companyId"]
        if company_id is not None and not db.session.get(Company, company_id):
            return "Company not found."
        user.company_id = company_id
    if "name" in data:
        name = str(data["name"]).strip()
        if not name:
            return "Name cannot be empty."
        user.name = name
    return None


@admin_bp.route("/users")
@login_required
@admin_required
def user_list():
    users = User.query.order_by(User.created_at.desc()).all()
    return jsonify({"users": [u.to_dict() for u in users]})


@admin_bp.route("/users", methods=["POST"])
@login_required
@admin_required
def create_user():
    data = json_body()
    fields, message = _validate_new_user(data)
    if message:
        status = 409 if message == "Email already registered." else 400
        return error(message, status)

    user = User(email=fields["email"], name=fields["name"], must_change_password=True)
    message = _apply_user_fields(user, {k: v for k, v in data.items() if k != "name"})
    if message:
        return error(message)
    user.set_password(fields["password"])
    db.session.add(user)
    db.session.commit()
    logger.info(f"Admin {current_user.id} created user {user.id} ({user.email}, {user.role})")
    return jsonify({"user": user.to_dict()}), 201


@admin_bp.route("/users/<int:user_id>", methods=["PUT"])
@login_required
@admin_required
def edit_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        return error("User not found.", 404)
    data = json_body()
    if "email" in data:
        email = str(data["email"]).strip().lower()
        if not EMAIL_RE.match(email):
            return error("Invalid email address.")
        other = User.query.filter_by(email=email).first()
        if other and other.id != user.id:
            return error("Email already registered.", 409)
        user.email = email
    message = _apply_user_fields(user, data)
    if message:
        db.session.rollback()
        return error(message)
    db.session.commit()
    logger.info(f"Admin {current_user.id} updated user {user.id}")
    return jsonify({"user": user.to_dict()})


@admin_bp.route("/users/<int:user_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        return error("User not found.", 404)
    if user.id == current_user.id:
        return error("You cannot delete your own account.")
    owned = Company.query.filter_by(user_id=user.id).count()
    if owned:
        return error(f"User still owns {owned} company record(s); delete them first.", 409)
    Evidence.query.filter_by(uploaded_by=user.id).update({"uploaded_by": None})
    TaskState.query.filter_by(updated_by=user.id).update({"updated_by": None})
    db.session.delete(user)
    db.session.commit()
    logger.info(f"Admin {current_user.id} deleted user {user_id}")
    return jsonify({"message": "User deleted."})


@admin_bp.route("/users/<int:user_id>/reset-password", methods=["POST"])
@login_required
@admin_required
def reset_password(user_id):
    user = db.session.get(User, user_id)
    if not user:
        return error("User not found.", 404)
    new_pw = str(json_body().get("password", ""))
    pw_error = _validate_password(new_pw)
    if pw_error:
        return error(pw_error)
    user.set_password(new_pw)
    user.must_change_password = True
    db.session.commit()
    logger.info(f"Admin {current_user.id} reset password for user {user.id}")
    return jsonify({"message": "Password reset. The user must change it at next login."})
