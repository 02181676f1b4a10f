import logging
import os
import uuid
from datetime import date, timedelta

from flask import Blueprint, current_app, jsonify, request, send_from_directory
from flask_login import login_required, current_user
from werkzeug.utils import secure_filename

from esg_portal import db
from esg_portal.access import company_for, error, json_body
from esg_portal.models import Evidence, PILLARS

logger = logging.getLogger(__name__)

evidence_bp = Blueprint("evidence", __name__, url_prefix="/api/evidence")


def _allowed_file(filename):
    return "." in filename and \
        filename.rsplit(".", 1)[1].lower() in current_app.config["ALLOWED_EXTENSIONS"]


def _save_uploaded_file(file):
    """Save an uploaded file and return (stored_name, original_name, file_size)."""
    upload_dir = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(upload_dir, exist_ok=True)

    original_name = secure_filename(file.filename)
    ext = original_name.rsplit(".", 1)[1].lower() if "." in original_name else ""
    stored_name = f"{uuid.uuid4().hex}.{ext}"

    path = os.path.join(upload_dir, stored_name)
    file.save(path)
    return stored_name, original_name, os.path.getsize(path)


def _evidence_for(evidence_id, required):
    evidence = db.session.get(Evidence, evidence_id)
    if not evidence:
        return None, error("Evidence not found.", 404)
    _company, denied = company_for(evidence.company_id, required)
    if denied:
        return None, denied
    return evidence, None


def evidence_statistics(items, today, warning_days):
    horizon = today + timedelta(days=warning_days)
    statuses = [e.effective_status(today) for e in items]
    return {
        "totalDocuments": len(items),
        "linkedDocuments": statuses.count("Linked"),
        "pendingEvidence": statuses.count("Pending"),
        "expiringSoon": sum(
            1 for e in items
            if e.expiry_date is not None and today <= e.expiry_date <= horizon
        ),
    }


@evidence_bp.route("/dashboard/<int:company_id>")
@login_required
def dashboard(company_id):
    _company, denied = company_for(company_id)
    if denied:
        return denied
    today = date.today()
    items = Evidence.query.filter_by(company_id=company_id).order_by(Evidence.uploaded_at.desc()).all()
    return jsonify({
        "statistics": evidence_statistics(items, today, current_app.config.get("EXPIRY_WARNING_DAYS", 30)),
        "evidenceTable": [e.to_dict(today) for e in items],
    })


@evidence_bp.route("/upload/<int:company_id>", methods=["POST"])
@login_required
def upload(company_id):
    _company, denied = company_for(company_id, "edit")
    if denied:
        return denied

    file = request.files.get("file")
    if not file or not file.filename:
        return error("No file selected.")
    if not _allowed_file(file.filename):
        return error("File type not allowed.")

    evidence_type = request.form.get("evidenceType", "").strip()
    esg_area = request.form.get("esgArea", "").strip()
    linked_to = request.form.get("linkedTo", "").strip()
    if not evidence_type:
        return error("'evidenceType' is required.")
    if esg_area not in PILLARS:
        return error(f"'esgArea' must be one of {', '.join(PILLARS)}.")
    expiry_date = None
    if request.form.get("expiryDate"):
        try:
            expiry_date = date.fromisoformat(request.form["expiryDate"])
        except ValueError:
            return error("'expiryDate' must be a date (YYYY-MM-DD).")

    stored_name, original_name, file_size = _save_uploaded_file(file)
    evidence = Evidence(
        company_id=company_id,
        evidence_type=evidence_type,
        esg_area=esg_area,
        linked_to=linked_to,
        status="Linked" if linked_to else "Pending",
        expiry_date=expiry_date,
        filename=stored_name,
        original_name=original_name,
        file_size=file_size,
        uploaded_by=current_user.id,
    )
    db.session.add(evidence)
    db.session.commit()
    logger.info(f"Evidence {evidence.id} uploaded for company {company_id}: {original_name} ({file_size} bytes)")
    return jsonify({"evidence": evidence.to_dict(date.today())}), 201


@evidence_bp.route("/<int:evidence_id>/link", methods=["PUT"])
@login_required
def link(evidence_id):
    evidence, bad = _evidence_for(evidence_id, "edit")
    if bad:
        return bad
    linked_to = str(json_body().get("linkedTo") or "").strip()
    if not linked_to:
        return error("'linkedTo' is required.")
    evidence.linked_to = linked_to
    evidence.status = "Linked"
    db.session.commit()
    return jsonify({"evidence": evidence.to_dict(date.today())})


@evidence_bp.route("/<int:evidence_id>/download")
@login_required
def download(evidence_id):
    evidence, bad = _evidence_for(evidence_id, "view")
    if bad:
        return bad
    return send_from_directory(
        current_app.config["UPLOAD_FOLDER"],
        evidence.filename,
        as_attachment=True,
        download_name=evidence.original_name,
    )


@evidence_bp.route("/<int:evidence_id>", methods=["DELETE"])
@login_required
def delete(evidence_id):
    evidence, bad = _evidence_for(evidence_id, "edit")
    if bad:
        return bad
    path = os.path.join(current_app.config["UPLOAD_FOLDER"], evidence.filename)
    if os.path.exists(path):
        os.remove(path)
    db.session.delete(evidence)
    db.session.commit()
    logger.info(f"Evidence {evidence_id} deleted by user {current_user.id}")
    return jsonify({"message": "Evidence deleted."})
