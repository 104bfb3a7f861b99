from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from app.extensions import db
from app.models import Certificate, User
from app.services import certificate_issuer
from app.services.audit import record_audit
from app.utils.auth import current_user, current_user_id, role_required
from app.utils.errors import Forbidden, ValidationError, fetch_or_404
from app.utils.mailer import notify_certificate_issued

bp = Blueprint("certificates", __name__)


def _issued_response(certificate, created):
    if created:
        notify_certificate_issued(db.session.get(User, certificate.user_id), certificate)
        return jsonify({
            "success": True,
            "message": "Certificate generated successfully",
            "data": certificate.to_dict(),
        }), 201
    return jsonify({
        "success": True,
        "message": "Certificate already issued",
        "data": certificate.to_dict(),
    }), 200


# Public verification, no login
@bp.route("/verify/<string:code>", methods=["GET"])
def verify_certificate(code):
    result = certificate_issuer.verify(code)
    return jsonify({"success": True, **result}), 200


@bp.route("/generate", methods=["POST"])
@jwt_required()
def generate_certificate():
    data = request.get_json(silent=True) or {}
    course_id = data.get("courseId")
    if not course_id:
        raise ValidationError("courseId is required")

    certificate, created = certificate_issuer.generate(current_user_id(), course_id)
    db.session.commit()
    return _issued_response(certificate, created)


@bp.route("/my", methods=["GET"])
@jwt_required()
def my_certificates():
    certificates = certificate_issuer.certificates_for_user(current_user_id())
    return jsonify({
        "success": True,
        "count": len(certificates),
        "data": [c.to_dict() for c in certificates],
    }), 200


@bp.route("/<int:certificate_id>", methods=["GET"])
@jwt_required()
def get_certificate(certificate_id):
    user = current_user()
    certificate = fetch_or_404(Certificate, certificate_id, "Certificate")
    if certificate.user_id != user.id and user.role != "admin":
        raise Forbidden("Not authorized to view this certificate")
    return jsonify({"success": True, "data": certificate.to_dict()}), 200


# ---------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------

@bp.route("", methods=["GET"])
@role_required("admin")
def list_certificates():
    certificates = certificate_issuer.all_certificates()
    return jsonify({
        "success": True,
        "count": len(certificates),
        "data": [c.to_dict() for c in certificates],
    }), 200


@bp.route("/issue", methods=["POST"])
@role_required("admin")
def issue_certificate():
    data = request.get_json(silent=True) or {}
    user_id = data.get("userId")
    course_id = data.get("courseId")
    if not user_id or not course_id:
        raise ValidationError("userId and courseId are required")

    admin_id = current_user_id()
    certificate, created = certificate_issuer.issue(
        user_id,
        course_id,
        enrollment_id=data.get("enrollmentId"),
        grade=data.get("grade", "pass"),
        template=data.get("template"),
        issued_by=admin_id,
        instructor_name=data.get("instructorName"),
        instructor_title=data.get("instructorTitle"),
    )
    db.session.commit()
    if created:
        record_audit(admin_id, "certificate_issued", "certificate", certificate.id,
                     certificate.certificate_number)
    return _issued_response(certificate, created)


@bp.route("/<int:certificate_id>/revoke", methods=["PUT"])
@role_required("admin")
def revoke_certificate(certificate_id):
    data = request.get_json(silent=True) or {}
    reason = data.get("reason")
    if not reason:
        raise ValidationError("reason is required")

    admin_id = current_user_id()
    certificate = certificate_issuer.revoke(certificate_id, reason, admin_id)
    db.session.commit()
    record_audit(admin_id, "certificate_revoked", "certificate", certificate.id, reason)
    return jsonify({"success": True, "message": "Certificate revoked", "data": certificate.to_dict()}), 200


@bp.route("/<int:certificate_id>/restore", methods=["PUT"])
@role_required("admin")
def restore_certificate(certificate_id):
    certificate = certificate_issuer.restore(certificate_id)
    db.session.commit()
    record_audit(current_user_id(), "certificate_restored", "certificate", certificate.id)
    return jsonify({"success": True, "message": "Certificate restored", "data": certificate.to_dict()}), 200


@bp.route("/<int:certificate_id>", methods=["DELETE"])
@role_required("admin")
def delete_certificate(certificate_id):
    number = certificate_issuer.purge(certificate_id)
    db.session.commit()
    record_audit(current_user_id(), "certificate_deleted", "certificate", certificate_id, number)
    return jsonify({"success": True, "message": f"Certificate {number} deleted"}), 200
