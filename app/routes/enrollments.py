from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from app.extensions import db
from app.services import class_access, enrollments, fee_gate
from app.services.audit import record_audit
from app.utils.auth import current_user_id, role_required
from app.utils.errors import ValidationError

bp = Blueprint("enrollments", __name__)


@bp.route("/my", methods=["GET"])
@jwt_required()
def my_enrollments():
    data = enrollments.my_enrollments(current_user_id())
    return jsonify({"success": True, "count": len(data), "data": data}), 200


# Admin enrolls a student
@bp.route("", methods=["POST"])
@role_required("admin")
def enroll_student():
    data = request.get_json(silent=True) or {}
    user_id = data.get("userId")
    course_id = data.get("courseId")
    if not user_id or not course_id:
        raise ValidationError("userId and courseId are required")

    admin_id = current_user_id()
    enrollment = enrollments.enroll_student(
        user_id,
        course_id,
        enrollment_type=data.get("enrollmentType", "granted"),
        enrolled_by=admin_id,
        notes=data.get("notes", ""),
        expires_at=data.get("expiresAt"),
    )
    db.session.commit()
    record_audit(admin_id, "student_enrolled", "enrollment", enrollment.id,
                 details={"userId": enrollment.user_id, "courseId": enrollment.course_id})

    return jsonify({"success": True, "message": "Student enrolled successfully", "data": enrollment.to_dict()}), 201


@bp.route("/<int:enrollment_id>", methods=["DELETE"])
@role_required("admin")
def remove_enrollment(enrollment_id):
    enrollments.remove_enrollment(enrollment_id)
    db.session.commit()
    record_audit(current_user_id(), "enrollment_removed", "enrollment", enrollment_id)
    return jsonify({"success": True, "message": "Enrollment removed"}), 200


@bp.route("/<int:enrollment_id>/block", methods=["PUT"])
@role_required("admin")
def block_enrollment(enrollment_id):
    data = request.get_json(silent=True) or {}
    admin_id = current_user_id()
    enrollment = fee_gate.block_access(enrollment_id, data.get("reason"), blocked_by=admin_id)
    db.session.commit()
    record_audit(admin_id, "access_blocked", "enrollment", enrollment.id, enrollment.blocked_reason)
    return jsonify({"success": True, "message": "Access blocked", "data": enrollment.to_dict()}), 200


@bp.route("/<int:enrollment_id>/unblock", methods=["PUT"])
@role_required("admin")
def unblock_enrollment(enrollment_id):
    enrollment = fee_gate.unblock_access(enrollment_id)
    db.session.commit()
    record_audit(current_user_id(), "access_unblocked", "enrollment", enrollment.id)
    return jsonify({"success": True, "message": "Access unblocked", "data": enrollment.to_dict()}), 200


@bp.route("/<int:enrollment_id>/toggle-access", methods=["PUT"])
@role_required("admin")
def toggle_access(enrollment_id):
    data = request.get_json(silent=True) or {}
    admin_id = current_user_id()
    enrollment = fee_gate.toggle_access(enrollment_id, data.get("reason"), actor_id=admin_id)
    db.session.commit()
    state = "blocked" if enrollment.access_blocked else "unblocked"
    record_audit(admin_id, f"access_{state}", "enrollment", enrollment.id)
    return jsonify({"success": True, "message": f"Access {state}", "data": enrollment.to_dict()}), 200


@bp.route("/<int:enrollment_id>/classes", methods=["GET"])
@role_required("admin")
def enrollment_classes(enrollment_id):
    data = class_access.enrollment_classes(enrollment_id)
    return jsonify({"success": True, "data": data}), 200


@bp.route("/<int:enrollment_id>/class/<int:class_id>/toggle-lock", methods=["PUT"])
@role_required("admin")
def toggle_class_for_student(enrollment_id, class_id):
    data = request.get_json(silent=True) or {}
    action = data.get("action")
    admin_id = current_user_id()
    lists = class_access.set_class_override(enrollment_id, class_id, action, actor_id=admin_id)
    db.session.commit()
    record_audit(admin_id, f"class_{action}", "enrollment", enrollment_id, details={"classId": class_id})
    return jsonify({"success": True, "message": f"Class {action} applied", "data": lists}), 200


@bp.route("/<int:enrollment_id>/bulk-class-access", methods=["PUT"])
@role_required("admin")
def bulk_class_access(enrollment_id):
    data = request.get_json(silent=True) or {}
    action = data.get("action")
    class_ids = data.get("classIds")
    admin_id = current_user_id()
    lists = class_access.bulk_set_class_overrides(enrollment_id, class_ids, action, actor_id=admin_id)
    db.session.commit()
    record_audit(admin_id, f"bulk_class_{action}", "enrollment", enrollment_id,
                 details={"classIds": class_ids})
    return jsonify({
        "success": True,
        "message": f"{len(class_ids)} classes updated",
        "data": lists,
    }), 200
