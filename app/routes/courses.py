from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from app.extensions import db
from app.models import Course
from app.services import course_content, enrollments, fee_gate
from app.services.audit import record_audit
from app.utils.auth import current_user_id, role_required
from app.utils.errors import fetch_or_404

bp = Blueprint("courses", __name__)


# ---------------------------------------------------------------------
# Student views
# ---------------------------------------------------------------------

@bp.route("/<int:course_id>/learn", methods=["GET"])
@jwt_required()
def learn_course(course_id):
    data = course_content.course_for_student(current_user_id(), course_id)
    return jsonify({"success": True, "data": data}), 200


@bp.route("/<int:course_id>/my-progress", methods=["GET"])
@jwt_required()
def my_progress(course_id):
    data = course_content.my_course_progress(current_user_id(), course_id)
    return jsonify({"success": True, "data": data}), 200


# ---------------------------------------------------------------------
# Admin: courses
# ---------------------------------------------------------------------

@bp.route("", methods=["POST"])
@role_required("admin")
def create_course():
    data = request.get_json(silent=True) or {}
    course = course_content.create_course(data)
    db.session.commit()
    record_audit(current_user_id(), "course_created", "course", course.id, course.title)
    return jsonify({"success": True, "message": "Course created", "data": course.to_dict()}), 201


@bp.route("/<int:course_id>", methods=["PUT"])
@role_required("admin")
def update_course(course_id):
    data = request.get_json(silent=True) or {}
    course = course_content.update_course(course_id, data)
    db.session.commit()
    return jsonify({"success": True, "message": "Course updated", "data": course.to_dict()}), 200


@bp.route("/<int:course_id>/classes", methods=["POST"])
@role_required("admin")
def add_class(course_id):
    data = request.get_json(silent=True) or {}
    class_record = course_content.create_class(course_id, data, created_by=current_user_id())
    db.session.commit()
    return jsonify({"success": True, "message": "Class added successfully", "data": class_record.to_dict()}), 201


@bp.route("/<int:course_id>/lock-all", methods=["PUT"])
@role_required("admin")
def lock_all(course_id):
    count = course_content.set_lock_all(course_id, True)
    db.session.commit()
    record_audit(current_user_id(), "classes_locked", "course", course_id, f"{count} classes locked")
    return jsonify({"success": True, "message": f"{count} classes locked", "data": {"count": count}}), 200


@bp.route("/<int:course_id>/unlock-all", methods=["PUT"])
@role_required("admin")
def unlock_all(course_id):
    count = course_content.set_lock_all(course_id, False)
    db.session.commit()
    record_audit(current_user_id(), "classes_unlocked", "course", course_id, f"{count} classes unlocked")
    return jsonify({"success": True, "message": f"{count} classes unlocked", "data": {"count": count}}), 200


@bp.route("/<int:course_id>/enrollments", methods=["GET"])
@role_required("admin")
def course_enrollments(course_id):
    data = enrollments.course_enrollments(course_id)
    return jsonify({"success": True, "count": len(data), "data": data}), 200


@bp.route("/<int:course_id>/block-defaulters", methods=["PUT"])
@role_required("admin")
def block_defaulters(course_id):
    admin_id = current_user_id()
    fetch_or_404(Course, course_id, "Course")
    count = fee_gate.bulk_block_defaulters(course_id, blocked_by=admin_id)
    db.session.commit()
    record_audit(admin_id, "defaulters_blocked", "course", course_id, f"{count} enrollments blocked")
    return jsonify({
        "success": True,
        "message": f"{count} fee defaulters blocked",
        "data": {"blockedCount": count},
    }), 200


# ---------------------------------------------------------------------
# Admin: classes
# ---------------------------------------------------------------------

@bp.route("/classes/<int:class_id>", methods=["PUT"])
@role_required("admin")
def update_class(class_id):
    data = request.get_json(silent=True) or {}
    class_record = course_content.update_class(class_id, data, updated_by=current_user_id())
    db.session.commit()
    return jsonify({"success": True, "message": "Class updated", "data": class_record.to_dict()}), 200


@bp.route("/classes/<int:class_id>", methods=["DELETE"])
@role_required("admin")
def delete_class(class_id):
    course_content.delete_class(class_id)
    db.session.commit()
    record_audit(current_user_id(), "class_deleted", "class", class_id)
    return jsonify({"success": True, "message": "Class deleted"}), 200


@bp.route("/classes/<int:class_id>/toggle-lock", methods=["PUT"])
@role_required("admin")
def toggle_class_lock(class_id):
    class_record = course_content.toggle_lock(class_id, updated_by=current_user_id())
    db.session.commit()
    state = "locked" if class_record.is_locked else "unlocked"
    return jsonify({"success": True, "message": f"Class {state}", "data": class_record.to_dict(full=False)}), 200


@bp.route("/classes/<int:class_id>/toggle-publish", methods=["PUT"])
@role_required("admin")
def toggle_class_publish(class_id):
    class_record = course_content.toggle_publish(class_id, updated_by=current_user_id())
    db.session.commit()
    state = "published" if class_record.is_published else "unpublished"
    return jsonify({"success": True, "message": f"Class {state}", "data": class_record.to_dict(full=False)}), 200
