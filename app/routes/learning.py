from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from app.extensions import db
from app.services import course_content, enrollment_aggregator, progress_store
from app.services.access import require_class_access
from app.models import CourseClass
from app.utils.auth import current_user_id
from app.utils.errors import fetch_or_404

bp = Blueprint("learning", __name__)


# Open a class: access check, access count, navigation
@bp.route("/watch/<int:class_id>", methods=["GET"])
@jwt_required()
def watch_class(class_id):
    data = course_content.watch_class(current_user_id(), class_id)
    db.session.commit()
    return jsonify({"success": True, "data": data}), 200


# Progress ping from the player
@bp.route("/progress/<int:class_id>", methods=["PUT"])
@jwt_required()
def update_progress(class_id):
    user_id = current_user_id()
    data = request.get_json(silent=True) or {}

    class_record = fetch_or_404(CourseClass, class_id, "Class")
    enrollment = require_class_access(user_id, class_record)

    progress, newly_completed = progress_store.update_progress(
        user_id,
        class_record.id,
        watch_progress=data.get("watchProgress"),
        last_position=data.get("lastPosition"),
        total_watch_time=data.get("totalWatchTime"),
        enrollment=enrollment,
    )
    if newly_completed:
        enrollment_aggregator.recompute(enrollment)

    db.session.commit()

    return jsonify({
        "success": True,
        "data": progress.to_dict(),
        "completed": newly_completed,
        "enrollmentProgress": enrollment.progress_dict(),
    }), 200
