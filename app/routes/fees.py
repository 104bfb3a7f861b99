from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from app.extensions import db
from app.models import User
from app.services import fee_gate, fees
from app.services.audit import record_audit
from app.utils.auth import current_user_id, role_required
from app.utils.errors import ValidationError, fetch_or_404

bp = Blueprint("fees", __name__)


@bp.route("/my", methods=["GET"])
@jwt_required()
def my_fees():
    user_id = current_user_id()
    records = fees.fees_for_student(user_id)
    return jsonify({
        "success": True,
        "data": [f.to_dict() for f in records],
        "summary": fees.summarize(records),
        "isDefaulter": bool(fee_gate.evaluate(user_id)),
    }), 200


@bp.route("/<int:fee_id>/submit", methods=["PUT"])
@jwt_required()
def submit_payment(fee_id):
    data = request.get_json(silent=True) or {}
    fee = fees.submit_payment(
        fee_id,
        current_user_id(),
        data.get("transactionId"),
        payment_method=data.get("paymentMethod", "bank_transfer"),
        proof_url=data.get("proofUrl"),
        notes=data.get("notes"),
    )
    db.session.commit()
    return jsonify({"success": True, "message": "Payment submitted for review", "data": fee.to_dict()}), 200


# ---------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------

@bp.route("", methods=["POST"])
@role_required("admin")
def create_fee():
    data = request.get_json(silent=True) or {}
    if not data.get("studentId") or not data.get("month") or not data.get("year"):
        raise ValidationError("studentId, month and year are required")

    fee = fees.create_fee(data["studentId"], data["month"], data["year"], amount=data.get("amount"))
    db.session.commit()
    record_audit(current_user_id(), "fee_created", "fee", fee.id,
                 f"{fee.month_name} {fee.year}", details={"studentId": fee.student_id})
    return jsonify({"success": True, "message": "Fee record created", "data": fee.to_dict()}), 201


@bp.route("/generate", methods=["POST"])
@role_required("admin")
def generate_fees():
    data = request.get_json(silent=True) or {}
    result = fees.generate_monthly_fees(data.get("month"), data.get("year"))
    db.session.commit()
    record_audit(current_user_id(), "fees_generated", "fee", None,
                 f"{result['created']} fee records created", details=result)
    return jsonify({
        "success": True,
        "message": f"{result['created']} fee records generated",
        "data": result,
    }), 201


@bp.route("/<int:fee_id>/approve", methods=["PUT"])
@role_required("admin")
def approve_fee(fee_id):
    data = request.get_json(silent=True) or {}
    admin_id = current_user_id()
    fee = fees.approve_fee(fee_id, admin_id, notes=data.get("notes"))
    db.session.commit()
    record_audit(admin_id, "fee_approved", "fee", fee.id)
    return jsonify({"success": True, "message": "Payment approved", "data": fee.to_dict()}), 200


@bp.route("/<int:fee_id>/reject", methods=["PUT"])
@role_required("admin")
def reject_fee(fee_id):
    data = request.get_json(silent=True) or {}
    admin_id = current_user_id()
    fee = fees.reject_fee(fee_id, admin_id, reason=data.get("reason"))
    db.session.commit()
    record_audit(admin_id, "fee_rejected", "fee", fee.id, fee.rejection_reason)
    return jsonify({"success": True, "message": "Payment rejected", "data": fee.to_dict()}), 200


@bp.route("/student/<int:student_id>", methods=["GET"])
@role_required("admin")
def student_fees(student_id):
    student = fetch_or_404(User, student_id, "Student")
    records = fees.fees_for_student(student.id)
    return jsonify({
        "success": True,
        "student": student.to_dict(),
        "data": [f.to_dict() for f in records],
        "summary": fees.summarize(records),
        "isDefaulter": bool(fee_gate.evaluate(student.id)),
    }), 200
