from flask import current_app
from flask_mail import Message

from app.extensions import mail


def send_email(to, subject, body, html=None):
    """Generic email sender. Never sends a copy to the sender address."""

    sender = current_app.config.get("MAIL_DEFAULT_SENDER")
    sender_email = sender[1] if isinstance(sender, tuple) else sender

    if to == sender_email or (isinstance(to, list) and sender_email in to):
        current_app.logger.info("Skipped sending email to sender address: %s", sender_email)
        return False

    msg = Message(
        subject=subject,
        recipients=[to] if isinstance(to, str) else to,
        sender=sender,
    )
    msg.body = body
    if html:
        msg.html = html

    mail.send(msg)
    current_app.logger.info("Email sent to %s", to)
    return True


def notify_certificate_issued(user, certificate):
    """Tell the student their certificate is ready. Failures are logged only."""
    if not current_app.config.get("NOTIFY_ON_CERTIFICATE", True) or not user or not user.email:
        return False

    subject = f"Your certificate for {certificate.course_title}"
    body = (
        f"Dear {certificate.student_name},\n\n"
        f"Congratulations on completing {certificate.course_title}.\n"
        f"Certificate number: {certificate.certificate_number}\n"
        f"Verification code: {certificate.verification_code}\n"
    )
    html = (
        f"<p>Dear {certificate.student_name},</p>"
        f"<p>Congratulations on completing <strong>{certificate.course_title}</strong>.</p>"
        f"<p>Certificate number: {certificate.certificate_number}<br>"
        f"Verification code: {certificate.verification_code}</p>"
    )

    try:
        return send_email(to=user.email, subject=subject, body=body, html=html)
    except Exception as e:
        current_app.logger.error(f"Error sending certificate email: {e}")
        return False
