"""
Volunteer applications.

An application is stored first; the e-mail to the team goes out afterwards,
on the background scheduler when it is running and inline otherwise.  Mail
trouble is logged and never fails the application itself.  With no
MAIL_SERVER or VOLUNTEER_NOTIFY_TO configured the e-mail is skipped.
"""
import logging
import smtplib
from email.message import EmailMessage

from flask import current_app
from markupsafe import escape

from cheapbite.errors import store_transaction
from cheapbite.extensions import db, scheduler
from cheapbite.models.volunteer import VolunteerApplication
from cheapbite.utils.helpers import new_id

log = logging.getLogger(__name__)


def submit_application(user_id: str, name: str, email: str, message: str) -> VolunteerApplication:
    application = VolunteerApplication(
        user_id=user_id,
        name=(name or "").strip(),
        email=(email or "").strip(),
        message=(message or "").strip(),
    )
    payload = {"userId": user_id, "name": application.name, "email": application.email}
    with store_transaction("volunteers", "create", payload):
        db.session.add(application)
    log.info("Volunteer application %s from %s", application.id, user_id)

    app = current_app._get_current_object()
    if scheduler.running and not app.testing:
        scheduler.add_job(run_notify, args=[app, application.id], id=f"volunteer-{new_id()}")
    else:
        notify_team(application)
    return application


def run_notify(app, application_id: str) -> None:
    with app.app_context():
        application = db.session.get(VolunteerApplication, application_id)
        if application is not None:
            notify_team(application)


def build_notification(application: VolunteerApplication, sender: str, recipient: str) -> EmailMessage:
    msg = EmailMessage()
    msg["From"]    = sender
    msg["To"]      = recipient
    msg["Subject"] = f"New Volunteer Application: {application.name}"
    msg.set_content(
        f"A new volunteer application has been submitted:\n\n"
        f"Name: {application.name}\nEmail: {application.email}\nMessage: {application.message}\n"
    )
    msg.add_alternative(
        "<p>A new volunteer application has been submitted:</p>\n"
        "<ul>\n"
        f"  <li><strong>Name:</strong> {escape(application.name)}</li>\n"
        f"  <li><strong>Email:</strong> {escape(application.email)}</li>\n"
        f"  <li><strong>Message:</strong> {escape(application.message)}</li>\n"
        "</ul>\n",
        subtype="html",
    )
    return msg


def notify_team(application: VolunteerApplication) -> bool:
    """E-mail the team about one application.  Returns True once it is handed to SMTP."""
    cfg       = current_app.config
    host      = cfg.get("MAIL_SERVER")
    recipient = cfg.get("VOLUNTEER_NOTIFY_TO")
    if not host or not recipient:
        log.warning("Mail not configured, skipping volunteer notification for %s", application.id)
        return False

    msg = build_notification(application, cfg.get("MAIL_FROM") or recipient, recipient)
    try:
        with smtplib.SMTP(host, cfg.get("MAIL_PORT", 587), timeout=cfg.get("MAIL_TIMEOUT", 10)) as server:
            if cfg.get("MAIL_USE_TLS"):
                server.starttls()
            if cfg.get("MAIL_USERNAME"):
                server.login(cfg["MAIL_USERNAME"], cfg.get("MAIL_PASSWORD", ""))
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        log.error("Volunteer notification for %s failed: %s", application.id, exc)
        return False
    log.info("Volunteer notification for %s sent to %s", application.id, recipient)
    return True
