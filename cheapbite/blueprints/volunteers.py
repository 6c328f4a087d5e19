"""
Volunteers blueprint.

POST /api/volunteers   – apply to help (body: name, email, message); the team is e-mailed
"""
from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from cheapbite.forms.base import bind_form
from cheapbite.forms.volunteer import VolunteerForm
from cheapbite.utils.volunteers import submit_application

volunteers_bp = Blueprint("volunteers", __name__)


@volunteers_bp.route("/api/volunteers", methods=["POST"])
@login_required
def apply():
    form = bind_form(VolunteerForm)
    application = submit_application(current_user.id, form.name.data, form.email.data, form.message.data)
    return jsonify(application.to_dict()), 201
