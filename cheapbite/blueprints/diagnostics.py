"""
Diagnostics blueprint.

GET /api/diagnostics/write-failures   – recent rejected store writes, newest last
"""
from flask import Blueprint, jsonify
from flask_login import login_required

from cheapbite.errors import recent_write_failures

diagnostics_bp = Blueprint("diagnostics", __name__)


@diagnostics_bp.route("/api/diagnostics/write-failures")
@login_required
def write_failures():
    failures = recent_write_failures()
    return jsonify(count=len(failures), failures=[f.to_dict() for f in failures])
