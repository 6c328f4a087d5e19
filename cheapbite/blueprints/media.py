"""
Media blueprint.

GET /media/<path>   – files written by the local media store
"""
from flask import Blueprint, abort, send_from_directory

from cheapbite.utils.media import LocalMediaStore, get_media_store

media_bp = Blueprint("media", __name__)


@media_bp.route("/media/<path:path>")
def serve(path):
    store = get_media_store()
    if not isinstance(store, LocalMediaStore):
        abort(404)
    return send_from_directory(store.root, path)
