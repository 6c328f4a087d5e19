"""
Media store: uploaded images for posts and profiles.

``upload(path, data, content_type) -> url``.  Two backends:

    HttpMediaStore   PUT to MEDIA_STORE_URL/<path> (bucket or CDN front)
    LocalMediaStore  files under MEDIA_UPLOAD_DIR, served at /media/<path>

Any failure raises ExternalServiceError.
"""
import logging
import os
from datetime import timezone

import requests
from flask import current_app
from werkzeug.utils import safe_join, secure_filename

from cheapbite.errors import ExternalServiceError, ValidationError
from cheapbite.utils.helpers import utcnow

log = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
PROFILE_IMAGE_KINDS = ("photo", "cover")


def _epoch_ms(now=None) -> int:
    now = now or utcnow()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return int(now.timestamp() * 1000)


def post_media_path(uid: str, filename: str, now=None) -> str:
    name = secure_filename(filename or "") or "upload"
    return f"posts/{uid}/{_epoch_ms(now)}-{name}"


def profile_image_path(uid: str, kind: str, filename: str, now=None) -> str:
    if kind not in PROFILE_IMAGE_KINDS:
        raise ValidationError("Unknown image kind", fields={"kind": ["One of photo, cover."]})
    name = secure_filename(filename or "") or "upload"
    return f"profile-images/{uid}/{kind}-{_epoch_ms(now)}-{name}"


def check_image(data: bytes, content_type: str) -> None:
    if not data:
        raise ValidationError("The file is empty", fields={"file": ["Choose an image to upload."]})
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError("Unsupported image type",
                              fields={"file": [f"Allowed: {', '.join(ALLOWED_IMAGE_TYPES)}."]})


class LocalMediaStore:
    def __init__(self, root: str, base_url: str = "/media"):
        self.root     = root
        self.base_url = base_url.rstrip("/")

    def full_path(self, path: str) -> str:
        target = safe_join(self.root, path)
        if target is None:
            raise ValidationError("Invalid media path")
        return target

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        target = self.full_path(path)
        try:
            os.makedirs(os.path.dirname(target), exist_ok=True)
            with open(target, "wb") as fh:
                fh.write(data)
        except OSError as exc:
            log.warning("Could not write media %s: %s", path, exc)
            raise ExternalServiceError(f"Could not store {path}") from exc
        log.info("Stored %d bytes at %s", len(data), path)
        return f"{self.base_url}/{path}"


class HttpMediaStore:
    def __init__(self, base_url: str, token: str = None, timeout: float = 30,
                 session: requests.Session = None):
        self.base_url = base_url.rstrip("/")
        self.timeout  = timeout
        self.session  = session or requests.Session()
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        url = f"{self.base_url}/{path}"
        try:
            resp = self.session.put(url, data=data, headers={"Content-Type": content_type},
                                    timeout=self.timeout)
        except requests.RequestException as exc:
            log.warning("Media store unreachable for %s: %s", path, exc)
            raise ExternalServiceError(f"Could not reach the media store: {exc}") from exc
        if not resp.ok:
            raise ExternalServiceError(
                f"Media store returned {resp.status_code} for {path}",
                status_code=resp.status_code,
            )
        try:
            body = resp.json()
        except ValueError:
            body = {}
        return body.get("url") or url


def get_media_store():
    store = current_app.extensions.get("cheapbite.media")
    if store is None:
        cfg = current_app.config
        if cfg.get("MEDIA_STORE_URL"):
            store = HttpMediaStore(cfg["MEDIA_STORE_URL"], token=cfg.get("MEDIA_STORE_TOKEN") or None)
        else:
            root  = cfg.get("MEDIA_UPLOAD_DIR") or os.path.join(current_app.instance_path, "media")
            store = LocalMediaStore(root)
        current_app.extensions["cheapbite.media"] = store
    return store


def upload_image(path: str, data: bytes, content_type: str) -> str:
    check_image(data, content_type)
    return get_media_store().upload(path, data, content_type)
