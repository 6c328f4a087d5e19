"""
Tests for media paths and the two media store backends.
"""
import os
from datetime import datetime

import pytest
import requests

from cheapbite.errors import ExternalServiceError, ValidationError
from cheapbite.utils.media import (
    HttpMediaStore, LocalMediaStore, check_image, post_media_path, profile_image_path,
)

NOW = datetime(2024, 1, 1)


class TestPaths:

    def test_post_media_path(self):
        assert post_media_path("alice", "my photo.png", NOW) == "posts/alice/1704067200000-my_photo.png"

    def test_profile_image_path(self):
        assert profile_image_path("alice", "cover", "../../etc/passwd", NOW) == \
            "profile-images/alice/cover-1704067200000-etc_passwd"
        with pytest.raises(ValidationError):
            profile_image_path("alice", "banner", "x.png", NOW)

    def test_check_image(self):
        check_image(b"\x89PNG", "image/png")
        with pytest.raises(ValidationError):
            check_image(b"hello", "text/plain")
        with pytest.raises(ValidationError):
            check_image(b"", "image/png")


class TestLocalMediaStore:

    def test_upload_writes_file(self, tmp_path):
        store = LocalMediaStore(str(tmp_path))
        url   = store.upload("posts/alice/1-a.png", b"img", "image/png")
        assert url == "/media/posts/alice/1-a.png"
        with open(os.path.join(tmp_path, "posts", "alice", "1-a.png"), "rb") as fh:
            assert fh.read() == b"img"

    def test_traversal_rejected(self, tmp_path):
        store = LocalMediaStore(str(tmp_path))
        with pytest.raises(ValidationError):
            store.upload("../escape.png", b"img", "image/png")


class TestHttpMediaStore:

    def test_put_returns_store_url(self, http):
        session = http.Session({"/posts/alice/1-a.png": http.Response(200, {"url": "https://cdn.test/a.png"})})
        store   = HttpMediaStore("https://bucket.test/", token="t", session=session)
        assert store.upload("posts/alice/1-a.png", b"img", "image/png") == "https://cdn.test/a.png"

        method, url, kwargs = session.calls[0]
        assert (method, url) == ("PUT", "https://bucket.test/posts/alice/1-a.png")
        assert kwargs["headers"] == {"Content-Type": "image/png"}
        assert session.headers["Authorization"] == "Bearer t"

    def test_falls_back_to_put_url(self, http):
        session = http.Session({".png": http.Response(201, None, text="")})
        store   = HttpMediaStore("https://bucket.test", session=session)
        assert store.upload("a.png", b"img", "image/png") == "https://bucket.test/a.png"

    def test_failures(self, http):
        store = HttpMediaStore("https://bucket.test", session=http.Session({".png": http.Response(403, {})}))
        with pytest.raises(ExternalServiceError):
            store.upload("a.png", b"img", "image/png")

        store = HttpMediaStore("https://bucket.test",
                               session=http.Session({".png": requests.Timeout("slow")}))
        with pytest.raises(ExternalServiceError):
            store.upload("a.png", b"img", "image/png")
