"""
Shared fixtures.

Service tests run inside ``app_ctx``; API tests use ``client`` / ``new_client``
without a pushed app context so every request gets its own context (and its
own Flask-Login user).

Run with:  python -m pytest tests/ -v
"""
import json
from types import SimpleNamespace

import pytest

from cheapbite import create_app
from cheapbite.extensions import db
from cheapbite.utils.accounts import Identity, create_account


@pytest.fixture
def app(tmp_path):
    app = create_app("testing")
    app.config["MEDIA_UPLOAD_DIR"] = str(tmp_path / "media")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app
        db.session.rollback()


@pytest.fixture
def make_user(app_ctx):
    def _make(uid, email=None, display_name=None):
        return create_account(Identity(
            uid=uid,
            email=email or f"{uid}@example.com",
            display_name=display_name or uid.title(),
        ))
    return _make


# ── HTTP clients ──────────────────────────────────────────────────────────────

@pytest.fixture
def new_client(app):
    return app.test_client


@pytest.fixture
def client(new_client):
    return new_client()


def signup(client, email, display_name=None, password="password123") -> str:
    """Register through the API and return the new uid."""
    resp = client.post("/api/auth/register", json={
        "email": email, "password": password, "display_name": display_name,
    })
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["uid"]


@pytest.fixture
def signed_up():
    return signup


# ── Fake outbound HTTP ───────────────────────────────────────────────────────

class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload    = payload
        self.text        = text if text is not None else json.dumps(payload)

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeSession:
    """Stands in for requests.Session; replies are keyed by URL suffix."""

    def __init__(self, routes=None):
        self.headers = {}
        self.routes  = dict(routes or {})
        self.calls   = []

    def _dispatch(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        for suffix, reply in self.routes.items():
            if url.endswith(suffix):
                if isinstance(reply, Exception):
                    raise reply
                return reply
        return FakeResponse(404, {"message": "no route"})

    def post(self, url, json=None, timeout=None):
        return self._dispatch("POST", url, json=json)

    def put(self, url, data=None, headers=None, timeout=None):
        return self._dispatch("PUT", url, data=data, headers=headers)


class FlaskSession:
    """Adapts a Flask test client to the requests.Session surface CheapBiteClient uses."""

    def __init__(self, test_client):
        self.test_client = test_client
        self.headers     = {}

    def request(self, method, url, json=None, timeout=None):
        resp = self.test_client.open(url, method=method, json=json, headers=dict(self.headers))
        body = resp.get_json(silent=True)
        return FakeResponse(resp.status_code, body, text=resp.get_data(as_text=True))


@pytest.fixture
def http():
    return SimpleNamespace(Session=FakeSession, Response=FakeResponse, FlaskSession=FlaskSession)


# ── Sample payloads ───────────────────────────────────────────────────────────

@pytest.fixture
def sample_recipe():
    return {
        "title":        "Cheap Pasta",
        "description":  "Tomato pasta for two",
        "ingredients":  ["200g pasta", "1 can tomatoes", "garlic"],
        "instructions": ["Boil the pasta.", "Simmer the tomatoes with garlic.", "Mix."],
        "servingSize":  "2 servings",
        "costInfo":     {"totalCost": 3.5},
    }


@pytest.fixture
def sample_label():
    return {
        "productName":      "Fizzy Cola",
        "overallScore":     80,
        "overallRisk":      "Low Risk",
        "nutritionalScore": 30,
        "ingredientScore":  20,
        "summary":          "Sugary drink.",
        "ingredients": [
            {"name": "Water", "risk": "Risk-Free", "explanation": "Fine."},
            {"name": "Sugar", "risk": "Moderate Risk", "explanation": "A lot of it."},
        ],
    }
