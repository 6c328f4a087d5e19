"""
Python client for the CheapBite JSON API.

CheapBiteClient keeps the view state a front end needs for the two toggles
users hammer on (likes, follows): the flip shows immediately, then the
server's answer either confirms it or puts the old value back.  Every
reverted write is kept in ``failures`` so the caller can tell the user.

RecipeSession is the "what am I generating right now" state of one screen.
It belongs to whoever created it and is thrown away with reset() when the
user navigates elsewhere.
"""
import logging
from dataclasses import dataclass, field

import requests

from cheapbite.utils.optimistic import Confirmed, Optimistic, Reverted, begin, reduce

log = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx answer or network failure talking to the API."""
    def __init__(self, message: str, status_code: int = None, body: dict = None):
        super().__init__(message)
        self.status_code = status_code
        self.body        = body or {}


class CheapBiteClient:
    def __init__(self, base_url: str = "", session=None, timeout: float = 30):
        self.base_url = base_url.rstrip("/")
        self.session  = session or requests.Session()
        self.timeout  = timeout
        self.likes:   dict[str, Optimistic] = {}
        self.follows: dict[str, Optimistic] = {}
        self.failures: list[dict] = []

    # ── Internal helpers ─────────────────────────────────────────────────────

    def _request(self, method: str, path: str, json: dict = None) -> dict:
        try:
            resp = self.session.request(method, f"{self.base_url}{path}", json=json, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ApiError(f"Network error: {exc}") from exc
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not resp.ok:
            raise ApiError(body.get("message") or f"HTTP {resp.status_code}",
                           status_code=resp.status_code, body=body)
        return body

    def _record_failure(self, action: str, target: str, exc: ApiError) -> None:
        log.warning("%s on %s reverted: %s", action, target, exc)
        self.failures.append({"action": action, "target": target,
                              "status": exc.status_code, "message": str(exc)})

    # ── Session ──────────────────────────────────────────────────────────────

    def refresh_csrf(self) -> str:
        token = self._request("GET", "/api/auth/csrf")["csrfToken"]
        self.session.headers.update({"X-CSRFToken": token})
        return token

    def register(self, email: str, password: str, display_name: str = None) -> dict:
        self.refresh_csrf()
        return self._request("POST", "/api/auth/register",
                             {"email": email, "password": password, "display_name": display_name})

    def login(self, email: str, password: str) -> dict:
        self.refresh_csrf()
        return self._request("POST", "/api/auth/login", {"email": email, "password": password})

    def me(self) -> dict:
        return self._request("GET", "/api/auth/me")

    # ── Optimistic toggles ───────────────────────────────────────────────────

    def toggle_like(self, post_id: str, liked: bool, like_count: int) -> Optimistic:
        """Flip a like now; settle it with the server's answer."""
        state = self.likes.get(post_id)
        if state is not None and state.status != "pending":
            liked, like_count = state.value["liked"], state.value["like_count"]
        shown = {"liked": not liked, "like_count": max(0, like_count + (-1 if liked else 1))}
        state = begin({"liked": liked, "like_count": like_count}, shown)
        self.likes[post_id] = state
        try:
            data = self._request("POST", f"/api/posts/{post_id}/like")
        except ApiError as exc:
            self._record_failure("like", post_id, exc)
            state = reduce(state, Reverted(str(exc)))
        else:
            state = reduce(state, Confirmed({"liked": data["liked"], "like_count": data["like_count"]}))
        self.likes[post_id] = state
        return state

    def toggle_follow(self, uid: str, following: bool) -> Optimistic:
        state = self.follows.get(uid)
        if state is not None and state.status != "pending":
            following = state.value
        state = begin(following, not following)
        self.follows[uid] = state
        try:
            data = self._request("POST", f"/api/profiles/{uid}/follow")
        except ApiError as exc:
            self._record_failure("follow", uid, exc)
            state = reduce(state, Reverted(str(exc)))
        else:
            state = reduce(state, Confirmed(data["following"]))
        self.follows[uid] = state
        return state

    # ── Content ──────────────────────────────────────────────────────────────

    def feed(self, scope: str = "explore", page: int = 1) -> dict:
        return self._request("GET", f"/api/feed?scope={scope}&page={page}")

    def create_post(self, content: str, **extra) -> dict:
        return self._request("POST", "/api/posts", {"content": content, **extra})

    def send_message(self, peer_id: str, text: str) -> dict:
        return self._request("POST", f"/api/messages/{peer_id}", {"text": text})

    def notifications(self) -> dict:
        return self._request("GET", "/api/notifications")

    # ── Generation ───────────────────────────────────────────────────────────

    def generate_recipes(self, ingredients, **options) -> dict:
        return self._request("POST", "/api/generate/recipes", {"ingredients": list(ingredients), **options})

    def identify(self, photo: str, target: str = "food") -> dict:
        return self._request("POST", "/api/generate/identify", {"photoDataUri": photo, "target": target})

    def job(self, job_id: str) -> dict:
        return self._request("GET", f"/api/generate/jobs/{job_id}")

    def cancel_job(self, job_id: str) -> dict:
        return self._request("DELETE", f"/api/generate/jobs/{job_id}")

    def save(self, kind: str, item: dict) -> dict:
        return self._request("POST", f"/api/saved/{kind}", item)

    def recipe_session(self) -> "RecipeSession":
        return RecipeSession(client=self)


@dataclass
class RecipeSession:
    """Generation state of one screen: inputs, results, the pick, a running job."""
    client:   CheapBiteClient
    kind:     str = None
    inputs:   dict = field(default_factory=dict)
    results:  list = field(default_factory=list)
    selected: dict = None
    job_id:   str = None
    error:    str = None

    def start(self, kind: str, **inputs) -> None:
        self.reset()
        self.kind, self.inputs = kind, inputs

    def finish(self, results: list) -> list:
        self.results, self.job_id, self.error = list(results), None, None
        return self.results

    def fail(self, error: str) -> None:
        self.error, self.job_id = error, None

    def generate_recipes(self, ingredients, **options) -> list:
        self.start("recipes", ingredients=list(ingredients), **options)
        try:
            data = self.client.generate_recipes(ingredients, **options)
        except ApiError as exc:
            self.fail(str(exc))
            raise
        return self.finish(data["recipes"])

    def identify(self, photo: str, target: str = "food") -> dict:
        self.start(f"identify-{target}", target=target)
        job = self.client.identify(photo, target)
        self.job_id = job["id"]
        return self.poll() if job["status"] != "pending" else job

    def poll(self) -> dict:
        """Fold the job's current state into the session."""
        if self.job_id is None:
            return {}
        job = self.client.job(self.job_id)
        if job["status"] == "done":
            result = job["result"]
            self.finish(result.get("recipes") or [result])
        elif job["status"] == "failed":
            self.fail((job.get("error") or {}).get("message", "Generation failed"))
        elif job["status"] == "cancelled":
            self.job_id = None
        return job

    def cancel(self) -> None:
        if self.job_id is not None:
            self.client.cancel_job(self.job_id)
        self.reset()

    def select(self, index: int) -> dict:
        self.selected = self.results[index]
        return self.selected

    def reset(self) -> None:
        self.kind, self.inputs, self.results = None, {}, []
        self.selected = self.job_id = self.error = None
