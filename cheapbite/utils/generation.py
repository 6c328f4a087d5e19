"""
Content-generation service client: pure HTTP layer, no database interaction.

Every call is one POST to the generation service.  Inputs are checked before
anything goes over the wire (ValidationError), and every response is
validated against the models in cheapbite.schemas before it is returned.
Network errors, non-2xx replies and malformed bodies all surface as
ExternalServiceError(retryable=True).  Nothing here retries or caches.

Long calls (photo identification) can be run through GenerationJobs so the
caller can cancel them; a cancelled job's result is thrown away even when
the remote call finishes afterwards.
"""
import logging
import re
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone

import requests
from flask import current_app
from pydantic import ValidationError as SchemaError

from cheapbite.errors import CheapBiteError, ExternalServiceError, NotFound, ValidationError
from cheapbite.extensions import scheduler
from cheapbite.schemas import (
    BeverageRecipe, GeneratedRecipes, GroceryList, IdentifiedItems, ImageOutput,
    PostImageAnalysis, ProductLabelCard, Recipe, SpeechOutput,
)
from cheapbite.utils.helpers import new_id

log = logging.getLogger(__name__)

_DATA_URI   = re.compile(r"^data:image/[\w.+-]+;base64,[A-Za-z0-9+/=\s]+$")
IMAGE_KINDS = ("food", "beverage", "product")


def _clean_list(values) -> list[str]:
    if isinstance(values, str):
        values = values.split(",")
    return [str(v).strip() for v in (values or []) if str(v).strip()]


def require_photo(photo: str, field_name: str = "photoDataUri") -> str:
    if not photo or not _DATA_URI.match(photo):
        raise ValidationError("A photo is required",
                              fields={field_name: ["Must be an image data URI (data:image/...;base64,...)."]})
    return photo


class GenerationClient:
    """Thin wrapper around a requests.Session pointed at the generation service."""

    def __init__(self, base_url: str, token: str = None, timeout: float = 60,
                 session: requests.Session = None):
        self.base_url = base_url.rstrip("/")
        self.timeout  = timeout
        self.session  = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    # ── Internal helpers ─────────────────────────────────────────────────────

    def _post(self, path: str, payload: dict) -> dict:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            log.warning("Generation service unreachable (%s): %s", path, exc)
            raise ExternalServiceError(f"Could not reach the generation service: {exc}") from exc

        if resp.status_code == 429:
            raise ExternalServiceError("Generation service is busy, try again shortly", status_code=429)
        if not resp.ok:
            log.warning("Generation service returned %s for %s", resp.status_code, path)
            raise ExternalServiceError(
                f"Generation service returned {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise ExternalServiceError("Generation service returned a non-JSON body") from exc

    def _call(self, path: str, payload: dict, schema):
        data = self._post(path, {k: v for k, v in payload.items() if v not in (None, [], "")})
        try:
            return schema.model_validate(data)
        except SchemaError as exc:
            log.warning("Generation service sent a malformed %s: %s", schema.__name__, exc)
            raise ExternalServiceError(f"Generation service sent an invalid {schema.__name__}") from exc

    # ── Public API ───────────────────────────────────────────────────────────

    def generate_recipes(self, ingredients, dietary_restrictions=None, cuisine: str = None) -> GeneratedRecipes:
        ingredients = _clean_list(ingredients)
        if not ingredients:
            raise ValidationError("List at least one ingredient",
                                  fields={"ingredients": ["At least one ingredient is required."]})
        return self._call("/recipes", {
            "ingredients":         ingredients,
            "dietaryRestrictions": _clean_list(dietary_restrictions),
            "cuisine":             (cuisine or "").strip() or None,
        }, GeneratedRecipes)

    def generate_beverage(self, ingredients, preferences=None) -> BeverageRecipe:
        ingredients = _clean_list(ingredients)
        if not ingredients:
            raise ValidationError("List at least one ingredient",
                                  fields={"ingredients": ["At least one ingredient is required."]})
        return self._call("/beverages", {
            "ingredients": ingredients,
            "preferences": _clean_list(preferences),
        }, BeverageRecipe)

    def process_grocery_list(self, text: str = None, photo: str = None, region: str = None) -> GroceryList:
        text = (text or "").strip()
        if not text and not photo:
            raise ValidationError("Enter a list or add a photo",
                                  fields={"list": ["Provide the list text or a photo."]})
        if photo:
            require_photo(photo)
        return self._call("/grocery-lists", {
            "list":         text or None,
            "photoDataUri": photo,
            "region":       (region or "").strip() or None,
        }, GroceryList)

    def analyze_product_label(self, product_name: str = None, ingredients_text: str = None,
                              photo: str = None) -> ProductLabelCard:
        product_name     = (product_name or "").strip()
        ingredients_text = (ingredients_text or "").strip()
        if not (product_name or ingredients_text or photo):
            raise ValidationError("Describe the product or add a photo",
                                  fields={"productName": ["Provide a name, ingredients or a photo."]})
        if photo:
            require_photo(photo)
        return self._call("/product-labels", {
            "productName":     product_name or None,
            "ingredientsText": ingredients_text or None,
            "photoDataUri":    photo,
        }, ProductLabelCard)

    def identify_from_image(self, photo: str) -> GeneratedRecipes:
        """Photo of a meal or of ingredients → recipes for it."""
        require_photo(photo)
        found = self._call("/identify/food", {"photoDataUri": photo}, IdentifiedItems)
        if not found.items:
            raise ExternalServiceError("Nothing recognisable in that photo", retryable=True)
        if found.is_meal:
            return GeneratedRecipes(recipes=[self.generate_for_meal(found.items[0])])
        return self.generate_recipes(found.items)

    def identify_beverage_from_image(self, photo: str) -> BeverageRecipe:
        require_photo(photo)
        return self._call("/identify/beverage", {"photoDataUri": photo}, BeverageRecipe)

    def generate_for_meal(self, meal: str, preferences=None) -> Recipe:
        meal = (meal or "").strip()
        if not meal:
            raise ValidationError("Name the meal", fields={"mealName": ["This field is required."]})
        return self._call("/meals", {
            "mealName":    meal,
            "preferences": _clean_list(preferences),
        }, Recipe)

    def text_to_speech(self, text: str) -> SpeechOutput:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Nothing to read out", fields={"text": ["This field is required."]})
        return self._call("/speech", {"text": text}, SpeechOutput)

    def analyze_post_image(self, photo: str) -> PostImageAnalysis:
        require_photo(photo)
        return self._call("/post-images", {"photoDataUri": photo}, PostImageAnalysis)

    def generate_image(self, kind: str, title: str, description: str = None) -> ImageOutput:
        if kind not in IMAGE_KINDS:
            raise ValidationError("Unknown image kind", fields={"kind": [f"One of {', '.join(IMAGE_KINDS)}."]})
        title = (title or "").strip()
        if not title:
            raise ValidationError("A title is required", fields={"title": ["This field is required."]})
        return self._call("/images", {
            "kind":        kind,
            "title":       title,
            "description": (description or "").strip() or None,
        }, ImageOutput)


def get_generation_client() -> GenerationClient:
    """One client per app, built from config on first use."""
    client = current_app.extensions.get("cheapbite.generation")
    if client is None:
        cfg = current_app.config
        client = GenerationClient(
            cfg["GENERATION_SERVICE_URL"],
            token=cfg.get("GENERATION_SERVICE_TOKEN") or None,
            timeout=cfg.get("GENERATION_TIMEOUT", 60),
        )
        current_app.extensions["cheapbite.generation"] = client
    return client


# ── Cancellable jobs ──────────────────────────────────────────────────────────

@dataclass
class GenerationJob:
    id:        str
    kind:      str
    owner_id:  str
    status:    str = "pending"
    result:    object = None
    error:     dict = None
    submitted: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    settled:   float = None   # monotonic time the job stopped being pending

    def to_dict(self) -> dict:
        data = {"id": self.id, "kind": self.kind, "status": self.status,
                "submittedAt": self.submitted.isoformat()}
        if self.status == "done":
            data["result"] = self.result
        if self.status == "failed":
            data["error"] = self.error
        return data


class GenerationJobs:
    """In-process registry of generation calls that may be cancelled.

    ``runner(fn)`` schedules a zero-argument callable; by default it goes to
    the background scheduler when that is running and runs inline otherwise.

    Settled jobs (done, failed, cancelled) are kept for ``ttl_seconds`` so the
    owner can collect them.  Submitting a job first makes room for it under
    ``max_jobs`` by dropping the oldest settled jobs.  Pending jobs are never
    dropped.
    """

    def __init__(self, runner=None, ttl_seconds: float = 600, max_jobs: int = 500):
        self._jobs: OrderedDict[str, GenerationJob] = OrderedDict()
        self._lock   = threading.Lock()
        self._runner = runner
        self.ttl_seconds = ttl_seconds
        self.max_jobs    = max_jobs

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def _prune(self) -> None:
        """Caller holds the lock."""
        now     = time.monotonic()
        settled = [j for j in self._jobs.values() if j.settled is not None]
        for job in settled:
            if now - job.settled >= self.ttl_seconds:
                del self._jobs[job.id]
        settled  = [j for j in self._jobs.values() if j.settled is not None]
        overflow = len(self._jobs) + 1 - self.max_jobs
        for job in settled[:max(0, overflow)]:
            del self._jobs[job.id]

    def submit(self, kind: str, owner_id: str, fn, *args, **kwargs) -> GenerationJob:
        job = GenerationJob(id=new_id(), kind=kind, owner_id=owner_id)
        with self._lock:
            self._prune()
            self._jobs[job.id] = job
        app = current_app._get_current_object()
        self._schedule(app, lambda: self._run(app, job.id, fn, args, kwargs), job.id)
        return job

    def _schedule(self, app, task, job_id: str) -> None:
        if self._runner is not None:
            self._runner(task)
        elif scheduler.running and not app.testing:
            scheduler.add_job(task, id=f"generation-{job_id}")
        else:
            task()

    def _run(self, app, job_id: str, fn, args, kwargs) -> None:
        result, error = None, None
        with app.app_context():
            try:
                output = fn(*args, **kwargs)
                result = output.to_wire() if hasattr(output, "to_wire") else output
            except CheapBiteError as exc:
                error = exc.to_dict()
            except Exception as exc:
                log.exception("Generation job %s crashed", job_id)
                error = ExternalServiceError(str(exc)).to_dict()

        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status == "cancelled":
                log.info("Discarding result of cancelled generation job %s", job_id)
                return
            if error is not None:
                job.status, job.error = "failed", error
            else:
                job.status, job.result = "done", result
            job.settled = time.monotonic()

    def get(self, job_id: str, owner_id: str = None) -> GenerationJob:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is not None and job.settled is not None \
                    and time.monotonic() - job.settled >= self.ttl_seconds:
                del self._jobs[job_id]
                job = None
        if job is None or (owner_id is not None and job.owner_id != owner_id):
            raise NotFound("Generation job not found")
        return job

    def cancel(self, job_id: str, owner_id: str = None) -> GenerationJob:
        job = self.get(job_id, owner_id)
        with self._lock:
            job.status = "cancelled"
            job.result = None
            job.error  = None
            if job.settled is None:
                job.settled = time.monotonic()
        return job

    def result(self, job_id: str, owner_id: str = None):
        """The validated output of a finished job, or None while it is pending or cancelled."""
        job = self.get(job_id, owner_id)
        if job.status == "failed":
            raise ExternalServiceError(job.error.get("message", "Generation failed"))
        return job.result if job.status == "done" else None


def get_generation_jobs() -> GenerationJobs:
    jobs = current_app.extensions.get("cheapbite.generation_jobs")
    if jobs is None:
        cfg  = current_app.config
        jobs = GenerationJobs(
            ttl_seconds=cfg.get("GENERATION_JOB_TTL", 600),
            max_jobs=cfg.get("GENERATION_JOB_LIMIT", 500),
        )
        current_app.extensions["cheapbite.generation_jobs"] = jobs
    return jobs
