"""
End-to-end tests through the Flask test client.

Each user gets their own test client (and so their own session cookie).
"""
import io
import json

from cheapbite.utils.generation import GenerationClient


# ── Auth ──────────────────────────────────────────────────────────────────────

class TestAuth:

    def test_register_and_me(self, client, signed_up):
        uid  = signed_up(client, "alice@example.com", "Alice")
        resp = client.get("/api/auth/me")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["uid"] == uid
        assert data["displayName"] == "Alice"
        assert data["bio"] == "Just joined!"

    def test_duplicate_email(self, client, new_client, signed_up):
        signed_up(client, "alice@example.com")
        resp = new_client().post("/api/auth/register",
                                 json={"email": "alice@example.com", "password": "password123"})
        assert resp.status_code == 400

    def test_login_logout(self, client, new_client, signed_up):
        signed_up(client, "alice@example.com", "Alice")
        other = new_client()
        assert other.post("/api/auth/login",
                          json={"email": "alice@example.com", "password": "wrong-pass"}).status_code == 401
        assert other.post("/api/auth/login",
                          json={"email": "alice@example.com", "password": "password123"}).status_code == 200
        assert other.post("/api/auth/logout").status_code == 200
        assert other.get("/api/auth/me").status_code == 401

    def test_unauthenticated_is_json(self, client):
        resp = client.get("/api/feed")
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "unauthorized"

    def test_unknown_route(self, client):
        resp = client.get("/api/nothing-here")
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "not_found"


# ── Posts, likes, notifications ───────────────────────────────────────────────

class TestFeedFlow:

    def test_post_like_notify(self, client, new_client, signed_up):
        signed_up(client, "alice@example.com", "Alice")
        bob = new_client()
        signed_up(bob, "bob@example.com", "Bob")

        resp = client.post("/api/posts", json={"content": "Lentil soup for a dollar", "tags": ["soup"]})
        assert resp.status_code == 201
        post = resp.get_json()
        assert post["isMine"] is True
        assert post["tags"] == ["soup"]

        liked = bob.post(f"/api/posts/{post['id']}/like").get_json()
        assert liked == {"success": True, "liked": True, "like_count": 1}

        notifs = client.get("/api/notifications").get_json()
        assert notifs["unread"] == 1
        assert notifs["notifications"][0]["type"] == "like"
        assert notifs["notifications"][0]["sender"]["displayName"] == "Bob"

        assert client.post("/api/notifications/mark-read").get_json()["updated"] == 1
        assert client.get("/api/notifications").get_json()["unread"] == 0

        feed = bob.get("/api/feed?scope=explore").get_json()
        assert feed["page"] == 1
        assert feed["posts"][0]["likedByMe"] is True
        assert feed["posts"][0]["isMine"] is False

    def test_empty_comment_rejected(self, client, signed_up):
        signed_up(client, "alice@example.com")
        post = client.post("/api/posts", json={"content": "Rice and beans"}).get_json()
        resp = client.post(f"/api/posts/{post['id']}/comments", json={"text": ""})
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["error"] == "validation"
        assert "text" in body["fields"]

    def test_comment_and_delete(self, client, signed_up):
        signed_up(client, "alice@example.com")
        post = client.post("/api/posts", json={"content": "Oats"}).get_json()
        resp = client.post(f"/api/posts/{post['id']}/comments", json={"text": "Nice"})
        assert resp.status_code == 201
        assert resp.get_json()["comment"]["isMine"] is True
        assert client.get(f"/api/posts/{post['id']}").get_json()["commentCount"] == 1

        assert client.delete(f"/api/posts/{post['id']}").status_code == 200
        assert client.get(f"/api/posts/{post['id']}").status_code == 404

    def test_cannot_delete_someone_elses_post(self, client, new_client, signed_up):
        signed_up(client, "alice@example.com")
        bob = new_client()
        signed_up(bob, "bob@example.com")
        post = client.post("/api/posts", json={"content": "Mine"}).get_json()
        assert bob.delete(f"/api/posts/{post['id']}").status_code == 403

    def test_media_upload_and_serve(self, client, signed_up):
        signed_up(client, "alice@example.com")
        resp = client.post(
            "/api/posts/media",
            data={"file": (io.BytesIO(b"\x89PNG fake"), "dish.png", "image/png")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201
        url = resp.get_json()["mediaURL"]
        assert url.startswith("/media/posts/")
        assert client.get(url).data == b"\x89PNG fake"


# ── Profiles ──────────────────────────────────────────────────────────────────

class TestProfiles:

    def test_update_and_follow(self, client, new_client, signed_up):
        alice_id = signed_up(client, "alice@example.com", "Alice")
        bob = new_client()
        signed_up(bob, "bob@example.com", "Bob")

        resp = client.patch("/api/profiles/me", json={"bio": "Budget cook", "accent_color": "#112233"})
        assert resp.status_code == 200
        assert resp.get_json()["bio"] == "Budget cook"
        assert client.patch("/api/profiles/me", json={"accent_color": "blue"}).status_code == 400

        followed = bob.post(f"/api/profiles/{alice_id}/follow").get_json()
        assert followed["following"] is True
        assert followed["follower_count"] == 1

        profile = bob.get(f"/api/profiles/{alice_id}").get_json()
        assert profile["isFollowing"] is True
        assert profile["isMe"] is False

    def test_self_follow_rejected(self, client, signed_up):
        uid = signed_up(client, "alice@example.com")
        assert client.post(f"/api/profiles/{uid}/follow").status_code == 400


# ── Messages ──────────────────────────────────────────────────────────────────

class TestMessages:

    def test_send_inbox_and_stream(self, client, new_client, signed_up):
        alice_id = signed_up(client, "alice@example.com", "Alice")
        bob = new_client()
        bob_id = signed_up(bob, "bob@example.com", "Bob")

        resp = client.post(f"/api/messages/{bob_id}", json={"text": "Hi"})
        assert resp.status_code == 201

        inbox = bob.get("/api/conversations").get_json()["conversations"]
        assert inbox[0]["peerId"] == alice_id
        assert inbox[0]["lastMessage"] == "Hi"

        thread = bob.get(f"/api/messages/{alice_id}").get_json()
        assert [m["text"] for m in thread["messages"]] == ["Hi"]

        resp  = bob.get(f"/api/messages/{alice_id}/stream")
        assert resp.mimetype == "application/x-ndjson"
        lines = [json.loads(line) for line in resp.get_data(as_text=True).splitlines() if line]
        assert lines[0]["type"] == "message"
        assert lines[0]["message"]["text"] == "Hi"
        assert lines[-1] == {"type": "end"}

        client.post(f"/api/messages/{bob_id}", json={"text": "Still there?"})
        after   = lines[0]["message"]["seq"]
        resumed = bob.get(f"/api/messages/{alice_id}/stream?after={after}")
        texts   = [json.loads(line).get("message", {}).get("text")
                   for line in resumed.get_data(as_text=True).splitlines() if line]
        assert texts == ["Still there?", None]

        assert bob.post(f"/api/messages/{alice_id}/read").get_json()["updated"] == 2

    def test_empty_message(self, client, new_client, signed_up):
        signed_up(client, "alice@example.com")
        bob = new_client()
        bob_id = signed_up(bob, "bob@example.com")
        assert client.post(f"/api/messages/{bob_id}", json={"text": ""}).status_code == 400


# ── Events ────────────────────────────────────────────────────────────────────

class TestEvents:

    def test_create_rsvp_cancel(self, client, new_client, signed_up):
        signed_up(client, "alice@example.com")
        bob = new_client()
        bob_id = signed_up(bob, "bob@example.com")

        resp = client.post("/api/events", json={
            "title": "Potluck", "start_time": "2030-06-01T18:00", "inviteeIds": [bob_id],
        })
        assert resp.status_code == 201
        event = resp.get_json()
        assert event["endTime"] == "2030-06-01T19:00:00"
        assert event["location"] == "TBD"

        resp = bob.post(f"/api/events/{event['id']}/rsvp", json={"attending": True})
        assert bob_id in resp.get_json()["attendees"]
        resp = bob.post(f"/api/events/{event['id']}/rsvp", json={"attending": False})
        assert bob_id not in resp.get_json()["attendees"]

        assert bob.post(f"/api/events/{event['id']}/cancel").status_code == 403
        assert client.post(f"/api/events/{event['id']}/cancel").get_json()["status"] == "cancelled"

    def test_outsider_cannot_view(self, client, new_client, signed_up):
        signed_up(client, "alice@example.com")
        eve = new_client()
        signed_up(eve, "eve@example.com")
        event = client.post("/api/events", json={"title": "Private", "start_time": "2030-06-01T18:00"}).get_json()
        assert eve.get(f"/api/events/{event['id']}").status_code == 403


# ── Generation, saved items, diagnostics ─────────────────────────────────────

class TestGenerationApi:

    def _fake_service(self, app, http, routes):
        session = http.Session(routes)
        app.extensions["cheapbite.generation"] = GenerationClient("http://generation.test", session=session)
        return session

    def test_recipes_and_save(self, app, client, signed_up, http, sample_recipe):
        self._fake_service(app, http, {"/recipes": http.Response(200, {"recipes": [sample_recipe]})})
        signed_up(client, "alice@example.com")

        resp = client.post("/api/generate/recipes", json={"ingredients": ["pasta"]})
        assert resp.status_code == 200
        recipe = resp.get_json()["recipes"][0]
        assert recipe["servingSize"] == "2 servings"

        saved = client.post("/api/saved/recipe", json=recipe)
        assert saved.status_code == 201
        items = client.get("/api/saved/recipe").get_json()["items"]
        assert [i["title"] for i in items] == ["Cheap Pasta"]

        plan = client.put("/api/meal-plan/monday/dinner", json={"recipe": recipe}).get_json()
        assert plan["week"]["monday"]["dinner"]["title"] == "Cheap Pasta"

    def test_service_down(self, app, client, signed_up, http):
        self._fake_service(app, http, {"/recipes": http.Response(503, {"error": "down"})})
        signed_up(client, "alice@example.com")
        resp = client.post("/api/generate/recipes", json={"ingredients": ["pasta"]})
        assert resp.status_code == 502
        assert resp.get_json()["retryable"] is True

    def test_identify_job(self, app, client, signed_up, http, sample_recipe):
        self._fake_service(app, http, {
            "/identify/food": http.Response(200, {"isMeal": False, "items": ["egg"]}),
            "/recipes":       http.Response(200, {"recipes": [sample_recipe]}),
        })
        signed_up(client, "alice@example.com")
        resp = client.post("/api/generate/identify", json={"photoDataUri": "data:image/png;base64,AAAA"})
        assert resp.status_code == 202
        job = resp.get_json()
        assert job["status"] == "done"

        polled = client.get(f"/api/generate/jobs/{job['id']}").get_json()
        assert polled["result"]["recipes"][0]["title"] == "Cheap Pasta"

    def test_identify_rejects_bad_photo_before_submitting(self, app, client, signed_up, http):
        session = self._fake_service(app, http, {})
        signed_up(client, "alice@example.com")
        resp = client.post("/api/generate/identify", json={"photoDataUri": "https://example.com/a.png"})
        assert resp.status_code == 400
        assert "photoDataUri" in resp.get_json()["fields"]
        assert session.calls == []
        assert "cheapbite.generation_jobs" not in app.extensions

    def test_post_image_suggestion(self, app, client, signed_up, http):
        self._fake_service(app, http, {"/post-images": http.Response(200, {
            "category": "Meal", "title": "Sunday Stew", "description": "Rich and cheap.",
        })})
        signed_up(client, "alice@example.com")
        resp = client.post("/api/generate/post-image", json={"photoDataUri": "data:image/png;base64,AAAA"})
        assert resp.status_code == 200
        assert resp.get_json() == {"category": "Meal", "title": "Sunday Stew", "description": "Rich and cheap."}

    def test_write_failures_endpoint(self, client, signed_up):
        signed_up(client, "alice@example.com")
        resp = client.get("/api/diagnostics/write-failures")
        assert resp.get_json() == {"count": 0, "failures": []}
