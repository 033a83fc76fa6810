from __future__ import annotations

import asyncio
import time
from typing import Optional

import httpx
from fastapi.testclient import TestClient

API = "/api/v1"


def _register(client: TestClient, email: str = "a@x.com", password: str = "pw-123456",
              avatar: Optional[bytes] = None):
    files = {"avatar": ("me.png", avatar, "image/png")} if avatar is not None else None
    return client.post(
        f"{API}/user/register",
        data={"full_name": "Ada Lovelace", "email": email, "password": password},
        files=files,
    )


def _create_course(client: TestClient, title: str = "Python 101"):
    response = client.post(
        f"{API}/courses",
        data={"title": title, "description": "Basics", "category": "Programming", "created_by": "Ada"},
    )
    assert response.status_code == 201, response.text
    return response.json()["course"]


def test_health(client):
    assert client.get("/health").json() == {"success": True, "message": "ok", "database": True}


def test_register_sets_session_cookie_and_hides_password(client):
    response = _register(client)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["user"]["email"] == "a@x.com"
    assert "password" not in str(body)
    assert body["user"]["avatar"]["public_id"] == "a@x.com"

    cookie = response.headers["set-cookie"].lower()
    assert cookie.startswith("token=")
    assert "httponly" in cookie and "secure" in cookie
    assert "max-age=604800" in cookie


def test_register_with_avatar_uploads_it(client, media_store):
    response = _register(client, avatar=b"png-bytes")

    assert response.status_code == 201
    assert response.json()["user"]["avatar"]["public_id"] == "lms/asset-1"
    options = media_store.uploads[0][1]
    assert (options.width, options.height, options.gravity, options.crop) == (250, 250, "faces", "fill")


def test_duplicate_email_is_rejected_with_error_envelope(client):
    _register(client)
    response = _register(client, email="A@X.com")

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Email already exists"}


def test_login_logout_and_profile(client):
    _register(client)
    client.cookies.clear()

    assert client.get(f"{API}/user/me").status_code == 401

    bad = client.post(f"{API}/user/login", json={"email": "a@x.com", "password": "nope"})
    assert bad.status_code == 400
    assert bad.json()["success"] is False

    ok = client.post(f"{API}/user/login", json={"email": "a@x.com", "password": "pw-123456"})
    assert ok.status_code == 200
    assert client.get(f"{API}/user/me").json()["user"]["full_name"] == "Ada Lovelace"

    out = client.get(f"{API}/user/logout")
    assert "max-age=0" in out.headers["set-cookie"].lower()
    assert client.get(f"{API}/user/me").status_code == 401


def test_bearer_token_is_accepted(client, tokens):
    user_id = _register(client).json()["user"]["id"]
    client.cookies.clear()

    token = tokens.issue_session_token(user_id)
    response = client.get(f"{API}/user/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200


def test_forgot_then_reset_password_once(client, mailer):
    _register(client, password="old-password")

    sent = client.post(f"{API}/user/reset", json={"email": "a@x.com"})
    assert sent.status_code == 200
    token = mailer.last_reset_token()

    reset = client.post(f"{API}/user/reset/{token}", json={"password": "new-password"})
    assert reset.status_code == 200
    assert reset.json()["success"] is True

    again = client.post(f"{API}/user/reset/{token}", json={"password": "third-password"})
    assert again.status_code == 400
    assert again.json() == {"success": False, "message": "Token is invalid or expired, please try again"}

    login = client.post(f"{API}/user/login", json={"email": "a@x.com", "password": "new-password"})
    assert login.status_code == 200


def test_forgot_password_delivery_failure_leaves_no_usable_token(client, mailer, tokens, db):
    from lms_api.models.user import User

    _register(client)
    mailer.fail = True

    response = client.post(f"{API}/user/reset", json={"email": "a@x.com"})
    assert response.status_code == 500
    assert response.json()["success"] is False

    db.expire_all()
    user = db.query(User).filter(User.email == "a@x.com").one()
    assert user.forgot_password_token is None
    assert user.forgot_password_expiry is None


def test_forgot_password_unknown_email(client):
    response = client.post(f"{API}/user/reset", json={"email": "ghost@x.com"})
    assert response.status_code == 400
    assert response.json()["message"] == "Email is not registered"


def test_change_password(client):
    _register(client, password="old-password")

    wrong = client.post(
        f"{API}/user/change-password",
        json={"old_password": "bad", "new_password": "new-password"},
    )
    assert wrong.status_code == 400

    ok = client.post(
        f"{API}/user/change-password",
        json={"old_password": "old-password", "new_password": "new-password"},
    )
    assert ok.status_code == 200


def test_update_user_replaces_avatar(client, media_store):
    user_id = _register(client, avatar=b"first").json()["user"]["id"]

    response = client.put(
        f"{API}/user/update/{user_id}",
        data={"full_name": "Ada King"},
        files={"avatar": ("new.png", b"second", "image/png")},
    )

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["full_name"] == "Ada King"
    assert user["avatar"]["public_id"] == "lms/asset-2"
    assert media_store.destroyed == [("lms/asset-1", None)]


def test_update_other_user_is_forbidden(client):
    first_id = _register(client).json()["user"]["id"]
    _register(client, email="b@x.com")

    response = client.put(f"{API}/user/update/{first_id}", data={"full_name": "Hacker"})
    assert response.status_code == 403


def test_course_management_requires_login(client):
    response = client.post(
        f"{API}/courses",
        data={"title": "t", "description": "d", "category": "c", "created_by": "x"},
    )
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_course_lecture_lifecycle(client, media_store, upload_root):
    _register(client)
    course = _create_course(client)

    for title in ("Intro", "Loops"):
        response = client.post(
            f"{API}/courses/{course['id']}",
            data={"title": title, "description": f"{title} lecture"},
            files={"lecture": (f"{title}.mp4", b"video-bytes", "video/mp4")},
        )
        assert response.status_code == 200, response.text

    detail = response.json()["course"]
    assert detail["lecture_count"] == 2
    first, second = detail["lectures"]
    assert first["lecture"]["public_id"] == "lms/asset-1"

    removed = client.delete(f"{API}/courses", params={"courseId": course["id"], "lectureId": first["id"]})
    assert removed.status_code == 200
    assert media_store.destroyed == [("lms/asset-1", "video")]

    lectures = client.get(f"{API}/courses/{course['id']}").json()["lectures"]
    assert [lecture["id"] for lecture in lectures] == [second["id"]]

    listing = client.get(f"{API}/courses").json()["courses"]
    assert listing[0]["lecture_count"] == 1
    assert "lectures" not in listing[0]

    # Staged uploads do not outlive their request
    assert list(upload_root.iterdir()) == []


def test_failed_lecture_upload_adds_nothing(client, media_store, upload_root):
    _register(client)
    course = _create_course(client)
    media_store.fail_upload = True

    response = client.post(
        f"{API}/courses/{course['id']}",
        data={"title": "Intro", "description": "first"},
        files={"lecture": ("intro.mp4", b"video-bytes", "video/mp4")},
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "File not uploaded, please try again"}
    assert client.get(f"{API}/courses/{course['id']}").json()["lectures"] == []
    assert list(upload_root.iterdir()) == []


def test_add_lecture_to_unknown_course_discards_upload(client, upload_root):
    _register(client)

    response = client.post(
        f"{API}/courses/999",
        data={"title": "Intro", "description": "first"},
        files={"lecture": ("intro.mp4", b"video-bytes", "video/mp4")},
    )

    assert response.status_code == 400
    assert list(upload_root.iterdir()) == []


def test_remove_missing_lecture_and_missing_params(client):
    _register(client)
    course = _create_course(client)

    missing = client.delete(f"{API}/courses", params={"courseId": course["id"], "lectureId": 12345})
    assert missing.status_code == 404
    assert missing.json()["message"] == "Lecture does not exist."

    no_params = client.delete(f"{API}/courses")
    assert no_params.status_code == 400
    assert no_params.json()["success"] is False


def test_update_course_validates_partial_patch(client):
    _register(client)
    course = _create_course(client)

    ok = client.put(f"{API}/courses/{course['id']}", json={"category": "Data"})
    assert ok.status_code == 200
    assert ok.json()["course"]["category"] == "Data"
    assert ok.json()["course"]["title"] == "Python 101"

    blank = client.put(f"{API}/courses/{course['id']}", json={"title": "  "})
    assert blank.status_code == 400

    derived = client.put(f"{API}/courses/{course['id']}", json={"lecture_count": 10})
    assert derived.status_code == 400


def test_remove_course(client):
    _register(client)
    course = _create_course(client)

    assert client.delete(f"{API}/courses/{course['id']}").status_code == 200
    assert client.get(f"{API}/courses/{course['id']}").status_code == 400


def test_slow_media_upload_does_not_block_other_requests(app, media_store):
    media_store.upload_delay = 1.5

    async def scenario():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="https://testserver") as ac:
            upload = asyncio.create_task(ac.post(
                f"{API}/user/register",
                data={"full_name": "Ada Lovelace", "email": "a@x.com", "password": "pw-123456"},
                files={"avatar": ("me.png", b"png-bytes", "image/png")},
            ))
            await asyncio.sleep(0.3)

            started = time.perf_counter()
            other = await ac.get(f"{API}/user/logout")
            latency = time.perf_counter() - started

            return await upload, other, latency

    registered, other, latency = asyncio.run(scenario())

    assert other.status_code == 200
    assert latency < 0.5
    assert registered.status_code == 201
    assert registered.json()["user"]["avatar"]["public_id"] == "lms/asset-1"


def test_register_rejects_blank_name(client):
    response = client.post(
        f"{API}/user/register",
        data={"full_name": "   ", "email": "a@x.com", "password": "pw-123456"},
    )
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "All fields are required"}


def test_update_user_ignores_blank_name(client):
    user_id = _register(client).json()["user"]["id"]

    response = client.put(f"{API}/user/update/{user_id}", data={"full_name": "   "})

    assert response.status_code == 200
    assert response.json()["user"]["full_name"] == "Ada Lovelace"
