"""
Integration tests for login, user management and password reset endpoints.
"""
from datetime import timedelta

import pytest

from landrecords.config import settings
from landrecords.models import User
from landrecords.security import hash_password, utcnow

# JSON allows an escaped lone surrogate; send raw bytes so the client does not re-encode it
_LONE_SURROGATE = "\\ud800"


def _add_user(db, username="asha", password="pw-123", email="asha@example.com", name="Asha", role="user", **extra):
    u = User(username=username, password_hash=hash_password(password), email=email, name=name, role=role, **extra)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def _post_raw(client, url, body):
    return client.post(url, content=body.encode("ascii"), headers={"Content-Type": "application/json"})


class TestLogin:
    """POST /api/login"""

    def test_success_strips_hash(self, client, db):
        """Successful login returns the user without the password hash"""
        u = _add_user(db)
        resp = client.post("/api/login", json={"username": "asha", "password": "pw-123"})
        assert resp.status_code == 200
        body = resp.json()
        assert body == {"id": u.id, "username": "asha", "email": "asha@example.com", "name": "Asha", "role": "user"}
        assert "password_hash" not in body

    def test_wrong_password_and_unknown_user_look_the_same(self, client, db):
        """Bad password and unknown user get the same 401"""
        _add_user(db)
        wrong = client.post("/api/login", json={"username": "asha", "password": "bad"})
        unknown = client.post("/api/login", json={"username": "ghost", "password": "bad"})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json() == {"error": "Invalid credentials"}

    def test_lone_surrogate_password_looks_like_any_failure(self, client, db):
        """Unencodable password is a plain 401 for known and unknown users alike"""
        _add_user(db)
        known = _post_raw(client, "/api/login", '{"username": "asha", "password": "%s"}' % _LONE_SURROGATE)
        unknown = _post_raw(client, "/api/login", '{"username": "ghost", "password": "%s"}' % _LONE_SURROGATE)
        assert known.status_code == unknown.status_code == 401
        assert known.json() == unknown.json() == {"error": "Invalid credentials"}

    def test_username_is_exact_match(self, client, db):
        """Username lookup is case-sensitive"""
        _add_user(db)
        resp = client.post("/api/login", json={"username": "ASHA", "password": "pw-123"})
        assert resp.status_code == 401

    def test_legacy_plaintext_needs_flag(self, client, db, monkeypatch):
        """Stored plaintext only logs in with the legacy flag enabled"""
        u = _add_user(db, username="old")
        u.password_hash = "plain-pw"
        db.commit()
        assert client.post("/api/login", json={"username": "old", "password": "plain-pw"}).status_code == 401
        monkeypatch.setattr(settings, "allow_legacy_plaintext_passwords", True)
        assert client.post("/api/login", json={"username": "old", "password": "plain-pw"}).status_code == 200


class TestUsers:
    """User creation and password change"""

    def test_add_user_then_login(self, client, db):
        """New users are stored hashed with the default role and can log in"""
        resp = client.post("/api/users/add", json={"username": "ravi", "password": "x1", "email": "r@example.com", "name": "Ravi"})
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        stored = db.query(User).filter(User.username == "ravi").one()
        assert stored.password_hash == hash_password("x1")
        assert stored.role == "user"
        assert client.post("/api/login", json={"username": "ravi", "password": "x1"}).status_code == 200

    def test_add_user_with_lone_surrogate_password(self, client, db):
        """Unencodable password is still hashed and stored"""
        resp = _post_raw(client, "/api/users/add", '{"username": "ravi", "password": "%s"}' % _LONE_SURROGATE)
        assert resp.status_code == 200
        stored = db.query(User).filter(User.username == "ravi").one()
        assert stored.password_hash == hash_password("\ud800")

    def test_add_user_keeps_role(self, client, db):
        """Explicit role is kept"""
        client.post("/api/users/add", json={"username": "boss", "password": "x", "role": "admin"})
        assert db.query(User).filter(User.username == "boss").one().role == "admin"

    def test_duplicate_username(self, client, db):
        """Existing username is rejected with 400"""
        _add_user(db, username="ravi")
        resp = client.post("/api/users/add", json={"username": "ravi", "password": "x"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Username already exists"}

    def test_update_password(self, client, db):
        """New password works and the old one stops working"""
        u = _add_user(db)
        resp = client.post("/api/users/update-password", json={"userId": u.id, "newPassword": "fresh"})
        assert resp.status_code == 200
        assert client.post("/api/login", json={"username": "asha", "password": "fresh"}).status_code == 200
        assert client.post("/api/login", json={"username": "asha", "password": "pw-123"}).status_code == 401

    def test_update_password_accepts_string_id(self, client, db):
        """Numeric string user ids are accepted"""
        u = _add_user(db)
        resp = client.post("/api/users/update-password", json={"userId": str(u.id), "newPassword": "fresh"})
        assert resp.status_code == 200

    def test_update_password_unknown_user(self, client):
        """Unknown user id is a 404"""
        resp = client.post("/api/users/update-password", json={"userId": 999, "newPassword": "fresh"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "User not found"}


class TestPasswordReset:
    """Forgot-password mail and token redemption"""

    def test_forgot_password_sends_link(self, client, db, mailer):
        """A known user gets a fresh token and a mailed reset link"""
        u = _add_user(db)
        resp = client.post("/api/forgot-password", json={"identifier": "asha"})
        assert resp.status_code == 200
        db.refresh(u)
        assert u.reset_token and len(u.reset_token) == 64
        assert u.reset_expires > utcnow() + timedelta(minutes=59)
        assert len(mailer.sent) == 1
        assert mailer.sent[0]["to"] == "asha@example.com"
        assert f"reset-password?token={u.reset_token}" in mailer.sent[0]["body"]

    def test_forgot_password_by_email(self, client, db, mailer):
        """E-mail identifiers match case-insensitively"""
        _add_user(db)
        client.post("/api/forgot-password", json={"identifier": "ASHA@example.com"})
        assert len(mailer.sent) == 1

    def test_unknown_identifier_gets_same_answer(self, client, db, mailer):
        """Unknown identifiers get the same response and no mail"""
        _add_user(db)
        known = client.post("/api/forgot-password", json={"identifier": "asha"})
        unknown = client.post("/api/forgot-password", json={"identifier": "nobody"})
        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()
        assert len(mailer.sent) == 1

    def test_mail_failure_is_not_reported(self, client, db, mailer):
        """Delivery failure does not change the response"""
        _add_user(db)
        mailer.ok = False
        resp = client.post("/api/forgot-password", json={"identifier": "asha"})
        assert resp.status_code == 200

    def test_second_request_replaces_token(self, client, db):
        """Only the latest token stays valid"""
        u = _add_user(db)
        client.post("/api/forgot-password", json={"identifier": "asha"})
        db.refresh(u)
        first = u.reset_token
        client.post("/api/forgot-password", json={"identifier": "asha"})
        db.refresh(u)
        assert u.reset_token != first
        resp = client.post("/api/reset-password", json={"token": first, "password": "new"})
        assert resp.status_code == 400

    def test_reset_with_valid_token(self, client, db):
        """Valid token sets the password and is consumed"""
        u = _add_user(db)
        client.post("/api/forgot-password", json={"identifier": "asha"})
        db.refresh(u)
        token = u.reset_token
        resp = client.post("/api/reset-password", json={"token": token, "password": "brand-new"})
        assert resp.status_code == 200
        db.expire_all()
        u = db.get(User, u.id)
        assert u.password_hash == hash_password("brand-new")
        assert u.reset_token is None and u.reset_expires is None
        # Single use
        again = client.post("/api/reset-password", json={"token": token, "password": "other"})
        assert again.status_code == 400

    def test_reset_to_lone_surrogate_password(self, client, db):
        """Unencodable new password is hashed rather than failing the reset"""
        u = _add_user(db, reset_token="c" * 64, reset_expires=utcnow() + timedelta(hours=1))
        resp = _post_raw(client, "/api/reset-password", '{"token": "%s", "password": "%s"}' % ("c" * 64, _LONE_SURROGATE))
        assert resp.status_code == 200
        db.expire_all()
        assert db.get(User, u.id).password_hash == hash_password("\ud800")

    def test_expired_token_fails(self, client, db):
        """Expired token is rejected and the password is unchanged"""
        u = _add_user(db, reset_token="a" * 64, reset_expires=utcnow() - timedelta(seconds=1))
        resp = client.post("/api/reset-password", json={"token": "a" * 64, "password": "brand-new"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid or expired token"}
        db.expire_all()
        assert db.get(User, u.id).password_hash == hash_password("pw-123")

    @pytest.mark.parametrize("token", ["", "   ", "not-a-token"])
    def test_unknown_token_fails(self, client, db, token):
        """Blank or unknown tokens are rejected"""
        _add_user(db, reset_token="b" * 64, reset_expires=utcnow() + timedelta(hours=1))
        resp = client.post("/api/reset-password", json={"token": token, "password": "x"})
        assert resp.status_code == 400
