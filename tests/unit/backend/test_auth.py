"""
Unit tests for bearer-token actor resolution.
"""

import uuid

import jwt

from housekeeping.services.auth import AuthService


class TestAuthService:

    def setup_method(self):
        self.auth = AuthService(secret="unit-test-secret-0123456789abcdef", algorithm="HS256")

    def test_round_trip_actor(self):
        user_id = uuid.uuid4()
        token = self.auth.create_access_token(user_id, "housekeeping", "Maria")

        actor = self.auth.get_actor_from_token(token)

        assert actor.user_id == user_id
        assert actor.role == "housekeeping"
        assert actor.display_name == "Maria"

    def test_expired_token(self):
        token = self.auth.create_access_token(uuid.uuid4(), "housekeeping", expires_minutes=-1)
        assert self.auth.get_actor_from_token(token) is None

    def test_wrong_secret(self):
        token = AuthService(secret="another-secret-0123456789abcdefgh", algorithm="HS256").create_access_token(uuid.uuid4(), "admin")
        assert self.auth.get_actor_from_token(token) is None

    def test_garbage_token(self):
        assert self.auth.get_actor_from_token("not-a-jwt") is None

    def test_missing_role_claim(self):
        token = jwt.encode({"sub": str(uuid.uuid4())}, "unit-test-secret-0123456789abcdef", algorithm="HS256")
        assert self.auth.get_actor_from_token(token) is None

    def test_non_uuid_subject(self):
        token = jwt.encode({"sub": "maria", "role": "housekeeping"}, "unit-test-secret-0123456789abcdef", algorithm="HS256")
        assert self.auth.get_actor_from_token(token) is None
