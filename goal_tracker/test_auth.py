import hashlib
import uuid
from datetime import datetime, timedelta

import pytest
from sqlmodel import Session, select

from goal_tracker.auth import (
    Identity,
    assert_owner,
    authenticate,
    create_access_token,
    decode_access_token,
    get_password_hash,
    is_token_revoked,
    revoke_token,
    verify_password,
    verify_token,
)
from goal_tracker.config import Settings
from goal_tracker.errors import Expired, Forbidden, NotFound, Unauthorized
from goal_tracker.models import ResetToken, RevokedToken
from goal_tracker.reset_tokens import consume_reset_token, hash_reset_token, issue_reset_token


class TestPasswordHashing:
    def test_hash_verifies(self):
        digest = get_password_hash("secret1")
        assert digest != "secret1"
        assert verify_password("secret1", digest)

    def test_wrong_password_rejected(self):
        assert not verify_password("secret2", get_password_hash("secret1"))

    def test_hash_is_salted(self):
        assert get_password_hash("secret1") != get_password_hash("secret1")

    def test_uses_work_factor_10(self):
        assert get_password_hash("secret1").startswith("$2b$10$")

    @pytest.mark.parametrize("digest", ["", "not-a-hash", "$2b$10$tooshort"])
    def test_malformed_hash_returns_false(self, digest):
        assert verify_password("secret1", digest) is False


class TestAccessTokens:
    def test_issue_then_verify(self, settings):
        token = create_access_token("user_1", settings)
        assert verify_token(token, settings) == "user_1"

    def test_claims_carry_token_id_and_expiry(self, settings):
        token = create_access_token("user_1", settings, expires_delta=timedelta(minutes=5))
        claims = decode_access_token(token, settings)
        assert claims.subject == "user_1"
        assert claims.token_id
        assert claims.expires_at > datetime.utcnow()

    def test_each_token_has_its_own_id(self, settings):
        first = decode_access_token(create_access_token("user_1", settings), settings)
        second = decode_access_token(create_access_token("user_1", settings), settings)
        assert first.token_id != second.token_id

    def test_expired_token_is_invalid(self, settings):
        token = create_access_token("user_1", settings, expires_delta=timedelta(seconds=-1))
        assert verify_token(token, settings) is None

    def test_wrong_secret_is_invalid(self, settings):
        token = create_access_token("user_1", Settings(JWT_SECRET_KEY="another-secret"))
        assert verify_token(token, settings) is None

    def test_tampered_token_is_invalid(self, settings):
        token = create_access_token("user_1", settings)
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[::-1]])
        assert decode_access_token(tampered, settings) is None

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_malformed_token_is_invalid(self, settings, token):
        assert decode_access_token(token, settings) is None


class TestAuthenticate:
    def test_resolves_user(self, session, settings, test_user):
        token = create_access_token(test_user.id, settings)
        identity = authenticate(f"Bearer {token}", session, settings)
        assert identity.user.id == test_user.id
        assert identity.user.email == test_user.email

    @pytest.mark.parametrize("header", [None, "", "Bearer", "Token abc", "Bearer a b"])
    def test_missing_or_malformed_header(self, session, settings, header):
        with pytest.raises(Unauthorized):
            authenticate(header, session, settings)

    def test_invalid_token(self, session, settings):
        with pytest.raises(Unauthorized):
            authenticate("Bearer not-a-jwt", session, settings)

    def test_unknown_subject(self, session, settings):
        token = create_access_token("user_missing", settings)
        with pytest.raises(Unauthorized):
            authenticate(f"Bearer {token}", session, settings)

    def test_revoked_token(self, session, settings, test_user):
        token = create_access_token(test_user.id, settings)
        identity = authenticate(f"Bearer {token}", session, settings)
        revoke_token(session, identity)

        assert is_token_revoked(session, identity.token_id)
        with pytest.raises(Unauthorized):
            authenticate(f"Bearer {token}", session, settings)

    def test_revocation_only_affects_that_token(self, session, settings, test_user):
        revoked = create_access_token(test_user.id, settings)
        kept = create_access_token(test_user.id, settings)
        revoke_token(session, authenticate(f"Bearer {revoked}", session, settings))

        assert authenticate(f"Bearer {kept}", session, settings).user.id == test_user.id

    def test_revoke_prunes_expired_entries(self, session, settings, test_user):
        session.add(RevokedToken(jti="old", user_id=test_user.id,
                                 expires_at=datetime.utcnow() - timedelta(days=1)))
        session.commit()

        identity = Identity(user=test_user, token_id="current",
                            token_expires_at=datetime.utcnow() + timedelta(hours=1))
        revoke_token(session, identity)
        revoke_token(session, identity)

        jtis = [row.jti for row in session.exec(select(RevokedToken)).all()]
        assert jtis == ["current"]


class TestOwnership:
    def test_same_owner(self):
        assert_owner("user_1", "user_1")

    def test_different_owner(self):
        with pytest.raises(Forbidden):
            assert_owner("user_1", "user_2")

    def test_compares_canonical_form(self):
        owner = uuid.uuid4()
        assert_owner(owner, str(owner))
        assert_owner(str(owner), owner)
        with pytest.raises(Forbidden):
            assert_owner(owner, str(uuid.uuid4()))


class TestResetTokens:
    def test_issue_stores_only_hash(self, session, test_user):
        raw = issue_reset_token(session, test_user.id)
        stored = session.exec(select(ResetToken)).all()
        assert len(stored) == 1
        assert stored[0].token_hash == hashlib.sha256(raw.encode()).hexdigest()
        assert stored[0].token_hash != raw

    def test_consume_returns_user(self, session, test_user):
        raw = issue_reset_token(session, test_user.id)
        assert consume_reset_token(session, raw) == test_user.id

    def test_single_use(self, session, test_user):
        raw = issue_reset_token(session, test_user.id)
        consume_reset_token(session, raw)
        with pytest.raises(NotFound):
            consume_reset_token(session, raw)

    def test_unknown_token(self, session):
        with pytest.raises(NotFound):
            consume_reset_token(session, "unknown")

    def test_new_token_replaces_previous(self, session, test_user):
        first = issue_reset_token(session, test_user.id)
        second = issue_reset_token(session, test_user.id)

        assert len(session.exec(select(ResetToken)).all()) == 1
        with pytest.raises(NotFound):
            consume_reset_token(session, first)
        assert consume_reset_token(session, second) == test_user.id

    def test_tokens_of_other_users_are_kept(self, session, test_user, other_user):
        mine = issue_reset_token(session, test_user.id)
        issue_reset_token(session, other_user.id)
        assert consume_reset_token(session, mine) == test_user.id

    def test_expired_token(self, session, test_user):
        raw = issue_reset_token(session, test_user.id)
        token = session.exec(
            select(ResetToken).where(ResetToken.token_hash == hash_reset_token(raw))
        ).one()
        token.created_at = datetime.utcnow() - timedelta(seconds=3601)
        session.add(token)
        session.commit()

        with pytest.raises(Expired):
            consume_reset_token(session, raw)
        # Expired tokens are removed on use
        with pytest.raises(NotFound):
            consume_reset_token(session, raw)

    def test_custom_window(self, session, test_user):
        raw = issue_reset_token(session, test_user.id)
        with pytest.raises(Expired):
            consume_reset_token(session, raw, expire_seconds=-1)

    def test_created_at_round_trips_as_naive_utc(self, engine, session, test_user):
        raw = issue_reset_token(session, test_user.id)

        with Session(engine) as fresh:
            token = fresh.exec(select(ResetToken)).one()
            assert token.created_at.tzinfo is None
            assert datetime.utcnow() - token.created_at < timedelta(minutes=1)
            assert consume_reset_token(fresh, raw) == test_user.id

    def test_default_window_follows_settings(self, session, test_user):
        raw = issue_reset_token(session, test_user.id)
        token = session.exec(select(ResetToken)).one()
        token.created_at = datetime.utcnow() - timedelta(seconds=Settings.RESET_TOKEN_EXPIRE_SECONDS - 60)
        session.add(token)
        session.commit()

        assert consume_reset_token(session, raw) == test_user.id
