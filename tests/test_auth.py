import pytest
from sqlalchemy import text as sa_text

from core.auth import AuthError, change_password, session_user, sign_in, sign_out, sign_up
from core.rbac import set_active
from core.settings import load_settings


def _admin_credentials():
    auth = load_settings().auth
    return auth.seed_admin_email, auth.seed_admin_password


def test_seeded_admin_can_sign_in(engine):
    email, password = _admin_credentials()
    session = sign_in(engine, email.upper(), password)
    assert session.profile.role == "admin"
    assert session_user(engine, session.token).email == email


def test_wrong_password(engine):
    email, _ = _admin_credentials()
    with pytest.raises(AuthError, match="Invalid email or password"):
        sign_in(engine, email, "wrong-password")


def test_unknown_email(engine):
    with pytest.raises(AuthError):
        sign_in(engine, "nobody@school.local", "whatever1")


def test_sign_out_revokes_token(engine, nurse):
    session = sign_in(engine, "nurse@school.local", "nurse-pass-1")
    sign_out(engine, session.token)
    assert session_user(engine, session.token) is None


def test_expired_session(engine, nurse):
    session = sign_in(engine, "nurse@school.local", "nurse-pass-1", ttl_hours=0)
    assert session_user(engine, session.token) is None


def test_no_token():
    assert session_user(None, None) is None


def test_sign_up_rules(engine, nurse):
    with pytest.raises(AuthError, match="at least 8"):
        sign_up(engine, "short@school.local", "short")
    with pytest.raises(AuthError):
        sign_up(engine, "nurse@school.local", "another-pass")
    with pytest.raises(AuthError):
        sign_up(engine, "not-an-email", "long-enough-1")


def test_deactivated_account(engine, nurse, admin_store):
    session = sign_in(engine, "nurse@school.local", "nurse-pass-1")
    set_active(admin_store, nurse.id, False)
    assert session_user(engine, session.token) is None
    with pytest.raises(AuthError, match="deactivated"):
        sign_in(engine, "nurse@school.local", "nurse-pass-1")


def test_change_password_revokes_sessions(engine, nurse):
    session = sign_in(engine, "nurse@school.local", "nurse-pass-1")
    with pytest.raises(AuthError, match="incorrect"):
        change_password(engine, nurse.id, "bad-guess", "new-pass-123")
    change_password(engine, nurse.id, "nurse-pass-1", "new-pass-123")
    assert session_user(engine, session.token) is None
    assert sign_in(engine, "nurse@school.local", "new-pass-123").profile.id == nurse.id


def test_sign_in_purges_expired_sessions(engine, nurse):
    stale = [sign_in(engine, "nurse@school.local", "nurse-pass-1", ttl_hours=0).token for _ in range(2)]
    live = sign_in(engine, "nurse@school.local", "nurse-pass-1").token
    with engine.connect() as conn:
        tokens = [r[0] for r in conn.execute(sa_text("SELECT token FROM auth_sessions"))]
    assert tokens == [live]
    assert not set(stale) & set(tokens)
