"""Tests for registration, login sessions and principal resolution."""

import pytest

from filegate.core.errors import (
    AlreadyExistsError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from filegate.services.auth import AVAILABLE, FORBIDDEN, TAKEN, AuthService


def test_register_then_login_resolves_username(auth_service) -> None:
    auth_service.register("bob@example.com", "hunter2", "bob")

    session_id = auth_service.login("bob@example.com", "hunter2", "curl/8", "10.0.0.1")

    assert auth_service.resolve_principal(session_id) == "bob"


def test_password_is_stored_hashed(auth_service) -> None:
    auth_service.register("bob@example.com", "hunter2", "bob")

    user = auth_service.users.get("bob@example.com")

    assert user.password != "hunter2"
    assert "hunter2" not in user.password


def test_register_same_email_fails_regardless_of_username(auth_service) -> None:
    auth_service.register("bob@example.com", "hunter2", "bob")

    with pytest.raises(AlreadyExistsError):
        auth_service.register("bob@example.com", "other", "robert")


def test_register_duplicate_username_surfaces_store_conflict(auth_service) -> None:
    auth_service.register("bob@example.com", "hunter2", "bob")

    with pytest.raises(ConflictError):
        auth_service.register("bobby@example.com", "hunter2", "bob")


@pytest.mark.parametrize(
    "email,password,username",
    [("", "pw", "u"), ("e@x.io", "", "u"), ("e@x.io", "pw", "")],
)
def test_register_requires_all_fields(auth_service, email, password, username) -> None:
    with pytest.raises(ValidationError):
        auth_service.register(email, password, username)


def test_register_does_not_reject_reserved_names(auth_service) -> None:
    auth_service.register("root@example.com", "toor", "root")

    assert auth_service.check_username("root") == FORBIDDEN
    assert auth_service.users.username_exists("root")


def test_check_username(auth_service) -> None:
    auth_service.register("bob@example.com", "hunter2", "bob")

    assert auth_service.check_username("anon") == FORBIDDEN
    assert auth_service.check_username("admin") == FORBIDDEN
    assert auth_service.check_username("bob") == TAKEN
    assert auth_service.check_username("carol") == AVAILABLE


def test_login_unknown_email(auth_service) -> None:
    with pytest.raises(NotFoundError):
        auth_service.login("nobody@example.com", "pw", "", "")


def test_login_wrong_password_issues_no_session(auth_service) -> None:
    auth_service.register("bob@example.com", "hunter2", "bob")

    with pytest.raises(UnauthorizedError):
        auth_service.login("bob@example.com", "hunter3", "", "")

    assert auth_service.sessions.list_for("bob@example.com") == []


def test_logout_revokes_session(auth_service, alice_session) -> None:
    auth_service.logout(alice_session)

    with pytest.raises(UnauthorizedError):
        auth_service.resolve_principal(alice_session)


def test_logout_is_idempotent(auth_service, alice_session) -> None:
    auth_service.logout(alice_session)
    auth_service.logout(alice_session)
    auth_service.logout("never-issued")


def test_logout_requires_session_id(auth_service) -> None:
    with pytest.raises(UnauthorizedError):
        auth_service.logout("")


def test_resolve_unknown_session(auth_service) -> None:
    with pytest.raises(UnauthorizedError):
        auth_service.resolve_principal("deadbeef")


def test_session_ids_are_unique_and_long(auth_service) -> None:
    auth_service.register("bob@example.com", "hunter2", "bob")

    ids = {auth_service.login("bob@example.com", "hunter2", "", "") for _ in range(3)}

    assert len(ids) == 3
    assert all(len(i) == 64 for i in ids)


def test_describe_marks_current_session(auth_service, alice_session) -> None:
    other = auth_service.login("alice@example.com", "wonderland", "firefox", "10.0.0.2")

    me = auth_service.describe(alice_session)

    assert me["email"] == "alice@example.com"
    assert me["username"] == "alice"
    assert len(me["sessions"]) == 2
    current = [s for s in me["sessions"] if s["current"]]
    assert len(current) == 1
    assert current[0]["agent"] == "pytest"

    me_other = auth_service.describe(other)
    assert [s["agent"] for s in me_other["sessions"] if s["current"]] == ["firefox"]


def test_login_records_location_from_lookup(auth_service) -> None:
    service = AuthService(
        auth_service.users,
        auth_service.sessions,
        locate=lambda ip: f"Somewhere, {ip}, XX",
    )
    service.register("carol@example.com", "pw", "carol")

    session_id = service.login("carol@example.com", "pw", "agent", "1.2.3.4")

    assert service.sessions.get(session_id).location == "Somewhere, 1.2.3.4, XX"


def test_login_without_lookup_records_unknown(auth_service, alice_session) -> None:
    assert auth_service.sessions.get(alice_session).location == "unknown"


def test_deleting_user_cascades_sessions(app, auth_service, alice_session) -> None:
    from filegate.models.database import make_session_factory
    from filegate.models.user import User

    factory = make_session_factory(app.state.engine)
    with factory() as db:
        db.delete(db.get(User, "alice@example.com"))
        db.commit()

    assert auth_service.sessions.get(alice_session) is None
