from datetime import timedelta

import pytest

from src.field_attendance.field_attendance.core.exceptions import (
    AccountDeactivated,
    AuthenticationError,
    SessionInvalidated,
    TokenExpired,
    TooManyRequests,
)
from src.field_attendance.field_attendance.sessions.model import SessionMeta

CHROME_ANDROID = "Mozilla/5.0 (Linux; Android 13) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Mobile Safari/537.36"


@pytest.fixture
def auth(container):
    return container.auth_service


def test_login_opens_session_and_records_activity(auth, password, container, users, activities, fixed_now):
    result = auth.login("USER1@example.org", password, client_key="10.0.0.1", now=fixed_now)

    assert result.user.user_id == 1
    assert container.session_manager.validate(result.access_token, now=fixed_now).session_id == result.session.session_id
    assert users.get_by_id(1).last_login_at == fixed_now
    assert activities.actions() == ["login"]
    body = result.to_dict()
    assert body["token"] == result.access_token
    assert "password_hash" not in body["user"]


def test_second_login_supersedes_first(auth, password, container, fixed_now):
    first = auth.login("user1@example.org", password, client_key="a", now=fixed_now)
    second = auth.login("user1@example.org", password, client_key="b", now=fixed_now)

    assert first.access_token != second.access_token
    with pytest.raises(SessionInvalidated):
        container.session_manager.validate(first.access_token, now=fixed_now)


def test_wrong_password_is_audited(auth, password, activities, fixed_now):
    with pytest.raises(AuthenticationError):
        auth.login("user1@example.org", "wrong-password", client_key="10.0.0.1", now=fixed_now)

    [entry] = activities.entries
    assert entry.action == "login_failed"
    assert entry.metadata["ip_address"] is None


def test_unknown_email_gives_same_error(auth, password, fixed_now):
    with pytest.raises(AuthenticationError) as exc:
        auth.login("nobody@example.org", password, client_key="10.0.0.1", now=fixed_now)

    assert exc.value.message == "Invalid credentials"


def test_inactive_account_cannot_log_in(auth, password, fixed_now):
    with pytest.raises(AccountDeactivated):
        auth.login("user3@example.org", password, client_key="10.0.0.1", now=fixed_now)


def test_repeated_failures_block_the_client(auth, password, fixed_now):
    for _ in range(5):
        with pytest.raises(AuthenticationError):
            auth.login("user1@example.org", "bad", client_key="10.0.0.9", now=fixed_now)

    with pytest.raises(TooManyRequests) as exc:
        auth.login("user1@example.org", password, client_key="10.0.0.9", now=fixed_now)
    assert exc.value.details["retry_after"] == 1800

    result = auth.login("user1@example.org", password, client_key="10.0.0.9", now=fixed_now + timedelta(minutes=31))
    assert result.user.user_id == 1


def test_login_with_fingerprint_registers_device(auth, password, devices_repo, fixed_now):
    meta = SessionMeta(device_fingerprint="fp-123", user_agent=CHROME_ANDROID)

    result = auth.login("user1@example.org", password, client_key="x", meta=meta, now=fixed_now)

    assert result.device is not None
    assert (result.device.browser, result.device.platform) == ("Chrome", "Android")
    assert result.device.is_active is False
    assert len(devices_repo.list_for_user(1)) == 1


def test_refresh_issues_a_new_session(auth, password, container, fixed_now):
    first = auth.login("user1@example.org", password, client_key="x", now=fixed_now)

    refreshed = auth.refresh(first.refresh_token, now=fixed_now + timedelta(hours=1))

    assert refreshed.user.user_id == 1
    with pytest.raises(SessionInvalidated):
        container.session_manager.validate(first.access_token, now=fixed_now + timedelta(hours=1))


def test_refresh_rejects_access_tokens_and_expired_tokens(auth, password, fixed_now):
    first = auth.login("user1@example.org", password, client_key="x", now=fixed_now)

    with pytest.raises(SessionInvalidated):
        auth.refresh(first.access_token, now=fixed_now)
    with pytest.raises(TokenExpired):
        auth.refresh(first.refresh_token, now=fixed_now + timedelta(days=8))


def test_logout_records_activity(auth, password, container, activities, fixed_now):
    result = auth.login("user1@example.org", password, client_key="x", now=fixed_now)

    auth.logout(result.user, result.session, now=fixed_now)

    assert activities.actions()[-1] == "logout"
    with pytest.raises(SessionInvalidated):
        container.session_manager.validate(result.access_token, now=fixed_now)
