# tests/test_service.py
from freightflow_auth.exceptions import AuthError
from freightflow_auth.notifier import RESET_SUBJECT

RESET_BASE_URL = "http://localhost:5500/pages/reset-password.html"


def register(service, email="a@x.com", password="pw1", **kwargs):
    return service.register(
        name=kwargs.get("name", "A"),
        email=email,
        phone=kwargs.get("phone"),
        password=password,
        role=kwargs.get("role", "shipper"),
    )


def test_register_then_login(service):
    result = register(service)
    assert result.ok
    assert result.data == {}

    login = service.login("a@x.com", "pw1")
    assert login.ok
    user = login.data["user"]
    assert set(user) == {"id", "name", "email", "role"}
    assert user["name"] == "A"
    assert user["email"] == "a@x.com"
    assert user["role"] == "shipper"


def test_register_stores_hash_not_plaintext(service, store, clock):
    register(service, phone="555-0100")
    user = store.find_by_email("a@x.com")
    assert user.password_hash != "pw1"
    assert user.phone == "555-0100"
    assert user.created_at == clock.now


def test_register_requires_name_email_password(service):
    for missing in ("name", "email", "password"):
        fields = {"name": "A", "email": "a@x.com", "phone": None, "password": "pw1", "role": None}
        fields[missing] = ""
        result = service.register(**fields)
        assert result.error is AuthError.MISSING_FIELDS


def test_register_accepts_any_role(service, store):
    assert register(service, role=None).ok
    assert store.find_by_email("a@x.com").role is None


def test_duplicate_registration_keeps_first_record(service, store):
    assert register(service, name="first").ok
    second = register(service, name="second", password="other")
    assert second.error is AuthError.USER_EXISTS
    assert store.find_by_email("a@x.com").name == "first"
    assert service.login("a@x.com", "pw1").ok


def test_login_failures(service):
    register(service)
    assert service.login("nobody@x.com", "pw1").error is AuthError.USER_NOT_FOUND
    assert service.login("a@x.com", "wrong").error is AuthError.INVALID_PASSWORD
    assert service.login("a@x.com", None).error is AuthError.INVALID_PASSWORD
    assert service.login(None, "pw1").error is AuthError.USER_NOT_FOUND


def test_forgot_password_sends_link(service, store, sender, clock):
    register(service)
    result = service.forgot_password("a@x.com")
    assert result.ok

    to_address, subject, link = sender.outbox[-1]
    assert to_address == "a@x.com"
    assert subject == RESET_SUBJECT
    assert link == f"{RESET_BASE_URL}?token={sender.last_token}"

    user = store.find_by_email("a@x.com")
    assert user.reset_token == sender.last_token
    assert (user.reset_token_expires - clock.now).total_seconds() == 600


def test_forgot_password_unknown_email(service, sender):
    assert service.forgot_password("nobody@x.com").error is AuthError.USER_NOT_FOUND
    assert sender.outbox == []


def test_forgot_password_surfaces_delivery_failure(service, sender):
    register(service)
    sender.fail = True
    result = service.forgot_password("a@x.com")
    assert not result.ok
    assert result.error is AuthError.NOTIFICATION_FAILURE


def test_token_valid_before_expiry_and_invalid_after(service, sender, clock):
    register(service)
    service.forgot_password("a@x.com")
    token = sender.last_token

    clock.advance(seconds=60)
    assert service.verify_token(token).ok
    # verifying does not consume the token
    assert service.verify_token(token).ok

    clock.advance(seconds=540)
    assert service.verify_token(token).error is AuthError.INVALID_OR_EXPIRED_TOKEN
    assert service.reset_password(token, "pw2").error is AuthError.INVALID_OR_EXPIRED_TOKEN
    assert service.login("a@x.com", "pw1").ok


def test_unknown_and_expired_tokens_look_the_same(service, sender, clock):
    register(service)
    service.forgot_password("a@x.com")
    token = sender.last_token
    clock.advance(minutes=11)

    expired = service.verify_token(token)
    unknown = service.verify_token("f" * 64)
    assert (expired.error, expired.message) == (unknown.error, unknown.message)
    assert service.verify_token(None).error is AuthError.INVALID_OR_EXPIRED_TOKEN


def test_reset_password_consumes_token(service, store, sender):
    register(service)
    service.forgot_password("a@x.com")
    token = sender.last_token

    assert service.reset_password(token, "pw2").ok
    assert service.login("a@x.com", "pw2").ok
    assert service.login("a@x.com", "pw1").error is AuthError.INVALID_PASSWORD

    assert service.reset_password(token, "pw3").error is AuthError.INVALID_OR_EXPIRED_TOKEN
    assert service.verify_token(token).error is AuthError.INVALID_OR_EXPIRED_TOKEN

    user = store.find_by_email("a@x.com")
    assert user.reset_token is None
    assert user.reset_token_expires is None


def test_reset_password_requires_new_password(service, sender):
    register(service)
    service.forgot_password("a@x.com")
    token = sender.last_token

    assert service.reset_password(token, "").error is AuthError.MISSING_FIELDS
    assert service.verify_token(token).ok


def test_second_forgot_password_invalidates_first_token(service, sender):
    register(service)
    service.forgot_password("a@x.com")
    first = sender.last_token
    service.forgot_password("a@x.com")
    second = sender.last_token

    assert first != second
    assert service.verify_token(first).error is AuthError.INVALID_OR_EXPIRED_TOKEN
    assert service.verify_token(second).ok


def test_reset_loses_race_when_token_cleared(service, store, sender):
    register(service)
    service.forgot_password("a@x.com")
    token = sender.last_token
    user = store.find_by_email("a@x.com")

    # Another request consumes the token between lookup and update
    original_find = service.store.find_by_valid_token

    def find_then_consume(tok, now):
        found = original_find(tok, now)
        store.update_fields(
            {"password_hash": "other", "reset_token": None, "reset_token_expires": None},
            user_id=user.id,
        )
        return found

    service.store.find_by_valid_token = find_then_consume
    result = service.reset_password(token, "pw2")
    assert result.error is AuthError.INVALID_OR_EXPIRED_TOKEN
    assert store.find_by_id(user.id).password_hash == "other"


def test_register_race_reports_user_exists(service, store, monkeypatch):
    # Both requests pass the up-front lookup; the unique constraint decides
    monkeypatch.setattr(store, "find_by_email", lambda email: None)

    assert register(service, name="A").ok
    second = register(service, name="B", password="other")
    assert not second.ok
    assert second.error is AuthError.USER_EXISTS

    monkeypatch.undo()
    assert store.find_by_email("a@x.com").name == "A"
    assert service.login("a@x.com", "pw1").ok
