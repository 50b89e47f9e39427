import pytest

from errors import (
    ConflictError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidInputError,
    NotFoundError,
    PendingApprovalError,
    SigningError,
)
from models import NotificationType


def test_register_creates_unapproved_user_and_returns_token(ctx):
    result = ctx.accounts.register("Test User", "test@example.com", "1234567890", "password123")

    user = ctx.users.find_by_id(result.user_id)
    assert user is not None
    assert user.email == "test@example.com"
    assert user.is_approved is False
    assert user.is_admin is False
    assert user.password_hash != "password123"
    assert ctx.hasher.verify("password123", user.password_hash)

    claims = ctx.tokens.decode(result.token)
    assert claims["user"] == {"id": result.user_id}


def test_register_notifies_each_admin_once(ctx, make_user):
    admins = [make_user(name=f"Admin {i}", admin=True) for i in range(2)]

    ctx.accounts.register("Test User", "test@example.com", "1234567890", "password123")

    for admin in admins:
        notifications = ctx.notifications.get_notifications(admin.id)
        assert len(notifications) == 1
        assert notifications[0].message == "New user registered: Test User"
        assert notifications[0].type == NotificationType.NEW_USER


def test_register_duplicate_email_conflicts_without_notifying(ctx, make_user):
    admin = make_user(admin=True)
    make_user(email="existing@example.com")

    with pytest.raises(ConflictError, match="User already exists"):
        ctx.accounts.register("Someone", "existing@example.com", "1234567890", "password123")

    assert ctx.notifications.get_notifications(admin.id) == []


def test_register_succeeds_when_notification_store_fails(ctx, make_user, monkeypatch):
    make_user(admin=True)

    def failing_insert(notification):
        raise RuntimeError("Database error")

    monkeypatch.setattr(ctx.notification_store, "insert", failing_insert)

    result = ctx.accounts.register("Test User", "test@example.com", "1234567890", "password123")
    assert ctx.users.find_by_id(result.user_id) is not None


def test_register_propagates_signing_failure(ctx, monkeypatch):
    def broken_sign(claims):
        raise SigningError("no key")

    monkeypatch.setattr(ctx.tokens, "sign", broken_sign)
    with pytest.raises(SigningError):
        ctx.accounts.register("Test User", "test@example.com", "1234567890", "password123")


def test_login_approved_user(ctx, make_user):
    user = make_user(email="test@example.com", password="correctPassword")

    result = ctx.accounts.login("test@example.com", "correctPassword")

    assert result.is_admin is False
    claims = ctx.tokens.decode(result.token)
    assert claims["user"] == {"id": user.id, "isAdmin": False}


def test_login_admin_token_carries_admin_flag(ctx, make_user):
    admin = make_user(email="admin@example.com", password="correctPassword", admin=True)

    result = ctx.accounts.login("admin@example.com", "correctPassword")

    assert result.is_admin is True
    assert ctx.tokens.decode(result.token)["user"] == {"id": admin.id, "isAdmin": True}


def test_login_unknown_email(ctx):
    with pytest.raises(InvalidCredentialsError, match="Invalid credentials"):
        ctx.accounts.login("nonexistent@example.com", "whatever")


def test_login_wrong_password(ctx, make_user):
    make_user(email="test@example.com", password="correctPassword")
    with pytest.raises(InvalidCredentialsError, match="Invalid credentials"):
        ctx.accounts.login("test@example.com", "wrongPassword")


def test_login_unknown_email_and_wrong_password_look_the_same(ctx, make_user):
    make_user(email="test@example.com", password="correctPassword")

    with pytest.raises(InvalidCredentialsError) as unknown:
        ctx.accounts.login("nobody@example.com", "correctPassword")
    with pytest.raises(InvalidCredentialsError) as wrong:
        ctx.accounts.login("test@example.com", "wrongPassword")

    assert unknown.value.message == wrong.value.message
    assert unknown.value.status_code == wrong.value.status_code


def test_login_pending_approval(ctx, make_user):
    make_user(email="test@example.com", password="correctPassword", approved=False)
    with pytest.raises(PendingApprovalError, match="pending approval"):
        ctx.accounts.login("test@example.com", "correctPassword")


def test_login_pending_user_with_wrong_password_is_invalid_credentials(ctx, make_user):
    make_user(email="test@example.com", password="correctPassword", approved=False)
    with pytest.raises(InvalidCredentialsError):
        ctx.accounts.login("test@example.com", "wrongPassword")


@pytest.mark.parametrize("approved", [True, False])
@pytest.mark.parametrize("password_ok", [True, False])
def test_login_only_succeeds_when_approved_and_password_matches(ctx, make_user, approved, password_ok):
    make_user(email="grid@example.com", password="secret-pass", approved=approved)
    attempt = "secret-pass" if password_ok else "not-it"

    if approved and password_ok:
        assert ctx.accounts.login("grid@example.com", attempt).token
    elif not password_ok:
        with pytest.raises(InvalidCredentialsError):
            ctx.accounts.login("grid@example.com", attempt)
    else:
        with pytest.raises(PendingApprovalError):
            ctx.accounts.login("grid@example.com", attempt)


def test_login_sends_no_notifications(ctx, make_user):
    admin = make_user(admin=True, email="admin@example.com", password="pw123456")
    ctx.accounts.login("admin@example.com", "pw123456")
    assert ctx.notifications.get_notifications(admin.id) == []


def test_get_user(ctx, make_user):
    user = make_user(name="Test User")
    public = ctx.accounts.get_user(user.id)
    assert public.name == "Test User"
    assert not hasattr(public, "password_hash")


def test_get_user_not_found(ctx):
    with pytest.raises(NotFoundError, match="User not found"):
        ctx.accounts.get_user("nonexistentId")


def test_update_user_self(ctx, make_user):
    user = make_user(name="Original Name")

    updated = ctx.accounts.update_user(user.id, user.id, name="Updated Name", phone_number="9876543210")

    assert updated.name == "Updated Name"
    assert updated.phone_number == "9876543210"
    assert ctx.users.find_by_id(user.id).name == "Updated Name"


def test_update_user_forbidden_for_others(ctx, make_user):
    owner = make_user(name="Owner")
    other = make_user(name="Other")

    with pytest.raises(ForbiddenError, match="Not authorized to update this user"):
        ctx.accounts.update_user(owner.id, other.id, name="Hacked")
    assert ctx.users.find_by_id(owner.id).name == "Owner"


def test_update_user_not_found(ctx):
    with pytest.raises(NotFoundError):
        ctx.accounts.update_user("nonexistentId", "nonexistentId", name="x")


def test_update_user_email_taken(ctx, make_user):
    make_user(email="taken@example.com")
    user = make_user(email="mine@example.com")
    with pytest.raises(ConflictError):
        ctx.accounts.update_user(user.id, user.id, email="taken@example.com")


def test_approve_user(ctx, make_user):
    user = make_user(approved=False)
    approved = ctx.accounts.approve_user(user.id)
    assert approved.is_approved is True
    assert ctx.users.find_by_id(user.id).is_approved is True


def test_approve_user_not_found(ctx):
    with pytest.raises(NotFoundError, match="User not found"):
        ctx.accounts.approve_user("nonexistentId")


def test_get_all_users_hides_passwords(ctx, make_user):
    make_user(name="User One")
    make_user(name="User Two")

    users = ctx.accounts.get_all_users()

    assert {u.name for u in users} == {"User One", "User Two"}
    assert all("password_hash" not in u.to_dict() for u in users)


def test_create_admin(ctx):
    admin = ctx.accounts.create_admin("Root", "root@example.com", "", "adminpass")
    assert admin.is_admin is True
    assert admin.is_approved is True
    assert ctx.accounts.login("root@example.com", "adminpass").is_admin is True


def test_create_admin_duplicate(ctx, make_user):
    make_user(email="root@example.com")
    with pytest.raises(ConflictError):
        ctx.accounts.create_admin("Root", "root@example.com", "", "adminpass")


def test_register_overlong_password_is_invalid_input(ctx, make_user):
    admin = make_user(admin=True)

    with pytest.raises(InvalidInputError):
        ctx.accounts.register("Test User", "long@example.com", "1234567890", "x" * 100)

    assert ctx.users.find_by_email("long@example.com") is None
    assert ctx.notifications.get_notifications(admin.id) == []


def test_register_accepts_password_at_byte_limit(ctx):
    result = ctx.accounts.register("Test User", "edge@example.com", "1234567890", "x" * 72)
    user = ctx.users.find_by_id(result.user_id)
    assert ctx.hasher.verify("x" * 72, user.password_hash)
