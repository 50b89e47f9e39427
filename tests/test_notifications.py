import logging

import pytest

from errors import NotFoundError
from models import NotificationType


def test_create_notification(ctx, make_user):
    user = make_user()
    notification = ctx.notifications.create_notification(user.id, "Test notification", NotificationType.NEW_USER)

    assert notification is not None
    stored = ctx.notifications.get_notifications(user.id)
    assert len(stored) == 1
    assert stored[0].message == "Test notification"
    assert stored[0].type == NotificationType.NEW_USER
    assert stored[0].is_read is False


def test_create_notification_store_failure_is_logged_not_raised(ctx, make_user, monkeypatch, caplog):
    user = make_user()

    def failing_insert(notification):
        raise RuntimeError("Database error")

    monkeypatch.setattr(ctx.notification_store, "insert", failing_insert)

    with caplog.at_level(logging.ERROR, logger="notifications"):
        result = ctx.notifications.create_notification(user.id, "Test notification", NotificationType.NEW_USER)

    assert result is None
    assert "Error creating notification" in caplog.text


def test_create_notification_unknown_type_is_logged_not_raised(ctx, make_user, caplog):
    user = make_user()

    with caplog.at_level(logging.ERROR, logger="notifications"):
        result = ctx.notifications.create_notification(user.id, "Test notification", "test_type")

    assert result is None
    assert "Error creating notification" in caplog.text
    assert ctx.notifications.get_notifications(user.id) == []


def test_notify_admins_unknown_type_is_not_raised(ctx, make_user):
    make_user(admin=True)
    assert ctx.notifications.notify_admins("msg", "test_type") == 0


def test_create_notification_accepts_plain_string_tag(ctx, make_user):
    user = make_user()
    notification = ctx.notifications.create_notification(user.id, "hi", "reservation_status")
    assert notification.type == NotificationType.RESERVATION_STATUS


def test_get_notifications_newest_first(ctx, make_user):
    user = make_user()
    for i in range(3):
        ctx.notifications.create_notification(user.id, f"Notification {i}", NotificationType.RESERVATION_STATUS)

    messages = [n.message for n in ctx.notifications.get_notifications(user.id)]
    assert messages == ["Notification 2", "Notification 1", "Notification 0"]


def test_get_notifications_only_returns_own(ctx, make_user):
    alice = make_user(name="Alice")
    bob = make_user(name="Bob")
    ctx.notifications.create_notification(alice.id, "for alice", NotificationType.NEW_USER)

    assert ctx.notifications.get_notifications(bob.id) == []


def test_notify_admins_fans_out_to_every_admin(ctx, make_user):
    admins = [make_user(name=f"Admin {i}", admin=True) for i in range(3)]
    member = make_user(name="Member")

    sent = ctx.notifications.notify_admins("New user registered: X", NotificationType.NEW_USER)

    assert sent == 3
    for admin in admins:
        assert [n.message for n in ctx.notifications.get_notifications(admin.id)] == ["New user registered: X"]
    assert ctx.notifications.get_notifications(member.id) == []


def test_notify_admins_isolates_single_failure(ctx, make_user, monkeypatch):
    first = make_user(name="Admin A", admin=True)
    second = make_user(name="Admin B", admin=True)
    real_insert = ctx.notification_store.insert

    def flaky_insert(notification):
        if notification.user_id == first.id:
            raise RuntimeError("write failed")
        return real_insert(notification)

    monkeypatch.setattr(ctx.notification_store, "insert", flaky_insert)

    sent = ctx.notifications.notify_admins("hello", NotificationType.NEW_RESERVATION)

    assert sent == 1
    assert ctx.notifications.get_notifications(first.id) == []
    assert len(ctx.notifications.get_notifications(second.id)) == 1


def test_notify_admins_with_no_admins(ctx, make_user):
    make_user()
    assert ctx.notifications.notify_admins("nobody listens", NotificationType.NEW_USER) == 0


def test_notify_admins_swallows_directory_failure(ctx, monkeypatch):
    def broken():
        raise RuntimeError("directory down")

    monkeypatch.setattr(ctx.users, "find_admins", broken)
    assert ctx.notifications.notify_admins("msg", NotificationType.NEW_USER) == 0


def test_mark_read(ctx, make_user):
    user = make_user()
    created = ctx.notifications.create_notification(user.id, "read me", NotificationType.RESERVATION_STATUS)

    updated = ctx.notifications.mark_read(created.id, user.id)
    assert updated.is_read is True


def test_mark_read_rejects_other_users_notification(ctx, make_user):
    owner = make_user(name="Owner")
    other = make_user(name="Other")
    created = ctx.notifications.create_notification(owner.id, "private", NotificationType.RESERVATION_STATUS)

    with pytest.raises(NotFoundError):
        ctx.notifications.mark_read(created.id, other.id)
    assert ctx.notifications.get_notifications(owner.id)[0].is_read is False
