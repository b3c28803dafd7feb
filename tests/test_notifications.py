import pytest

from app.domain.notifications.schemas import NotificationCreate
from app.domain.notifications.service import NotificationService
from app.errors import NotFoundError, PermissionDeniedError
from conftest import FakePushSender, seed_user


def notification(user_id="cust1", **overrides):
    data = {"userId": user_id, "title": "Booking update", "message": "Accepted", "type": "booking_status"}
    data.update(overrides)
    return NotificationCreate(**data)


@pytest.mark.asyncio
async def test_notification_is_stored_unread_and_pushed(store, push):
    seed_user(store, "cust1", fcmTokens=["t1", "t2"])
    service = NotificationService(store, push)

    created = await service.create_notification(notification(link="/confirmation/b1"))

    assert not created.read
    assert store.raw("notifications", created.id)["userId"] == "cust1"
    assert push.sent == [
        {
            "tokens": ["t1", "t2"],
            "title": "Booking update",
            "body": "Accepted",
            "data": {"type": "booking_status", "link": "/confirmation/b1"},
        }
    ]


@pytest.mark.asyncio
async def test_users_without_tokens_get_no_push(store, push):
    seed_user(store, "cust1")

    await NotificationService(store, push).create_notification(notification())

    assert push.sent == []
    assert len(store.collections["notifications"]) == 1


@pytest.mark.asyncio
async def test_push_failure_keeps_stored_notification(store, caplog):
    seed_user(store, "cust1", fcmTokens=["t1"])
    service = NotificationService(store, FakePushSender(fail=True))

    created = await service.create_notification(notification())

    assert store.raw("notifications", created.id) is not None
    assert "NotificationService.push" in caplog.text


@pytest.mark.asyncio
async def test_save_token_is_deduplicated(store):
    seed_user(store, "cust1")
    service = NotificationService(store)

    await service.save_token("cust1", "t1")
    await service.save_token("cust1", "t1")
    await service.save_token("cust1", "t2")

    assert store.raw("user", "cust1")["fcmTokens"] == ["t1", "t2"]


@pytest.mark.asyncio
async def test_inbox_and_mark_as_read(store):
    service = NotificationService(store)
    mine = await service.create_notification(notification())
    await service.create_notification(notification(user_id="other"))

    inbox = await service.get_notifications("cust1")
    assert [n.id for n in inbox] == [mine.id]

    await service.mark_as_read(mine.id, "cust1")
    assert store.raw("notifications", mine.id)["read"] is True


@pytest.mark.asyncio
async def test_mark_as_read_checks_owner(store):
    service = NotificationService(store)
    mine = await service.create_notification(notification())

    with pytest.raises(PermissionDeniedError):
        await service.mark_as_read(mine.id, "intruder")
    with pytest.raises(NotFoundError):
        await service.mark_as_read("missing", "cust1")
