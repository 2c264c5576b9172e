import pytest

from conftest import FakeClock, add_raw_users
from utils.broadcast import broadcast_notification
from utils.errors import BulkWritePartialFailure, InvalidSetting, NotFound


def test_one_notification_per_user(store):
    ids = add_raw_users(store, 1000)
    clock = FakeClock()

    result = broadcast_notification(store, "Assembly", "Gym at 3pm", clock=clock)

    docs = list(store.collections["notifications"].values())
    assert result["sent"] == 1000
    assert len(docs) == 1000
    assert sorted(d["user_id"] for d in docs) == sorted(ids)
    assert {d["title"] for d in docs} == {"📢 Assembly"}
    assert {d["message"] for d in docs} == {"Gym at 3pm"}
    assert {d["created_at"] for d in docs} == {clock.now}
    assert not any(d["is_read"] for d in docs)
    assert {d["notification_type"] for d in docs} == {"announcement"}
    assert store.commits == [450, 450, 100]


def test_retry_with_same_broadcast_id_does_not_duplicate(store):
    add_raw_users(store, 500)
    store.fail_on_commit = {2}

    with pytest.raises(BulkWritePartialFailure) as exc:
        broadcast_notification(store, "Assembly", "Gym", broadcast_id="b1")
    assert exc.value.committed == 450
    assert len(store.collections["notifications"]) == 450

    result = broadcast_notification(store, "Assembly", "Gym", broadcast_id="b1")

    assert result == {"broadcast_id": "b1", "sent": 500}
    assert len(store.collections["notifications"]) == 500


def test_broadcast_needs_recipients(store):
    with pytest.raises(NotFound):
        broadcast_notification(store, "Hello", "World")


@pytest.mark.parametrize("title, message", [("", "x"), ("x", "  "), (None, None)])
def test_broadcast_needs_title_and_message(store, title, message):
    add_raw_users(store, 2)
    with pytest.raises(InvalidSetting):
        broadcast_notification(store, title, message)
    assert store.commits == []
