from conftest import make_message
from messages_db import (
    count_messages,
    get_message,
    get_messages_by_keys,
    store_message,
    update_message_content,
)
from voice.settings import VOICE_PLACEHOLDER


def test_store_and_get_message(messages_db_path) -> None:
    store_message(make_message("m1", "123@c.us", timestamp="1700000000", sender_name="Dana"))

    stored = get_message("m1", "123@c.us")

    assert stored is not None
    assert stored.content == VOICE_PLACEHOLDER
    assert stored.sender_name == "Dana"
    assert stored.timestamp == "1700000000"
    assert get_message("m1", "other@c.us") is None
    assert count_messages() == {"total": 1}


def test_update_message_content(messages_db_path) -> None:
    store_message(make_message("m1", "123@c.us"))

    assert update_message_content("m1", "123@c.us", "[Voice: hi]") is True
    assert get_message("m1", "123@c.us").content == "[Voice: hi]"


def test_update_unknown_message_returns_false(messages_db_path) -> None:
    assert update_message_content("nope", "123@c.us", "[Voice: hi]") is False


def test_get_messages_by_keys_follows_key_order(messages_db_path) -> None:
    store_message(make_message("early", "a@c.us", timestamp="100"))
    store_message(make_message("late", "a@c.us", timestamp="300"))
    store_message(make_message("middle", "b@g.us", timestamp="200"))

    keys = ["late:a@c.us", "missing:a@c.us", "early:a@c.us", "middle:b@g.us"]

    assert [m.id for m in get_messages_by_keys(keys)] == ["late", "early", "middle"]
    assert get_messages_by_keys([]) == []


def test_get_messages_by_keys_filters_on_content(messages_db_path) -> None:
    store_message(make_message("voice", "a@c.us"))
    store_message(make_message("done", "a@c.us", content="[Voice: hi]"))

    found = get_messages_by_keys(["done:a@c.us", "voice:a@c.us"], content=VOICE_PLACEHOLDER)

    assert [m.id for m in found] == ["voice"]


def test_get_messages_by_keys_handles_many_keys(messages_db_path) -> None:
    keys = []
    for i in range(450):
        message = make_message(f"m{i}", "a@c.us")
        store_message(message)
        keys.append(message.key)

    assert [m.key for m in get_messages_by_keys(keys)] == keys


def test_store_replaces_existing_row(messages_db_path) -> None:
    store_message(make_message("m1", "123@c.us"))
    store_message(make_message("m1", "123@c.us", content="edited"))

    assert get_message("m1", "123@c.us").content == "edited"
    assert count_messages() == {"total": 1}
