# tests/test_session_store.py

import json

import pytest

import session_store as ss
from session_store import (
    DEFAULT_TITLE, GREETING, ClientState, KeyValueStorage, SessionStore,
)

ADA = {"id": 1, "name": "Ada", "email": "ada@example.com"}


class Clock:
    def __init__(self, start=1_700_000_000_000):
        self.now = start

    def __call__(self):
        self.now += 1000
        return self.now


@pytest.fixture
def storage(tmp_path):
    return KeyValueStorage(str(tmp_path / "storage.json"))


@pytest.fixture
def store(storage):
    s = SessionStore(storage, clock=Clock())
    s.login(ADA, "tok")
    return s


def persisted(store):
    return ss.parse_chats(store.storage.get(store.key))


def test_first_login_creates_single_greeting_chat(store):
    assert len(store.state.chats) == 1
    chat = store.active_chat
    assert chat.title == DEFAULT_TITLE
    assert [m.text for m in chat.messages] == [GREETING]
    assert persisted(store) == store.state.chats


def test_append_preserves_order(store):
    texts = [f"message {i}" for i in range(7)]
    for i, t in enumerate(texts):
        if i % 2:
            store.receive_bot_message(t, provider="groq")
        else:
            store.send_user_message(t)
    assert [m.text for m in store.active_chat.messages[1:]] == texts
    assert persisted(store) == store.state.chats


def test_long_first_message_sets_truncated_title(store):
    text = "Explain recursion in simple terms for a beginner please"
    store.send_user_message(text)
    assert store.active_chat.title == text[:40] + "..."


def test_forty_character_title_is_kept_whole(store):
    text = "a" * 40
    store.send_user_message(text)
    assert store.active_chat.title == text


def test_title_collapses_whitespace_and_only_uses_first_message(store):
    store.send_user_message("  hello \n\n   world  ")
    store.send_user_message("second message")
    assert store.active_chat.title == "hello world"


def test_attachment_adds_note(store):
    store.set_attachment("cat.png")
    store.send_user_message("look", attachment=store.state.attachment)
    last = store.active_chat.messages[-1]
    assert last.text.startswith("look\n\n[User has attached an image: \"cat.png\"")
    assert store.state.attachment is None


def test_clear_current_chat_resets_to_greeting(store):
    for i in range(9):
        store.send_user_message(f"m{i}")
    assert len(store.active_chat.messages) == 10

    store.clear_current_chat()
    chat = store.active_chat
    assert len(chat.messages) == 1
    assert chat.messages[0].text == GREETING
    assert chat.title == DEFAULT_TITLE
    assert len(store.state.chats) == 1


def test_new_chat_is_appended_and_activated(store):
    first = store.active_chat.id
    store.set_search("something")
    store.new_chat()
    assert len(store.state.chats) == 2
    assert store.active_chat.id != first
    assert store.state.chats[-1].id == store.active_chat.id
    assert store.state.search_term == ""
    assert persisted(store) == store.state.chats


def test_chat_ids_stay_unique_with_same_timestamp():
    state = ss.load_chats(ClientState(), None, 5)
    state = ss.new_chat(state, 5)
    state = ss.new_chat(state, 5)
    ids = [c.id for c in state.chats]
    assert len(set(ids)) == 3


def test_unknown_active_id_falls_back_to_first(store):
    store.new_chat()
    store.select_chat("does-not-exist")
    assert store.active_chat.id == store.state.chats[0].id
    assert store.state.active_chat_id == store.state.chats[0].id


def test_bot_reply_lands_in_originating_chat(store):
    origin = store.active_chat.id
    store.new_chat()
    store.receive_bot_message("late reply", chat_id=origin)
    assert store.state.chats[0].messages[-1].text == "late reply"
    assert len(store.active_chat.messages) == 1


def test_reload_yields_identical_chats(storage):
    s = SessionStore(storage, clock=Clock())
    s.login(ADA, "tok")
    s.send_user_message("hello")
    s.receive_bot_message("hi", provider="gemini")
    s.new_chat()
    s.send_user_message("second chat")
    s.receive_bot_message("image", provider="huggingface", image_url="data:image/png;base64,AAA")

    reloaded = SessionStore(KeyValueStorage(storage.path), clock=Clock())
    assert reloaded.state.user.email == ADA["email"]
    assert reloaded.state.token == "tok"
    assert reloaded.state.chats == s.state.chats


def test_logout_keeps_chats_for_next_login(store):
    store.send_user_message("remember me")
    chats = store.state.chats
    store.logout()

    assert store.state.user is None
    assert store.storage.get(ss.SESSION_KEY) is None
    assert ss.parse_chats(store.storage.get(ss.chats_key(ADA["email"]))) == chats

    store.login(ADA, "tok2")
    assert store.state.chats == chats


def test_guest_chats_use_guest_key(storage):
    s = SessionStore(storage, clock=Clock())
    assert s.key == ss.GUEST_CHATS_KEY
    s.send_user_message("as guest")
    assert ss.parse_chats(storage.get(ss.GUEST_CHATS_KEY)) == s.state.chats


def test_corrupt_saved_chats_start_fresh(storage):
    storage.set(ss.chats_key(ADA["email"]), "{broken")
    s = SessionStore(storage, clock=Clock())
    s.login(ADA, "tok")
    assert len(s.state.chats) == 1
    assert json.loads(storage.get(s.key))[0]["title"] == DEFAULT_TITLE


def test_filter_chats_by_title(store):
    store.send_user_message("Python generators")
    store.new_chat()
    store.send_user_message("CV tips")
    store.set_search("python")
    assert [c.title for c in ss.filter_chats(store.state)] == ["Python generators"]


def test_provider_messages_include_system_prompt_and_transcript(store):
    store.set_mode("coding")
    store.send_user_message("what is a closure?")
    messages = ss.to_provider_messages(store.state)

    assert messages[0]["role"] == "system"
    assert "coding tutor" in messages[0]["content"]
    assert messages[1] == {"role": "assistant", "content": GREETING}
    assert messages[-1] == {"role": "user", "content": "what is a closure?"}


def test_unknown_mode_is_rejected(store):
    with pytest.raises(ValueError):
        store.set_mode("poetry")
    assert store.state.mode == "general"


def test_storage_without_path_stays_in_memory():
    kv = KeyValueStorage()
    kv.set("a", "1")
    assert kv.get("a") == "1"
    kv.remove("a")
    assert kv.get("a") is None


def test_failed_write_leaves_no_temp_file(tmp_path, monkeypatch):
    kv = KeyValueStorage(str(tmp_path / "storage.json"))
    kv.set("a", "1")

    def broken_dump(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(ss.json, "dump", broken_dump)
    with pytest.raises(OSError):
        kv.set("b", "2")

    assert sorted(p.name for p in tmp_path.iterdir()) == ["storage.json"]
    assert json.loads((tmp_path / "storage.json").read_text(encoding="utf-8")) == {"a": "1"}
