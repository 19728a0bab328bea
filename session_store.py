# client/session_store.py
"""
Client-side chat state.

All state lives in one ``ClientState`` value. The module-level functions are
pure transitions (state in, new state out); ``SessionStore`` applies them and
writes the chat collection to durable storage after every transition, so the
persisted snapshot always matches memory.
"""

import json
import logging
import os
import re
import tempfile
import time
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as SchemaError

from modes import DEFAULT_MODE, MODES, system_prompt

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New chat"
TITLE_LIMIT = 40
GREETING = "Hi! I'm your Falcon AI 🤖. Ask me anything!"

SESSION_KEY = "falcon_user"
CHATS_KEY_PREFIX = "falcon_chats_"
GUEST_CHATS_KEY = CHATS_KEY_PREFIX + "guest"


# ---------- State ----------

class Message(BaseModel):
    sender: str  # "user" or "bot"
    text: str
    provider: Optional[str] = None
    imageUrl: Optional[str] = None


class Chat(BaseModel):
    id: str
    title: str = DEFAULT_TITLE
    createdAt: int
    messages: List[Message] = Field(default_factory=list)


class UserInfo(BaseModel):
    id: int
    name: str
    email: str


class ClientState(BaseModel):
    user: Optional[UserInfo] = None
    token: Optional[str] = None
    chats: List[Chat] = Field(default_factory=list)
    active_chat_id: Optional[str] = None
    mode: str = DEFAULT_MODE
    provider: str = "groq"
    attachment: Optional[str] = None  # file name of the pending image
    loading: bool = False
    search_term: str = ""


# ---------- Helpers ----------

def now_ms() -> int:
    return int(time.time() * 1000)


def greeting() -> Message:
    return Message(sender="bot", text=GREETING, provider="groq")


def create_chat(created_at: int, existing_ids=()) -> Chat:
    """Fresh chat whose id is its creation time, bumped until unique."""
    stamp = created_at
    while str(stamp) in existing_ids:
        stamp += 1
    return Chat(id=str(stamp), title=DEFAULT_TITLE, createdAt=created_at, messages=[greeting()])


def derive_title(text: str) -> str:
    trimmed = re.sub(r"\s+", " ", text).strip()
    if not trimmed:
        return DEFAULT_TITLE
    return trimmed[:TITLE_LIMIT] + "..." if len(trimmed) > TITLE_LIMIT else trimmed


def attachment_note(name: str) -> str:
    return f'[User has attached an image: "{name}". Backend cannot see the actual pixels.]'


def chats_key(email: Optional[str]) -> str:
    return f"{CHATS_KEY_PREFIX}{email}" if email else GUEST_CHATS_KEY


def active_chat(state: ClientState) -> Optional[Chat]:
    for chat in state.chats:
        if chat.id == state.active_chat_id:
            return chat
    return state.chats[0] if state.chats else None


def _replace_chat(state: ClientState, chat: Chat) -> List[Chat]:
    return [chat if c.id == chat.id else c for c in state.chats]


def _normalize(state: ClientState) -> ClientState:
    chat = active_chat(state)
    active_id = chat.id if chat else None
    if active_id == state.active_chat_id:
        return state
    return state.model_copy(update={"active_chat_id": active_id})


# ---------- Transitions ----------

def load_chats(state: ClientState, saved: Optional[List[Chat]], created_at: int) -> ClientState:
    chats = list(saved) if saved else [create_chat(created_at)]
    return state.model_copy(update={"chats": chats, "active_chat_id": chats[0].id})


def load_user(state: ClientState, user: UserInfo, token: str,
              saved: Optional[List[Chat]], created_at: int) -> ClientState:
    state = state.model_copy(update={"user": user, "token": token})
    return load_chats(state, saved, created_at)


def logout(state: ClientState, saved_guest: Optional[List[Chat]], created_at: int) -> ClientState:
    fresh = ClientState(mode=state.mode, provider=state.provider)
    return load_chats(fresh, saved_guest, created_at)


def new_chat(state: ClientState, created_at: int) -> ClientState:
    chat = create_chat(created_at, {c.id for c in state.chats})
    return state.model_copy(update={
        "chats": state.chats + [chat],
        "active_chat_id": chat.id,
        "attachment": None,
        "search_term": "",
    })


def select_chat(state: ClientState, chat_id: str) -> ClientState:
    return _normalize(state.model_copy(update={"active_chat_id": chat_id}))


def clear_current_chat(state: ClientState) -> ClientState:
    chat = active_chat(state)
    if chat is None:
        return state
    cleared = chat.model_copy(update={"title": DEFAULT_TITLE, "messages": [greeting()]})
    return _normalize(state.model_copy(update={
        "chats": _replace_chat(state, cleared),
        "attachment": None,
    }))


def append_user_message(state: ClientState, text: str, attachment: Optional[str] = None) -> ClientState:
    chat = active_chat(state)
    if chat is None:
        raise ValueError("no active chat")
    body = (text or "").strip()
    if attachment:
        body += f"\n\n{attachment_note(attachment)}"

    title = chat.title
    if not any(m.sender == "user" for m in chat.messages):
        title = derive_title(body)
    updated = chat.model_copy(update={
        "title": title,
        "messages": chat.messages + [Message(sender="user", text=body)],
    })
    return _normalize(state.model_copy(update={
        "chats": _replace_chat(state, updated),
        "attachment": None,
    }))


def append_bot_message(state: ClientState, text: str, provider: Optional[str] = None,
                       image_url: Optional[str] = None, chat_id: Optional[str] = None) -> ClientState:
    """Append to ``chat_id`` (the chat a request was sent from) or the active chat."""
    chat = None
    if chat_id is not None:
        chat = next((c for c in state.chats if c.id == chat_id), None)
    if chat is None:
        chat = active_chat(state)
    if chat is None:
        raise ValueError("no active chat")
    message = Message(sender="bot", text=text, provider=provider, imageUrl=image_url)
    updated = chat.model_copy(update={"messages": chat.messages + [message]})
    return _normalize(state.model_copy(update={"chats": _replace_chat(state, updated)}))


def set_mode(state: ClientState, mode: str) -> ClientState:
    if mode not in MODES:
        raise ValueError(f"unknown mode: {mode}")
    return state.model_copy(update={"mode": mode})


def set_provider(state: ClientState, provider: str) -> ClientState:
    return state.model_copy(update={"provider": provider})


def set_attachment(state: ClientState, name: Optional[str]) -> ClientState:
    return state.model_copy(update={"attachment": name or None})


def set_loading(state: ClientState, loading: bool) -> ClientState:
    return state.model_copy(update={"loading": loading})


def set_search(state: ClientState, term: str) -> ClientState:
    return state.model_copy(update={"search_term": term or ""})


def filter_chats(state: ClientState) -> List[Chat]:
    term = state.search_term.lower()
    return [c for c in state.chats if term in (c.title or "").lower()]


def to_provider_messages(state: ClientState, today=None) -> List[Dict[str, str]]:
    """Outgoing history: mode system prompt, then the active transcript."""
    chat = active_chat(state)
    messages = [{"role": "system", "content": system_prompt(state.mode, today)}]
    for m in chat.messages if chat else []:
        messages.append({"role": "user" if m.sender == "user" else "assistant", "content": m.text})
    return messages


# ---------- Storage ----------

class KeyValueStorage:
    """Durable string key/value store kept in one JSON file.

    With no path the values only live in memory.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._data: Dict[str, str] = {}
        if path and os.path.exists(path):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    loaded = json.load(f)
                if isinstance(loaded, dict):
                    self._data = {str(k): str(v) for k, v in loaded.items()}
            except (OSError, ValueError) as e:
                logger.warning("Could not read storage file %s: %s", path, e)

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str):
        self._data[key] = value
        self._flush()

    def remove(self, key: str):
        if self._data.pop(key, None) is not None:
            self._flush()

    def _flush(self):
        if not self.path:
            return
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False)
            os.replace(tmp, self.path)
        except BaseException:
            os.unlink(tmp)
            raise


def dump_chats(chats: List[Chat]) -> str:
    return json.dumps([c.model_dump(exclude_none=True) for c in chats], ensure_ascii=False)


def parse_chats(raw: Optional[str]) -> Optional[List[Chat]]:
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
        if isinstance(parsed, list) and parsed:
            return [Chat.model_validate(c) for c in parsed]
    except (ValueError, SchemaError) as e:
        logger.error("Error parsing saved chats: %s", e)
    return None


class SessionStore:
    """Applies transitions to the current state and persists after each one."""

    def __init__(self, storage: KeyValueStorage, clock: Callable[[], int] = now_ms):
        self.storage = storage
        self.clock = clock
        self.state = ClientState()
        self.restore()

    # ─── load / save boundaries ───
    @property
    def key(self) -> str:
        return chats_key(self.state.user.email if self.state.user else None)

    def save(self):
        self.storage.set(self.key, dump_chats(self.state.chats))

    def _apply(self, state: ClientState) -> ClientState:
        self.state = state
        self.save()
        return state

    def restore(self) -> ClientState:
        """Rehydrate the saved session (or guest chats) from storage."""
        raw = self.storage.get(SESSION_KEY)
        session = None
        if raw:
            try:
                session = json.loads(raw)
                user = UserInfo.model_validate(session["user"])
                token = session["token"]
            except (ValueError, KeyError, TypeError, SchemaError) as e:
                logger.warning("Ignoring saved session: %s", e)
                session = None
        if session and token:
            saved = parse_chats(self.storage.get(chats_key(user.email)))
            return self._apply(load_user(self.state, user, token, saved, self.clock()))
        saved = parse_chats(self.storage.get(GUEST_CHATS_KEY))
        return self._apply(load_chats(self.state, saved, self.clock()))

    # ─── auth ───
    def login(self, user: dict, token: str) -> ClientState:
        info = UserInfo.model_validate(user)
        self.storage.set(SESSION_KEY, json.dumps({"user": info.model_dump(), "token": token}))
        saved = parse_chats(self.storage.get(chats_key(info.email)))
        return self._apply(load_user(self.state, info, token, saved, self.clock()))

    def logout(self) -> ClientState:
        # chats stay under the user's key for the next login
        self.storage.remove(SESSION_KEY)
        saved = parse_chats(self.storage.get(GUEST_CHATS_KEY))
        return self._apply(logout(self.state, saved, self.clock()))

    # ─── chats ───
    @property
    def active_chat(self) -> Optional[Chat]:
        return active_chat(self.state)

    def new_chat(self) -> ClientState:
        return self._apply(new_chat(self.state, self.clock()))

    def select_chat(self, chat_id: str) -> ClientState:
        return self._apply(select_chat(self.state, chat_id))

    def clear_current_chat(self) -> ClientState:
        return self._apply(clear_current_chat(self.state))

    def send_user_message(self, text: str, attachment: Optional[str] = None) -> ClientState:
        return self._apply(append_user_message(self.state, text, attachment))

    def receive_bot_message(self, text: str, provider: Optional[str] = None,
                            image_url: Optional[str] = None, chat_id: Optional[str] = None) -> ClientState:
        return self._apply(append_bot_message(self.state, text, provider, image_url, chat_id))

    # ─── settings ───
    def set_mode(self, mode: str) -> ClientState:
        return self._apply(set_mode(self.state, mode))

    def set_provider(self, provider: str) -> ClientState:
        return self._apply(set_provider(self.state, provider))

    def set_attachment(self, name: Optional[str]) -> ClientState:
        return self._apply(set_attachment(self.state, name))

    def set_loading(self, loading: bool) -> ClientState:
        return self._apply(set_loading(self.state, loading))

    def set_search(self, term: str) -> ClientState:
        return self._apply(set_search(self.state, term))
