# client/shell.py
"""
Terminal front end for the Falcon AI backend.

Wires typed commands to the session store and the HTTP API:

    /register <name> <email> <password>   /login <email> <password>
    /logout                                /chats [search]
    /new                                   /switch <n>
    /clear                                 /history
    /mode <id>                             /provider <id>
    /attach <file name>                    /weather [city]
    /quit

Anything else is sent as a message to the active chat.
"""

import getpass
import logging
from typing import Optional

from api_client import ApiError, FalconClient, NetworkError
from config import LOG_DATEFMT, LOG_FORMAT, settings
from modes import IMAGE_MODE, MODES
from session_store import KeyValueStorage, SessionStore, filter_chats, to_provider_messages

logger = logging.getLogger(__name__)

PROVIDERS = ("groq", "gemini", "deepseek", "huggingface")
DEFAULT_CITY = "Colombo"


# -----------------------------------------------------------------------------
# ACTIONS
# -----------------------------------------------------------------------------

def send_message(store: SessionStore, client: FalconClient, text: str) -> Optional[str]:
    """Append the user's message, ask the server, append the reply.

    Returns the bot text, or None when nothing was sent (empty input or a
    request already in flight). The user's message is recorded even when the
    call fails; the failure becomes a visible bot message.
    """
    state = store.state
    attachment = state.attachment
    if (not (text or "").strip() and not attachment) or state.loading:
        return None

    store.send_user_message(text, attachment)
    chat_id = store.active_chat.id
    store.set_loading(True)
    try:
        if store.state.mode == IMAGE_MODE:
            prompt = store.active_chat.messages[-1].text
            return _image_reply(store, client, prompt, chat_id)
        return _chat_reply(store, client, chat_id)
    finally:
        store.set_loading(False)


def _chat_reply(store: SessionStore, client: FalconClient, chat_id: str) -> str:
    provider = store.state.provider
    try:
        data = client.chat(to_provider_messages(store.state), provider=provider)
    except ApiError as e:
        text = e.message or "Hmm, I couldn't reply."
        store.receive_bot_message(text, provider=provider, chat_id=chat_id)
        return text
    except NetworkError:
        text = "⚠️ Error contacting server."
        store.receive_bot_message(text, chat_id=chat_id)
        return text

    text = data.get("reply") or data.get("error") or "Hmm, I couldn't reply."
    store.receive_bot_message(text, provider=data.get("provider") or provider, chat_id=chat_id)
    return text


def _image_reply(store: SessionStore, client: FalconClient, prompt: str, chat_id: str) -> str:
    try:
        data = client.generate_image(prompt)
    except ApiError as e:
        text = f"⚠️ {e.message or 'Image generation failed.'}"
        store.receive_bot_message(text, chat_id=chat_id)
        return text
    except NetworkError:
        text = "⚠️ Error contacting image server."
        store.receive_bot_message(text, chat_id=chat_id)
        return text

    if not data.get("imageBase64"):
        text = "⚠️ Image generation failed."
        store.receive_bot_message(text, chat_id=chat_id)
        return text
    text = "Here is your generated image 🎨"
    store.receive_bot_message(text, provider="huggingface", image_url=data["imageBase64"], chat_id=chat_id)
    return text


def authenticate(store: SessionStore, client: FalconClient, email: str, password: str,
                 name: Optional[str] = None) -> dict:
    """Register when a name is given, otherwise log in; then load that user's chats."""
    if name:
        data = client.register(name, email, password)
    else:
        data = client.login(email, password)
    store.login(data["user"], data["token"])
    return data["user"]


def format_weather(data: dict) -> str:
    return (
        f"{data.get('city')}, {data.get('country')}: {data.get('temp')}°C "
        f"(feels like {data.get('feels_like')}°C), humidity {data.get('humidity')}%, "
        f"{data.get('description')}"
    )


def fetch_weather(client: FalconClient, city: str) -> str:
    try:
        return format_weather(client.weather(city))
    except ApiError as e:
        return f"⚠️ {e.message}"
    except NetworkError:
        return "⚠️ Could not load weather."


def format_history(store: SessionStore) -> str:
    chat = store.active_chat
    lines = [f"\n📜 {chat.title} ({len(chat.messages)} messages):", "-" * 60]
    for i, m in enumerate(chat.messages, 1):
        who = "You" if m.sender == "user" else f"Falcon AI ({m.provider or '-'})"
        lines.append(f"{i}. {who}: {m.text}")
        if m.imageUrl:
            lines.append(f"   [image: {len(m.imageUrl)} bytes of data URI]")
    lines.append("-" * 60)
    return "\n".join(lines)


def format_chats(store: SessionStore) -> str:
    active = store.active_chat
    visible = {c.id for c in filter_chats(store.state)}
    lines = []
    for i, chat in enumerate(store.state.chats, 1):
        if chat.id not in visible:
            continue
        marker = "*" if active and chat.id == active.id else " "
        lines.append(f"{marker} {i}. {chat.title}")
    return "\n".join(lines) or "No chats match."


# -----------------------------------------------------------------------------
# MAIN LOOP
# -----------------------------------------------------------------------------

def print_header(store: SessionStore):
    print("\n" + "=" * 60)
    print("🦅 Falcon AI")
    print("=" * 60)
    print(f"Modes: {', '.join(MODES)}   Providers: {', '.join(PROVIDERS)}")
    user = store.state.user
    print(f"Signed in as {user.email}" if user else "Not signed in: /login or /register")
    print("=" * 60 + "\n")


def handle_command(store: SessionStore, client: FalconClient, line: str) -> bool:
    """Run one slash command. Returns False when the shell should exit."""
    parts = line.split()
    cmd, args = parts[0], parts[1:]

    if cmd in ("/quit", "/exit"):
        return False
    elif cmd in ("/login", "/register"):
        if cmd == "/register" and not args:
            print("❌ Usage: /register <name> [email] [password]")
            return True
        name = args.pop(0) if cmd == "/register" else None
        email = args[0] if args else input("Email: ").strip()
        password = args[1] if len(args) > 1 else getpass.getpass("Password: ")
        try:
            user = authenticate(store, client, email, password, name=name)
            print(f"✅ Welcome, {user['name']}")
        except ApiError as e:
            print(f"❌ {e.message}")
        except NetworkError:
            print("❌ Server error")
    elif cmd == "/logout":
        store.logout()
        client.token = None
        print("👋 Logged out")
    elif cmd == "/new":
        store.new_chat()
        print("🆕 New chat")
    elif cmd == "/clear":
        store.clear_current_chat()
        print("🔄 Chat cleared")
    elif cmd == "/chats":
        store.set_search(" ".join(args))
        print(format_chats(store))
    elif cmd == "/switch":
        try:
            chat = store.state.chats[int(args[0]) - 1]
        except (IndexError, ValueError):
            print("❌ Usage: /switch <number from /chats>")
            return True
        store.select_chat(chat.id)
        print(f"➡️  {chat.title}")
    elif cmd == "/history":
        print(format_history(store))
    elif cmd == "/mode":
        try:
            store.set_mode(args[0])
            print(f"✅ Mode: {MODES[args[0]].label}")
        except (IndexError, ValueError):
            print(f"❌ Modes: {', '.join(MODES)}")
    elif cmd == "/provider":
        if not args or args[0] not in PROVIDERS:
            print(f"❌ Providers: {', '.join(PROVIDERS)}")
        else:
            store.set_provider(args[0])
            print(f"✅ Provider: {args[0]}")
    elif cmd == "/attach":
        store.set_attachment(" ".join(args))
        print(f"📎 {store.state.attachment}" if store.state.attachment else "📎 Attachment removed")
    elif cmd == "/weather":
        print(f"🌦  {fetch_weather(client, ' '.join(args) or DEFAULT_CITY)}")
    else:
        print(f"❌ Unknown command: {cmd}")
    return True


def main():
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
    store = SessionStore(KeyValueStorage(settings.storage_path))
    client = FalconClient(settings.api_base, token=store.state.token)
    print_header(store)

    while True:
        try:
            line = input("\nYou: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n👋 Goodbye!")
            break
        if not line:
            continue
        if line.startswith("/"):
            if not handle_command(store, client, line):
                print("\n👋 Goodbye!")
                break
            continue
        if store.state.user is None:
            print("❌ Please /login or /register first")
            continue
        print("🤖 Falcon AI: ", end="", flush=True)
        print(send_message(store, client, line))


if __name__ == "__main__":
    main()
