"""
CHAT CLI - Terminal front end for the chat relay
================================================

PURPOSE:
This is a command-line chat interface for the relay server. It remembers who
you are (a random user id saved in CLIENT_STATE_FILE) so your history follows
you between runs, and it draws the conversation in a light or dark palette.

USAGE:
    python chat_cli.py

    Make sure the server is running first: python run.py

COMMANDS:
    1, 2, 3  - Send one of the suggested prompts (shown while the chat is empty)
    /history - Reload and show the history stored on the server
    /clear   - Clear the history (server and local)
    /theme   - Switch between light and dark
    /quit or /exit - Exit

HOW IT WORKS:
1. On start the client loads your stored history from the server.
2. Each message is shown immediately, then sent to /generate.
3. The reply (or an error message, if the turn failed) is added below it.
"""

import logging

from chatrelay.client.chat_client import ChatClient
from chatrelay.client.state import ClientState
from chatrelay.models import Message
from config import API_BASE_URL, CLIENT_STATE_FILE


SUGGESTIONS = [
    "What can you help me with?",
    "Tell me a fun fact",
    "Write a short poem",
]

# ANSI colour codes per theme: (user, bot, code block, dim)
PALETTES = {
    "light": ("\033[94m", "\033[35m", "\033[90m", "\033[2m"),
    "dark": ("\033[96m", "\033[95m", "\033[93m", "\033[2m"),
}
BOLD = "\033[1m"
RESET = "\033[0m"


# -----------------------------------------------------------------------------
# UI HELPERS
# -----------------------------------------------------------------------------

def print_header(client: ChatClient):
    print("\n" + "=" * 60)
    print("🤖 AI Assistant")
    print("=" * 60)
    print(f"\nUser: {client.user_id}   Theme: {client.state.theme}")
    print("\nCommands:")
    print("  /history - Show chat history")
    print("  /clear   - Clear chat")
    print("  /theme   - Toggle light/dark")
    print("  /quit    - Exit")
    print("=" * 60 + "\n")


def print_welcome(theme: str):
    _, _, _, dim = PALETTES[theme]
    print(f"{BOLD}Welcome to AI Assistant!{RESET}")
    print("Ask me anything to get started, or pick a suggestion:")
    for i, suggestion in enumerate(SUGGESTIONS, 1):
        print(f"  {dim}{i}.{RESET} {suggestion}")


def render_bot_text(text: str, theme: str) -> str:
    """Text between ``` fences is drawn as an indented code block."""
    _, _, code, _ = PALETTES[theme]
    out = []
    for i, part in enumerate(text.split("```")):
        if i % 2 == 0:
            out.append(part)
        else:
            lines = part.strip("\n").splitlines()
            out.append("\n" + "\n".join(f"    {code}{line}{RESET}" for line in lines) + "\n")
    return "".join(out)


def render_message(message: Message, theme: str) -> str:
    user, bot, _, _ = PALETTES[theme]
    if message.is_user:
        return f"{user}👤 You:{RESET} {message.text}"
    return f"{bot}🤖 Assistant:{RESET} {render_bot_text(message.text, theme)}"


def print_transcript(client: ChatClient):
    if not client.messages:
        print_welcome(client.state.theme)
        return
    print(f"\n📜 Chat History ({len(client.messages)} messages):")
    print("-" * 60)
    for message in client.messages:
        print(render_message(message, client.state.theme))
    print("-" * 60)


def get_user_input():
    try:
        return input("\nYou: ").strip()
    except (KeyboardInterrupt, EOFError):
        return None


# -----------------------------------------------------------------------------
# MAIN LOOP
# -----------------------------------------------------------------------------

def main():
    """Load identity and history, then read prompts until /quit or /exit."""
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s - %(message)s")

    state = ClientState.load(CLIENT_STATE_FILE)
    client = ChatClient(state, API_BASE_URL)

    print_header(client)
    if not client.load_history():
        print("⚠️  Could not load chat history (is the server running? python run.py)")
    print_transcript(client)

    while True:
        user_input = get_user_input()
        if user_input is None or user_input in ["/quit", "/exit"]:
            print("\n👋 Goodbye!")
            break

        if user_input == "/history":
            client.load_history()
            print_transcript(client)
            continue

        if user_input == "/clear":
            if client.clear():
                print("\n🔄 Chat cleared. Starting fresh!")
                print_welcome(state.theme)
            else:
                print(f"❌ {client.error}")
            continue

        if user_input == "/theme":
            print(f"🎨 Theme: {state.toggle_theme()}")
            continue

        if user_input.startswith("/"):
            print(f"❌ Unknown command: {user_input}")
            continue

        if not client.messages and user_input in {"1", "2", "3"}:
            user_input = SUGGESTIONS[int(user_input) - 1]
            print(render_message(Message(text=user_input, is_user=True), state.theme))

        reply = client.send(user_input)
        if reply is not None:
            print(render_message(reply, state.theme))


# Run the interactive loop when this file is executed (python chat_cli.py).
if __name__ == "__main__":
    main()
