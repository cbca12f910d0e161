"""
HF CHATBOT TERMINAL CLIENT
==========================

PURPOSE:
Command-line interface for talking to the chatbot server without the browser
UI. Every message goes to POST /conversation; the session_id the server returns
is sent back on the next message so the conversation continues.

USAGE:
    python chat_client.py

    Make sure the server is running first: python run.py

COMMANDS:
    /models        - List model aliases
    /model <name>  - Use another model (alias or full id) from the next message on
    /history       - View the transcript of the current session
    /clear         - Delete the current session and start a new one
    /quit or /exit - Exit
"""

import os

import requests


# -----------------------------------------------------------------------------
# CONFIGURATION
# -----------------------------------------------------------------------------
BASE_URL = os.getenv("CHATBOT_URL", "http://localhost:3000")
SESSION_ID = None
CURRENT_MODEL = None  # None means "whatever the session is bound to"


# -----------------------------------------------------------------------------
# UI HELPERS
# -----------------------------------------------------------------------------

def print_header():
    print("\n" + "=" * 60)
    print("HF Chatbot - Terminal Client")
    print("=" * 60)
    print("\nCommands:")
    print("  /models       - List models")
    print("  /model <name> - Switch model")
    print("  /history      - See chat history")
    print("  /clear        - Start new session")
    print("  /quit         - Exit")
    print("=" * 60 + "\n")


def _error_text(response) -> str:
    """Prefer the server's detail message; fall back to status + body."""
    try:
        detail = response.json().get("detail")
        if isinstance(detail, str):
            return f"Error: {detail}"
    except ValueError:
        pass
    return f"Error: {response.status_code} - {response.text}"


# -----------------------------------------------------------------------------
# API CALLS
# -----------------------------------------------------------------------------

def send_message(message):
    """
    Send one turn to POST /conversation and return the reply text (or an error line).
    Stores the returned session_id so the next call continues the same conversation.
    """
    global SESSION_ID

    payload = {"message": message, "session_id": SESSION_ID}
    if CURRENT_MODEL:
        payload["model"] = CURRENT_MODEL

    try:
        response = requests.post(f"{BASE_URL}/conversation", json=payload, timeout=120)
    except requests.exceptions.ConnectionError:
        return "Cannot connect to backend. Start it with: python run.py"
    except requests.exceptions.Timeout:
        return "Request timed out. Try again or pick a smaller model."

    if response.status_code != 200:
        return _error_text(response)

    data = response.json()
    SESSION_ID = data.get("session_id", SESSION_ID)
    return data.get("reply", "")


def get_chat_history():
    """Return the current session's transcript formatted for the terminal."""
    if not SESSION_ID:
        return "No active session"

    try:
        response = requests.get(f"{BASE_URL}/conversation/{SESSION_ID}", timeout=10)
    except requests.exceptions.RequestException as e:
        return f"Error retrieving history: {e}"

    if response.status_code != 200:
        return _error_text(response)

    messages = response.json().get("messages", [])
    if not messages:
        return "No messages in this session"

    output = f"\nChat History ({len(messages)} messages):\n"
    output += "-" * 60 + "\n"
    for i, msg in enumerate(messages, 1):
        role = "You" if msg.get("role") == "user" else "Assistant"
        output += f"{i}. {role}: {msg.get('content', '')}\n"
    output += "-" * 60 + "\n"
    return output


def list_models():
    try:
        response = requests.get(f"{BASE_URL}/models", timeout=10)
    except requests.exceptions.RequestException as e:
        return f"Error listing models: {e}"

    if response.status_code != 200:
        return _error_text(response)

    lines = []
    for m in response.json().get("models", []):
        marker = " (default)" if m.get("is_default") else ""
        lines.append(f"  {m['alias']:<10} {m['model_id']}{marker}")
    return "\n".join(lines)


def clear_session():
    """Delete the current session on the server (if any) and forget its id."""
    global SESSION_ID
    if SESSION_ID:
        try:
            requests.delete(f"{BASE_URL}/conversation/{SESSION_ID}", timeout=10)
        except requests.exceptions.RequestException:
            # The server may be gone; the local session is dropped either way.
            pass
    SESSION_ID = None


# -----------------------------------------------------------------------------
# MAIN LOOP
# -----------------------------------------------------------------------------

def handle_command(user_input):
    """
    Run a slash command. Returns the text to print, or None if the client
    should exit.
    """
    global CURRENT_MODEL

    if user_input in ("/quit", "/exit"):
        return None
    if user_input == "/history":
        return get_chat_history()
    if user_input == "/models":
        return list_models()
    if user_input.startswith("/model "):
        CURRENT_MODEL = user_input.split(" ", 1)[1].strip() or None
        return f"Model set to {CURRENT_MODEL or 'session default'}"
    if user_input == "/clear":
        clear_session()
        return "Session cleared. Starting fresh!"
    return f"Unknown command: {user_input}"


def main():
    print_header()

    while True:
        try:
            user_input = input("\nYou: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break

        if not user_input:
            continue

        if user_input.startswith("/"):
            result = handle_command(user_input)
            if result is None:
                print("\nGoodbye!")
                break
            print(result)
            continue

        print("Assistant: ", end="", flush=True)
        print(send_message(user_input))


if __name__ == "__main__":
    main()
