import libtmux
from libtmux.exc import LibTmuxException


def get_server():
    """Get libtmux server instance."""
    try:
        return libtmux.Server()
    except LibTmuxException:
        return None


def find_session(session_name: str):
    """Find tmux session by name. Returns None when tmux isn't running."""
    server = get_server()
    if not server:
        return None

    try:
        sessions = server.sessions
    except (LibTmuxException, OSError):
        return None

    for session in sessions:
        if session.session_name == session_name:
            return session
    return None
