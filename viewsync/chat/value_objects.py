# =============================================================================
# File: viewsync/chat/value_objects.py
# Description: Chat value objects
# =============================================================================

from urllib.parse import unquote

RELATIONSHIP_KEY_SEPARATOR = "_"

# Characters escaped inside a user id; "%" first so escapes stay unambiguous
_ESCAPES = (("%", "%25"), ("_", "%5F"), ("/", "%2F"))


def _escape_id(user_id: str) -> str:
    for char, escaped in _ESCAPES:
        user_id = user_id.replace(char, escaped)
    return user_id


def relationship_key(user_a: str, user_b: str) -> str:
    """
    Deterministic key of the conversation between two users.

    The smaller id (string order) comes first, so the result does not
    depend on argument order:

        >>> relationship_key("bob", "alice")
        'alice_bob'
        >>> relationship_key("alice", "bob")
        'alice_bob'

    Separator and slash characters inside an id are percent-escaped, so
    ("a_b", "c") and ("a", "b_c") get different keys and every key is a
    valid path segment:

        >>> relationship_key("user_1", "bob")
        'bob_user%5F1'
    """
    first, second = (user_a, user_b) if user_a < user_b else (user_b, user_a)
    return f"{_escape_id(first)}{RELATIONSHIP_KEY_SEPARATOR}{_escape_id(second)}"


def relationship_members(key: str) -> tuple:
    """Inverse of relationship_key: 'alice_bob' -> ('alice', 'bob')"""
    parts = key.split(RELATIONSHIP_KEY_SEPARATOR)
    if len(parts) != 2:
        raise ValueError(f"Invalid relationship key: {key!r}")
    return unquote(parts[0]), unquote(parts[1])
