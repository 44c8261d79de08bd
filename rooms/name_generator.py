import re
import secrets
import string

ROOM_NAME_LENGTH = 32
ROOM_NAME_MAX_LENGTH = 64

# Room names end up in URL paths, container names and Traefik rules
PATH_SAFE = re.compile(r'^[A-Za-z0-9_-]+$')

ALPHABET = string.ascii_lowercase + string.digits


def generate_room_name(length: int = ROOM_NAME_LENGTH) -> str:
    """Generate a random fixed-length room name like 'k3v9...'"""
    if length <= 0:
        raise ValueError("length must be positive")
    return ''.join(secrets.choice(ALPHABET) for _ in range(length))


def is_path_safe(name: str) -> bool:
    """Check that a room name can be used as a single URL path segment."""
    if not name or len(name) > ROOM_NAME_MAX_LENGTH:
        return False
    return PATH_SAFE.match(name) is not None
