"""
Identifier generation for schedules, notifications and retry items.
"""

import secrets
import string
import time

ID_ALPHABET = string.ascii_lowercase + string.digits


def random_suffix(length: int = 6) -> str:
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


def generate_id(prefix: str, length: int = 6) -> str:
    """
    Build an id of the form ``<prefix>_<epoch-ms>_<random>``.

    >>> generate_id("schedule").startswith("schedule_")
    True
    """
    return f"{prefix}_{int(time.time() * 1000)}_{random_suffix(length)}"
