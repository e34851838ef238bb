"""
Correlation ID generation.

IDs tag requests that expect a reply and scope ad-hoc event subscriptions
(e.g. window events tied to an open-window call). There is no collision
detection; the ID space is large enough for the number of in-flight calls.
"""

import random

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"

DEFAULT_ID_LENGTH = 5


def gen_id(length: int = DEFAULT_ID_LENGTH) -> str:
    """
    Generate a random alphanumeric identifier.

    Args:
        length: Number of characters (default: 5)

    Returns:
        Identifier string
    """
    if length < 1:
        raise ValueError(f"ID length must be positive, got {length}")
    return "".join(random.choice(ALPHABET) for _ in range(length))


class IdGenerator:
    """Callable ID generator bound to a fixed length."""

    def __init__(self, length: int = DEFAULT_ID_LENGTH):
        if length < 1:
            raise ValueError(f"ID length must be positive, got {length}")
        self.length = length

    def __call__(self) -> str:
        return gen_id(self.length)
