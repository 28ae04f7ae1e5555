"""Request id generation for IQ/presence/message stanzas."""

from __future__ import annotations

import os
import random

from loguru import logger

ID_BYTES = 8


def new_id() -> str:
    """Return 8 random bytes as 16 lowercase hex chars.

    Never raises: if the OS random source fails the error is logged and the id
    is built from the non-cryptographic PRNG instead.
    """
    try:
        raw = os.urandom(ID_BYTES)
    except (OSError, NotImplementedError) as exc:
        logger.error("error generating id: {}", exc)
        raw = random.randbytes(ID_BYTES)
    return raw.hex()
