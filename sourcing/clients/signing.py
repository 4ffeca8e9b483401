# sourcing/clients/signing.py

"""Request signing for the platform's RPC-style endpoints."""

import hashlib
import time
from typing import Any


def timestamp_ms() -> str:
    """Current epoch time in milliseconds, as the platform expects it."""
    return str(int(time.time() * 1000))


def sign_params(params: dict[str, Any], secret: str) -> str:
    """Compute the uppercase MD5 ``sign`` value for *params*.

    Non-null parameters are sorted by name and concatenated as
    ``name + value`` pairs, bracketed by the app secret on both ends.
    An existing ``sign`` entry is ignored.
    """
    pieces = [
        f"{name}{params[name]}"
        for name in sorted(params)
        if name != "sign" and params[name] is not None
    ]
    payload = secret + "".join(pieces) + secret
    return hashlib.md5(payload.encode("utf-8")).hexdigest().upper()
