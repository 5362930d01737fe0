"""Content fingerprinting for change detection."""

from __future__ import annotations

import hashlib

ALGORITHM = "sha256"


def fingerprint(raw: bytes) -> str:
    """Return ``"sha256:<hex digest>"`` of *raw*.

    No normalisation is applied: any byte difference yields a different
    fingerprint.  The value is only ever compared for equality.
    """
    return f"{ALGORITHM}:{hashlib.sha256(raw).hexdigest()}"
