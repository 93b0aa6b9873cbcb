"""Record identity generation."""

from __future__ import annotations

import uuid


def new_id() -> str:
    """Generate a new record id.

    Random UUID4 in hex form: unique across kinds and never reissued,
    even for ids whose records were deleted.
    """
    return uuid.uuid4().hex
