"""Admin panel authorization."""

from typing import Iterable, Optional


def is_authorized(candidate_email: Optional[str], allowlist: Iterable[str]) -> bool:
    """Check an authenticated email against an allowlist.

    Matching ignores case and surrounding whitespace. An empty allowlist
    leaves the panel open to any caller.
    """
    allowed = {e.strip().lower() for e in allowlist if e and e.strip()}
    if not allowed:
        return True
    if not candidate_email:
        return False
    return candidate_email.strip().lower() in allowed
