from typing import Optional


def is_credential_effective(credential: Optional[str]) -> bool:
    """Return True if a stored credential carries something to send."""
    return bool(credential and credential.strip())
