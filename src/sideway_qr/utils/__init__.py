from .session import is_credential_effective
from .timestamps import parse_timestamp

__all__ = ["is_credential_effective", "parse_timestamp"]
