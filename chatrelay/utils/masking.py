"""
CREDENTIAL MASKING
==================

API keys are never written to logs in full. mask_key keeps a short prefix so
two keys can still be told apart when reading the logs.
"""


def mask_key(key: str, visible: int = 5) -> str:
    """Return the first `visible` characters of key followed by '...', or '<unset>'."""
    if not key:
        return "<unset>"
    if len(key) <= visible:
        return "*" * len(key)
    return key[:visible] + "..."
