"""Token metadata URIs.

A token URI is the base URI fixed at ledger creation followed by the suffix
registered for that id. Ids without a suffix resolve to the base URI alone.
"""

from typing import Dict, Optional


class TokenUriRegistry:
    """Per-token URI suffixes on top of a fixed base URI."""

    def __init__(self, base_uri: str, suffixes: Optional[Dict[int, str]] = None):
        # The suffix table is shared with the caller, not copied.
        self._base_uri = base_uri
        self._suffixes: Dict[int, str] = suffixes if suffixes is not None else {}

    @property
    def base_uri(self) -> str:
        return self._base_uri

    def register(self, token_id: int, suffix: str) -> None:
        """Record the suffix for a token id, replacing any earlier one."""
        self._suffixes[token_id] = suffix

    def suffix(self, token_id: int) -> str:
        return self._suffixes.get(token_id, "")

    def uri(self, token_id: int) -> str:
        return self._base_uri + self.suffix(token_id)

    def suffixes(self) -> Dict[int, str]:
        """Return a copy of all registered suffixes."""
        return dict(self._suffixes)
