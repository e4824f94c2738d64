"""Constants shared by the request handlers and the pgmoneta client."""

from enum import Enum
from typing import Optional


class SortOrder(str, Enum):
    """Sort order of a backup listing.

    The value is the token sent to pgmoneta and accepted from callers.
    Matching is exact and case-sensitive.
    """
    ASC = "asc"
    DESC = "desc"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def tokens(cls) -> list:
        """Return the canonical tokens in declaration order."""
        return [member.value for member in cls]

    @classmethod
    def parse(cls, token: Optional[str]) -> "SortOrder":
        """Parse a caller-supplied token.

        An absent token means ascending. Anything else must be one of the
        canonical tokens.

        Raises:
            ValueError: If the token is not a canonical sort token
        """
        if token is None:
            return cls.ASC
        try:
            return cls(token)
        except ValueError:
            raise ValueError(
                f"sort must be one of {', '.join(cls.tokens())}; got '{token}'"
            ) from None


DEFAULT_SORT = SortOrder.ASC
