"""Request metadata recorded alongside audit entries."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ClientInfo:
    """
    Where a request came from.

    Attributes:
        ip_address: Peer address as seen by the server
        user_agent: User-Agent header, truncated to fit the audit column
    """

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_values(cls, ip_address: Optional[str], user_agent: Optional[str]) -> "ClientInfo":
        return cls(
            ip_address=ip_address[:64] if ip_address else None,
            user_agent=user_agent[:255] if user_agent else None,
        )
