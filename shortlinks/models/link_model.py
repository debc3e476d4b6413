from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class LinkModel:
    """Represent a short link: a shortcode bound to a target URL.

    Timestamps are UTC strings formatted as 'YYYY-MM-DD HH:MM:SS' so that
    lexicographic order equals chronological order.

    Attributes:
        shortcode (str):
            The unique short identifier of the link.
        target (str):
            The original long URL the shortcode redirects to.
        created_at (str):
            Creation timestamp.
        creator_ip (str):
            Client address of the link's creator.
        expires_at (Optional[str]):
            Timestamp after which the link can no longer be resolved.
        max_uses (Optional[int]):
            Upper bound on successful resolutions.
        visit_count (int):
            Number of successful resolutions so far.
        is_active (bool):
            False when the link has been soft deactivated.

    Example:
        >>> link = LinkModel(
        ...     shortcode='aB3xZ9',
        ...     target='https://example.com/article/123',
        ...     created_at='2025-10-15 12:00:00',
        ...     creator_ip='203.0.113.7',
        ...     max_uses=5,
        ... )
        >>> link.uses_exhausted()
        False
        >>> link.is_expired('2025-10-16 00:00:00')
        False
    """

    shortcode: str
    target: str
    created_at: str
    creator_ip: str
    expires_at: Optional[str] = None
    max_uses: Optional[int] = None
    visit_count: int = 0
    is_active: bool = True

    def is_expired(self, now: str) -> bool:
        return self.expires_at is not None and self.expires_at < now

    def uses_exhausted(self) -> bool:
        return self.max_uses is not None and self.visit_count >= self.max_uses
