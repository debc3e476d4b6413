from dataclasses import dataclass


# fmt: off
@dataclass(frozen=True)
class VisitModel:
    shortcode: str   # Shortcode of the resolved link
    visited_at: str  # Resolution timestamp ('YYYY-MM-DD HH:MM:SS', UTC)
    visitor_ip: str  # Client address of the visitor
    user_agent: str  # Visitor's User-Agent header (truncated)


@dataclass(frozen=True)
class DailyVisitsModel:
    day: str         # Calendar day ('YYYY-MM-DD', UTC)
    visits: int      # Number of visits recorded on that day
# fmt: on
