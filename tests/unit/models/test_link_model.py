"""Unit tests for the link and visit models.

Test coverage includes:

1. Defaults
   - A new link is active, unvisited and unlimited.

2. Expiration
   - A link expires strictly after its expiration timestamp.

3. Usage limit
   - A link is exhausted once its visit count reaches max_uses.

4. Immutability
"""

import dataclasses

import pytest

from shortlinks.models import LinkModel, VisitModel, DailyVisitsModel


@pytest.fixture
def link() -> LinkModel:
    return LinkModel(
        shortcode='aB3xZ9',
        target='https://example.com/article/123',
        created_at='2025-10-15 12:00:00',
        creator_ip='203.0.113.7',
    )


# -------------------------------
# 1. Defaults
# -------------------------------


def test_link_defaults(link):
    assert link.expires_at is None
    assert link.max_uses is None
    assert link.visit_count == 0
    assert link.is_active is True


# -------------------------------
# 2. Expiration
# -------------------------------


@pytest.mark.parametrize(
    'expires_at, now, expected',
    [
        (None, '2099-01-01 00:00:00', False),
        ('2025-10-16 00:00:00', '2025-10-15 23:59:59', False),
        ('2025-10-16 00:00:00', '2025-10-16 00:00:00', False),
        ('2025-10-16 00:00:00', '2025-10-16 00:00:01', True),
    ],
)
def test_is_expired(link, expires_at, now, expected):
    assert dataclasses.replace(link, expires_at=expires_at).is_expired(now) is expected


# -------------------------------
# 3. Usage limit
# -------------------------------


@pytest.mark.parametrize(
    'max_uses, visit_count, expected',
    [
        (None, 1_000_000, False),
        (1, 0, False),
        (1, 1, True),
        (5, 4, False),
        (5, 6, True),
    ],
)
def test_uses_exhausted(link, max_uses, visit_count, expected):
    assert dataclasses.replace(link, max_uses=max_uses, visit_count=visit_count).uses_exhausted() is expected


# -------------------------------
# 4. Immutability
# -------------------------------


def test_models_are_frozen(link):
    visit = VisitModel('aB3xZ9', '2025-10-15 12:30:00', '198.51.100.4', 'curl/8.5')
    daily = DailyVisitsModel('2025-10-15', 1)

    with pytest.raises(dataclasses.FrozenInstanceError):
        link.visit_count = 1
    with pytest.raises(dataclasses.FrozenInstanceError):
        visit.user_agent = ''
    with pytest.raises(dataclasses.FrozenInstanceError):
        daily.visits = 2
