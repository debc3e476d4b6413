"""In-memory DAO fakes for service level tests

The fakes implement the DAO base classes with the same observable contract as
the Redis DAOs (including the atomic usage limit re-check in record_visit), so
service behavior can be exercised without a Redis server.
"""

import dataclasses
from collections import Counter

import pytest

from shortlinks.dao.base import LinkBaseDAO, RateLimitBaseDAO
from shortlinks.dao.exceptions import LinkAlreadyExistsError, LinkNotFoundError, LinkUsageLimitReachedError
from shortlinks.models import LinkModel, VisitModel, DailyVisitsModel
from shortlinks.service import RateLimiter, ShortLinkService
from shortlinks.utils.timestamps import day_of, to_epoch


class InMemoryLinkDAO(LinkBaseDAO):
    def __init__(self):
        self.links: dict[str, LinkModel] = {}
        self.visits: dict[str, list[VisitModel]] = {}
        self.insert_calls = 0

    def insert(self, link, **kwargs):
        self.insert_calls += 1
        if link.shortcode in self.links:
            raise LinkAlreadyExistsError(f"Link with code '{link.shortcode}' already exists.")
        self.links[link.shortcode] = link
        self.visits[link.shortcode] = []
        return self

    def get(self, shortcode, **kwargs):
        try:
            return self.links[shortcode]
        except KeyError:
            raise LinkNotFoundError(f"Link with code '{shortcode}' not found.") from None

    def exists(self, shortcode, **kwargs):
        return shortcode in self.links

    def record_visit(self, visit, max_uses=None, **kwargs):
        link = self.links.get(visit.shortcode)
        if link is None or not link.is_active:
            raise LinkNotFoundError(f"Link with code '{visit.shortcode}' not found.")
        if max_uses is not None and link.visit_count >= max_uses:
            raise LinkUsageLimitReachedError(f"Link with code '{visit.shortcode}' reached its usage limit.")
        self.links[visit.shortcode] = dataclasses.replace(link, visit_count=link.visit_count + 1)
        self.visits[visit.shortcode].insert(0, visit)
        return link.visit_count + 1

    def visits_by_day(self, shortcode, since, **kwargs):
        daily = Counter(day_of(visit.visited_at) for visit in self.visits.get(shortcode, []))
        return [DailyVisitsModel(day, visits) for day, visits in sorted(daily.items()) if day >= since]

    def last_visits(self, shortcode, limit=10, **kwargs):
        return self.visits.get(shortcode, [])[:limit]

    def unique_visitors(self, shortcode, **kwargs):
        return len({visit.visitor_ip for visit in self.visits.get(shortcode, [])})

    def delete(self, shortcode, **kwargs):
        self.visits.pop(shortcode, None)
        return self.links.pop(shortcode, None) is not None


class InMemoryRateLimitDAO(RateLimitBaseDAO):
    def __init__(self):
        self.events: list[tuple[str, int]] = []

    def count(self, client_id, since, **kwargs):
        return sum(1 for client, at in self.events if client == client_id and at > to_epoch(since))

    def record(self, client_id, at, **kwargs):
        self.events.append((client_id, to_epoch(at)))

    def purge(self, before, **kwargs):
        kept = [(client, at) for client, at in self.events if at >= to_epoch(before)]
        purged = len(self.events) - len(kept)
        self.events = kept
        return purged

    def oldest(self, client_id, since, **kwargs):
        scores = [at for client, at in self.events if client == client_id and at > to_epoch(since)]
        return min(scores) if scores else None


@pytest.fixture
def link_dao():
    return InMemoryLinkDAO()


@pytest.fixture
def rate_limit_dao():
    return InMemoryRateLimitDAO()


@pytest.fixture
def rate_limiter(rate_limit_dao):
    return RateLimiter(rate_limit_dao, max_requests=30, window_seconds=3600)


@pytest.fixture
def service(link_dao, rate_limiter):
    return ShortLinkService(link_dao, rate_limiter)


@pytest.fixture
def base_url():
    return 'https://sho.rt'
