"""Unique test data generation.

Every identifier produced here carries a suffix built from a high-resolution
timestamp, a process-wide counter and random bits, so scenarios running in
parallel (or rerun against the same database) never collide on slugs or
emails.
"""

import itertools
import logging
import random
import threading
import time
from datetime import date, datetime, timedelta
from typing import Optional, Union

from ..models.harness_models import OrganizationData, TestFixture, UserData

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

DateLike = Union[date, datetime]


# Shared by every factory so suffixes stay distinct across instances
_counter = itertools.count(1)
_counter_lock = threading.Lock()


def to_base36(value: int) -> str:
    """Encode a non-negative integer in lowercase base 36."""
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


class TestDataFactory:
    """
    Generate unique organizations, users and emails for scenarios.

    PATTERN: Instance-level random.Random so a seed makes the random part
    reproducible; the module-level counter keeps values unique across
    factories even when the seeds and the clock agree.
    """

    __test__ = False  # not a pytest test class

    def __init__(self, seed: Optional[int] = None, email_domain: str = "example.com"):
        self.random = random.Random(seed)
        self.email_domain = email_domain

    def unique_suffix(self) -> str:
        """Return a new suffix, distinct from every other suffix of this process."""
        with _counter_lock:
            count = next(_counter)
            bits = self.random.getrandbits(24)
        return f"{to_base36(time.time_ns())}{to_base36(count)}{bits:06x}"

    def generate_random_email(self, domain: Optional[str] = None, prefix: str = "test") -> str:
        return f"{prefix}-{self.unique_suffix()}@{domain or self.email_domain}"

    def unique_slug(self, prefix: str = "test-org") -> str:
        return f"{prefix}-{self.unique_suffix()}"

    def create_test_data(self) -> TestFixture:
        """Build a fixture whose organization, user and email share one suffix."""
        suffix = self.unique_suffix()
        slug = f"test-org-{suffix}"
        email = f"test-{suffix}@{self.email_domain}"

        fixture = TestFixture(
            suffix=suffix,
            organization=OrganizationData(
                name=f"Test Organization {suffix}",
                slug=slug,
                description=f"E2E test organization created at {datetime.now().isoformat()}",
            ),
            user=UserData(
                full_name=f"Test User {suffix}",
                email=f"user-{suffix}@{self.email_domain}",
                password=f"Pw-{suffix}!",
            ),
            email=email,
            slug=slug,
        )
        logger.debug(f"Created test data with suffix {suffix}")
        return fixture


def add_days(value: DateLike, days: int) -> DateLike:
    """Shift a date or datetime by a number of days (negative goes back)."""
    return value + timedelta(days=days)


def format_date(value: DateLike) -> str:
    """ISO date (YYYY-MM-DD), the format date inputs accept."""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


# Process-wide factory behind the module-level helpers
_default_factory = TestDataFactory()


def create_test_data() -> TestFixture:
    return _default_factory.create_test_data()


def generate_random_email(domain: str = "example.com") -> str:
    return _default_factory.generate_random_email(domain)


def unique_slug(prefix: str = "test-org") -> str:
    return _default_factory.unique_slug(prefix)
