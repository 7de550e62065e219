"""Tests for TestDataFactory and the date helpers."""

import asyncio
import re
from datetime import date, datetime
from concurrent.futures import ThreadPoolExecutor

import pytest

from boardguru_e2e.fixtures.data_factory import (
    TestDataFactory,
    add_days,
    create_test_data,
    format_date,
    generate_random_email,
    to_base36,
    unique_slug,
)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[a-z]+$")
SLUG_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


@pytest.fixture
def factory():
    return TestDataFactory(seed=42)


class TestBase36:
    """Tests for the suffix encoding."""

    def test_values(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "z"
        assert to_base36(36) == "10"

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            to_base36(-1)


class TestCreateTestData:
    """Tests for fixture generation."""

    def test_identifiers_share_suffix(self, factory):
        data = factory.create_test_data()

        assert data.slug == f"test-org-{data.suffix}"
        assert data.email == f"test-{data.suffix}@example.com"
        assert data.organization.slug == data.slug
        assert data.suffix in data.organization.name

    def test_slug_and_email_are_well_formed(self, factory):
        data = factory.create_test_data()

        assert SLUG_PATTERN.match(data.slug)
        assert EMAIL_PATTERN.match(data.email)
        assert EMAIL_PATTERN.match(data.user.email)

    def test_many_fixtures_are_unique(self, factory):
        fixtures = [factory.create_test_data() for _ in range(500)]

        assert len({f.slug for f in fixtures}) == 500
        assert len({f.email for f in fixtures}) == 500

    def test_unique_across_threads(self):
        factory = TestDataFactory()

        with ThreadPoolExecutor(max_workers=8) as pool:
            slugs = list(pool.map(lambda _: factory.unique_slug(), range(400)))

        assert len(set(slugs)) == 400

    def test_factories_with_same_seed_do_not_collide(self):
        first = TestDataFactory(seed=1).create_test_data()
        second = TestDataFactory(seed=1).create_test_data()

        assert first.slug != second.slug

    def test_same_seed_and_frozen_clock_do_not_collide(self, monkeypatch):
        monkeypatch.setattr(
            "boardguru_e2e.fixtures.data_factory.time.time_ns", lambda: 1_700_000_000_000_000_000
        )

        first = TestDataFactory(seed=1).create_test_data()
        second = TestDataFactory(seed=1).create_test_data()
        third = create_test_data()

        assert len({first.suffix, second.suffix, third.suffix}) == 3

    @pytest.mark.asyncio
    async def test_unique_across_concurrent_tasks(self):
        async def make():
            await asyncio.sleep(0)
            return create_test_data().email

        emails = await asyncio.gather(*(make() for _ in range(50)))

        assert len(set(emails)) == 50


class TestHelpers:
    """Tests for email, slug and date helpers."""

    def test_generate_random_email_domain(self):
        email = generate_random_email("boardguru.test")

        assert email.endswith("@boardguru.test")
        assert EMAIL_PATTERN.match(email)

    def test_generate_random_email_prefix(self, factory):
        assert factory.generate_random_email(prefix="invitee").startswith("invitee-")

    def test_unique_slug_prefix(self):
        assert unique_slug("acme").startswith("acme-")

    def test_add_days(self):
        assert add_days(date(2024, 1, 30), 2) == date(2024, 2, 1)
        assert add_days(datetime(2024, 3, 1, 12), -1) == datetime(2024, 2, 29, 12)

    def test_format_date(self):
        assert format_date(date(2024, 7, 4)) == "2024-07-04"
        assert format_date(datetime(2024, 7, 4, 23, 59)) == "2024-07-04"
