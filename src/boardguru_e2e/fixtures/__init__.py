"""Test data generation."""

from .data_factory import (
    TestDataFactory,
    add_days,
    create_test_data,
    format_date,
    generate_random_email,
    to_base36,
    unique_slug,
)

__all__ = [
    "TestDataFactory",
    "add_days",
    "create_test_data",
    "format_date",
    "generate_random_email",
    "to_base36",
    "unique_slug",
]
