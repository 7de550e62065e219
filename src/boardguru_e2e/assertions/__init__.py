"""Polling assertion layer."""

from .expectations import Expectations, ProbeError

__all__ = ["Expectations", "ProbeError"]
