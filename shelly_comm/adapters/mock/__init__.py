"""Scripted in-memory transport for tests"""

from .client import MockTransport, error_envelope, success_envelope

__all__ = ["MockTransport", "error_envelope", "success_envelope"]
