"""Verification engine: SSA alias table, symbolic execution and call-sequence exploration."""

from modelverify.verification.verifier import Verifier, verify

__all__ = ["Verifier", "verify"]
