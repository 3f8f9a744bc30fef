"""
Application-level exceptions for the ledger bootstrap.

Only fatal conditions are exceptions. A missing Redis or a missing local
validator is logged and absorbed where it happens; it never reaches here.
"""

from __future__ import annotations


class BootstrapError(Exception):
    """Base class: the process must not start."""


class FatalConfigurationError(BootstrapError):
    """Required production variables are absent."""

    def __init__(self, missing: tuple[str, ...] | list[str]) -> None:
        self.missing = tuple(missing)
        super().__init__(
            "Production environment requires "
            + " and ".join(self.missing)
            + " to be set."
        )


class FatalIdentityError(BootstrapError):
    """The service keypair could not be loaded, generated or validated."""


class KeypairLoadError(FatalIdentityError):
    """Keypair file missing, unreadable or malformed."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Could not load keypair from '{source}': {reason}")


class IdentityMismatchError(FatalIdentityError):
    """Derived address of the loaded keypair differs from the configured one."""

    def __init__(self, expected: str, actual: str, source: str) -> None:
        self.expected = expected
        self.actual = actual
        self.source = source
        super().__init__(
            f"Wallet address mismatch. Expected '{expected}' but keypair at "
            f"'{source}' has address '{actual}'. Verify the keypair file and "
            "SERVICE_WALLET_ADDRESS."
        )
