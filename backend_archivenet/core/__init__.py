"""
Core — exceptions shared by the bootstrap, cache and API layers.
"""

from backend_archivenet.core.exceptions import (
    BootstrapError,
    FatalConfigurationError,
    FatalIdentityError,
    IdentityMismatchError,
    KeypairLoadError,
)

__all__ = [
    "BootstrapError",
    "FatalConfigurationError",
    "FatalIdentityError",
    "IdentityMismatchError",
    "KeypairLoadError",
]
