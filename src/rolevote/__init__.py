from importlib.metadata import PackageNotFoundError, version

from . import adapters, core, metrics
from .core.current import current_access
from .core.decision import Vote
from .core.engine import Access, Roles
from .core.errors import (
    InvalidActionNameError,
    InvalidArgumentCountError,
    InvalidVoterError,
    RolesError,
)
from .core.failure import default_failure_handler
from .core.registry import VoterRegistry

try:
    __version__ = version("rolevote")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = [
    "Roles",
    "Access",
    "Vote",
    "VoterRegistry",
    "RolesError",
    "InvalidArgumentCountError",
    "InvalidActionNameError",
    "InvalidVoterError",
    "current_access",
    "default_failure_handler",
    "core",
    "adapters",
    "metrics",
    "__version__",
]
