from .decision import Vote
from .engine import Access, Roles
from .errors import (
    InvalidActionNameError,
    InvalidArgumentCountError,
    InvalidVoterError,
    RolesError,
)
from .registry import VoterRegistry

__all__ = [
    "Access",
    "Roles",
    "Vote",
    "VoterRegistry",
    "RolesError",
    "InvalidArgumentCountError",
    "InvalidActionNameError",
    "InvalidVoterError",
]
