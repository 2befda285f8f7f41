from __future__ import annotations


class RolesError(Exception):
    """Base class for registration errors raised by rolevote."""


class InvalidArgumentCountError(RolesError, TypeError):
    def __init__(self, count: int) -> None:
        super().__init__(f"use can have 1 or 2 arguments, not {count}")
        self.count = count


class InvalidActionNameError(RolesError, TypeError):
    pass


class InvalidVoterError(RolesError, TypeError):
    pass


__all__ = [
    "RolesError",
    "InvalidArgumentCountError",
    "InvalidActionNameError",
    "InvalidVoterError",
]
