from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Union, runtime_checkable

from .decision import Vote

# anything else a voter returns counts as an abstention
VoteResult = Union[bool, Vote, None]

# (context, action) -> VoteResult, or an awaitable of it
Voter = Callable[[Any, str], Union[VoteResult, Awaitable[VoteResult]]]

# (context, action) -> response or None, possibly awaitable
FailureHandler = Callable[[Any, str], Any]

# (context) -> response, possibly awaitable
Continuation = Callable[[Any], Any]


@runtime_checkable
class MetricsSink(Protocol):
    """Receives one ``inc`` per decision; sinks may also define ``observe(name, value, labels)``."""

    def inc(self, name: str, labels: Optional[Dict[str, str]] = None) -> None: ...


__all__ = ["Voter", "VoteResult", "FailureHandler", "Continuation", "MetricsSink"]
