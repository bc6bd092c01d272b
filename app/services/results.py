"""
WorkForce - Dispatch Results

Outcomes of operations whose failures are not errors to the caller:
the router maps each variant onto an HTTP status.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Union


@dataclass(frozen=True)
class Success:
    """The operation completed."""
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SoftFailure:
    """
    The operation did not happen, but the caller's own action stands.

    ``payload`` is returned to the client as-is.
    """
    reason: str
    payload: Dict[str, Any] = field(default_factory=dict)


DispatchResult = Union[Success, SoftFailure]
