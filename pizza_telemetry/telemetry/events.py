"""
Event vocabulary accepted by the counter registry.

Request-handling code never touches accumulators directly; it reports one of
these immutable events and the registry decides which accumulators move.
The vocabulary is intentionally permissive: unrecognized methods or status
codes are valid events that simply move fewer counters.
"""
from dataclasses import dataclass
from typing import Optional

# HTTP methods tracked individually; anything else only counts towards "all"
TRACKED_METHODS = ("get", "post", "put", "delete")

# Methods whose successful call on the auth path opens a session
# (POST = register, PUT = login) and the one that closes it (DELETE = logout)
SESSION_OPEN_METHODS = ("post", "put")
SESSION_CLOSE_METHOD = "delete"


def normalize_method(method) -> str:
    """Lower-case an HTTP method; non-strings normalize to ``""``."""
    if not isinstance(method, str):
        return ""
    return method.strip().lower()


def normalize_path(path) -> str:
    """Strip query string and trailing slash so ``/api/auth/`` matches ``/api/auth``."""
    if not isinstance(path, str):
        return ""
    path = path.split("?", 1)[0]
    if len(path) > 1:
        path = path.rstrip("/")
    return path


@dataclass(frozen=True)
class HttpRequestReceived:
    method: str


@dataclass(frozen=True)
class AuthOutcome:
    """Result of a call to the auth endpoint; 200 succeeds, >= 400 fails."""
    status_code: int


@dataclass(frozen=True)
class SessionOutcome:
    """Shape of a completed auth call, fed to the active-session heuristic."""
    method: str
    path: str
    status_code: int


@dataclass(frozen=True)
class OrderOutcome:
    success: bool
    revenue: Optional[float] = None
    quantity: int = 1


@dataclass(frozen=True)
class ChaosIncident:
    """A request rejected by the chaos-injection guard (e.g. ``url_encoding``)."""
    kind: str
