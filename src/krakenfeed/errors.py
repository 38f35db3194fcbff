from __future__ import annotations
from dataclasses import dataclass
from enum import Enum


class KrakenError(Exception):
    """Base class for everything raised by krakenfeed."""


class ParseErrorKind(str, Enum):
    INVALID_TARGET = "invalid_target"
    UNSUPPORTED_TYPE = "unsupported_type"
    MALFORMED = "malformed"


class ParseError(KrakenError):
    """A response could not be turned into the requested result type.

    Nothing is returned alongside a ParseError: the destination is never
    partially populated.
    """

    def __init__(self, kind: ParseErrorKind, detail: str = ""):
        self.kind = kind
        self.detail = detail
        msg = f"parse error ({kind.value})"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class NetworkError(KrakenError):
    """The request did not complete (connection, timeout, HTTP status)."""


class DryRunError(KrakenError):
    """The client is in dry-run mode, so no request was sent."""


class ErrorCategory(str, Enum):
    """Prefix tokens the exchange puts in front of its `error` strings."""

    GENERAL = "EGeneral"
    API = "EAPI"
    QUERY = "EQuery"
    ORDER = "EOrder"
    TRADE = "ETrade"
    FUNDING = "EFunding"
    SERVICE = "EService"
    SESSION = "ESession"
    UNKNOWN = "unknown API error"


@dataclass(eq=True)
class KrakenAPIError(KrakenError):
    """An error reported in-band by the API (`"EQuery:Unknown asset pair"`).

    These are data on a successful response, not failures of the call, so
    they compare by value. For UNKNOWN the message is the full original
    string.
    """

    category: ErrorCategory
    message: str

    def __str__(self) -> str:
        return f"{self.category.value}:{self.message}"
