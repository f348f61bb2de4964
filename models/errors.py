"""Error taxonomy for slip ingestion and extraction."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    STORE_UNAVAILABLE = "StoreUnavailable"
    UNAUTHENTICATED_CALLER = "UnauthenticatedCaller"
    UNSUPPORTED_INPUT = "UnsupportedInput"
    TRANSPORT_FAILURE = "TransportFailure"
    MALFORMED_RESPONSE = "MalformedResponse"
    PERSISTENCE_FAILURE = "PersistenceFailure"


class SlipProcessingError(Exception):
    """Base class for errors that map onto an ErrorKind."""

    kind: ErrorKind


class StoreUnavailable(SlipProcessingError):
    kind = ErrorKind.STORE_UNAVAILABLE


class UnauthenticatedCaller(SlipProcessingError):
    kind = ErrorKind.UNAUTHENTICATED_CALLER


class UnsupportedInput(SlipProcessingError):
    kind = ErrorKind.UNSUPPORTED_INPUT


class TransportFailure(SlipProcessingError):
    kind = ErrorKind.TRANSPORT_FAILURE


class MalformedResponse(SlipProcessingError):
    kind = ErrorKind.MALFORMED_RESPONSE


class PersistenceFailure(SlipProcessingError):
    kind = ErrorKind.PERSISTENCE_FAILURE
