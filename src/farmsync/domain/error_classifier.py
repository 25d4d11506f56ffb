"""Classification of remote failures into a closed set of kinds.

The kind decides whether the caller falls back to offline data and how the
failure is worded for the user.
"""

import asyncio
import re
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError


class ErrorKind(str, Enum):
    """Closed taxonomy of remote failures."""

    BLOCKED = "blocked"
    NETWORK_DOWN = "network"
    MISSING_INDEX = "missing-index"
    BACKEND_ERROR = "backend"
    UNKNOWN = "unknown"


BLOCKED_PATTERNS = (
    "err_blocked_by_client",
    "blocked by client",
    "adblocker",
    "ublock",
    "adblock",
)

NETWORK_PATTERNS = (
    "network error",
    "failed to fetch",
    "fetch error",
    "connection failed",
    "net::err_",
    "timeout",
    "timed out",
    "connection_refused",
    "connection refused",
    "connection_reset",
    "connection reset",
    "could not connect",
    "dns_probe_finished",
    "no internet",
)

MISSING_INDEX_PATTERNS = (
    "requires an index",
    "create it here",
    "indexes?create_composite",
)

BACKEND_CODE_PREFIXES = ("firestore/", "auth/")
BACKEND_ERROR_NAMES = ("FirebaseError",)

FALLBACK_KINDS = frozenset({ErrorKind.BLOCKED, ErrorKind.NETWORK_DOWN, ErrorKind.MISSING_INDEX})

MESSAGES = {
    "en": {
        ErrorKind.BLOCKED: "Connection blocked by the browser. Check ad-blocking extensions.",
        ErrorKind.NETWORK_DOWN: "Internet connection error. Check your connectivity.",
        ErrorKind.MISSING_INDEX: "The database needs an index configured. Working in offline mode.",
        ErrorKind.BACKEND_ERROR: "Remote database error. Check the project configuration.",
        ErrorKind.UNKNOWN: "Unknown error: {detail}",
    },
    "es": {
        ErrorKind.BLOCKED: "Conexión bloqueada por el navegador. Verifica extensiones de bloqueo de anuncios.",
        ErrorKind.NETWORK_DOWN: "Error de conexión a internet. Verifica tu conectividad.",
        ErrorKind.MISSING_INDEX: "La base de datos requiere configuración de índices. Funcionando en modo offline.",
        ErrorKind.BACKEND_ERROR: "Error de la base de datos remota. Verifica la configuración del proyecto.",
        ErrorKind.UNKNOWN: "Error desconocido: {detail}",
    },
}

_URL_PATTERN = re.compile(r"https://\S+")


def _error_text(error: BaseException) -> str:
    return f"{type(error).__name__}: {error}".lower()


def _matches(text: str, patterns: tuple[str, ...]) -> bool:
    return any(pattern in text for pattern in patterns)


def _is_backend_error(error: BaseException) -> bool:
    if isinstance(error, SQLAlchemyError):
        return True
    code = getattr(error, "code", None)
    if isinstance(code, str) and code.startswith(BACKEND_CODE_PREFIXES):
        return True
    return type(error).__name__ in BACKEND_ERROR_NAMES


def classify(error: BaseException) -> ErrorKind:
    """Map an arbitrary exception to an ErrorKind.

    Checks run in order: blocked, network, missing index, backend. A blocked
    request often also looks like a network failure, so it is tested first.
    """
    text = _error_text(error)
    if _matches(text, BLOCKED_PATTERNS):
        return ErrorKind.BLOCKED
    if isinstance(error, (TimeoutError, asyncio.TimeoutError, ConnectionError)):
        return ErrorKind.NETWORK_DOWN
    if _matches(text, NETWORK_PATTERNS):
        return ErrorKind.NETWORK_DOWN
    if _matches(text, MISSING_INDEX_PATTERNS):
        return ErrorKind.MISSING_INDEX
    if _is_backend_error(error):
        return ErrorKind.BACKEND_ERROR
    return ErrorKind.UNKNOWN


def should_fallback_to_offline(error: BaseException) -> bool:
    """True when retrying remotely is futile until something external changes."""
    return classify(error) in FALLBACK_KINDS


def describe(error: BaseException, locale: str = "en") -> str:
    """Return a user-facing message for the error's kind."""
    messages = MESSAGES.get(locale, MESSAGES["en"])
    detail = str(error) or type(error).__name__
    return messages[classify(error)].format(detail=detail)


def index_url(error: BaseException) -> Optional[str]:
    """Extract the console link that provisions a missing index, if present."""
    if classify(error) is not ErrorKind.MISSING_INDEX:
        return None
    match = _URL_PATTERN.search(str(error))
    return match.group(0) if match else None
