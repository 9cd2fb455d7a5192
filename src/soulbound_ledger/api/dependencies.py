"""FastAPI dependencies for caller identity and the ledger host."""

import threading
from typing import Optional

from fastapi import Header, status

from ..config import config_manager
from ..core.identity import Address, is_zero_address
from ..db.database import get_session_factory, init_database
from ..store.host import LedgerHost
from .middleware import ProblemDetailsException

_host: Optional[LedgerHost] = None
_host_lock = threading.Lock()


def get_host() -> LedgerHost:
    """Process-wide ledger host, built from configuration on first use."""
    global _host
    with _host_lock:
        if _host is None:
            config = config_manager.require_valid()
            init_database()
            _host = LedgerHost.from_config(config, get_session_factory())
    return _host


def get_caller(
    x_caller_address: Optional[str] = Header(
        None, description="Identity on whose behalf the call is made"
    ),
) -> Address:
    """Caller identity taken from the X-Caller-Address header."""
    if x_caller_address is None or not x_caller_address.strip():
        raise ProblemDetailsException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            title="Unauthorized",
            detail="Missing X-Caller-Address header",
        )
    caller = x_caller_address.strip()
    if is_zero_address(caller):
        raise ProblemDetailsException(
            status_code=status.HTTP_400_BAD_REQUEST,
            title="Bad Request",
            detail="The zero identity cannot make calls",
        )
    return caller
