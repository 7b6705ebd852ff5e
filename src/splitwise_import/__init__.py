"""splitwise-import - Import CSV expenses into Splitwise."""

__version__ = "0.1.0"

from .auth import SplitwiseAuth
from .cache import TokenCache
from .clients.splitwise import SplitwiseClient
from .config import Settings, load_settings
from .models import (
    AuthFailure,
    AuthSuccess,
    CreateExpenseRequest,
    ExpenseEntry,
    SplitMode,
    SplitwiseApp,
)
from .parser import ExpenseFile, parse_file
from .service import ImportService

__all__ = [
    "Settings",
    "load_settings",
    "SplitwiseAuth",
    "TokenCache",
    "SplitwiseClient",
    "AuthFailure",
    "AuthSuccess",
    "CreateExpenseRequest",
    "ExpenseEntry",
    "SplitMode",
    "SplitwiseApp",
    "ExpenseFile",
    "parse_file",
    "ImportService",
]
