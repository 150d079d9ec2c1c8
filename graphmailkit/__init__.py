"""
GraphMailKit: legacy mail-library API on top of Microsoft Graph.

Send and read mail with app-only OAuth credentials after SMTP basic
authentication has been turned off.
"""

__version__ = "0.1.0"

from .client import UnifiedMailClient
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    GraphMailError,
    GraphRequestError,
    MimeDecodeError,
    NotInitializedError,
)
from .models import GraphFolder, GraphMessage, MailMessage
from .services.graph_reader import GraphMailReader
from .services.graph_sender import GraphMailSender
from .services.mime_parser import MimeParser
from .services.token_manager import ClientSecretCredential, TokenManager, get_token_manager

__all__ = [
    "__version__",
    "UnifiedMailClient",
    "AuthenticationError",
    "ConfigurationError",
    "GraphMailError",
    "GraphRequestError",
    "MimeDecodeError",
    "NotInitializedError",
    "GraphFolder",
    "GraphMessage",
    "MailMessage",
    "GraphMailReader",
    "GraphMailSender",
    "MimeParser",
    "ClientSecretCredential",
    "TokenManager",
    "get_token_manager",
]
