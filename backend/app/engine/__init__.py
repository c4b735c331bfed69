"""Design critique engine: selection analysis, prompt building and request correlation."""

from app.engine.analyzer import TreeAnalyzer
from app.engine.config import CritiqueConfig
from app.engine.correlator import RequestCorrelator, RequestState
from app.engine.dispatcher import MessageDispatcher, create_dispatcher
from app.engine.errors import CritiqueError, ErrorCode, ErrorKind

__all__ = [
    "TreeAnalyzer",
    "CritiqueConfig",
    "RequestCorrelator",
    "RequestState",
    "MessageDispatcher",
    "create_dispatcher",
    "CritiqueError",
    "ErrorCode",
    "ErrorKind",
]
