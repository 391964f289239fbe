from .base import Base

from .institution import Institution
from .event import Event, EventLevel
from .result import Result, ResultPlacement
from .institution_total import InstitutionTotal
from .festival_state import FestivalState, FINALIZED_KEY


__all__ = [
    "Base",
    "Institution",
    "Event",
    "EventLevel",
    "Result",
    "ResultPlacement",
    "InstitutionTotal",
    "FestivalState",
    "FINALIZED_KEY",
]
