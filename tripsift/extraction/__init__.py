from .engine import HeuristicEngine
from .messages import Message, extract_chat_block, parse_messages
from .schemas import (
    BudgetItem,
    BudgetProposal,
    BudgetStatus,
    Coordinates,
    DateStatus,
    EnrichedPlaceData,
    ExtractedBudget,
    ExtractedDate,
    ExtractedDecision,
    ExtractedPlace,
    ExtractedTask,
    ExtractionResult,
    ExtractionStats,
    OpenQuestion,
    PlaceStatus,
    PlaceType,
    QuestionStatus,
    Source,
    TaskPriority,
    TaskStatus,
)

__all__ = [
    "HeuristicEngine",
    "Message",
    "parse_messages",
    "extract_chat_block",
    "BudgetItem",
    "BudgetProposal",
    "BudgetStatus",
    "Coordinates",
    "DateStatus",
    "EnrichedPlaceData",
    "ExtractedBudget",
    "ExtractedDate",
    "ExtractedDecision",
    "ExtractedPlace",
    "ExtractedTask",
    "ExtractionResult",
    "ExtractionStats",
    "OpenQuestion",
    "PlaceStatus",
    "PlaceType",
    "QuestionStatus",
    "Source",
    "TaskPriority",
    "TaskStatus",
]
