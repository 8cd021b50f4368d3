"""
Pydantic schemas for the extraction payload.

Remote providers return camelCase JSON (``startDate``, ``openQuestions``,
``madeBy``); the models accept it through aliases and also accept the
snake_case field names used by the offline engine.
"""

from enum import Enum
from typing import Any, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# === Enums ===

class Source(str, Enum):
    """Where an extracted item came from."""
    AI = "ai"
    HEURISTIC = "heuristic"


class DateStatus(str, Enum):
    OPEN = "open"
    FINALIZED = "finalized"


class BudgetStatus(str, Enum):
    OPEN = "open"
    FINALIZED = "finalized"


class PlaceStatus(str, Enum):
    CONFIRMED = "confirmed"
    MAYBE = "maybe"
    REJECTED = "rejected"


class PlaceType(str, Enum):
    DESTINATION = "destination"
    ACCOMMODATION = "accommodation"
    HOTEL = "hotel"
    RESTAURANT = "restaurant"
    NIGHTLIFE = "nightlife"
    ATTRACTION = "attraction"
    ACTIVITY = "activity"
    BEACH = "beach"
    LANDMARK = "landmark"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class QuestionStatus(str, Enum):
    OPEN = "open"
    CONDITIONAL = "conditional"


def _coerce_enum(enum_cls: type[Enum], value: Any, default: Optional[Enum]) -> Any:
    if value is None or isinstance(value, enum_cls):
        return value if value is not None else default
    text = str(value).strip().lower().replace("_", "-")
    for member in enum_cls:
        if member.value == text:
            return member
    return default


def _coerce_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(v) for v in value if v is not None and str(v).strip()]


def _coerce_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:g}" if isinstance(value, float) else str(value)
    return str(value)


class _Model(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        use_enum_values=False,
    )


class _Attributed(_Model):
    """Items that carry provenance and an optional confidence in [0, 100]."""

    source: Optional[Source] = None
    confidence: Optional[float] = None

    @field_validator("source", mode="before")
    @classmethod
    def validate_source(cls, v: Any) -> Any:
        return _coerce_enum(Source, v, None)

    @field_validator("confidence", mode="before")
    @classmethod
    def validate_confidence(cls, v: Any) -> Optional[float]:
        if v is None or v == "":
            return None
        try:
            value = float(v)
        except (TypeError, ValueError):
            return None
        return max(0.0, min(100.0, value))


# === Category items ===

class ExtractedDate(_Attributed):
    date: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    context: str = ""
    proposed_by: Optional[str] = None
    status: DateStatus = DateStatus.OPEN

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> Any:
        return _coerce_enum(DateStatus, v, DateStatus.OPEN)

    @field_validator("context", mode="before")
    @classmethod
    def validate_context(cls, v: Any) -> str:
        return "" if v is None else str(v)


class BudgetItem(_Model):
    item: str
    amount: str
    assignee: Optional[str] = None
    source: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v: Any) -> Any:
        return _coerce_optional_str(v) or ""


class BudgetProposal(_Model):
    amount: str
    proposed_by: List[str] = Field(default_factory=list)
    context: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v: Any) -> Any:
        return _coerce_optional_str(v) or ""

    @field_validator("proposed_by", mode="before")
    @classmethod
    def validate_proposed_by(cls, v: Any) -> List[str]:
        return _coerce_str_list(v)


class ExtractedBudget(_Attributed):
    total: Optional[str] = None
    currency: str = "INR"
    per_person: bool = False
    breakdown: List[BudgetItem] = Field(default_factory=list)
    status: BudgetStatus = BudgetStatus.OPEN
    proposals: Optional[List[BudgetProposal]] = None

    @field_validator("total", mode="before")
    @classmethod
    def validate_total(cls, v: Any) -> Optional[str]:
        return _coerce_optional_str(v)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> Any:
        return _coerce_enum(BudgetStatus, v, BudgetStatus.OPEN)

    @field_validator("breakdown", mode="before")
    @classmethod
    def validate_breakdown(cls, v: Any) -> Any:
        return [] if v is None else v


class Coordinates(_Model):
    lat: float
    lng: float


class EnrichedPlaceData(_Model):
    place_id: str
    name: str
    formatted_address: str = ""
    coordinates: Coordinates
    types: List[str] = Field(default_factory=list)
    source: str = "nominatim"


class ExtractedPlace(_Attributed):
    name: str
    type: Optional[PlaceType] = None
    votes: int = 1
    status: PlaceStatus = PlaceStatus.MAYBE
    mentioned_by: List[str] = Field(default_factory=list)
    coordinates: Optional[Coordinates] = None
    enriched_data: Optional[EnrichedPlaceData] = None

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, v: Any) -> Any:
        return _coerce_enum(PlaceType, v, None)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> Any:
        return _coerce_enum(PlaceStatus, v, PlaceStatus.MAYBE)

    @field_validator("mentioned_by", mode="before")
    @classmethod
    def validate_mentioned_by(cls, v: Any) -> List[str]:
        return _coerce_str_list(v)

    @field_validator("votes", mode="before")
    @classmethod
    def validate_votes(cls, v: Any) -> int:
        try:
            return max(0, int(v))
        except (TypeError, ValueError):
            return 1


class ExtractedTask(_Model):
    task: str
    assignee: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    deadline: Optional[str] = None
    priority: Optional[TaskPriority] = None
    source: Optional[Source] = None

    @field_validator("source", mode="before")
    @classmethod
    def validate_source(cls, v: Any) -> Any:
        return _coerce_enum(Source, v, None)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> Any:
        return _coerce_enum(TaskStatus, v, TaskStatus.PENDING)

    @field_validator("priority", mode="before")
    @classmethod
    def validate_priority(cls, v: Any) -> Any:
        return _coerce_enum(TaskPriority, v, None)


class ExtractedDecision(_Attributed):
    decision: str
    timestamp: Optional[str] = None
    made_by: Optional[str] = None
    participants: List[str] = Field(default_factory=list)
    confirmed: bool = False

    @field_validator("participants", mode="before")
    @classmethod
    def validate_participants(cls, v: Any) -> List[str]:
        return _coerce_str_list(v)

    @field_validator("made_by", mode="before")
    @classmethod
    def validate_made_by(cls, v: Any) -> Optional[str]:
        if isinstance(v, list):
            return ", ".join(str(x) for x in v) or None
        return v


class OpenQuestion(_Model):
    question: str
    participants: List[str] = Field(default_factory=list)
    context: Optional[str] = None
    status: QuestionStatus = QuestionStatus.OPEN
    source: Optional[Source] = None

    @field_validator("participants", mode="before")
    @classmethod
    def validate_participants(cls, v: Any) -> List[str]:
        return _coerce_str_list(v)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> Any:
        return _coerce_enum(QuestionStatus, v, QuestionStatus.OPEN)

    @field_validator("source", mode="before")
    @classmethod
    def validate_source(cls, v: Any) -> Any:
        return _coerce_enum(Source, v, None)


# === Result ===

class ExtractionStats(_Model):
    total_messages: int = 0
    relevant_messages: int = 0
    media_filtered: int = 0
    extracted_items: int = 0
    processing_time_ms: float = 0.0
    providers_used: List[str] = Field(default_factory=list)


class ExtractionResult(_Model):
    """Structured trip-planning data extracted from one chat."""

    dates: List[ExtractedDate] = Field(default_factory=list)
    budget: Optional[ExtractedBudget] = None
    places: List[ExtractedPlace] = Field(default_factory=list)
    tasks: List[ExtractedTask] = Field(default_factory=list)
    decisions: List[ExtractedDecision] = Field(default_factory=list)
    open_questions: List[OpenQuestion] = Field(default_factory=list)
    date_exceptions: List[str] = Field(default_factory=list)
    stats: ExtractionStats = Field(default_factory=ExtractionStats)

    @field_validator("dates", "places", "tasks", "decisions", "open_questions", "date_exceptions", mode="before")
    @classmethod
    def validate_lists(cls, v: Any) -> Any:
        return [] if v is None else v

    def count_items(self) -> int:
        """Sum of all category cardinalities; a budget counts its breakdown plus itself."""
        budget_items = len(self.budget.breakdown) + 1 if self.budget else 0
        return (
            len(self.dates)
            + budget_items
            + len(self.places)
            + len(self.tasks)
            + len(self.decisions)
            + len(self.open_questions)
        )

    def iter_items(self) -> Iterator[BaseModel]:
        """Every top-level item, the budget included."""
        yield from self.dates
        if self.budget is not None:
            yield self.budget
        yield from self.places
        yield from self.tasks
        yield from self.decisions
        yield from self.open_questions

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
