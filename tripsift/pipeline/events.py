"""Progress observer interface for the extraction pipeline."""

from enum import Enum
from typing import Protocol, runtime_checkable

from tripsift.core.logging import get_logger
from tripsift.llm.providers import ProviderKind

_log = get_logger("pipeline.events")


class Stage(str, Enum):
    ANALYZING = "analyzing"
    EXTRACTING = "extracting"
    ENRICHING = "enriching"
    FINALIZING = "finalizing"
    COMPLETE = "complete"


STAGE_PERCENT: dict[Stage, int] = {
    Stage.ANALYZING: 10,
    Stage.EXTRACTING: 30,
    Stage.ENRICHING: 70,
    Stage.FINALIZING: 90,
    Stage.COMPLETE: 100,
}


@runtime_checkable
class ProgressObserver(Protocol):
    """Receives pipeline progress; exceptions raised here are logged and dropped."""

    def on_progress(self, stage: str, percent: int) -> None: ...

    def on_provider_change(self, kind: ProviderKind) -> None: ...

    def on_fallback(self, kind: ProviderKind) -> None: ...


class NullObserver:
    def on_progress(self, stage: str, percent: int) -> None:
        pass

    def on_provider_change(self, kind: ProviderKind) -> None:
        pass

    def on_fallback(self, kind: ProviderKind) -> None:
        pass


class LoggingObserver:
    """Writes every event to the structured log."""

    def on_progress(self, stage: str, percent: int) -> None:
        _log.info("Progress", stage=stage, percent=percent)

    def on_provider_change(self, kind: ProviderKind) -> None:
        _log.info("Provider attempt", provider=kind.value)

    def on_fallback(self, kind: ProviderKind) -> None:
        _log.warning("Falling back", provider=kind.value)
