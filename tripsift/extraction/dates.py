"""Date proposals and date exceptions."""

import re
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Set, Tuple

from tripsift.core.logging import get_logger

from .messages import Message
from .schemas import DateStatus, ExtractedDate, Source
from .vocabulary import MONTH_RE

_log = get_logger("extraction.dates")

FINALIZED_BOOST = 15
FINALIZED_CAP = 95


@dataclass(frozen=True)
class DatePattern:
    name: str
    regex: re.Pattern
    confidence: int


DATE_PATTERNS: tuple[DatePattern, ...] = (
    # "December 15-18, 2024", "Dec 15-18", "Jan 24"
    DatePattern(
        "month_range",
        re.compile(
            rf"\b({MONTH_RE})\s+(\d{{1,2}})(?:\s*(?:-|–|to)\s*(\d{{1,2}}))?,?(?:\s*(\d{{4}}))?\b",
            re.IGNORECASE,
        ),
        80,
    ),
    # "15/12/2024", "15-12-24"
    DatePattern("numeric", re.compile(r"\b(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})\b"), 75),
    # "15th December"
    DatePattern(
        "ordinal_month",
        re.compile(rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+({MONTH_RE})\b", re.IGNORECASE),
        75,
    ),
    # "24th night", "25th morning"
    DatePattern(
        "ordinal_part_of_day",
        re.compile(r"\b(\d{1,2})(?:st|nd|rd|th)(?:\s*(?:night|morning|evening))?\b", re.IGNORECASE),
        70,
    ),
    # "next weekend", "this friday"
    DatePattern(
        "relative",
        re.compile(
            r"\b(this|next)\s+(monday|tuesday|wednesday|thursday|friday|saturday|sunday|week(?:end)?)\b",
            re.IGNORECASE,
        ),
        60,
    ),
)

_DAY = r"\d{1,2}(?:st|nd|rd|th)?"
# "Dec 20", "Dec 20-22", "25th", "25th of Dec"
_REFUSED_DATE = rf"(?:{MONTH_RE})\s+{_DAY}(?:\s*(?:-|–|to)\s*\d{{1,2}})?|{_DAY}(?:\s+(?:of\s+)?(?:{MONTH_RE}))?"

DATE_EXCEPTION_PATTERNS = [
    re.compile(
        r"(?:i\s+)?(?:can[’']?t|cannot|won[’']?t|not\s+available|busy)\s+"
        r"(?:(?:make|do)\s+(?:it\s+)?)?(?:on\s+)?(?:the\s+)?"
        rf"({_REFUSED_DATE}|\w+day)\b",
        re.IGNORECASE,
    ),
    re.compile(r"(\d{1,2}(?:st|nd|rd|th)?)\s+(?:doesn'?t|won'?t|not)\s+work", re.IGNORECASE),
    re.compile(r"(?:except|not)\s+(?:the\s+)?(\d{1,2}(?:st|nd|rd|th)?)\b", re.IGNORECASE),
]

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


def normalize_range(date_str: str) -> str:
    """Numbers only, so "Jan 24-26" and "24-26 jan" compare equal."""
    numbers = re.findall(r"\d+", date_str)
    if not numbers:
        return date_str.lower().strip()
    return "-".join(str(int(n)) for n in numbers)


def _context(text: str, start: int, radius: int = 50) -> str:
    lo = max(0, start - radius)
    hi = min(len(text), start + radius)
    return text[lo:hi].replace("\n", " ").strip()


def _iso(year: int, month: int, day: int) -> Optional[str]:
    if year < 100:
        year += 2000
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _iso_bounds(pattern: DatePattern, match: re.Match) -> Tuple[Optional[str], Optional[str]]:
    if pattern.name == "month_range":
        month_name, start_day, end_day, year = match.groups()
        if not year:
            return None, None
        month = _MONTHS[month_name[:3].lower()]
        start = _iso(int(year), month, int(start_day))
        end = _iso(int(year), month, int(end_day)) if end_day else start
        return start, end
    if pattern.name == "numeric":
        day, month, year = (int(g) for g in match.groups())
        iso = _iso(year, month, day)
        return iso, iso
    return None, None


def _overlaps(span: Tuple[int, int], taken: List[Tuple[int, int]]) -> bool:
    return any(span[0] < hi and lo < span[1] for lo, hi in taken)


def _refusal_spans(text: str) -> List[Tuple[int, int]]:
    """Spans of "can't make Dec 20" style phrases in ``text``."""
    return [m.span() for p in DATE_EXCEPTION_PATTERNS for m in p.finditer(text)]


def extract_dates(messages: List[Message], min_senders: int = 2) -> List[ExtractedDate]:
    """Date mentions with proposer tracking.

    A date is ``finalized`` when at least ``min_senders`` distinct senders
    mention the same normalized range; otherwise it stays ``open``. Dates
    inside a refusal ("can't make Dec 20") are neither proposals nor votes;
    ``extract_date_exceptions`` reports them.
    Results are sorted by confidence, highest first.
    """
    dates: List[ExtractedDate] = []
    seen: Set[str] = set()
    proposers: Dict[str, Set[str]] = {}
    taken: Dict[int, List[Tuple[int, int]]] = {}

    for pattern in DATE_PATTERNS:
        for idx, msg in enumerate(messages):
            if msg.is_media:
                continue
            if idx not in taken:
                taken[idx] = _refusal_spans(msg.content)
            for match in pattern.regex.finditer(msg.content):
                span = match.span()
                if _overlaps(span, taken[idx]):
                    continue
                taken[idx].append(span)

                date_str = match.group(0).strip()
                key = normalize_range(date_str)
                if msg.sender:
                    proposers.setdefault(key, set()).add(msg.sender)

                lowered = date_str.lower()
                if lowered in seen:
                    continue
                seen.add(lowered)

                start, end = _iso_bounds(pattern, match)
                dates.append(ExtractedDate(
                    date=date_str,
                    start_date=start,
                    end_date=end,
                    context=_context(msg.content, span[0]),
                    confidence=pattern.confidence,
                    source=Source.HEURISTIC,
                    proposed_by=msg.sender,
                    status=DateStatus.OPEN,
                ))

    for item in dates:
        voters = proposers.get(normalize_range(item.date), set())
        if len(voters) >= min_senders:
            item.status = DateStatus.FINALIZED
            item.confidence = min((item.confidence or 0) + FINALIZED_BOOST, FINALIZED_CAP)

    dates.sort(key=lambda d: d.confidence or 0, reverse=True)
    _log.debug("Dates extracted", items=len(dates),
               finalized=sum(1 for d in dates if d.status == DateStatus.FINALIZED))
    return dates


def extract_date_exceptions(messages: List[Message]) -> List[str]:
    """Constraints like "Riya: busy on the 25th" or "Riya: can't make Dec 20"."""
    exceptions: List[str] = []
    for msg in messages:
        if msg.is_media or not msg.content:
            continue
        taken: List[Tuple[int, int]] = []
        for pattern in DATE_EXCEPTION_PATTERNS:
            for match in pattern.finditer(msg.content):
                if _overlaps(match.span(), taken):
                    continue
                taken.append(match.span())
                entry = f"{msg.sender or 'Someone'}: {match.group(0).strip()}"
                if entry not in exceptions:
                    exceptions.append(entry)
    return exceptions
