"""
Budget amounts, proposals and consensus.

Amounts are read per message so every figure keeps its sender. Figures
that talk about the whole trip (``Total`` or uncategorized, or stated per
person) are proposals; the rest are breakdown lines (stay, transport...).
"""

import math
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from tripsift.core.logging import get_logger

from .messages import Message
from .schemas import BudgetItem, BudgetProposal, BudgetStatus, ExtractedBudget, Source

_log = get_logger("extraction.budget")

MONEY_CONTEXT_SIGNALS = (
    "₹", "rs", "inr", "budget", "cost", "price",
    "per person", "per night", "per head", "each", "total",
    "stay", "hotel", "hostel", "resort", "room",
    "train", "bus", "flight", "cab", "taxi", "travel", "ticket",
    "food", "expense", "spend", "worth", "max", "min", "around",
    "approx", "roughly", "about", "upto", "up to", "stretch",
)

DATE_LIKE_PATTERNS = [
    re.compile(r"^\d{1,2}\s*[-/]\s*\d{1,2}$"),
    re.compile(r"^\d{1,2}:\d{2}$"),
    re.compile(r"\b(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)\s*\d{1,2}", re.IGNORECASE),
    re.compile(r"\d{1,2}\s*(am|pm)\b", re.IGNORECASE),
]
_DATE_CONTEXT_RE = re.compile(
    r"\b(date|day|night|morning|evening|pm|am|jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)\b",
    re.IGNORECASE,
)

MEDIA_INDICATORS = ("meme", "gif", "sticker", "image", "video", "omitted", "sent a")

_NUMBER = r"(\d[\d,]*(?:\.\d+)?)"

RANGE_PATTERN = re.compile(
    rf"(?:₹|\brs\.?|\binr)?\s*{_NUMBER}\s*(k)?\s*(?:-|–|\bto\b)\s*{_NUMBER}\s*(k)?\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class CurrencyPattern:
    regex: re.Pattern
    currency: str
    symbol: str


CURRENCY_PATTERNS: tuple[CurrencyPattern, ...] = (
    # "rs 10k", "₹1.8k"
    CurrencyPattern(re.compile(rf"(?:₹|\brs\.?|\binr)\s*{_NUMBER}\s*k\b", re.IGNORECASE), "INR", "₹"),
    # "₹15,000", "Rs. 15000"
    CurrencyPattern(re.compile(rf"(?:₹|\brs\.?|\binr)\s*{_NUMBER}", re.IGNORECASE), "INR", "₹"),
    # "15k max"
    CurrencyPattern(re.compile(rf"\b{_NUMBER}\s*k\b", re.IGNORECASE), "INR", "₹"),
    CurrencyPattern(re.compile(rf"(?:\$|\busd)\s*{_NUMBER}", re.IGNORECASE), "USD", "$"),
    CurrencyPattern(re.compile(rf"(?:€|\beur)\s*{_NUMBER}", re.IGNORECASE), "EUR", "€"),
)

PER_PERSON_PATTERN = re.compile(r"per\s*(?:person|head|pax)|\beach\b|/person|/head", re.IGNORECASE)
PER_NIGHT_PATTERN = re.compile(r"per\s*(?:night|day)|/night|/day|a\s*night", re.IGNORECASE)

# Checked in order; the first category with a keyword in context wins.
CATEGORY_KEYWORDS: Dict[str, tuple[str, ...]] = {
    "Stay": ("hostel", "hotel", "resort", "stay", "room", "dorm", "accommodation", "airbnb", "oyo"),
    "Transport": ("train", "bus", "flight", "cab", "taxi", "travel", "ticket", "uber", "ola", "petrol", "fuel"),
    "Food": ("food", "eat", "lunch", "dinner", "breakfast", "meal", "restaurant", "dhaba", "cafe"),
    "Activities": ("entry", "cruise", "scuba", "parasailing", "activity", "tour", "guide", "ride"),
    "Total": ("total", "budget", "max", "overall", "per person", "per head"),
}
UNCATEGORIZED = "Expense"
PROPOSAL_CATEGORIES = frozenset({"Total", UNCATEGORIZED})

MIN_AMOUNT = 100
MAX_BREAKDOWN = 6


@dataclass
class Amount:
    amount: float
    currency: str
    symbol: str
    context: str
    category: str
    per_person: bool
    per_night: bool
    max_amount: Optional[float] = None
    sender: Optional[str] = None

    @property
    def is_proposal(self) -> bool:
        return self.category in PROPOSAL_CATEGORIES or self.per_person

    def label(self) -> str:
        text = format_currency(self.amount, self.symbol)
        if self.max_amount is not None:
            text = f"{text} - {format_currency(self.max_amount, self.symbol)}"
        return text


# === Helpers ===

def _indian_grouping(number: int) -> str:
    """1234567 -> "12,34,567" (lakh/crore grouping)."""
    digits = str(number)
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_currency(amount: float, symbol: str = "₹") -> str:
    """₹8000 -> "₹8,000"; 250000 -> "₹2.5L"."""
    if amount >= 100_000:
        return f"{symbol}{amount / 100_000:.1f}L"
    if amount >= 1000:
        whole = int(amount)
        fraction = round(amount - whole, 2)
        text = _indian_grouping(whole)
        if fraction:
            text += f"{fraction:.2f}"[1:].rstrip("0")
        return f"{symbol}{text}"
    return f"{symbol}{amount:g}"


def parse_amount(raw: str, thousands: bool = False) -> float:
    value = float(raw.replace(",", ""))
    return value * 1000 if thousands else value


def _context(text: str, start: int, radius: int = 80) -> str:
    lo = max(0, start - radius)
    hi = min(len(text), start + radius)
    return text[lo:hi].replace("\n", " ").strip()


def _clean_context(context: str) -> str:
    cleaned = re.sub(r"[^\w\s₹$€.,\-–]", "", context)
    return re.sub(r"\s+", " ", cleaned).strip()[:50]


def has_money_context(context: str, matched: str) -> bool:
    if re.search(r"₹|\brs\.?|\binr|\$|€", matched, re.IGNORECASE) or re.search(r"\d\s*k\b", matched, re.IGNORECASE):
        return True
    lower = context.lower()
    return any(signal in lower for signal in MONEY_CONTEXT_SIGNALS)


def is_date_like(matched: str, context: str) -> bool:
    if any(p.search(matched.strip()) for p in DATE_LIKE_PATTERNS):
        return True
    lower = context.lower()
    return bool(_DATE_CONTEXT_RE.search(lower)) and not any(s in lower for s in MONEY_CONTEXT_SIGNALS)


def is_media_context(context: str) -> bool:
    lower = context.lower()
    return any(m in lower for m in MEDIA_INDICATORS)


def detect_category(context: str) -> str:
    lower = context.lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(re.search(rf"\b{re.escape(kw)}", lower) for kw in keywords):
            return category
    return UNCATEGORIZED


def _group_key(amount: Amount) -> str:
    """Amounts rounded to the nearest thousand, so 10k and ₹10,200 agree."""
    def nearest(value: float) -> int:
        return int(math.floor(value / 1000 + 0.5)) * 1000

    if amount.max_amount is not None:
        return f"{nearest(amount.amount)}-{nearest(amount.max_amount)}"
    return str(nearest(amount.amount))


# === Extraction ===

def _accept(matched: str, context: str, value: float, thousands: bool) -> bool:
    if not has_money_context(context, matched):
        return False
    if is_date_like(matched, context) or is_media_context(context):
        return False
    return value >= MIN_AMOUNT or thousands


def _amounts_in_message(msg: Message) -> List[Amount]:
    text = msg.content
    found: List[Amount] = []
    taken: List[Tuple[int, int]] = []

    def make(value: float, pattern: CurrencyPattern, start: int, max_value: Optional[float] = None) -> Amount:
        context = _context(text, start)
        return Amount(
            amount=value,
            max_amount=max_value,
            currency=pattern.currency,
            symbol=pattern.symbol,
            context=context,
            category=detect_category(context),
            per_person=bool(PER_PERSON_PATTERN.search(context)),
            per_night=bool(PER_NIGHT_PATTERN.search(context)),
            sender=msg.sender,
        )

    for match in RANGE_PATTERN.finditer(text):
        matched = match.group(0)
        thousands = bool(match.group(2) or match.group(4))
        try:
            low = parse_amount(match.group(1), thousands)
            high = parse_amount(match.group(3), thousands)
        except ValueError:
            continue
        context = _context(text, match.start())
        if not _accept(matched, context, low, thousands):
            continue
        if low > 0 and high >= low:
            found.append(make(low, CURRENCY_PATTERNS[0], match.start(), high))
            taken.append(match.span())

    for pattern in CURRENCY_PATTERNS:
        for match in pattern.regex.finditer(text):
            span = match.span()
            if any(span[0] < hi and lo < span[1] for lo, hi in taken):
                continue
            matched = match.group(0)
            thousands = bool(re.search(r"k$", matched.strip(), re.IGNORECASE))
            try:
                value = parse_amount(match.group(1), thousands)
            except ValueError:
                continue
            context = _context(text, match.start())
            if value > 0 and _accept(matched, context, value, thousands):
                found.append(make(value, pattern, match.start()))
                taken.append(span)
    return found


def extract_budget(messages: List[Message], min_senders: int = 2) -> Optional[ExtractedBudget]:
    """Budget record for the chat, or None when no amount is mentioned.

    ``finalized`` (with ``total`` set) only when ``min_senders`` distinct
    senders land on the same rounded figure; otherwise ``total`` stays
    empty and each distinct figure is listed under ``proposals``.
    """
    amounts: List[Amount] = []
    for msg in messages:
        if not msg.is_media:
            amounts.extend(_amounts_in_message(msg))
    if not amounts:
        return None

    groups: Dict[str, Tuple[Set[str], List[Amount]]] = {}
    for amount in amounts:
        if not amount.is_proposal:
            continue
        senders, members = groups.setdefault(_group_key(amount), (set(), []))
        members.append(amount)
        if amount.sender:
            senders.add(amount.sender)

    consensus: Optional[Amount] = None
    for senders, members in groups.values():
        if len(senders) >= min_senders:
            consensus = members[0]
            break

    proposals: List[BudgetProposal] = []
    for amount in amounts:
        if not amount.is_proposal:
            continue
        label = amount.label()
        existing = next((p for p in proposals if p.amount == label), None)
        if existing is None:
            proposals.append(BudgetProposal(
                amount=label,
                proposed_by=[amount.sender] if amount.sender else [],
                context=_clean_context(amount.context),
            ))
        elif amount.sender and amount.sender not in existing.proposed_by:
            existing.proposed_by.append(amount.sender)

    breakdown = []
    for amount in amounts:
        if amount.is_proposal:
            continue
        label = amount.label() + ("/night" if amount.per_night else "")
        breakdown.append(BudgetItem(
            item=amount.category,
            amount=label,
            assignee=amount.sender,
            source=Source.HEURISTIC.value,
        ))
        if len(breakdown) >= MAX_BREAKDOWN:
            break

    confidence = 50
    if consensus is not None:
        confidence += 30
    if breakdown:
        confidence += 10
    if len(amounts) > 2:
        confidence += 10

    entry = consensus or amounts[0]
    _log.debug("Budget extracted", amounts=len(amounts), proposals=len(proposals),
               finalized=consensus is not None)
    return ExtractedBudget(
        total=consensus.label() if consensus is not None else None,
        currency=entry.currency,
        per_person=entry.per_person,
        breakdown=breakdown,
        confidence=min(confidence, 90),
        source=Source.HEURISTIC,
        status=BudgetStatus.FINALIZED if consensus is not None else BudgetStatus.OPEN,
        proposals=None if consensus is not None else proposals,
    )
