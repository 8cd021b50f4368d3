"""
Decisions, from two independent strategies.

The pattern strategy reads explicit phrasing ("let's go with the
sleeper bus", "final: Zostel"). The consensus strategy watches for
agreement messages and credits the statement they answer. The two lists
are merged with prefix deduplication.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from tripsift.core.logging import get_logger

from .messages import Message
from .schemas import ExtractedDecision, Source
from .vocabulary import (
    AGREEMENT_SIGNALS,
    capitalize,
    clean_text,
    has_decision_keyword,
    has_task_verb,
    is_agreement_message,
)

_log = get_logger("extraction.decisions")

PATTERN_CONFIDENCE = 65
MAX_PATTERN_DECISIONS = 8
MAX_CONSENSUS_DECISIONS = 5
MAX_DECISIONS = 8
LOOKBACK_MESSAGES = 5
DEDUP_PREFIX_LEN = 20

_END = r"(?=[.!?\n]|$)"

DECISION_PATTERNS = [
    re.compile(rf"\blet's\s+(?:go with|do|take|book|use|stay at|travel by)\s+(.+?){_END}", re.IGNORECASE),
    re.compile(rf"\b(?:final|confirmed|decided|agreed|done|pakka)[:\s]+(.+?){_END}", re.IGNORECASE),
    re.compile(rf"\b(we(?:'ll| will| should| are going to)\s+.+?){_END}", re.IGNORECASE),
    re.compile(r"\b((?:book|take|use|go with)\s+(?:it|this one|that one))\s*!*", re.IGNORECASE),
]

REACTION_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"^looks?\s+\w+$",
        r"^\d+\.?\d*\s*stars?$",
        r"^why\s+me",
        r"^budget\s+explodes?",
        r"^(?:nice|cool|great|awesome|good|bad|okay|ok)$",
        r"^(?:bro|dude|man|boss|guru|macha)\b",
        r"^[😭😂🤣💀👍👌🔥❤️\s]+$",
        r"^(?:haha|lol|lmao|rofl)",
        r"^\d+\s*k?$",
        r"^(?:yes|no|yeah|nope|yep|nah)$",
    )
]

DECISION_BLOCKLIST = [
    re.compile(p, re.IGNORECASE) for p in (
        r"\?\s*$",
        r"still.*\?",
        r"alive|dead|kill",
        r"whatever|anything\s+goes",
        r"lol|haha|hehe|😂|🤣|💀",
        r"if.*budget|budget.*if",
        r"^just\s+",
        r"idk|i\s+don't\s+know",
        r"maybe|perhaps|possibly",
        r"meme|gif|image|sticker",
    )
]

REQUEST_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"\b(check|wait|finalize|guys|please|pls)\b.*\b(first|by|tonight|tomorrow)\b",
        r"\bwait\s+wait\b",
        r"\b(can|could|should)\s+(you|we|someone)\b",
        r"\bplease\b",
        r"\b(guys|boss|bro|dude)\s+(finalize|check|book|confirm)",
    )
]

STRONG_AGREEMENT_RE = re.compile(r"yes|works|fine|book it|confirmed|👍|✅|\bok\b|done|pakka", re.IGNORECASE)

_SIGNALS_LOWER = frozenset(s.lower() for s in AGREEMENT_SIGNALS)


def is_reaction(text: str) -> bool:
    stripped = text.strip()
    return any(p.search(stripped) for p in REACTION_PATTERNS)


def is_valid_decision(text: str) -> bool:
    """A committed statement, not a question, joke, request or reaction."""
    if is_reaction(text):
        return False
    if any(p.search(text) for p in DECISION_BLOCKLIST):
        return False
    if len(text.split()) < 2:
        return False
    if any(p.search(text) for p in REQUEST_PATTERNS):
        return False
    return has_decision_keyword(text)


# === Pattern strategy ===

def extract_pattern_decisions(messages: List[Message]) -> List[ExtractedDecision]:
    decisions: List[ExtractedDecision] = []
    seen = set()

    for pattern in DECISION_PATTERNS:
        for msg in messages:
            if msg.is_media:
                continue
            for match in pattern.finditer(msg.content):
                # Validate the whole clause; the capture alone may have lost the keyword.
                clause = clean_text(match.group(0))
                decision = clean_text(match.group(1))
                if len(decision) < 4 or decision.lower() in seen:
                    continue
                if msg.content[match.end():].lstrip().startswith("?"):
                    continue
                if not is_valid_decision(clause):
                    continue
                seen.add(decision.lower())
                decisions.append(ExtractedDecision(
                    decision=capitalize(decision),
                    made_by=msg.sender,
                    participants=[msg.sender] if msg.sender else [],
                    confidence=PATTERN_CONFIDENCE,
                    source=Source.HEURISTIC,
                ))

    return decisions[:MAX_PATTERN_DECISIONS]


# === Consensus strategy ===

@dataclass
class _Statement:
    text: str
    proposer: str
    voters: List[str] = field(default_factory=list)
    agreements: List[str] = field(default_factory=list)


def _find_statement(messages: List[Message], idx: int) -> Optional[Message]:
    for j in range(idx - 1, max(-1, idx - LOOKBACK_MESSAGES - 1), -1):
        prev = messages[j]
        if prev.is_media or len(prev.content) <= 10:
            continue
        if prev.content.lower().strip() in _SIGNALS_LOWER:
            continue
        if not is_valid_decision(prev.content):
            continue
        if not (has_decision_keyword(prev.content) or has_task_verb(prev.content)):
            continue
        return prev
    return None


def decision_confidence(distinct_voters: int, agreements: List[str]) -> int:
    score = sum(2 if STRONG_AGREEMENT_RE.search(a) else 1 for a in agreements)
    return min(95, 50 + distinct_voters * 10 + score * 3)


def extract_consensus_decisions(messages: List[Message], min_senders: int = 2) -> List[ExtractedDecision]:
    """Statements that at least ``min_senders`` distinct senders stand behind.

    The proposer counts as one voter; every other sender who replies with
    agreement vocabulary within five messages adds one.
    """
    statements: Dict[str, _Statement] = {}

    for idx, msg in enumerate(messages):
        if msg.is_media or not msg.content or not msg.sender or idx == 0:
            continue
        if not is_agreement_message(msg.content):
            continue
        prev = _find_statement(messages, idx)
        if prev is None:
            continue

        key = prev.content.lower()[:50]
        proposer = prev.sender or "unknown"
        statement = statements.setdefault(key, _Statement(text=prev.content, proposer=proposer, voters=[proposer]))
        if msg.sender != statement.proposer:
            if msg.sender not in statement.voters:
                statement.voters.append(msg.sender)
            statement.agreements.append(msg.content)

    decisions: List[ExtractedDecision] = []
    for statement in statements.values():
        if len(statement.voters) < min_senders or not statement.agreements:
            continue
        text = clean_text(statement.text)
        if len(text) <= 5 or not is_valid_decision(text):
            continue
        decisions.append(ExtractedDecision(
            decision=capitalize(text),
            made_by=", ".join(statement.voters),
            participants=list(statement.voters),
            confidence=decision_confidence(len(statement.voters), statement.agreements),
            confirmed=True,
            source=Source.HEURISTIC,
        ))

    return decisions[:MAX_CONSENSUS_DECISIONS]


# === Merge ===

def is_duplicate(a: str, b: str) -> bool:
    """Either text contains the other's first twenty characters, ignoring case."""
    la, lb = a.lower(), b.lower()
    return la[:DEDUP_PREFIX_LEN] in lb or lb[:DEDUP_PREFIX_LEN] in la


def merge_decisions(*groups: List[ExtractedDecision]) -> List[ExtractedDecision]:
    """Concatenate in order, dropping later duplicates; at most eight."""
    merged: List[ExtractedDecision] = []
    for group in groups:
        for decision in group:
            if any(is_duplicate(decision.decision, kept.decision) for kept in merged):
                continue
            merged.append(decision)
    return merged[:MAX_DECISIONS]


def extract_decisions(messages: List[Message], min_senders: int = 2) -> List[ExtractedDecision]:
    consensus = extract_consensus_decisions(messages, min_senders)
    pattern = extract_pattern_decisions(messages)
    decisions = merge_decisions(consensus, pattern)
    _log.debug("Decisions extracted", consensus=len(consensus), pattern=len(pattern), kept=len(decisions))
    return decisions
