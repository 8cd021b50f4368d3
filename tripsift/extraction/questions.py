"""Open questions: explicit ones nobody answered, plus implicit topic questions."""

import re
from dataclasses import dataclass
from typing import List

from tripsift.core.logging import get_logger

from .messages import Message, relevant_text
from .schemas import OpenQuestion, QuestionStatus, Source
from .vocabulary import MONTH_RE, contains_agreement

_log = get_logger("extraction.questions")

MAX_QUESTIONS = 8
MIN_QUESTION_LEN = 10
REPLY_WINDOW_MESSAGES = 3
REPLY_WINDOW_CHARS = 300

QUESTION_PATTERNS = [
    re.compile(
        r"([^.!?\n]*(?:budget|date|when|where|how much|which|should we|shall we|do we)[^.!?\n]*\?)",
        re.IGNORECASE,
    ),
    re.compile(r"([^.!?\n]*\b(?:or|vs|versus|better)\b[^.!?\n]*\?)", re.IGNORECASE),
    re.compile(r"([^.!?\n]{20,}\?)"),
]

RHETORICAL_PATTERNS = [
    re.compile(r"^(what|how|why|huh|really|seriously|lol|haha|omg)\?*$", re.IGNORECASE),
    re.compile(r"^[^a-zA-Z]*$"),
    re.compile(r"sent a (meme|gif|image|sticker)", re.IGNORECASE),
]

CONDITIONAL_RESPONSE_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"if\s+(?:budget|time|we\s+can|possible|affordable)",
        r"depends\s+on",
        r"\bmaybe\b",
        r"we'll\s+see",
        r"let's\s+see",
        r"not\s+sure",
        r"\bmight\b",
        r"could\s+work",
        r"budget\s+allows",
        r"if\s+we\s+have",
    )
]

RESOLVED_RESPONSE_PATTERNS = [
    re.compile(r"^(?:yes|yeah|yep|done|booked|confirmed|ok|okay|sure|definitely)[\s!.]*$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"👍|✅|✔️|💯"),
    re.compile(r"it's\s+(?:done|booked|confirmed)", re.IGNORECASE),
    re.compile(r"already\s+(?:done|booked)", re.IGNORECASE),
]


@dataclass(frozen=True)
class ImplicitTopic:
    question: str
    patterns: tuple[re.Pattern, ...]
    needs_conflict: bool


IMPLICIT_QUESTION_TOPICS: tuple[ImplicitTopic, ...] = (
    ImplicitTopic(
        "Dates?",
        (
            re.compile(r"\b\d{1,2}\s*[-–]\s*\d{1,2}\b(?!\s*k)", re.IGNORECASE),
            re.compile(rf"\b(?:{MONTH_RE})\s+\d{{1,2}}\b", re.IGNORECASE),
        ),
        True,
    ),
    ImplicitTopic("Travel mode?", (re.compile(r"\b(?:train|bus|flight)\b", re.IGNORECASE),), True),
    ImplicitTopic(
        "Water sports?",
        (re.compile(r"water\s*sports?|scuba|parasail|snorkel|jet\s*ski", re.IGNORECASE),),
        False,
    ),
    ImplicitTopic(
        "Accommodation?",
        (re.compile(r"\b(?:hotel|hostel|resort|airbnb|oyo)\b", re.IGNORECASE),),
        True,
    ),
)

_TENTATIVE_RE = re.compile(r"if\s+budget|depends|\bmaybe\b|\bmight\b|\bcould\b", re.IGNORECASE)


def question_resolution(reply_text: str) -> str:
    """``resolved``, ``conditional`` or ``open`` for the replies after a question."""
    text = reply_text.strip()[:REPLY_WINDOW_CHARS]
    if any(p.search(text) for p in RESOLVED_RESPONSE_PATTERNS):
        return "resolved"
    if any(p.search(text) for p in CONDITIONAL_RESPONSE_PATTERNS):
        return "conditional"
    if contains_agreement(text):
        return "resolved"
    return "open"


def _replies(messages: List[Message], idx: int, tail: str) -> str:
    parts = [tail] if tail.strip() else []
    for msg in messages[idx + 1:idx + 1 + REPLY_WINDOW_MESSAGES]:
        if not msg.is_media:
            parts.append(msg.content)
    return "\n".join(parts)


def extract_explicit_questions(messages: List[Message]) -> List[OpenQuestion]:
    """``?`` questions with no resolving or conditional reply."""
    questions: List[OpenQuestion] = []
    seen = set()

    for pattern in QUESTION_PATTERNS:
        for idx, msg in enumerate(messages):
            if msg.is_media:
                continue
            for match in pattern.finditer(msg.content):
                question = match.group(1).strip()
                if any(p.search(question) for p in RHETORICAL_PATTERNS):
                    continue
                if len(question) < MIN_QUESTION_LEN or question.lower() in seen:
                    continue
                seen.add(question.lower())

                if question_resolution(_replies(messages, idx, msg.content[match.end():])) != "open":
                    continue
                questions.append(OpenQuestion(
                    question=question,
                    participants=[msg.sender] if msg.sender else [],
                    status=QuestionStatus.OPEN,
                    source=Source.HEURISTIC,
                ))
    return questions


def extract_implicit_questions(messages: List[Message]) -> List[OpenQuestion]:
    """Topic questions raised by competing proposals ("Travel mode?")."""
    text = relevant_text(messages)
    questions: List[OpenQuestion] = []

    for topic in IMPLICIT_QUESTION_TOPICS:
        # Distinct values per pattern; "Dec 15-18" hits both date patterns.
        values = [{m.group(0).lower() for m in p.finditer(text)} for p in topic.patterns]
        if not any(values):
            continue
        if topic.needs_conflict:
            if any(len(v) > 1 for v in values):
                questions.append(OpenQuestion(question=topic.question, status=QuestionStatus.OPEN,
                                              source=Source.HEURISTIC))
        elif _TENTATIVE_RE.search(text):
            questions.append(OpenQuestion(question=topic.question, status=QuestionStatus.CONDITIONAL,
                                          source=Source.HEURISTIC))
    return questions


def extract_questions(messages: List[Message]) -> List[OpenQuestion]:
    questions = extract_explicit_questions(messages)
    seen = {q.question.lower() for q in questions}
    for implicit in extract_implicit_questions(messages):
        if implicit.question.lower() not in seen:
            seen.add(implicit.question.lower())
            questions.append(implicit)
    _log.debug("Questions extracted", items=len(questions))
    return questions[:MAX_QUESTIONS]
