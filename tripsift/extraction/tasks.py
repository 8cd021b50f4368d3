"""
Action items: who said they would do what, and by when.

Patterns run per message so the author is always known. A bare status
message ("booked!", "aaytu") is stitched to the booking object mentioned
in the few messages before it.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Set

from tripsift.core.logging import get_logger

from .messages import Message
from .schemas import ExtractedTask, Source, TaskStatus
from .vocabulary import capitalize, clean_text, has_task_verb

_log = get_logger("extraction.tasks")

MAX_TASKS = 10

DUE_PATTERNS = [
    re.compile(r"\bby\s+(?:tonight|tomorrow|today)\b", re.IGNORECASE),
    re.compile(r"\bby\s+\d{1,2}\s*(?:am|pm)\b", re.IGNORECASE),
    re.compile(r"\bby\s+(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b", re.IGNORECASE),
    re.compile(r"\bby\s+(?:dec|jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov)[a-z]*\s*\d{1,2}\b", re.IGNORECASE),
    re.compile(r"\b(?:tonight|tomorrow|today)\b", re.IGNORECASE),
]

INVALID_SINGLE_WORD_TASKS = frozenset({
    "start", "begin", "go", "do", "make", "let", "see", "try",
    "wait", "stop", "end", "come", "leave", "stay", "move",
    "i'll", "will", "can", "should", "would", "could", "must",
})

NON_TASK_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"stretch\s+to",
        r"max\s+\d",
        r"\d+k?\s+max",
        r"budget\s+(?:is|of)",
        r"\d+k?\s*(?:per|each)",
        r"^(?:yes|no|ok|okay|sure|fine|done|cool|nice)$",
        r"^\d+[\s,-]*\d*k?$",
        r"\b(?:good|great|sounds|works|perfect)\b",
    )
]

# Words that open a "<Name> will ..." sentence without naming anyone.
_NOT_A_NAME = frozenset({
    "we", "it", "this", "that", "he", "she", "they", "you", "i", "there",
    "what", "who", "which", "someone", "everyone", "nobody", "somebody", "price", "budget",
})

DONE_WORDS = frozenset({
    "done", "booked", "confirmed", "completed", "finished", "sorted", "fixed", "reserved",
    "aaytu", "aytu", "madidini", "madidhe", "hogidhe",
})

TASK_OBJECT_PATTERNS = [
    re.compile(
        r"(?:found|check|look at|try|checking|found this|see this)\s+(?:a\s+)?"
        r"([A-Za-z ]+?(?:hostel|hotel|resort|stay))\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b([A-Z][A-Za-z]*(?:Hive|Stay|Inn|Lodge|House|Palace|Villa))\b"),
    re.compile(r"\b([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)\s+(?:hostel|hotel|resort)\b"),
    re.compile(r"\b(?:hostel|hotel|resort)\s*[-–:]\s*([A-Za-z][A-Za-z ]+)", re.IGNORECASE),
    re.compile(r"\b((?:train|bus|flight|cab)\s+tickets?)\b", re.IGNORECASE),
]

OWNERSHIP_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"\d+(\.\d+)?\s*stars?",
        r"\bbook(?: it| then| this)?\b",
        r"\bi'?ll\s+(?:do|handle|check)",
        r"\bi\s+(?:found|checked|booked)",
        r"\b(?:checking|looking|searching)\b",
        r"\blet me\b",
        r"\brating|review",
        r"\bi'?m\s+on\s+it",
    )
]

_ASK_RE = re.compile(
    r"@?([A-Za-z0-9_]+)[,:]?\s*(?:please|pls|could you|can you)\s+(?:book|check|do|make|handle|arrange)",
    re.IGNORECASE,
)
_SELF_OWNED_RE = re.compile(
    r"i'?ll\s+(?:do|book|check|handle|make|arrange)|i will\s+\w+|i got it|i'm on it|let me",
    re.IGNORECASE,
)
_AUTHOR_CONFIRMS_RE = re.compile(r"ok book|ok then|book then|\bdone\b|\bbooked\b|\bconfirmed\b", re.IGNORECASE)

_PRONOUN_OBJECTS = frozenset({"it", "this", "that"})

_END = r"(?=[.!?\n]|$)"


@dataclass(frozen=True)
class TaskPattern:
    name: str
    regex: re.Pattern
    status: TaskStatus


TASK_PATTERNS: tuple[TaskPattern, ...] = (
    TaskPattern(
        "self",
        re.compile(rf"\b(?:i'll|i will|i can|let me|i am going to|i'm going to|gonna)\s+(.+?){_END}", re.IGNORECASE),
        TaskStatus.PENDING,
    ),
    TaskPattern(
        "named",
        re.compile(rf"\b([A-Z][a-z]+)\s+(?:will|can|should|is going to)\s+(.+?){_END}"),
        TaskStatus.PENDING,
    ),
    TaskPattern(
        "imperative",
        re.compile(
            r"\b((?:book|finalize|pack|bring|handle|arrange|organize|check|confirm|cancel)"
            r"(?:\s+(?:it|this|that|the\s+\w+(?:\s+\w+)?))?)\s*(?=[.!]|$)",
            re.IGNORECASE,
        ),
        TaskStatus.PENDING,
    ),
    TaskPattern(
        "colloquial",
        re.compile(r"\b(book|finalize|pack|bring|check|cancel|arrange)\s+(?:madi|macha|guru|bro|dude)\b", re.IGNORECASE),
        TaskStatus.PENDING,
    ),
    TaskPattern(
        "hindi",
        re.compile(r"\b(?:main|mein|mai)\s+(.+?)\s*(?:karunga|karegi|karega|kar lunga|kar deta)\b", re.IGNORECASE),
        TaskStatus.PENDING,
    ),
    TaskPattern(
        "deadline",
        re.compile(
            r"^(.+?)\s+(by\s+(?:tonight|tomorrow|monday|tuesday|wednesday|thursday|friday|saturday|sunday"
            r"|dec\s*\d+|jan\s*\d+))\b",
            re.IGNORECASE,
        ),
        TaskStatus.PENDING,
    ),
    TaskPattern(
        "done",
        re.compile(
            rf"\b(?:i\s+)?(booked|reserved|paid for|paid|completed|finished|sorted)\s+((?:the\s+)?[a-z].+?){_END}",
            re.IGNORECASE,
        ),
        TaskStatus.DONE,
    ),
    TaskPattern(
        "in_progress",
        re.compile(
            rf"\b((?:working on|checking|looking into|researching|searching for|searching|finding)\s+.+?){_END}",
            re.IGNORECASE,
        ),
        TaskStatus.IN_PROGRESS,
    ),
)


# === Helpers ===

def extract_due(text: str) -> Optional[str]:
    """Deadline phrase as written ("by tonight", "tomorrow"), if any."""
    for pattern in DUE_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0).lower()
    return None


def _strip_due(text: str) -> str:
    for pattern in DUE_PATTERNS[:4]:
        text = pattern.sub("", text)
    return re.sub(r"\s{2,}", " ", text).strip()


def is_non_task(text: str) -> bool:
    return any(p.search(text) for p in NON_TASK_PATTERNS)


def infer_assignee(messages: List[Message], idx: int) -> Optional[str]:
    """Who owns the request in ``messages[idx]``, looking back four messages."""
    for msg in reversed(messages[max(0, idx - 4):idx + 1]):
        ask = _ASK_RE.search(msg.content)
        if ask and ask.group(1).lower() not in {"please", "pls", "you", "can", "could"}:
            return ask.group(1)
        if msg.sender and (_SELF_OWNED_RE.search(msg.content) or _AUTHOR_CONFIRMS_RE.search(msg.content)):
            return msg.sender
    return messages[idx].sender


def attribute_task_assignee(messages: List[Message], idx: int, lookback: int = 3) -> Optional[str]:
    """Sender of the most recent earlier message that signals ownership."""
    for j in range(idx - 1, max(-1, idx - lookback - 1), -1):
        msg = messages[j]
        if msg.is_media or not msg.sender:
            continue
        if any(p.search(msg.content) for p in OWNERSHIP_PATTERNS):
            return msg.sender
    return None


def find_task_object(messages: List[Message], idx: int, lookback: int = 3) -> Optional[str]:
    """The booking object ("Zostel", "train tickets") mentioned just before ``idx``."""
    for j in range(idx - 1, max(-1, idx - lookback - 1), -1):
        msg = messages[j]
        if msg.is_media:
            continue
        for pattern in TASK_OBJECT_PATTERNS:
            match = pattern.search(msg.content)
            if match:
                return match.group(1).strip()
    return None


def _word_count(text: str) -> int:
    return len([w for w in text.split() if len(w) > 1])


# === Extraction ===

class _TaskCollector:
    def __init__(self) -> None:
        self.tasks: List[ExtractedTask] = []
        self._seen: Set[str] = set()

    @property
    def full(self) -> bool:
        return len(self.tasks) >= MAX_TASKS

    def add(
        self,
        description: str,
        status: TaskStatus,
        assignee: Optional[str],
        deadline: Optional[str],
    ) -> None:
        key = description.lower()
        if len(description) < 4 or key in self._seen or self.full:
            return
        self._seen.add(key)
        self.tasks.append(ExtractedTask(
            task=capitalize(description),
            assignee=assignee,
            status=status,
            deadline=deadline,
            source=Source.HEURISTIC,
        ))


def _valid(description: str, status: TaskStatus) -> bool:
    if not description or is_non_task(description):
        return False
    if description.lower() in DONE_WORDS:
        return False
    words = description.split()
    if len(words) == 1 and words[0].lower() in INVALID_SINGLE_WORD_TASKS:
        return False
    # Status phrases ("checking reviews", "booked the cab") carry their own verb.
    if status == TaskStatus.PENDING and not has_task_verb(description):
        return False
    return True


def _from_match(
    pattern: TaskPattern,
    match: re.Match,
    messages: List[Message],
    idx: int,
) -> tuple[str, Optional[str], Optional[str]]:
    """(description, assignee, deadline) for one pattern hit."""
    msg = messages[idx]
    if pattern.name == "named":
        name = match.group(1)
        assignee = None if name.lower() in _NOT_A_NAME else name
        return match.group(2), assignee, None
    if pattern.name == "deadline":
        return match.group(1), msg.sender, match.group(2).lower()
    if pattern.name == "done":
        return f"{match.group(1)} {match.group(2)}", msg.sender, None
    if pattern.name in ("imperative", "colloquial"):
        return match.group(1), infer_assignee(messages, idx), None
    return match.group(1), msg.sender, None


def extract_tasks(messages: List[Message]) -> List[ExtractedTask]:
    """Up to ten tasks, in the order they appear."""
    collector = _TaskCollector()

    for idx, msg in enumerate(messages):
        if msg.is_media or not msg.content:
            continue

        bare = clean_text(msg.content).lower()
        if bare in DONE_WORDS:
            obj = find_task_object(messages, idx)
            if obj:
                collector.add(f"book {obj}", TaskStatus.DONE, msg.sender, None)
            continue

        taken: List[tuple[int, int]] = []
        for pattern in TASK_PATTERNS:
            for match in pattern.regex.finditer(msg.content):
                span = match.span()
                if any(span[0] < hi and lo < span[1] for lo, hi in taken):
                    continue
                description, assignee, deadline = _from_match(pattern, match, messages, idx)
                description = clean_text(_strip_due(description))

                words = description.split()
                needs_object = _word_count(description) < 2 or (
                    len(words) == 2 and words[1].lower() in _PRONOUN_OBJECTS
                )
                if needs_object and description.lower() not in INVALID_SINGLE_WORD_TASKS:
                    obj = find_task_object(messages, idx)
                    if obj:
                        description = f"{words[0]} {obj}" if words else obj

                if _word_count(description) < 2 or not _valid(description, pattern.status):
                    continue

                if pattern.status == TaskStatus.DONE and not assignee:
                    assignee = attribute_task_assignee(messages, idx)

                taken.append(span)
                collector.add(
                    description,
                    pattern.status,
                    assignee,
                    deadline or extract_due(description) or extract_due(msg.content),
                )
        if collector.full:
            break

    _log.debug("Tasks extracted", items=len(collector.tasks))
    return collector.tasks
