"""Word lists and predicates shared by several extractors."""

import re

MONTH_RE = (
    r"jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|jun(?:e)?|jul(?:y)?"
    r"|aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?"
)

# English, Hindi/Kannada and emoji affirmations.
AGREEMENT_SIGNALS: tuple[str, ...] = (
    "yes", "yeah", "yep", "yup", "sure", "ok", "okay", "fine", "done", "agreed",
    "sounds good", "works for me", "works", "perfect", "great", "cool", "nice",
    "good idea", "i agree", "same", "me too", "+1", "lets go", "let's do it",
    "haan", "ha", "theek", "sahi", "pakka", "chalega", "chalo", "done deal",
    "aaytu", "sari", "olledu", "madi", "book madi",
    "👍", "✅", "👌", "💯", "🔥", "✔️", "🙌",
)

DECISION_KEYWORDS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"let's\s+(do|go|book|take|use|finalize)",
        r"we\s+will",
        r"confirmed",
        r"book\s+it",
        r"final\s*(call|decision|ized)?",
        r"done\s+deal",
        r"go\s+with\s+(this|that)",
        r"locked",
        r"settled",
        r"finalize",
        r"decided",
        r"agreed",
    )
]

TASK_VERBS = frozenset({
    "book", "reserve", "finalize", "confirm", "pack", "bring",
    "arrange", "organize", "check", "cancel", "call", "message",
    "send", "buy", "get", "pick", "drop", "handle", "complete",
    "find", "search", "look", "research", "plan", "prepare",
    "remind", "tell", "ask", "contact", "pay", "transfer",
})

_NON_ALPHA = re.compile(r"[^a-z]")


def is_agreement_message(content: str) -> bool:
    """Whole message is, starts with, or ends with an agreement signal."""
    lower = content.lower().strip()
    for signal in AGREEMENT_SIGNALS:
        if lower == signal or lower.startswith(signal + " ") or lower.endswith(" " + signal):
            return True
    return False


_AGREEMENT_WORD_RE = re.compile(
    r"(?<![\w'])(?:"
    + "|".join(re.escape(s) for s in sorted(AGREEMENT_SIGNALS, key=len, reverse=True) if s[0].isalpha())
    + r")(?![\w'])",
    re.IGNORECASE,
)
_AGREEMENT_SYMBOLS = tuple(s for s in AGREEMENT_SIGNALS if not s[0].isalpha())


def contains_agreement(text: str) -> bool:
    """Any agreement signal appears as a whole word (or symbol) in ``text``."""
    if _AGREEMENT_WORD_RE.search(text):
        return True
    return any(symbol in text for symbol in _AGREEMENT_SYMBOLS)


def has_decision_keyword(text: str) -> bool:
    return any(p.search(text) for p in DECISION_KEYWORDS)


def has_task_verb(text: str) -> bool:
    return any(_NON_ALPHA.sub("", w) in TASK_VERBS for w in text.lower().split())


def clean_text(text: str) -> str:
    return re.sub(r"[.!,;:]+$", "", text).strip()


def capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]
