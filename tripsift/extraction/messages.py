"""Chat text to Message records."""

import re
from dataclasses import dataclass
from typing import List, Optional

# "[12/01/24, 10:30] Name: text" or "Name: text"
_LINE_RE = re.compile(r"^(?:\[.*?\]\s*)?([^:]+):\s*(.+)$")

_MEDIA_RE = re.compile(
    r"(?:image|video|gif|sticker|audio|document|meme)\s*(?:omitted|sent)", re.IGNORECASE
)
_STARRED_SENT_RE = re.compile(r"^\*.*sent.*\*$", re.IGNORECASE)
_UNATTRIBUTED_MEDIA_RE = re.compile(r"meme|gif", re.IGNORECASE)

CHAT_START_MARKER = "---CHAT START---"
CHAT_END_MARKER = "---CHAT END---"

# Inclusive code-point ranges treated as emoji. Whitespace is ignored separately.
EMOJI_RANGES: tuple[tuple[int, int], ...] = (
    (0x1F300, 0x1F9FF),
    (0x2600, 0x26FF),
    (0x2700, 0x27BF),
    (0x1F600, 0x1F64F),
    (0x1F680, 0x1F6FF),
    (0x1F1E0, 0x1F1FF),
    (0x1FA00, 0x1FA6F),
    (0x1FA70, 0x1FAFF),
    (0x231A, 0x231B),
    (0x23E9, 0x23F3),
    (0x23F8, 0x23FA),
    (0x25AA, 0x25AB),
    (0x25B6, 0x25B6),
    (0x25C0, 0x25C0),
    (0x25FB, 0x25FE),
    (0x2934, 0x2935),
    (0x2B05, 0x2B07),
    (0x2B1B, 0x2B1C),
    (0x2B50, 0x2B50),
    (0x2B55, 0x2B55),
    (0x3030, 0x3030),
    (0x303D, 0x303D),
    (0x3297, 0x3297),
    (0x3299, 0x3299),
    (0xFE0F, 0xFE0F),
    (0x200D, 0x200D),
)


@dataclass(frozen=True)
class Message:
    content: str
    sender: Optional[str] = None
    is_media: bool = False


def _is_emoji(ch: str) -> bool:
    cp = ord(ch)
    return any(lo <= cp <= hi for lo, hi in EMOJI_RANGES)


def is_emoji_only(text: str) -> bool:
    """True when every non-whitespace character is an emoji."""
    visible = [ch for ch in text if not ch.isspace()]
    return bool(visible) and all(_is_emoji(ch) for ch in visible)


def is_media_content(content: str) -> bool:
    return bool(
        _MEDIA_RE.search(content)
        or _STARRED_SENT_RE.match(content)
        or is_emoji_only(content)
    )


def parse_messages(text: str) -> List[Message]:
    """Split raw chat text into messages, one per non-blank line."""
    messages: List[Message] = []
    for line in text.splitlines():
        trimmed = line.strip()
        if not trimmed:
            continue

        match = _LINE_RE.match(trimmed)
        if match:
            sender = match.group(1).strip()
            content = match.group(2).strip()
            messages.append(Message(content=content, sender=sender, is_media=is_media_content(content)))
        else:
            messages.append(Message(
                content=trimmed,
                is_media=bool(_UNATTRIBUTED_MEDIA_RE.search(trimmed)) or is_emoji_only(trimmed),
            ))
    return messages


def extract_chat_block(prompt_text: str) -> str:
    """The chat between the first START and the last END marker.

    Returns the whole text when either marker is missing.
    """
    start = prompt_text.find(CHAT_START_MARKER)
    end = prompt_text.rfind(CHAT_END_MARKER)
    if start == -1 or end < start + len(CHAT_START_MARKER):
        return prompt_text
    return prompt_text[start + len(CHAT_START_MARKER):end].strip()


def relevant_text(messages: List[Message]) -> str:
    """Message contents with media lines dropped, one per line."""
    return "\n".join(m.content for m in messages if not m.is_media)
