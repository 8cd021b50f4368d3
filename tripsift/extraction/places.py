"""
Place mentions.

Four passes feed one map keyed on the lowercase name:

1. indicator phrases ("go to Chapora", "stay at Zostel"),
2. known destinations mentioned anywhere,
3. "<Proper Name> <keyword>" compounds ("Baga beach"),
4. double-quoted names that carry a place keyword.

Every candidate is checked against the personal-name and filler-word
denylists token by token, then votes and status are derived from the
senders that mention it.
"""

import re
from typing import Dict, List, Optional, Tuple

from tripsift.core.logging import get_logger

from .messages import Message
from .schemas import ExtractedPlace, PlaceStatus, PlaceType, Source
from .vocabulary import capitalize, contains_agreement

_log = get_logger("extraction.places")

CONFIRMED_BOOST = 15
CONFIRMED_CAP = 95
# Keyword matches stay below the confirmed ceiling.
KEYWORD_CAP = 90

VERB_PHRASE_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"\b(imagining|thinking|planning|going|visiting|seeing|loving|hating)\b",
        r"\b(want|need|love|hate|like|wish)\s+(?:to|the)\b",
        r"\b(already|still|just|never|always)\s+\w+ing\b",
        r"\b(can't|cannot|won't|wouldn't|couldn't)\s+wait\b",
        r"\b(looking\s+forward|excited\s+about|dreaming\s+of)\b",
        r"\b(i'm|i am|we're|we are)\s+\w+ing\b",
    )
]

GENERIC_TRAVEL_NOUNS = frozenset({
    "hotel", "hostel", "resort", "room", "stay", "accommodation",
    "train", "bus", "flight", "cab", "taxi", "car", "bike",
    "restaurant", "cafe", "bar", "club", "pub", "dhaba",
    "beach", "fort", "temple", "lake", "hill", "mountain",
    "market", "mall", "shop", "store",
    "airport", "station", "terminal",
})

SENTENCE_VERBS = frozenset({
    "saves", "save", "cost", "costs", "takes", "take", "need", "needs",
    "want", "wants", "get", "gets", "book", "books", "find", "finds",
    "skip", "skips", "avoid", "avoids", "prefer", "prefers",
    "is", "are", "was", "were", "will", "would", "could", "should",
    "have", "has", "had", "do", "does", "did",
})

PLACE_INDICATORS = (
    "visit", "go to", "check out", "see", "explore",
    "stay at", "book", "stay in",
    "eat at", "lunch at", "dinner at", "breakfast at",
    "near", "around", "to", "at",
)

PLACE_TYPE_MAP: Dict[str, PlaceType] = {
    "hotel": PlaceType.ACCOMMODATION,
    "hostel": PlaceType.ACCOMMODATION,
    "resort": PlaceType.ACCOMMODATION,
    "inn": PlaceType.ACCOMMODATION,
    "lodge": PlaceType.ACCOMMODATION,
    "stay": PlaceType.ACCOMMODATION,
    "villa": PlaceType.ACCOMMODATION,
    "guesthouse": PlaceType.ACCOMMODATION,
    "airbnb": PlaceType.ACCOMMODATION,
    "oyo": PlaceType.ACCOMMODATION,
    "restaurant": PlaceType.RESTAURANT,
    "cafe": PlaceType.RESTAURANT,
    "dhaba": PlaceType.RESTAURANT,
    "shack": PlaceType.RESTAURANT,
    "eatery": PlaceType.RESTAURANT,
    "bistro": PlaceType.RESTAURANT,
    "bar": PlaceType.NIGHTLIFE,
    "pub": PlaceType.NIGHTLIFE,
    "club": PlaceType.NIGHTLIFE,
    "lane": PlaceType.NIGHTLIFE,
    "nightclub": PlaceType.NIGHTLIFE,
    "market": PlaceType.ATTRACTION,
    "mall": PlaceType.ATTRACTION,
    "cruise": PlaceType.ACTIVITY,
    "tour": PlaceType.ACTIVITY,
    "trek": PlaceType.ACTIVITY,
    "watersports": PlaceType.ACTIVITY,
    "diving": PlaceType.ACTIVITY,
    "parasailing": PlaceType.ACTIVITY,
    "beach": PlaceType.BEACH,
    "hill": PlaceType.DESTINATION,
    "hills": PlaceType.DESTINATION,
    "lake": PlaceType.DESTINATION,
    "waterfall": PlaceType.DESTINATION,
    "falls": PlaceType.DESTINATION,
    "island": PlaceType.DESTINATION,
    "dam": PlaceType.DESTINATION,
    "valley": PlaceType.DESTINATION,
    "temple": PlaceType.LANDMARK,
    "fort": PlaceType.LANDMARK,
    "palace": PlaceType.LANDMARK,
    "museum": PlaceType.LANDMARK,
    "ruins": PlaceType.LANDMARK,
    "church": PlaceType.LANDMARK,
    "mosque": PlaceType.LANDMARK,
    "monument": PlaceType.LANDMARK,
}

PLACE_TYPE_BOOST: Dict[str, int] = {
    "temple": 30, "beach": 30, "fort": 30, "palace": 30,
    "waterfall": 30, "falls": 30, "ruins": 30, "island": 30,
    "hotel": 25, "hostel": 25, "resort": 25, "museum": 25,
    "hills": 25, "hill": 25, "lake": 25, "dam": 25,
    "restaurant": 20, "cafe": 20, "dhaba": 20, "cruise": 20, "shack": 20,
    "market": 15, "mall": 15, "lane": 15, "club": 15, "bar": 15, "pub": 15,
}

COMMON_NAMES = frozenset({
    # Indian
    "yashas", "naveen", "jeeth", "shrajan", "rahul", "amit", "rohit", "sachin",
    "deepak", "ankit", "nikhil", "arun", "vikram", "sanjay", "ajay", "vijay",
    "rajesh", "suresh", "mahesh", "ganesh", "rakesh", "mukesh", "dinesh", "ramesh",
    "krishna", "vishnu", "shiva", "ravi", "kumar", "sunil", "anil", "kapil",
    "manoj", "pramod", "vinod", "ashok", "kishore", "mohan", "sohan", "rohan",
    "arjun", "karan", "varun", "tarun", "chetan", "nitin", "vipin", "lalit",
    "mohit", "sumit", "puneet", "vineet", "prashant", "nishant", "siddharth", "harsh",
    "yash", "ayush", "piyush", "ankush", "ashish", "manish", "girish", "harish",
    "satish", "jagdish", "naresh", "paresh", "hitesh", "ritesh", "jitesh", "nilesh",
    "abhishek", "pratik", "kartik", "sahil", "kunal", "vishal", "tushar", "gaurav",
    "saurabh", "sourav", "anurag", "chirag", "dhruv", "dev", "raj", "aman",
    "priya", "pooja", "neha", "kavita", "divya", "swati", "meera", "anjali",
    "ritu", "suman", "sunita", "anita", "sangeeta", "geeta", "seema", "reema",
    "nisha", "asha", "usha", "rekha", "shikha", "diksha", "deepa", "shweta",
    "sneha", "megha", "shruti", "smriti", "preeti", "jyoti", "arti", "bharti",
    "sakshi", "rashi", "khushi", "tanvi", "manvi", "janvi", "anvi", "devi",
    "lakshmi", "saraswati", "parvati", "durga", "kali", "radha", "sita", "gita",
    "komal", "kamal", "vimal", "nirmala", "kamala", "shobha", "vibha", "abha",
    "madhuri", "kajol", "kajal", "kiran", "simran", "manpreet", "harpreet", "gurpreet",
    "riya", "ria", "aditi", "ananya", "isha", "tara",
    # Western
    "john", "james", "robert", "michael", "william", "david", "richard", "joseph",
    "thomas", "charles", "christopher", "daniel", "matthew", "anthony", "mark", "donald",
    "steven", "paul", "andrew", "joshua", "kenneth", "kevin", "brian", "george",
    "mary", "patricia", "jennifer", "linda", "elizabeth", "barbara", "susan", "jessica",
    "sarah", "karen", "nancy", "lisa", "betty", "margaret", "sandra", "ashley",
    "dorothy", "kimberly", "emily", "donna", "michelle", "carol", "amanda", "melissa",
    "deborah", "stephanie", "rebecca", "sharon", "laura", "cynthia", "kathleen", "amy",
    "angela", "shirley", "anna", "brenda", "pamela", "emma", "nicole", "helen",
})

NON_PLACE_WORDS = frozenset({
    # Kannada
    "madi", "macha", "guru", "ide", "illa", "beda", "baro", "hogi", "kelsa",
    "andre", "anta", "hege", "yake", "yenu", "nodi", "kodi", "thogo", "heli",
    "gottilla", "gottu", "sari", "olledu", "chennagide",
    # Hindi
    "yaar", "bhai", "karo", "karna", "dekho", "chalo", "aaja", "jao", "bolo",
    "sunno", "haan", "nahi", "theek", "accha", "sahi", "pakka", "pukka",
    "mast", "bindaas", "jhakkas", "zabardast", "kamaal",
    # chat
    "bro", "dude", "boss", "man", "guys", "lol", "bruh", "fam", "homie",
    "buddy", "mate", "pal", "chief", "champ", "legend",
    # pronouns and fillers
    "i", "we", "you", "they", "he", "she", "it", "me", "us", "them",
    "yes", "no", "ok", "okay", "sure", "fine", "done", "cool", "nice",
    "tomorrow", "today", "yesterday", "morning", "evening", "night", "afternoon",
    "good", "great", "awesome", "amazing", "perfect", "super", "best", "worst",
    "money", "budget", "cost", "price", "cheap", "expensive", "free",
    "meme", "gif", "image", "photo", "video", "sent", "shared",
    "what", "when", "where", "why", "how", "which", "who",
    "this", "that", "these", "those", "here", "there",
    "will", "would", "could", "should", "can", "may", "might",
    "have", "has", "had", "been", "being", "was", "were", "are", "is",
    # generic travel words
    "trip", "travel", "journey", "tour", "vacation", "holiday",
    "flight", "train", "bus", "car", "bike", "taxi", "cab",
    "ticket", "booking", "reservation", "plan", "plans", "planning",
})

KNOWN_PLACES = (
    "goa", "mumbai", "delhi", "bangalore", "bengaluru", "chennai", "kolkata",
    "hyderabad", "pune", "jaipur", "udaipur", "jodhpur", "agra", "varanasi",
    "rishikesh", "haridwar", "manali", "shimla", "dharamshala", "leh", "ladakh",
    "kerala", "kochi", "munnar", "alleppey", "kovalam", "ooty", "coorg", "kodaikanal",
    "hampi", "mysore", "mysuru", "hospet", "badami", "gokarna", "udupi", "mangalore",
    "pondicherry", "mahabalipuram", "kanyakumari", "madurai", "thanjavur",
    "darjeeling", "gangtok", "sikkim", "meghalaya", "shillong", "kaziranga",
    "andaman", "nicobar", "lakshadweep", "maldives",
    "calangute", "baga", "anjuna", "vagator", "palolem", "colva", "candolim",
    "aguada", "chapora", "panaji", "margao", "mapusa", "dudhsagar",
)

_KNOWN_RE = re.compile(r"\b(" + "|".join(KNOWN_PLACES) + r")\b", re.IGNORECASE)
_BOOST_KEYWORDS = "|".join(sorted(PLACE_TYPE_BOOST, key=len, reverse=True))

# Proper-noun capture is case sensitive; indicators and keywords are not.
_PROPER = r"[A-Z][a-zA-Z']*(?:\s+[A-Z][a-zA-Z']*)*"
INDICATOR_PATTERN = re.compile(
    r"\b(?i:" + "|".join(re.escape(i) for i in PLACE_INDICATORS) + r")\s+(?:(?i:the)\s+)?(" + _PROPER + r")"
)
COMPOUND_PATTERN = re.compile(r"\b(" + _PROPER + r")\s+((?i:" + _BOOST_KEYWORDS + r"))\b")
QUOTED_PATTERN = re.compile(r"[\"“]([^\"“”]{3,40})[\"”]")

_TRAILING_RE = re.compile(r"\s+(?:and|or|but|is|are|was|were|will|can)$", re.IGNORECASE)

# Capitalized sentence openers that precede a compound ("Then Baga beach").
_LEADING_FILLERS = frozenset({
    "then", "also", "maybe", "lets", "let's", "and", "or", "so", "the",
    "near", "at", "to", "in", "on", "from", "visit", "try",
})


def _strip_leading_fillers(prefix: str) -> str:
    words = prefix.split()
    while words and words[0].lower() in _LEADING_FILLERS:
        words.pop(0)
    return " ".join(words)


# === Predicates ===

def contains_verb_phrase(text: str) -> bool:
    return any(p.search(text) for p in VERB_PHRASE_PATTERNS)


def is_generic_noun(name: str) -> bool:
    """A bare travel noun ("hotel", "the beach", "overnight bus") is not a place."""
    lower = name.lower().strip()
    if lower in GENERIC_TRAVEL_NOUNS:
        return True
    if re.fullmatch(r"the\s+(hotel|hostel|beach|train|bus|flight|temple|fort|lake|restaurant|cafe)", lower):
        return True
    return bool(re.fullmatch(r"overnight\s+(train|bus|flight)", lower))


def _sentence_has_verb(context: str) -> bool:
    return any(re.sub(r"[^a-z]", "", w) in SENTENCE_VERBS for w in context.lower().split())


def is_generic_noun_in_sentence(name: str, context: str) -> bool:
    """"Overnight train saves hotel": a generic noun used inside a sentence."""
    words = name.lower().split()
    return any(w in GENERIC_TRAVEL_NOUNS for w in words) and _sentence_has_verb(context)


def is_denied(name: str) -> bool:
    """Any token that is a personal name or filler word rejects the whole candidate."""
    for token in re.findall(r"[a-z']+", name.lower()):
        token = token.strip("'")
        if token.endswith("'s"):
            token = token[:-2]
        if token in COMMON_NAMES or token in NON_PLACE_WORDS:
            return True
    return False


def is_known_place(name: str) -> bool:
    return bool(_KNOWN_RE.search(name))


def detect_place_type(name: str) -> Tuple[PlaceType, int]:
    """Category and confidence boost from the first place keyword in ``name``."""
    lower = name.lower()
    for keyword, boost in PLACE_TYPE_BOOST.items():
        if re.search(rf"\b{keyword}\b", lower):
            return PLACE_TYPE_MAP[keyword], boost
    for keyword, place_type in PLACE_TYPE_MAP.items():
        if re.search(rf"\b{keyword}\b", lower):
            return place_type, 10
    return PlaceType.DESTINATION, 0


def has_place_keyword(name: str) -> bool:
    lower = name.lower()
    return any(re.search(rf"\b{k}\b", lower) for k in PLACE_TYPE_BOOST)


def clean_place_name(name: str) -> str:
    name = re.sub(r"[.!?,;:]+$", "", name.strip())
    return _TRAILING_RE.sub("", name).strip()


def _acceptable(name: str) -> bool:
    return (
        len(name) >= 3
        and not is_denied(name)
        and not contains_verb_phrase(name)
        and not is_generic_noun(name)
    )


# === Extraction ===

def _candidates(msg: Message) -> List[Tuple[str, int, PlaceType]]:
    """(name, confidence, type) candidates from one message."""
    text = msg.content
    found: List[Tuple[str, int, PlaceType]] = []

    for match in INDICATOR_PATTERN.finditer(text):
        name = clean_place_name(match.group(1))
        if not _acceptable(name):
            continue
        context = text[max(0, match.start() - 50):match.end() + 50]
        if is_generic_noun_in_sentence(name, context):
            continue
        place_type, boost = detect_place_type(name)
        found.append((name, 80 if is_known_place(name) else 50 + boost, place_type))

    for match in _KNOWN_RE.finditer(text):
        name = capitalize(match.group(1).lower())
        found.append((name, 85, PlaceType.DESTINATION))

    for match in COMPOUND_PATTERN.finditer(text):
        prefix = _strip_leading_fillers(match.group(1))
        if not prefix:
            continue
        name = f"{prefix} {capitalize(match.group(2).lower())}"
        if is_denied(prefix) or contains_verb_phrase(name):
            continue
        place_type, boost = detect_place_type(name)
        found.append((name, min(75 + boost, KEYWORD_CAP), place_type))

    for match in QUOTED_PATTERN.finditer(text):
        name = clean_place_name(match.group(1))
        if _acceptable(name) and has_place_keyword(name):
            place_type, boost = detect_place_type(name)
            found.append((name, min(70 + boost, KEYWORD_CAP), place_type))

    return found


def _keep(place: ExtractedPlace) -> bool:
    if is_generic_noun(place.name):
        return False
    if is_known_place(place.name):
        return True
    if has_place_keyword(place.name):
        return len(place.name.split()) >= 2
    return (place.confidence or 0) >= 70 or place.status == PlaceStatus.CONFIRMED


def extract_places(messages: List[Message], min_senders: int = 2) -> List[ExtractedPlace]:
    """Places mentioned in the chat, best first.

    ``votes`` is the number of distinct senders whose messages mention the
    place. A place is ``confirmed`` with ``min_senders`` votes, or when a
    message mentioning it also carries agreement language.
    """
    places: Dict[str, ExtractedPlace] = {}
    live = [m for m in messages if not m.is_media]

    for msg in live:
        for name, confidence, place_type in _candidates(msg):
            key = name.lower()
            if key not in places:
                places[key] = ExtractedPlace(
                    name=name,
                    type=place_type,
                    votes=0,
                    status=PlaceStatus.MAYBE,
                    mentioned_by=[],
                    confidence=confidence,
                    source=Source.HEURISTIC,
                )

    for key, place in places.items():
        mention = re.compile(rf"(?<!\w){re.escape(key)}(?!\w)")
        agreed = False
        for msg in live:
            lower = msg.content.lower()
            if not mention.search(lower):
                continue
            if msg.sender and msg.sender not in place.mentioned_by:
                place.mentioned_by.append(msg.sender)
            if contains_agreement(msg.content):
                agreed = True
        place.votes = max(1, len(place.mentioned_by))
        if len(place.mentioned_by) >= min_senders or agreed:
            place.status = PlaceStatus.CONFIRMED
            place.confidence = min((place.confidence or 0) + CONFIRMED_BOOST, CONFIRMED_CAP)

    result = [p for p in places.values() if _keep(p)]
    result.sort(key=lambda p: (p.confidence or 0, p.votes), reverse=True)
    _log.debug("Places extracted", candidates=len(places), kept=len(result))
    return result


def find_place(places: List[ExtractedPlace], name: str) -> Optional[ExtractedPlace]:
    key = name.lower()
    return next((p for p in places if p.name.lower() == key), None)
