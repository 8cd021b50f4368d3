"""Extraction prompt for remote models."""

from tripsift.extraction.messages import CHAT_END_MARKER, CHAT_START_MARKER

from .types import Prompt

CHAT_EXTRACTION_SYSTEM_PROMPT = """You are a travel planning assistant that extracts actionable information from INDIAN group chat conversations.

Your task is to analyze the provided chat and extract:
1. DATES: Any mentioned trip dates, arrival times, departure times
2. BUDGET: Total budget, per-person amounts, cost breakdowns
3. PLACES: Destinations, restaurants, hotels, activities mentioned
4. TASKS: Who is doing what, deadlines, current status
5. DECISIONS: Final agreements the group has made
6. OPEN QUESTIONS: Unresolved debates or questions

CRITICAL RULES FOR INDIAN CHAT:

1. PLACES - BE VERY CAREFUL:
   - ONLY extract REAL geographic locations (cities, beaches, forts, restaurants)
   - NEVER extract person names as places (Yashas, Naveen, Priya, Rahul are NAMES not places)
   - NEVER extract casual Indian words as places:
     * "madi" = "do it" in Kannada (NOT a place)
     * "macha/guru/bro" = friend terms (NOT places)
     * "ide/illa" = is/isn't in Kannada (NOT places)
   - GOOD places: "Goa", "Calangute beach", "Chapora fort", "Pinto's Shack"
   - BAD extractions: "Naveen", "madi", "Book", "Jeeth"

2. BUDGET - Handle Indian formats:
   - "10-12k" means ₹10,000 to ₹12,000 (k = thousand)
   - "₹1.8k/night" means ₹1,800 per night
   - "15k max" means maximum budget of ₹15,000
   - Extract ALL amounts, not just ones with ₹ symbol
   - Only give a single "total" when 2+ people agreed on it; otherwise list "proposals"

3. TASKS - Understand Indian informal speech:
   - "Book madi" / "Book macha" = Task: Book something
   - "I'll handle" = Someone taking responsibility
   - "Finalize by tonight" = Task with deadline
   - Look for imperative verbs: book, pack, bring, check, finalize

4. DECISIONS - Look for consensus:
   - When 2+ people agree, it's a decision
   - Agreement signals: "yes", "done", "ok", "👍", "sounds good", "works"
   - "Train better" + "Smart 👍" = Decision: Travel by train

5. OPEN QUESTIONS - Only truly unresolved:
   - Don't include questions that got answered
   - "Cruise??" followed by "If budget allows" = CONDITIONAL (not open)
   - Only include questions still being debated

IGNORE completely:
- Memes, GIFs, stickers
- Emoji-only messages (😂😂😂)
- Banter that's not trip-related

Respond ONLY with valid JSON in the exact format specified. Do not include any explanation or markdown."""

_RESPONSE_FORMAT = """{
  "dates": [
    {
      "date": "human readable date string",
      "startDate": "ISO date or null",
      "endDate": "ISO date or null",
      "context": "brief context from chat",
      "proposedBy": "person name or null",
      "status": "open|finalized",
      "confidence": 85
    }
  ],
  "budget": {
    "total": "amount with currency symbol (e.g. ₹10,000 - ₹15,000) or null",
    "currency": "INR",
    "perPerson": true,
    "breakdown": [
      {"item": "Stay/Transport/Food/Activities", "amount": "₹1,800/night"}
    ],
    "status": "open|finalized",
    "proposals": [
      {"amount": "₹10,000", "proposedBy": ["person1"]}
    ],
    "confidence": 80
  },
  "places": [
    {
      "name": "REAL place name only",
      "type": "destination|accommodation|restaurant|nightlife|attraction|activity|beach|landmark",
      "votes": 3,
      "status": "confirmed|maybe",
      "mentionedBy": ["person1", "person2"],
      "confidence": 80
    }
  ],
  "tasks": [
    {
      "task": "task description",
      "assignee": "person name or null",
      "status": "pending|in-progress|done",
      "deadline": "by tonight|Dec 10|null"
    }
  ],
  "decisions": [
    {
      "decision": "what was decided",
      "madeBy": "people who agreed",
      "confidence": 90
    }
  ],
  "openQuestions": [
    {
      "question": "only TRULY unresolved questions",
      "status": "open|conditional"
    }
  ],
  "stats": {
    "totalMessages": 0,
    "relevantMessages": 0,
    "mediaFiltered": 0
  }
}"""


def build_user_prompt(chat_text: str) -> str:
    return f"""Analyze this Indian group chat and extract travel planning information:

{CHAT_START_MARKER}
{chat_text}
{CHAT_END_MARKER}

REMEMBER:
- Person names (Yashas, Naveen, Jeeth, Shrajan, etc.) are NOT places
- "madi", "macha", "guru", "bro" are NOT places - they're casual words
- "10-12k" means ₹10,000 to ₹12,000
- Look for CONSENSUS when detecting decisions

Respond with JSON in this exact format (no markdown, just pure JSON):
{_RESPONSE_FORMAT}"""


def build_extraction_prompt(chat_text: str) -> Prompt:
    return Prompt(system=CHAT_EXTRACTION_SYSTEM_PROMPT, user=build_user_prompt(chat_text))
