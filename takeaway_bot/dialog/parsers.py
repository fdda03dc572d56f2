"""
Deterministic text parsing for the voice dialog.

This module holds the keyword lists used by the state handlers and the small
parsers the slot extractor builds on: name matching, quantities, order codes
and pickup times. Nothing here touches the menu or the session; every
function is a pure transformation of the utterance.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

# =============================================================================
# Keyword Lists
# =============================================================================

AFFIRMATION_PHRASES = ("yes", "yep", "correct", "confirm", "sure", "do it", "go ahead")

# "not sure", "don't do it"
NEGATING_WORDS = ("not", "no", "don't", "dont", "never")

NEGATION_PHRASES = ("no", "not", "wait", "hold on", "stop", "cancel that", "nevermind")

COMPLETION_CUES = (
    "done", "finish", "that's all", "that's it",
    "place the order", "ready to pay", "confirm",
)

# "where is my order", "is it ready" only redirect from the opening turn;
# mid-order "for pickup at 18:30" must not.
OPENING_STATUS_KEYWORDS = ("status", "where", "ready", "pickup")
STATUS_KEYWORDS = ("status",)
CANCEL_KEYWORDS = ("cancel",)
MODIFY_KEYWORDS = ("modify", "change", "swap", "edit")
RESTART_KEYWORDS = ("start", "restart", "start over")

# Words that decline extras on the modifiers slot
MODIFIER_NEGATION_WORDS = {"no", "not", "without", "none", "nothing", "plain"}

STOP_WORDS = {
    "i", "would", "like", "to", "a", "an", "and", "please", "order",
    "get", "me", "for", "just", "with", "without",
}

WORD_TO_NUM = {
    "a": 1, "an": 1, "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
}

_ARTICLES = {"a", "an"}

# Reverse compact matching ("cheese" -> "Extra Cheese") needs a few characters
# to avoid "a" or "no" matching half the menu.
MIN_REVERSE_MATCH_LENGTH = 3


# =============================================================================
# Normalization and Matching
# =============================================================================

def normalize_text(text: str | None) -> str:
    """Trim and lower-case an utterance."""
    return (text or "").strip().lower()


def compact(text: str) -> str:
    """
    Normalize a string for fuzzy matching.

    Keeps only letters and digits, lower-cased, so "Extra-Cheese" and
    "extra cheese" both become "extracheese".
    """
    return "".join(ch for ch in text.lower() if ch.isalnum())


def contains_phrase(text: str, phrase: str) -> bool:
    """Whole-word (or whole-phrase) containment, so "no" does not fire on "now"."""
    return re.search(r"(?<![a-z0-9])" + re.escape(phrase) + r"(?![a-z0-9])", text) is not None


def contains_any(text: str, phrases) -> bool:
    return any(contains_phrase(text, phrase) for phrase in phrases)


def negates_affirmation(text: str) -> bool:
    """True when an affirmation phrase is directly negated ("I'm not sure")."""
    return any(
        contains_phrase(text, f"{word} {phrase}")
        for word in NEGATING_WORDS
        for phrase in AFFIRMATION_PHRASES
    )


def name_matches(name: str, utterance: str) -> bool:
    """
    Check whether a menu name is mentioned in an utterance.

    Matches when the name appears in the utterance (case-insensitive), when
    its compact form appears in the utterance's compact form, or when the
    compact utterance is itself part of the compact name ("cheese" ->
    "Extra Cheese").
    """
    if not name or not utterance:
        return False
    if name.lower() in utterance.lower():
        return True
    compact_name = compact(name)
    compact_utterance = compact(utterance)
    if not compact_name or not compact_utterance:
        return False
    if compact_name in compact_utterance:
        return True
    return len(compact_utterance) >= MIN_REVERSE_MATCH_LENGTH and compact_utterance in compact_name


def tokenize(text: str) -> list[str]:
    """Split on whitespace and punctuation, keeping apostrophes inside words."""
    return [token for token in re.split(r"[^a-z0-9']+", text.lower()) if token]


def clean_item_description(text: str) -> str:
    """Drop filler words from a free-text request ("I would like a large pizza" -> "large pizza")."""
    words = [word for word in text.split() if word.lower().strip(".,!?") not in STOP_WORDS]
    cleaned = " ".join(words).strip()
    return cleaned or text.strip()


# =============================================================================
# Order Codes
# =============================================================================

# "TA-9876", "ta9876", "ORD-202610181830-000042"
ORDER_CODE_PATTERN = re.compile(r"[A-Z]{2,}-?\d{2,}(?:-\d{2,})?")


def extract_order_code(text: str | None) -> str | None:
    """
    Pull an order code out of an utterance.

    Falls back to "TA-" plus the last four letters/digits when the caller
    spelled the code out loosely ("t a 98 76" -> "TA-9876"). The fallback
    needs at least one digit, otherwise any long enough sentence would read
    as a code.
    """
    if not text:
        return None
    upper = text.upper()
    match = ORDER_CODE_PATTERN.search(upper)
    if match:
        return match.group(0)

    alphanumerics = [ch for ch in upper if ch.isalnum()]
    if len(alphanumerics) >= 4 and any(ch.isdigit() for ch in alphanumerics):
        return "TA-" + "".join(alphanumerics[-4:])
    return None


# =============================================================================
# Times
# =============================================================================

_CLOCK_TIME = re.compile(r"\b(\d{1,2})[:.](\d{2})\s*(am|pm)?\b")
_HOUR_AM_PM = re.compile(r"\b(\d{1,2})\s*(am|pm)\b")
_RELATIVE_MINUTES = re.compile(r"\bin\s+(\d{1,3})\s*(?:minutes?|mins?)\b")
_RELATIVE_HOUR = re.compile(r"\bin\s+(?:an|one)\s+hour\b")
_RELATIVE_HALF_HOUR = re.compile(r"\bin\s+half\s+an\s+hour\b")
_DOTTED_AM_PM = re.compile(r"\b([ap])\.m\.?")

_HOUR_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12,
}
_HOUR_TOKEN = r"(\d{1,2}|" + "|".join(_HOUR_WORDS) + r")"
# "7 o'clock", "seven oclock"
_HOUR_OCLOCK = re.compile(r"\b" + _HOUR_TOKEN + r"\s*o'?\s*clock\b")
# "at 7", "around seven"; "at 18:30" is left to _CLOCK_TIME
_HOUR_AFTER_AT = re.compile(r"\b(?:at|around|about|by)\s+" + _HOUR_TOKEN + r"\b(?![:.]\d)")

_TIME_EXPRESSIONS = (
    _CLOCK_TIME, _HOUR_AM_PM, _HOUR_OCLOCK, _HOUR_AFTER_AT,
    _RELATIVE_MINUTES, _RELATIVE_HOUR, _RELATIVE_HALF_HOUR,
)


def _prepare_time_text(text: str) -> str:
    return _DOTTED_AM_PM.sub(r"\1m", text.lower())


def strip_time_expressions(text: str) -> str:
    """Remove clock times and "in N minutes" so their digits are not read as quantities."""
    stripped = _prepare_time_text(text)
    for pattern in _TIME_EXPRESSIONS:
        stripped = pattern.sub(" ", stripped)
    return stripped


def parse_clock_time(text: str) -> tuple[int, int] | None:
    """Parse "18:30", "6.30pm", "7 pm", "noon". Returns (hour, minute) or None."""
    normalized = _prepare_time_text(text)

    for pattern in (_CLOCK_TIME, _HOUR_AM_PM):
        match = pattern.search(normalized)
        if not match:
            continue
        hour = int(match.group(1))
        if pattern is _CLOCK_TIME:
            minute = int(match.group(2))
            am_pm = match.group(3)
        else:
            minute = 0
            am_pm = match.group(2)

        if am_pm is not None and not 1 <= hour <= 12:
            continue
        if am_pm == "pm" and hour != 12:
            hour += 12
        elif am_pm == "am" and hour == 12:
            hour = 0

        if 0 <= hour <= 23 and 0 <= minute <= 59:
            return (hour, minute)

    if contains_phrase(normalized, "noon"):
        return (12, 0)
    return None


def parse_spoken_hour(text: str) -> int | None:
    """Parse an hour said without minutes or am/pm: "at 7", "seven o'clock"."""
    normalized = text.lower()
    for pattern in (_HOUR_OCLOCK, _HOUR_AFTER_AT):
        match = pattern.search(normalized)
        if not match:
            continue
        token = match.group(1)
        hour = _HOUR_WORDS[token] if token in _HOUR_WORDS else int(token)
        if 0 <= hour <= 23:
            return hour
    return None


def parse_relative_delay(text: str) -> timedelta | None:
    """Parse "in 20 minutes", "in an hour", "in half an hour"."""
    normalized = text.lower()
    match = _RELATIVE_MINUTES.search(normalized)
    if match:
        return timedelta(minutes=int(match.group(1)))
    if _RELATIVE_HALF_HOUR.search(normalized):
        return timedelta(minutes=30)
    if _RELATIVE_HOUR.search(normalized):
        return timedelta(hours=1)
    return None


@dataclass(frozen=True)
class PickupTimeParse:
    """Outcome of reading a pickup time: the accepted time, and whether a time was mentioned at all."""
    value: datetime | None
    mentioned: bool

    @property
    def rejected(self) -> bool:
        return self.mentioned and self.value is None


def parse_pickup_time(
    text: str,
    now: datetime,
    timezone: tzinfo,
    min_lead: timedelta,
) -> PickupTimeParse:
    """
    Read a pickup time from an utterance.

    Clock times are local to ``timezone``. Without "today"/"tomorrow", a
    time that has already passed today rolls forward to tomorrow. A bare
    hour ("at 7") may mean morning or evening and resolves to whichever comes
    next. The result must be at least ``min_lead`` after ``now``.

    Args:
        text: Raw utterance
        now: Current instant (aware)
        timezone: Shop timezone for clock times
        min_lead: Minimum distance between now and pickup

    Returns:
        PickupTimeParse with an aware datetime in ``timezone`` when accepted
    """
    normalized = text.lower()
    delay = parse_relative_delay(normalized)
    if delay is not None:
        candidate = now.astimezone(timezone) + delay
    else:
        clock_time = parse_clock_time(normalized)
        if clock_time is not None:
            choices = [clock_time]
        else:
            hour = parse_spoken_hour(normalized)
            if hour is None:
                return PickupTimeParse(None, False)
            choices = [(hour, 0)]
            if 1 <= hour < 12:
                choices.append((hour + 12, 0))

        local_today: date = now.astimezone(timezone).date()
        explicit_day = False
        if contains_phrase(normalized, "tomorrow"):
            pickup_day = local_today + timedelta(days=1)
            explicit_day = True
        else:
            pickup_day = local_today
            explicit_day = contains_any(normalized, ("today", "tonight"))

        candidates = []
        for hour, minute in choices:
            candidate = datetime.combine(pickup_day, time(hour, minute), tzinfo=timezone)
            if not explicit_day and candidate < now:
                candidate = candidate + timedelta(days=1)
            candidates.append(candidate)
        upcoming = [c for c in candidates if c >= now] or candidates
        candidate = min(upcoming)

    if candidate < now + min_lead:
        return PickupTimeParse(None, True)
    return PickupTimeParse(candidate, True)


# =============================================================================
# Quantities
# =============================================================================

@dataclass(frozen=True)
class QuantityParse:
    value: int
    from_article: bool  # "a pizza" is weaker evidence than "two pizzas"


def parse_quantity(text: str) -> QuantityParse | None:
    """
    Read a quantity: a bare number first, then an English number word.

    Out-of-range values are still returned so the caller can say why they
    were refused; clock times are ignored.
    """
    stripped = strip_time_expressions(text)

    match = re.search(r"\b(\d{1,2})\b", stripped)
    if match:
        return QuantityParse(int(match.group(1)), False)
    match = re.search(r"\b(\d{3,})\b", stripped)
    if match:
        return QuantityParse(int(match.group(1)), False)

    for token in tokenize(stripped):
        if token in WORD_TO_NUM:
            return QuantityParse(WORD_TO_NUM[token], token in _ARTICLES)
    return None
