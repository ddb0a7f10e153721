import re
from datetime import date, datetime, timedelta
from typing import Optional

from dateutil import parser as dtparser

from tripy.schemas import BudgetTier, ExtractedTrip, TransportMode


CITY_ALIASES = {
    "bombay": "Mumbai",
    "mumbai": "Mumbai",
    "delhi": "Delhi",
    "new delhi": "New Delhi",
    "bangalore": "Bengaluru",
    "bengaluru": "Bengaluru",
    "calcutta": "Kolkata",
    "madras": "Chennai",
    "gurgaon": "Gurugram",
}

# Table order is the tie-break: "trains but also flights" -> Train.
MODE_KEYWORDS: tuple[tuple[TransportMode, tuple[str, ...]], ...] = (
    (TransportMode.TRAIN, ("train", "rail", "railway")),
    (TransportMode.BUS, ("bus", "coach")),
    (TransportMode.FLIGHT, ("flight", "fly", "flying", "plane", "airplane", "aeroplane", "air")),
)

BUDGET_KEYWORDS: tuple[tuple[BudgetTier, tuple[str, ...]], ...] = (
    (BudgetTier.LUXURY, ("luxury", "luxurious", "premium")),
    (BudgetTier.MEDIUM, ("medium", "mid-range", "mid range", "midrange", "moderate")),
    (BudgetTier.BUDGET_FRIENDLY, ("budget", "cheap", "economical", "low cost", "low-cost")),
)

NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}
SOLO_WORDS = ("solo", "alone", "just me", "only me", "myself")
COUPLE_WORDS = ("couple", "the two of us", "both of us")

RESTART = {"restart", "start over", "reset", "new trip", "start again"}

_MONTHS = (
    r"jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
    r"|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?"
)
DATE_PHRASE = re.compile(
    r"\b(?:"
    r"\d{4}-\d{2}-\d{2}"
    r"|\d{1,2}/\d{1,2}/\d{4}"
    rf"|\d{{1,2}}(?:st|nd|rd|th)?\s+(?:of\s+)?(?:{_MONTHS})\b(?:,?\s+\d{{4}})?"
    rf"|(?:{_MONTHS})\s+\d{{1,2}}(?:st|nd|rd|th)?\b(?:,?\s+\d{{4}})?"
    r"|day after tomorrow|tomorrow|today|next week"
    r")",
    re.IGNORECASE,
)
RETURN_PHRASE = re.compile(r"\b(?:return(?:ing)?|back)\s+(?:on\s+)?", re.IGNORECASE)

_CITY = r"([a-z][a-z.]*(?:\s+[a-z][a-z.]*)*?)"
_CITY_END = (
    r"(?=\s+(?:on|by|for|in|at|with|from|to|next|this|tomorrow|today|via|and|"
    r"returning|return|round|one)\b|\s+\d|\s*[,.!?;]|\s*$)"
)
FROM_TO = re.compile(rf"\bfrom\s+{_CITY}\s+to\s+{_CITY}{_CITY_END}", re.IGNORECASE)
FROM_ONLY = re.compile(rf"\bfrom\s+{_CITY}{_CITY_END}", re.IGNORECASE)
TO_ONLY = re.compile(
    rf"\b(?:to|visit|visiting)\s+(?!go\b|travel\b|fly\b|book\b|plan\b|visit\b|be\b){_CITY}{_CITY_END}",
    re.IGNORECASE,
)
PARTY_PHRASE = re.compile(
    r"\b(\d{1,2}|" + "|".join(NUMBER_WORDS) + r")\s+"
    r"(?:people|persons|person|adults|travell?ers|passengers|pax|members|friends|guests|of us)\b",
    re.IGNORECASE,
)


def norm_city(x: str) -> str:
    if not x:
        return x
    k = re.sub(r"^(?:from|to)\s+", "", x.strip().lower())
    k = k.strip(" .,!?;:'\"")
    return CITY_ALIASES.get(k, k.title())


def _has_keyword(text: str, keyword: str) -> bool:
    # whole word with an optional plural: "trains" hits "train", "business" does not hit "bus"
    return re.search(rf"\b{re.escape(keyword)}(?:e?s)?\b", text) is not None


def normalize_mode(raw: str) -> Optional[TransportMode]:
    t = (raw or "").lower()
    for mode, keywords in MODE_KEYWORDS:
        if any(_has_keyword(t, k) for k in keywords):
            return mode
    return None


def normalize_budget(raw: str) -> Optional[BudgetTier]:
    t = (raw or "").lower().replace('"', "").replace("'", "")
    for tier, keywords in BUDGET_KEYWORDS:
        if any(_has_keyword(t, k) for k in keywords):
            return tier
    return None


def parse_party_size(text: str) -> Optional[int]:
    """Direct answer to "how many travellers?"."""
    t = (text or "").strip().lower()
    m = re.search(r"\b(\d{1,3})\b", t)
    if m:
        n = int(m.group(1))
        return n if n > 0 else None
    for word, n in NUMBER_WORDS.items():
        if re.search(rf"\b{word}\b", t):
            return n
    if any(w in t for w in COUPLE_WORDS):
        return 2
    if any(w in t for w in SOLO_WORDS):
        return 1
    return None


def extract_party_size(text: str) -> Optional[int]:
    """Party size mentioned inside a longer sentence."""
    t = (text or "").lower()
    m = PARTY_PHRASE.search(t)
    if m:
        raw = m.group(1)
        n = int(raw) if raw.isdigit() else NUMBER_WORDS[raw]
        return n if n > 0 else None
    if any(w in t for w in COUPLE_WORDS):
        return 2
    if any(re.search(rf"\b{w}\b", t) for w in SOLO_WORDS):
        return 1
    return None


def normalize_date(text: str, today: Optional[date] = None) -> Optional[str]:
    """Turn a date answer ("18 August", "tomorrow", "2026-08-18") into an ISO date.

    A day and month without a year that already passed this year is rolled
    into next year.
    """
    today = today or date.today()
    t = (text or "").strip().lower()
    if not t:
        return None

    try:
        return date.fromisoformat(t).isoformat()
    except ValueError:
        pass

    m = DATE_PHRASE.search(t)
    phrase = m.group(0) if m else t

    if phrase == "today":
        return today.isoformat()
    if phrase == "tomorrow":
        return (today + timedelta(days=1)).isoformat()
    if phrase == "day after tomorrow":
        return (today + timedelta(days=2)).isoformat()
    if phrase == "next week":
        return (today + timedelta(days=7)).isoformat()

    try:
        d = date.fromisoformat(phrase)
        return d.isoformat()
    except ValueError:
        pass

    try:
        default = datetime(today.year, today.month, today.day)
        d = dtparser.parse(phrase, dayfirst=True, default=default).date()
    except (ValueError, OverflowError):
        return None

    if not re.search(r"\d{4}", phrase) and d < today:
        try:
            d = d.replace(year=d.year + 1)
        except ValueError:
            # 29 February
            return None
    return d.isoformat()


def is_restart(text: str) -> bool:
    t = re.sub(r"[^a-z ]", "", (text or "").lower()).strip()
    return t in RESTART


def _find_dates(text: str, today: date) -> tuple[Optional[str], Optional[str]]:
    travel = None
    ret = None
    for m in DATE_PHRASE.finditer(text):
        before = text[: m.start()]
        iso = normalize_date(m.group(0), today)
        if not iso:
            continue
        if RETURN_PHRASE.search(before[-20:]) and ret is None:
            ret = iso
        elif travel is None:
            travel = iso
    return travel, ret


def extract_trip_details(user_text: str, today: Optional[date] = None) -> ExtractedTrip:
    """Rule-based extraction of trip slots from one utterance.

    Used directly when no language model is configured and as the fallback
    when the model call fails.
    """
    today = today or date.today()
    t = (user_text or "").strip()
    low = t.lower()
    out: dict = {}

    m = FROM_TO.search(low)
    if m:
        out["origin"] = norm_city(m.group(1))
        out["destination"] = norm_city(m.group(2))
    else:
        m = FROM_ONLY.search(low)
        if m:
            out["origin"] = norm_city(m.group(1))
        m = TO_ONLY.search(low)
        if m:
            out["destination"] = norm_city(m.group(1))

    travel, ret = _find_dates(low, today)
    if travel:
        out["travel_date"] = travel
    if ret:
        out["return_date"] = ret

    if re.search(r"\bround[\s-]?trip\b|\breturn(?:ing)?\b", low):
        out["is_round_trip"] = True
    elif re.search(r"\bone[\s-]?way\b", low):
        out["is_round_trip"] = False

    mode = normalize_mode(low)
    if mode:
        out["transport_mode"] = mode
    budget = normalize_budget(low)
    if budget:
        out["budget_tier"] = budget
    party = extract_party_size(low)
    if party:
        out["party_size"] = party

    if is_restart(low):
        intent = "restart"
    elif out:
        intent = "book_trip"
    else:
        intent = "unknown"

    return ExtractedTrip(intent=intent, **out)
