import logging
import math
import re
from typing import Callable, List, Optional, Pattern, Tuple

from rxcalc.schemas.models import DosageInstruction, ParsedInstruction, Route

LOG = logging.getLogger(__name__)

DEFAULT_FREQUENCY = 1
DEFAULT_UNIT = "tablet"  # fallback path has no unit token to go on

PRN_PHRASES = ("as needed", "prn", "p.r.n.")

TIMING_PHRASES = (
    "with food",
    "with meals",
    "without food",
    "empty stomach",
    "morning",
    "evening",
    "night",
    "bedtime",
    "as needed",
    "prn",
)

NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}


def _abbr(token: str) -> str:
    # whole-word match for short abbreviations ("im" must not hit "times")
    return rf"(?<![a-z]){re.escape(token)}(?![a-z])"


def _alternation(*parts: str) -> Pattern[str]:
    return re.compile("|".join(parts), re.I)


def _every_n_hours(m: "re.Match[str]") -> Optional[int]:
    hours = int(m.group(1))
    return math.ceil(24 / hours) if hours > 0 else None


def _n_times_daily(m: "re.Match[str]") -> Optional[int]:
    times = int(m.group(1))
    return times if times > 0 else None


# Ordered most specific first: "three times daily" must win before anything
# that would read the same text as once daily.
FREQUENCY_RULES: List[Tuple[Pattern[str], Callable[["re.Match[str]"], Optional[int]]]] = [
    (_alternation("three times daily", _abbr("tid"), _abbr("t.i.d.")), lambda m: 3),
    (_alternation("four times daily", _abbr("qid"), _abbr("q.i.d.")), lambda m: 4),
    (_alternation("twice daily", "two times daily", _abbr("bid"), _abbr("b.i.d.")), lambda m: 2),
    (_alternation("once daily", "once a day", _abbr("qday"), _abbr("q.d.")), lambda m: 1),
    (re.compile(r"every\s+(\d+)\s+hours?", re.I), _every_n_hours),
    (re.compile(r"(\d+)\s+times\s+daily", re.I), _n_times_daily),
]

ROUTE_RULES: List[Tuple[Pattern[str], Route]] = [
    (_alternation("by mouth", "oral", _abbr("po")), "PO"),
    (_alternation("intravenous", _abbr("iv")), "IV"),
    (_alternation("intramuscular", _abbr("im")), "IM"),
    (_alternation("topical"), "TOPICAL"),
    (_alternation("subcutaneous", _abbr("subq"), _abbr("sc")), "SQ"),
]

_AMOUNT = r"(\d+(?:\.\d+)?)"
_UNIT = r"(tablets?|capsules?|pills?|ml|mg|g|doses?)\b"

# First pattern with at least one match wins; later ones are not consulted.
DOSE_PATTERNS: List[Pattern[str]] = [
    re.compile(rf"take\s+{_AMOUNT}\s+{_UNIT}", re.I),
    re.compile(rf"{_AMOUNT}\s+{_UNIT}\s+(?:take|by mouth|po|oral)", re.I),
]

_BARE_NUMBER_RE = re.compile(_AMOUNT)
_NUMBER_WORD_RE = re.compile(r"\b(" + "|".join(NUMBER_WORDS) + r")\b", re.I)


def is_as_needed(text: str) -> bool:
    t = (text or "").lower()
    return any(p in t for p in PRN_PHRASES)


def extract_timing(text: str) -> Optional[str]:
    t = (text or "").lower()
    return next((p for p in TIMING_PHRASES if p in t), None)


def extract_frequency(text: str) -> Tuple[int, Optional[str]]:
    """
    Returns (times_per_day, timing).
    Timing is only reported alongside an explicit frequency; the default
    once-a-day reading carries none.
    """
    for pattern, times_for in FREQUENCY_RULES:
        m = pattern.search(text)
        if not m:
            continue
        times = times_for(m)
        if times:
            return times, extract_timing(text)
    return DEFAULT_FREQUENCY, None


def extract_route(text: str) -> Optional[Route]:
    return next((route for pattern, route in ROUTE_RULES if pattern.search(text)), None)


def normalize_unit(unit: str) -> str:
    return re.sub(r"s$", "", unit.lower())


def _fallback_amount(text: str) -> float:
    num = _BARE_NUMBER_RE.search(text)
    if num:
        return float(num.group(1))
    word = _NUMBER_WORD_RE.search(text)
    if word:
        return float(NUMBER_WORDS.get(word.group(1).lower(), 1))
    return 0.0


def parse_sig(instruction_text: str) -> ParsedInstruction:
    """
    Parse a free-text SIG into structured dosing.
    Never raises: unparseable text gives an empty instruction list and a
    total daily dose of 0.
    """
    original = instruction_text if isinstance(instruction_text, str) else ""
    text = original.lower().strip()

    prn = is_as_needed(text)
    frequency, timing = extract_frequency(text)
    route = extract_route(text)

    instructions: List[DosageInstruction] = []
    total_daily_dose = 0.0
    daily_frequency = DEFAULT_FREQUENCY

    for pattern in DOSE_PATTERNS:
        matches = list(pattern.finditer(text))
        if not matches:
            continue
        for m in matches:
            amount = float(m.group(1))
            if amount <= 0:
                continue
            instructions.append(DosageInstruction(
                amount=amount,
                unit=normalize_unit(m.group(2)),
                frequency=frequency,
                timing=timing,
                route=route,
            ))
            total_daily_dose += amount * frequency
            daily_frequency = max(daily_frequency, frequency)
        break

    if not instructions:
        amount = _fallback_amount(text)
        if amount > 0:
            instructions.append(DosageInstruction(
                amount=amount,
                unit=DEFAULT_UNIT,
                frequency=frequency,
                timing=timing,
                route=route,
            ))
            total_daily_dose = amount * frequency
            daily_frequency = frequency

    LOG.debug(
        "Parsed SIG %r: %d instruction(s), daily dose %s, prn=%s",
        original, len(instructions), total_daily_dose, prn,
    )

    return ParsedInstruction(
        original_text=original,
        dosage_instructions=instructions,
        total_daily_dose=total_daily_dose,
        daily_frequency=daily_frequency,
        is_as_needed=prn,
    )
