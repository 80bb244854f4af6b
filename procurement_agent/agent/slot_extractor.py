"""
Slot/entity extraction over a message and the recent conversation.

Everything here is pure: no I/O and no mutation of the inputs, so calling
``extract_slots`` twice with the same arguments gives the same bag.
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Sequence

from procurement_agent.agent.catalog import (
    CATEGORIES,
    MATERIAL_SYNONYMS,
    REGIONS,
    SYNONYM_KEYWORDS,
)
from procurement_agent.models import ConversationMessage, Role


MAX_HISTORY = 10
MIN_QUANTITY = 1
MAX_QUANTITY = 9999
HIGH_RATING = 4.0

_KEYWORD_PATTERNS = {
    keyword: re.compile(rf"\b{re.escape(keyword)}\b") for keyword in SYNONYM_KEYWORDS
}
_BRACKET_TOKEN = re.compile(r"\[([^\[\]]+)\]")
_NON_NAME_TOKEN = re.compile(r"^[\d\s/,.\-|]+$")
_NUMBER = re.compile(r"\d+(?:[.,]\d+)?")
_NOT_QUANTITY_BEFORE = re.compile(
    r"(?:\btop|\bcompany|\bsupplier|\bvendor|\boption|#|\bno\.?|\bnumber"
    r"|\brating(?:\s+(?:of|above|over|at least))?|\brated(?:\s+(?:above|over|at least))?)\s*$"
)
_NOT_QUANTITY_AFTER = re.compile(
    r"^\s*(?:suppliers?\b|vendors?\b|companies\b|days?\b|weeks?\b|months?\b|stars?\b|%|\+)"
)
_REGION = re.compile(r"\b(" + "|".join(sorted(REGIONS, key=len, reverse=True)) + r")\b", re.I)
_CATEGORY = re.compile(r"\b(" + "|".join(CATEGORIES) + r")\b", re.I)
_MIN_RATING = re.compile(
    r"(?:rating|rated)\s*(?:of\s*)?(?:above|over|at least|>=|>)?\s*(\d(?:\.\d+)?)"
    r"|(\d(?:\.\d+)?)\s*\+?\s*stars?",
    re.I,
)
_HIGH_RATING = re.compile(r"\b(?:high(?:ly)?[\s-]rat(?:ing|ed)|top[\s-]rated|best[\s-]rated)\b", re.I)
_LIMIT = re.compile(r"\btop\s+(\d{1,3})\b|\b(\d{1,2})\s+(?:suppliers|vendors|companies)\b", re.I)
_COMPANY_NUMBER = re.compile(
    r"\b(?:company|supplier|vendor|option)\s*(?:#|no\.?|number)?\s*(\d{1,3})\b|#\s*(\d{1,3})\b",
    re.I,
)
_CONFIRMATION = re.compile(
    r"^\s*(?:yes|yep|yeah|ok|okay|sure|proceed|confirm|confirmed|go ahead|place it|do it)\b[\s.!]*$",
    re.I,
)
_STOCK_STATUS = re.compile(r"\b(low stock|out of stock|in stock)\b", re.I)


@dataclass(frozen=True)
class MaterialMention:
    """A material keyword found in a message."""

    surface: str
    canonical: str
    keyword: str
    turns_ago: int
    position: int


@dataclass
class SlotBag:
    """Everything the extractor found, best candidates first."""

    materials: list[MaterialMention] = field(default_factory=list)
    supplier_names: list[str] = field(default_factory=list)
    quantities: list[int] = field(default_factory=list)
    region: Optional[str] = None
    category: Optional[str] = None
    min_rating: Optional[float] = None
    limit: Optional[int] = None
    company_number: Optional[int] = None
    stock_status: Optional[str] = None
    confirmation: bool = False

    @property
    def material(self) -> Optional[str]:
        return self.materials[0].surface if self.materials else None

    @property
    def quantity(self) -> Optional[int]:
        return self.quantities[0] if self.quantities else None


def find_materials(text: str, turns_ago: int = 0) -> list[MaterialMention]:
    """
    Find material keywords in text, longest keyword first.

    Matched spans are masked so a generic keyword is never reported inside a
    more specific one ("beam" inside "steel beam").
    """
    lowered = text.lower()
    taken = [False] * len(lowered)
    mentions = []

    for keyword in SYNONYM_KEYWORDS:
        for match in _KEYWORD_PATTERNS[keyword].finditer(lowered):
            start, end = match.span()
            if any(taken[start:end]):
                continue
            for index in range(start, end):
                taken[index] = True
            mentions.append(
                MaterialMention(
                    surface=text[start:end],
                    canonical=MATERIAL_SYNONYMS[keyword],
                    keyword=keyword,
                    turns_ago=turns_ago,
                    position=start,
                )
            )
    return mentions


def find_quantities(text: str) -> list[int]:
    """Integer quantities in range, in order of first appearance."""
    lowered = text.lower()
    quantities = []

    for match in _NUMBER.finditer(lowered):
        token = match.group(0)
        start, end = match.span()
        if "." in token or "," in token:
            continue
        if start > 0 and (lowered[start - 1].isalpha() or lowered[start - 1] in "-_#$"):
            continue
        if _NOT_QUANTITY_BEFORE.search(lowered[:start]):
            continue
        if _NOT_QUANTITY_AFTER.match(lowered[end:]):
            continue

        value = int(token)
        if MIN_QUANTITY <= value <= MAX_QUANTITY and value not in quantities:
            quantities.append(value)
    return quantities


def find_supplier_names(history: Sequence[ConversationMessage]) -> list[str]:
    """Bracketed names from agent replies, most recent reply first."""
    names = []
    for message in reversed(history):
        if message.role != Role.AGENT:
            continue
        for match in _BRACKET_TOKEN.finditer(message.text):
            token = match.group(1).strip()
            if not token or token.upper().startswith("ACTION:"):
                continue
            if _NON_NAME_TOKEN.match(token):
                continue
            if token not in names:
                names.append(token)
    return names


def find_min_rating(text: str) -> Optional[float]:
    match = _MIN_RATING.search(text)
    if match:
        value = float(match.group(1) or match.group(2))
        return min(max(value, 1.0), 5.0)
    if _HIGH_RATING.search(text):
        return HIGH_RATING
    return None


def _first_group_int(pattern: re.Pattern, text: str) -> Optional[int]:
    match = pattern.search(text)
    if not match:
        return None
    value = next(group for group in match.groups() if group is not None)
    return int(value)


def _surface(pattern: re.Pattern, text: str) -> Optional[str]:
    match = pattern.search(text)
    return match.group(1) if match else None


def extract_slots(
    message: str, history: Sequence[ConversationMessage] = ()
) -> SlotBag:
    """
    Extract slots from a message and (optionally) the recent history.

    Args:
        message: Current user message
        history: Prior turns, oldest first. Only the last MAX_HISTORY are used.

    Returns:
        SlotBag with materials ranked by recency, then specificity, then
        position; supplier names most-recent-first; quantities in order of
        first appearance (current message before older turns).
    """
    window = list(history)[-MAX_HISTORY:]
    user_turns = [m for m in window if m.role == Role.USER]

    materials = find_materials(message, turns_ago=0)
    for offset, turn in enumerate(reversed(window), start=1):
        materials.extend(find_materials(turn.text, turns_ago=offset))
    materials.sort(key=lambda m: (m.turns_ago, -len(m.keyword), -m.position))

    quantities = find_quantities(message)
    for turn in reversed(user_turns):
        for value in find_quantities(turn.text):
            if value not in quantities:
                quantities.append(value)

    stock_status = _surface(_STOCK_STATUS, message)

    return SlotBag(
        materials=materials,
        supplier_names=find_supplier_names(window),
        quantities=quantities,
        region=_surface(_REGION, message),
        category=_surface(_CATEGORY, message),
        min_rating=find_min_rating(message),
        limit=_first_group_int(_LIMIT, message),
        company_number=_first_group_int(_COMPANY_NUMBER, message),
        stock_status=stock_status.title() if stock_status else None,
        confirmation=bool(_CONFIRMATION.match(message)),
    )
