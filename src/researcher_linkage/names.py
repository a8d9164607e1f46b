"""Person-name canonicalization.

``extract_name_parts`` is total and idempotent: any input, including ``None``,
yields a ``NameParts`` and feeding ``parts.full`` back in gives the same parts.
"""

from __future__ import annotations

import re
import unicodedata

from .models import NameParts

HONORIFICS = frozenset({"dr", "prof", "professor", "mr", "mrs", "ms", "sir", "phd", "md"})

_LAST_FIRST = re.compile(r"^([^,]+),\s*(.+)$", re.DOTALL)
_HONORIFIC_RE = re.compile(r"\b(dr|prof|professor|mr|mrs|ms|sir|phd|md)\b\.?", re.IGNORECASE)
_NON_LETTER = re.compile(r"[^a-z\s]")
_WHITESPACE = re.compile(r"\s+")

# Common names carry a high false-positive risk when screening by name alone.
COMMON_NAMES = frozenset({
    # Western
    "john smith", "james johnson", "robert williams", "michael brown", "david jones",
    "william davis", "richard miller", "joseph wilson", "thomas moore", "charles taylor",
    "mary johnson", "patricia williams", "jennifer brown", "elizabeth jones", "linda davis",
    # Chinese (romanized)
    "wei wang", "jing zhang", "li wang", "wei zhang", "lei wang", "jian liu",
    "wei liu", "yang li", "fang chen", "min li", "xin wang", "yu wang",
    "bin wang", "hai zhang", "lei zhang", "yong wang", "lin chen", "jun liu",
    # Korean
    "kim lee", "lee kim", "park kim", "jin park",
    # Indian
    "amit kumar", "raj kumar", "sanjay sharma", "priya sharma",
    # Japanese
    "takashi yamamoto", "yuki tanaka", "hiroshi suzuki",
})


def strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def to_first_last(name: str | None) -> str:
    """``Harcombe, Will`` -> ``Will Harcombe``, keeping case and punctuation.

    A trailing credential after the comma (``Will Harcombe, PhD``) is dropped
    rather than moved to the front.
    """
    if not name:
        return ""
    text = str(name).strip()
    match = _LAST_FIRST.match(text)
    if not match:
        return text

    last, rest = match.group(1).strip(), match.group(2).strip()
    rest_tokens = _NON_LETTER.sub("", rest.lower()).split()
    if all(t in HONORIFICS for t in rest_tokens):
        return last
    return f"{rest} {last}"


def normalize_name(name: str | None) -> str:
    """Lowercase, ASCII-fold and de-noise a raw name into ``first ... last`` order."""
    if not name:
        return ""

    text = strip_diacritics(str(name).lower())
    text = _LAST_FIRST.sub(r"\2 \1", text.strip())
    text = _HONORIFIC_RE.sub("", text)
    text = _NON_LETTER.sub("", text)
    # "M.D." only collapses to "md" once the dots are gone
    tokens = [t for t in _WHITESPACE.split(text) if t and t not in HONORIFICS]
    return " ".join(tokens)


def extract_name_parts(name: str | None) -> NameParts:
    normalized = normalize_name(name)
    parts = normalized.split()

    if not parts:
        return NameParts()
    if len(parts) == 1:
        # A bare surname never satisfies first-name based tiers
        return NameParts(last=parts[0], full=normalized)
    if len(parts) == 2:
        return NameParts(first=parts[0], last=parts[1], full=normalized)
    return NameParts(
        first=parts[0],
        middle=" ".join(parts[1:-1]),
        last=parts[-1],
        full=normalized,
    )


def is_common_name(name: str | None) -> bool:
    """True for names that collide often enough to need extra scrutiny."""
    parts = extract_name_parts(name)
    if parts.full in COMMON_NAMES:
        return True
    if parts.first and parts.last:
        return f"{parts.first} {parts.last}" in COMMON_NAMES
    return False
