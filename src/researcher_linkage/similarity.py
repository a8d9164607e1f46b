"""Bigram (Dice coefficient) string similarity."""

from __future__ import annotations

import re
from collections import Counter

_WHITESPACE = re.compile(r"\s+")


def dice_similarity(first: str | None, second: str | None) -> float:
    """Return the Dice coefficient of the character bigrams of two strings.

    Whitespace is ignored. Identical strings score 1.0; anything shorter than
    two characters cannot form a bigram and scores 0.0 against a different string.
    """
    a = _WHITESPACE.sub("", first or "")
    b = _WHITESPACE.sub("", second or "")

    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0

    bigrams = Counter(a[i:i + 2] for i in range(len(a) - 1))
    intersection = 0
    for i in range(len(b) - 1):
        bigram = b[i:i + 2]
        if bigrams[bigram] > 0:
            bigrams[bigram] -= 1
            intersection += 1

    return (2.0 * intersection) / (len(a) + len(b) - 2)
