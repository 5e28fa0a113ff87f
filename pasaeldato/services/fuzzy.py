"""
Typo-tolerant term matching used by tip search.

Text is folded to lowercase ASCII-ish tokens (accents stripped, so "Farmacia"
and "farmácia" agree) and every query term is compared against every token of
a field by bounded Levenshtein distance. A document matches when any term
matches any field; the score only orders matches, it is not a probability.
"""
import re
import unicodedata
from typing import Dict, Iterable, List, Mapping, Optional, Union

_WORD = re.compile(r"\w+", re.UNICODE)

# Max edits per searchable field. Tags are short canonical tokens, so they get
# less slack than free text.
FIELD_MAX_EDITS: Dict[str, int] = {
    "title": 2,
    "description": 2,
    "address": 2,
    "tags": 1,
}

# Matches in the title weigh more than matches buried in a description.
FIELD_WEIGHTS: Dict[str, float] = {
    "title": 3.0,
    "tags": 2.0,
    "address": 1.5,
    "description": 1.0,
}


def fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).lower()


def tokenize(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return _WORD.findall(fold(text))


def allowed_edits(term: str, max_edits: int) -> int:
    """Shrink the edit budget for short terms: 1-2 chars exact, 3-5 chars one edit."""
    if len(term) <= 2:
        return 0
    if len(term) <= 5:
        return min(1, max_edits)
    return max_edits


def edit_distance(a: str, b: str, max_distance: int) -> int:
    """
    Levenshtein distance between ``a`` and ``b``, capped: any distance above
    ``max_distance`` is reported as ``max_distance + 1``.
    """
    if a == b:
        return 0
    cap = max_distance + 1
    if abs(len(a) - len(b)) > max_distance:
        return cap

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        row_min = i
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current[j] = min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost)
            if current[j] < row_min:
                row_min = current[j]
        if row_min > max_distance:
            return cap
        previous = current
    return min(previous[-1], cap)


def best_edits(term: str, tokens: Iterable[str], max_edits: int) -> Optional[int]:
    """Fewest edits from ``term`` to any token, or None when nothing is close enough."""
    budget = allowed_edits(term, max_edits)
    best = None
    for token in tokens:
        d = edit_distance(term, token, budget)
        if d <= budget and (best is None or d < best):
            best = d
            if d == 0:
                break
    return best


FieldValue = Union[str, Iterable[str], None]


def field_tokens(value: FieldValue) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return tokenize(value)
    tokens: List[str] = []
    for item in value:
        tokens.extend(tokenize(item))
    return tokens


def score(terms: List[str], fields: Mapping[str, FieldValue]) -> float:
    """Relevance of a document's ``fields`` for the query ``terms``; 0.0 means no match."""
    total = 0.0
    for name, value in fields.items():
        max_edits = FIELD_MAX_EDITS.get(name, 0)
        weight = FIELD_WEIGHTS.get(name, 1.0)
        tokens = field_tokens(value)
        if not tokens:
            continue
        for term in terms:
            edits = best_edits(term, tokens, max_edits)
            if edits is not None:
                total += weight / (1 + edits)
    return total
