"""
Localized field selection.

Open Food Facts stores translations as sibling keys
(``product_name_it``, ``product_name_en``, ``product_name``). This
module picks the best available text for a preferred locale.
"""

import re
from typing import Any, Iterable, Mapping, Optional, Union

DEFAULT_LOCALE = "default"
FALLBACK_LOCALE = "en"

_LOCALE_SUFFIX = re.compile(r"^[a-z]{2,3}$")

Candidates = Union[Mapping[str, Optional[str]], Iterable[tuple[str, Optional[str]]]]


def _present(value: Optional[str]) -> bool:
    return value is not None and value != ""


def select_localized(preferred: str, candidates: Candidates) -> Optional[str]:
    """Pick the best localized value.

    Fallback chain:
    1. preferred locale
    2. "en" (skipped when preferred is "en")
    3. "default" (the unsuffixed field)
    4. first non-empty value in candidate order

    Empty strings count as missing.

    Args:
        preferred: Preferred locale code (e.g. "it")
        candidates: Ordered (locale, value) pairs or a mapping

    Returns:
        Selected text, or None if every candidate is empty

    Example:
        >>> select_localized("pt", {"pt": "", "en": "Milk", "default": "Leite"})
        'Milk'
        >>> select_localized("fr", [("de", "Milch")])
        'Milch'
    """
    if isinstance(candidates, Mapping):
        pairs = list(candidates.items())
    else:
        pairs = list(candidates)

    by_locale: dict[str, Optional[str]] = {}
    for locale, value in pairs:
        # First occurrence wins, matching candidate order
        if locale not in by_locale or not _present(by_locale[locale]):
            by_locale[locale] = value

    chain = [preferred]
    if preferred != FALLBACK_LOCALE:
        chain.append(FALLBACK_LOCALE)
    chain.append(DEFAULT_LOCALE)

    for locale in chain:
        value = by_locale.get(locale)
        if _present(value):
            return value

    for _, value in pairs:
        if _present(value):
            return value

    return None


def candidates_from_fields(data: Mapping[str, Any], field: str) -> list[tuple[str, Optional[str]]]:
    """Collect localized candidates for field from a raw product object.

    Every ``<field>_<locale>`` key (2-3 lowercase letters) is taken in
    payload order, followed by the bare field as "default". Non-string
    values are ignored.

    Example:
        >>> data = {"product_name": "Nutella", "product_name_it": "Nutella IT"}
        >>> candidates_from_fields(data, "product_name")
        [('it', 'Nutella IT'), ('default', 'Nutella')]
    """
    prefix = f"{field}_"
    candidates: list[tuple[str, Optional[str]]] = []

    for key, value in data.items():
        if not key.startswith(prefix):
            continue
        suffix = key[len(prefix) :]
        if not _LOCALE_SUFFIX.match(suffix):
            continue
        if isinstance(value, str) or value is None:
            candidates.append((suffix, value))

    default = data.get(field)
    if isinstance(default, str) or default is None:
        candidates.append((DEFAULT_LOCALE, default))

    return candidates


def localized_field(data: Mapping[str, Any], field: str, preferred: str) -> Optional[str]:
    """Shortcut for select_localized over candidates_from_fields."""
    return select_localized(preferred, candidates_from_fields(data, field))
