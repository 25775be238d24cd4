from __future__ import annotations

import re
import unicodedata

MAX_SLUG_LENGTH = 100

_GERMAN_FOLDS: tuple[tuple[str, str], ...] = (("ä", "ae"), ("ö", "oe"), ("ü", "ue"), ("ß", "ss"))

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_MULTI_HYPHEN_RE = re.compile(r"-+")
_QUOTES_RE = re.compile(r"['\"‘’“”`]")
_PARENTHESES_RE = re.compile(r"\([^)]*\)")
_BUSINESS_SUFFIX_RE = re.compile(r"\b(inc|llc|ltd|corp|corporation)\b\.?", re.IGNORECASE)
_TITLE_PUNCTUATION_RE = re.compile(r"['\"‘’“”.,!?]")

_STREET_NUMBER_RE = re.compile(r"^[0-9-]+\s*")
_STREET_HASH_UNIT_RE = re.compile(r"\s+#\s*[0-9a-z-]+$", re.IGNORECASE)
_STREET_UNIT_RE = re.compile(r"\s+(?:suite|ste|unit|apt|apartment|room|rm|#)\s*[0-9a-z-]+$", re.IGNORECASE)
_STREET_FLOOR_RE = re.compile(r"\s+(?:floor|fl)\s*[0-9a-z-]+$", re.IGNORECASE)
_STREET_TRAILER_RE = re.compile(r"\s*,.*$")

STREET_ABBREVIATIONS: dict[str, str] = {
    "street": "st",
    "road": "rd",
    "avenue": "ave",
    "boulevard": "blvd",
    "drive": "dr",
    "lane": "ln",
    "circle": "cir",
    "court": "ct",
    "parkway": "pkwy",
    "highway": "hwy",
    "place": "pl",
    "terrace": "ter",
    "square": "sq",
}
_STREET_WORD_RE = re.compile(rf"\b({'|'.join(STREET_ABBREVIATIONS)})\b", re.IGNORECASE)


def _fold_ascii(value: str) -> str:
    for source, target in _GERMAN_FOLDS:
        value = value.replace(source, target)
    return unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")


def _hyphenate(value: str) -> str:
    hyphenated = _NON_ALNUM_RE.sub("-", value)
    return _MULTI_HYPHEN_RE.sub("-", hyphenated).strip("-")


def normalize_city(city: str | None) -> str:
    if not city:
        return ""
    folded = _fold_ascii(city.lower())
    folded = folded.replace(".", "")
    folded = _QUOTES_RE.sub("", folded)
    folded = _PARENTHESES_RE.sub("", folded)
    folded = _STREET_TRAILER_RE.sub("", folded)
    folded = folded.replace("/", "-")
    return _hyphenate(folded)[:MAX_SLUG_LENGTH]


def normalize_business_name(name: str) -> str:
    cleaned = _BUSINESS_SUFFIX_RE.sub("", name.lower())
    cleaned = _fold_ascii(cleaned)
    cleaned = _TITLE_PUNCTUATION_RE.sub("", cleaned)
    return _hyphenate(cleaned)


def normalize_street(street: str) -> str:
    cleaned = street.lower().strip()
    cleaned = _STREET_NUMBER_RE.sub("", cleaned)
    cleaned = _STREET_HASH_UNIT_RE.sub("", cleaned)
    cleaned = _STREET_UNIT_RE.sub("", cleaned)
    cleaned = _STREET_FLOOR_RE.sub("", cleaned)
    cleaned = _STREET_TRAILER_RE.sub("", cleaned)
    cleaned = _STREET_WORD_RE.sub(lambda match: STREET_ABBREVIATIONS[match.group(0).lower()], cleaned)
    return _hyphenate(_fold_ascii(cleaned))


def build_business_slug(name: str | None, city: str | None, street: str | None = None) -> str:
    if not name or not city:
        raise ValueError(f"Cannot build slug without name and city (name={name!r}, city={city!r})")

    parts = [normalize_business_name(name), normalize_street(street) if street else "", normalize_city(city)]
    slug = "-".join(part for part in parts if part)
    slug = _MULTI_HYPHEN_RE.sub("-", slug).strip("-")[:MAX_SLUG_LENGTH].rstrip("-")
    if not slug:
        raise ValueError(f"Name and city produce an empty slug (name={name!r}, city={city!r})")
    return slug


def with_slug_suffix(slug: str, attempt: int) -> str:
    suffix = f"-{attempt}"
    return slug[: MAX_SLUG_LENGTH - len(suffix)].rstrip("-") + suffix


def category_display_form(category: str) -> str:
    """Lowercase everything, then capitalize the first letter only.

    Secondary categories are stored in this form by the provider
    ("Pizza restaurant"), and they are matched against it exactly.
    """
    lowered = category.strip().lower()
    return lowered[:1].upper() + lowered[1:]
