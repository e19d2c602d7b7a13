"""
Document data normalization.

Runs before any template sees the data: null dates become empty strings,
achievement bullets get a glyph, the summary is cut to a fixed length and
URLs are split into a canonical value and a display form.
"""

import copy
import re
from datetime import datetime
from typing import Any

from resumeforge.platform.settings import settings

DATE_KEYS = ("startDate", "endDate", "date", "publicationDate")
BULLET = "• "
BULLET_PREFIXES = ("•", "-", "*")
ELLIPSIS = "..."
PRESENT = "Present"

ENTRY_SECTIONS = ("workExperience", "education", "projects", "certifications", "publications")
URL_FIELDS = ("linkedinUrl", "portfolioUrl", "websiteUrl", "githubUrl")
DEFAULT_SECTION_ORDER = [
    "summary",
    "workExperience",
    "education",
    "skills",
    "projects",
    "certifications",
    "publications",
]

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")
_DATE_FORMATS = ("%Y-%m-%d", "%Y-%m", "%Y/%m", "%m/%Y", "%b %Y", "%B %Y")


def blank_null_dates(entry: dict[str, Any]) -> dict[str, Any]:
    """Replace ``None`` date fields with empty strings, in place."""
    for key in DATE_KEYS:
        if key in entry and entry[key] is None:
            entry[key] = ""
    return entry


def add_bullet(text: str) -> str:
    """Prefix an achievement with a bullet glyph unless it already has a marker."""
    stripped = text.strip()
    if not stripped or stripped.startswith(BULLET_PREFIXES):
        return text
    return f"{BULLET}{stripped}"


def truncate_summary(text: str | None, max_chars: int | None = None) -> str:
    """Hard-cut ``text`` to ``max_chars`` including the ellipsis, ignoring word boundaries."""
    if not text:
        return ""
    limit = max_chars if max_chars is not None else settings.documents.summary_max_chars
    if len(text) <= limit:
        return text
    return text[: max(limit - len(ELLIPSIS), 0)] + ELLIPSIS


def canonical_url(url: str | None) -> str:
    """Stored form of a URL; always carries a scheme."""
    if not url or not url.strip():
        return ""
    url = url.strip()
    if _SCHEME_RE.match(url):
        return url
    return f"https://{url}"


def display_url(url: str | None) -> str:
    """URL as shown on the page: no scheme, no leading ``www.``, no trailing slash."""
    if not url or not url.strip():
        return ""
    value = _SCHEME_RE.sub("", url.strip())
    if value.lower().startswith("www."):
        value = value[4:]
    return value.rstrip("/")


def format_display_date(value: str | None) -> str:
    """
    Render a stored date as ``Jan 2024``.

    Bare years are kept as they are and unparseable strings pass through
    unchanged.
    """
    if not value:
        return ""
    text = value.strip()
    if re.fullmatch(r"\d{4}", text):
        return text
    candidate = text[:10] if re.match(r"\d{4}-\d{2}-\d{2}T", text) else text
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).strftime("%b %Y")
        except ValueError:
            continue
    return text


def date_range(start: str | None, end: str | None, current: bool = False) -> str:
    """``Jan 2020 - Present`` style range; either side may be missing."""
    start_text = format_display_date(start)
    end_text = PRESENT if current else format_display_date(end)
    if start_text and end_text:
        return f"{start_text} - {end_text}"
    return start_text or end_text


def contact_line(data: dict[str, Any], separator: str | None = None) -> str:
    """Join the non-empty contact details with the configured separator."""
    sep = separator if separator is not None else settings.documents.contact_separator
    location = data.get("location") or ", ".join(
        part for part in (data.get("city"), data.get("state"), data.get("country")) if part
    )
    parts = [
        data.get("email"),
        data.get("phone"),
        location,
        display_url(data.get("linkedinUrl")),
        display_url(data.get("portfolioUrl")),
    ]
    return f" {sep} ".join(part for part in parts if part)


def _normalize_entry(entry: dict[str, Any]) -> dict[str, Any]:
    blank_null_dates(entry)
    if entry.get("achievements"):
        entry["achievements"] = [add_bullet(a) for a in entry["achievements"] if a]
    if "url" in entry:
        entry["url"] = canonical_url(entry["url"])
        entry["displayUrl"] = display_url(entry["url"])
    if "date" in entry:
        entry["displayDate"] = format_display_date(entry["date"])
    if "publicationDate" in entry:
        entry["displayDate"] = format_display_date(entry["publicationDate"])
    if "startDate" in entry or "endDate" in entry:
        entry["dateRange"] = date_range(
            entry.get("startDate"), entry.get("endDate"), bool(entry.get("current"))
        )
    return entry


def normalize_resume(data: dict[str, Any]) -> dict[str, Any]:
    """
    Normalize resume data for rendering.

    The input is not modified.

    Args:
        data: Resume document as stored (camelCase keys)

    Returns:
        A normalized copy with display helpers added
    """
    normalized = copy.deepcopy(data)
    blank_null_dates(normalized)

    normalized["summary"] = truncate_summary(normalized.get("summary"))

    for field in URL_FIELDS:
        if field in normalized:
            normalized[field] = canonical_url(normalized[field])
            normalized[f"{field}Display"] = display_url(normalized[field])

    for section in ENTRY_SECTIONS:
        entries = normalized.get(section) or []
        normalized[section] = [_normalize_entry(dict(entry)) for entry in entries if entry]

    normalized["skills"] = [s for s in normalized.get("skills") or [] if s]
    normalized["contactLine"] = contact_line(normalized)
    normalized.setdefault("sectionOrder", list(DEFAULT_SECTION_ORDER))
    if not normalized["sectionOrder"]:
        normalized["sectionOrder"] = list(DEFAULT_SECTION_ORDER)
    return normalized


def normalize_cover_letter(data: dict[str, Any]) -> dict[str, Any]:
    """Normalize cover letter data for rendering; the input is not modified."""
    normalized = copy.deepcopy(data)
    blank_null_dates(normalized)
    normalized["displayDate"] = format_display_date(normalized.get("date"))

    body = normalized.get("body") or ""
    paragraphs = normalized.get("paragraphs") or [
        p.strip() for p in re.split(r"\n\s*\n", body) if p.strip()
    ]
    normalized["paragraphs"] = paragraphs
    normalized["contactLine"] = contact_line(normalized)
    return normalized
