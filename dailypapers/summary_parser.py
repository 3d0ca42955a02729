"""Tolerant parser for the structured summaries the model is asked to write.

Expected shape (the model does not always comply)::

    1. TL;DR (exactly 3 points):
    - point
    - point
    - point
    2. Key Innovation ...
    3. Practical Applications ...
    4. Limitations & Future Work ...
    5. Key Terms (exactly 3 terms):
    Term - definition

Each bullet section always comes back with exactly ``BULLETS_PER_SECTION``
entries and the key terms with exactly ``KEY_TERM_COUNT`` pairs: short
sections are padded with placeholders, long ones truncated, missing terms
filled from ``DEFAULT_KEY_TERMS``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

BULLETS_PER_SECTION = 3
KEY_TERM_COUNT = 3


@dataclass(frozen=True)
class SectionSpec:
    key: str
    header: str
    aliases: Tuple[str, ...]


SECTIONS: Tuple[SectionSpec, ...] = (
    SectionSpec("tldr", "TL;DR", ("TL;DR", "TLDR", "TL DR")),
    SectionSpec("key_innovation", "Key Innovation", ("Key Innovations", "Key Innovation")),
    SectionSpec(
        "practical_applications", "Practical Applications", ("Practical Applications",)
    ),
    SectionSpec(
        "limitations_future_work",
        "Limitations & Future Work",
        (
            "Limitations & Future Work",
            "Limitations and Future Work",
            "Limitations & Future Directions",
            "Limitations",
        ),
    ),
)
KEY_TERMS = SectionSpec("key_terms", "Key Terms", ("Key Terms", "Key Terminology"))

PLACEHOLDER_TEMPLATE = "Additional {header} point - needs review."

DEFAULT_KEY_TERMS: Tuple[Tuple[str, str], ...] = (
    (
        "Multimodal Learning",
        "AI system that can process multiple types of input like text and images.",
    ),
    (
        "Neural Networks",
        "Computer systems inspired by human brain connections to process information.",
    ),
    ("Deep Learning", "Advanced AI that learns patterns from large amounts of data."),
)

_DECORATION = r"[ \t]*(?:#{1,6}[ \t]*)?(?:\*\*|__)?[ \t]*"
_NUMBERED_HEADING = _DECORATION + r"\d+[.)][ \t]+\S"
_KNOWN_HEADING = (
    _DECORATION
    + r"(?:\d+[.)][ \t]*)?(?:\*\*|__)?[ \t]*(?:"
    + "|".join(
        re.escape(alias)
        for spec in (*SECTIONS, KEY_TERMS)
        for alias in sorted(spec.aliases, key=len, reverse=True)
    )
    + r")\b"
)
_NEXT_HEADING_RE = re.compile(
    rf"^(?:{_NUMBERED_HEADING}|{_KNOWN_HEADING})", re.MULTILINE | re.IGNORECASE
)
_NEXT_KNOWN_HEADING_RE = re.compile(rf"^{_KNOWN_HEADING}", re.MULTILINE | re.IGNORECASE)
_BULLET_RE = re.compile(r"^\s*(?:[-•–]|\*(?!\*))\s*(?P<text>.*?)\s*$")
_TERM_RE = re.compile(
    r"^(?P<term>[^:]+?)\s*(?::|\s[-–—]\s)\s*(?P<definition>\S.*)$"
)
_WORD_RE = re.compile(r"\w")
# Trailing remarks the model sometimes appends after the term list
_REMARK_RE = re.compile(
    r"^(?:notes?|nb|disclaimer|caveats?|remember|overall|in summary)\b",
    re.IGNORECASE,
)


@dataclass
class ParsedSummary:
    tldr: List[str] = field(default_factory=list)
    key_innovation: List[str] = field(default_factory=list)
    practical_applications: List[str] = field(default_factory=list)
    limitations_future_work: List[str] = field(default_factory=list)
    key_terms: Dict[str, str] = field(default_factory=dict)


def placeholder(header: str) -> str:
    return PLACEHOLDER_TEMPLATE.format(header=header)


def is_placeholder(text: str) -> bool:
    return any(text == placeholder(spec.header) for spec in SECTIONS)


def _heading_re(spec: SectionSpec) -> re.Pattern:
    aliases = "|".join(
        re.escape(alias) for alias in sorted(spec.aliases, key=len, reverse=True)
    )
    return re.compile(
        rf"^{_DECORATION}(?:\d+[.)][ \t]*)?(?:\*\*|__)?[ \t]*(?:{aliases})\b.*$",
        re.MULTILINE | re.IGNORECASE,
    )


def find_section(
    content: str, spec: SectionSpec, *, stop_at_numbered: bool = True
) -> Optional[str]:
    """Text between the section's heading line and the next heading, or None.

    With ``stop_at_numbered=False`` only a known section heading ends the
    body, so numbered lines inside it are kept.
    """
    heading = _heading_re(spec).search(content or "")
    if heading is None:
        return None
    start = heading.end()
    boundary = _NEXT_HEADING_RE if stop_at_numbered else _NEXT_KNOWN_HEADING_RE
    following = boundary.search(content, start + 1)
    end = following.start() if following else len(content)
    return content[start:end]


def _bullets(body: str) -> List[str]:
    points: List[str] = []
    for line in body.splitlines():
        match = _BULLET_RE.match(line)
        if not match:
            continue
        text = match.group("text")
        if _WORD_RE.search(text):
            points.append(text)
    return points


def parse_bullets(
    content: str, spec: SectionSpec, expected: int = BULLETS_PER_SECTION
) -> List[str]:
    body = find_section(content, spec)
    points = _bullets(body) if body else []
    points = points[:expected]
    while len(points) < expected:
        points.append(placeholder(spec.header))
    return points


def _clean_term_line(line: str) -> str:
    match = _BULLET_RE.match(line)
    if match:
        line = match.group("text")
    line = re.sub(r"^\d+[.)]\s*", "", line.strip())
    return line.replace("**", "").replace("__", "").strip()


def parse_key_terms(content: str, expected: int = KEY_TERM_COUNT) -> Dict[str, str]:
    terms: Dict[str, str] = {}
    body = find_section(content, KEY_TERMS, stop_at_numbered=False) or ""
    for raw in body.splitlines():
        line = _clean_term_line(raw)
        if not line:
            continue
        match = _TERM_RE.match(line)
        if not match:
            continue
        term = match.group("term").strip().strip("[]").strip()
        definition = match.group("definition").strip()
        if not term or not definition or len(term) > 80 or _REMARK_RE.match(term):
            continue
        terms.setdefault(term, definition)

    for term, definition in DEFAULT_KEY_TERMS:
        if len(terms) >= expected:
            break
        terms.setdefault(term, definition)

    return dict(list(terms.items())[:expected])


def parse_summary_text(content: str) -> ParsedSummary:
    parsed = ParsedSummary(key_terms=parse_key_terms(content))
    for spec in SECTIONS:
        setattr(parsed, spec.key, parse_bullets(content, spec))
    return parsed
