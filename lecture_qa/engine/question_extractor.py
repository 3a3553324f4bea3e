"""
Question Extractor.

Heuristic segmentation of OCR'd exam paper text into question strings.
Pure functions, no I/O.

A line opens a new question when it starts with a numbering marker
(``1.``, ``Q3:``, ``Question 2``, ``[4]``, ``2b)``) or with an
interrogative / imperative word (What, Explain, Calculate...). Following
lines are appended until an end marker (``?`` or a marks annotation) closes
the question.
"""

import re
from typing import List

MIN_QUESTION_LENGTH = 20
MAX_QUESTION_LENGTH = 1000
# Accumulation stops growing once a question reaches this many chars
MAX_ACCUMULATED_LENGTH = 500

NUMBERING_PATTERNS = [
    re.compile(r"^(\d+[.)]\s+)", re.IGNORECASE),
    re.compile(r"^(Q\s*\d+[.:\s]+)", re.IGNORECASE),
    re.compile(r"^(Question\s*\d+[.:\s]*)", re.IGNORECASE),
    re.compile(r"^(\[\d+\])", re.IGNORECASE),
    re.compile(r"^(\d+\s*[a-z][.)]\s*)", re.IGNORECASE),
]

QUESTION_WORDS = re.compile(
    r"^(what|how|why|when|where|who|which|explain|describe|define|list|write|"
    r"discuss|state|give|find|calculate|solve|prove|draw|compare|differentiate|"
    r"evaluate|analyze)",
    re.IGNORECASE,
)

END_MARKERS = ("?", "marks)", "Marks)", "marks]", "Marks]")

_WHITESPACE = re.compile(r"\s+")
_ANNOTATIONS = [
    re.compile(r"\(\d+\s*marks?\)", re.IGNORECASE),
    re.compile(r"\[\d+\s*marks?\]", re.IGNORECASE),
    re.compile(r"\(?\s*CO\s*\d+\s*\)?", re.IGNORECASE),  # course outcome
    re.compile(r"\(?\s*BL\s*\d+\s*\)?", re.IGNORECASE),  # Bloom level
]


def starts_question(line: str) -> bool:
    """True if the line opens a new question."""
    return any(p.search(line) for p in NUMBERING_PATTERNS) or bool(QUESTION_WORDS.search(line))


def strip_numbering(line: str) -> str:
    """Remove leading numbering markers until none is left."""
    while True:
        stripped = line
        for pattern in NUMBERING_PATTERNS:
            stripped = pattern.sub("", stripped, count=1)
        stripped = stripped.strip()
        if stripped == line:
            return stripped
        line = stripped


def clean_question(question: str) -> str:
    """
    Collapse whitespace and drop mark, CO and BL annotations.

    Repeated until the text stops changing, so the result is a fixed point.
    """
    current = question
    while True:
        cleaned = _WHITESPACE.sub(" ", current)
        for pattern in _ANNOTATIONS:
            cleaned = pattern.sub("", cleaned)
        cleaned = _WHITESPACE.sub(" ", cleaned).strip()
        if cleaned == current:
            return cleaned
        current = cleaned


def _has_end_marker(line: str) -> bool:
    return any(marker in line for marker in END_MARKERS)


def segment_questions(text: str) -> List[str]:
    """Split text into raw (uncleaned) question candidates."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [line.strip() for line in text.split("\n")]
    lines = [line for line in lines if line]

    raw: List[str] = []
    current = ""

    for line in lines:
        if starts_question(line):
            if len(current) > MIN_QUESTION_LENGTH:
                raw.append(current.strip())
            current = strip_numbering(line)
        elif current and len(current) < MAX_ACCUMULATED_LENGTH:
            current += " " + line

        if _has_end_marker(line) and len(current) > MIN_QUESTION_LENGTH:
            raw.append(current.strip())
            current = ""

    if len(current) > MIN_QUESTION_LENGTH:
        raw.append(current.strip())

    return raw


def normalize_question(question: str) -> str:
    """Clean and strip numbering until neither changes the text."""
    while True:
        normalized = clean_question(strip_numbering(clean_question(question)))
        if normalized == question:
            return normalized
        question = normalized


def extract_questions(text: str) -> List[str]:
    """
    Extract cleaned, deduplicated questions from OCR text.

    Returns:
        Questions with 20 <= len < 1000, in first-seen order
    """
    questions: dict[str, None] = {}
    for candidate in segment_questions(text):
        cleaned = normalize_question(candidate)
        if MIN_QUESTION_LENGTH <= len(cleaned) < MAX_QUESTION_LENGTH:
            questions.setdefault(cleaned, None)
    return list(questions)
