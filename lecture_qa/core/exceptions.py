"""
Exception hierarchy for the Lecture QA service.

Only conditions that must stop a request are raised. Upstream degradation
(a failed OCR page, a failed retrieval) is carried as typed result values
by the engine and service layers instead.
"""
from typing import Optional


class LectureQAError(Exception):
    """Base class for all service errors."""


class UserInputError(LectureQAError):
    """
    The caller sent something the pipeline cannot work with.

    Mapped to HTTP 400. ``extracted_text`` carries partial OCR output
    for diagnostics when it is available.
    """

    def __init__(self, message: str, extracted_text: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.extracted_text = extracted_text


class DocumentError(UserInputError):
    """The uploaded bytes could not be parsed as a PDF."""


class AuthenticationError(LectureQAError):
    """Missing or invalid session token. Mapped to HTTP 401."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
