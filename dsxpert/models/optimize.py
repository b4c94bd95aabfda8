"""Optimization and validation data models"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from .diff import DiffResult


class SyntaxIssue(BaseModel):
    """A single problem reported against a code blob"""

    line: int  # 1-indexed
    column: int  # 1-indexed
    message: str
    severity: Literal["error", "warning"] = "error"


class ValidationResult(BaseModel):
    """Outcome of a syntax check"""

    is_valid: bool
    issues: list[SyntaxIssue] = []
    raw_response: str | None = None


class OptimizationResult(BaseModel):
    """Proposed rewrite of a code blob"""

    language: str
    original: str
    optimized: str
    explanation: str


class CodeRequest(BaseModel):
    """Request carrying a code selection from the editor"""

    code: str
    language: str | None = None  # Skip detection when provided
    file_path: str = "selection"


class DiffRequest(BaseModel):
    """Request to diff two code blobs without opening a review"""

    original: str
    modified: str
    file_path: str = "selection"


class LanguageResponse(BaseModel):
    """Detected language for a code selection"""

    language: str


class FormatResponse(BaseModel):
    """Formatted code for a selection"""

    language: str
    code: str
    changed: bool


class OptimizeResponse(BaseModel):
    """Response for an optimization request, with an open review cycle"""

    review_id: str
    review_url: str
    language: str
    explanation: str
    optimized: str
    is_optimized: bool  # False when the model proposed no change
    diff: DiffResult
