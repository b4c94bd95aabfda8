"""Models module - Pydantic data models"""

from .diff import DiffHunk, DiffKind, DiffResult, DiffSegment
from .optimize import (
    CodeRequest,
    DiffRequest,
    FormatResponse,
    LanguageResponse,
    OptimizationResult,
    OptimizeResponse,
    SyntaxIssue,
    ValidationResult,
)
from .review import (
    AcceptMessage,
    RejectMessage,
    ReviewDecision,
    ReviewMessage,
    ReviewOutcome,
    ReviewState,
    ReviewSummary,
)

__all__ = [
    # Diff models
    "DiffHunk",
    "DiffKind",
    "DiffResult",
    "DiffSegment",
    # Optimization models
    "CodeRequest",
    "DiffRequest",
    "FormatResponse",
    "LanguageResponse",
    "OptimizationResult",
    "OptimizeResponse",
    "SyntaxIssue",
    "ValidationResult",
    # Review models
    "AcceptMessage",
    "RejectMessage",
    "ReviewDecision",
    "ReviewMessage",
    "ReviewOutcome",
    "ReviewState",
    "ReviewSummary",
]
