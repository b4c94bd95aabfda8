"""Diff-related data models"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class DiffKind(str, Enum):
    """Classification of a run of lines relative to the original text"""

    UNCHANGED = "unchanged"
    ADDED = "added"
    REMOVED = "removed"


class DiffSegment(BaseModel):
    """A contiguous run of whole lines sharing one kind"""

    model_config = ConfigDict(frozen=True)

    text: str
    kind: DiffKind


class DiffHunk(BaseModel):
    """A single change hunk in a diff"""

    start_line: int  # 1-indexed, original side
    end_line: int
    original_content: str
    new_content: str
    change_type: str  # "add", "modify", "delete"


class DiffResult(BaseModel):
    """Complete diff result for a code blob"""

    file_path: str
    segments: list[DiffSegment]
    hunks: list[DiffHunk]
    unified_diff: str  # Standard unified diff format
    preview_content: str  # Modified text, exactly as proposed
    html: str  # Highlighted segments
