"""
Diff Renderer Service - Line-level diff and highlight rendering for review
"""

from __future__ import annotations

from difflib import SequenceMatcher, unified_diff
from html import escape

from dsxpert.models.diff import DiffHunk, DiffKind, DiffResult, DiffSegment

# One CSS class per segment kind; the review page styles these
SEGMENT_CLASSES = {
    DiffKind.UNCHANGED: "hl-unchanged",
    DiffKind.ADDED: "hl-added",
    DiffKind.REMOVED: "hl-removed",
}

NO_NEWLINE_MARKER = "\\ No newline at end of file"


class InputError(ValueError):
    """Raised when diff input is not text"""


def _require_text(name: str, value: object) -> str:
    if not isinstance(value, str):
        raise InputError(f"{name} must be text, got {type(value).__name__}")
    return value


def compute_diff(original: str, modified: str) -> list[DiffSegment]:
    """Split two blobs into ordered unchanged/added/removed line runs.

    Joining the unchanged and added segments in order gives back `modified`;
    joining the unchanged and removed segments gives back `original`.
    """
    _require_text("original", original)
    _require_text("modified", modified)

    if original == modified:
        return [DiffSegment(text=original, kind=DiffKind.UNCHANGED)]

    original_lines = original.splitlines(keepends=True)
    modified_lines = modified.splitlines(keepends=True)

    matcher = SequenceMatcher(None, original_lines, modified_lines, autojunk=False)
    segments: list[DiffSegment] = []

    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            segments.append(DiffSegment(text="".join(original_lines[i1:i2]), kind=DiffKind.UNCHANGED))
            continue
        # A replaced run is shown as its removed lines followed by its added lines
        if i2 > i1:
            segments.append(DiffSegment(text="".join(original_lines[i1:i2]), kind=DiffKind.REMOVED))
        if j2 > j1:
            segments.append(DiffSegment(text="".join(modified_lines[j1:j2]), kind=DiffKind.ADDED))

    return segments


def render(segments: list[DiffSegment]) -> str:
    """Render segments as escaped, class-tagged HTML spans"""
    return "".join(
        f'<span class="{SEGMENT_CLASSES[segment.kind]}">{escape(segment.text)}</span>'
        for segment in segments
    )


def reconstruct(segments: list[DiffSegment], side: DiffKind = DiffKind.ADDED) -> str:
    """Rebuild one side of the diff: ADDED gives the modified text, REMOVED the original"""
    return "".join(s.text for s in segments if s.kind in (DiffKind.UNCHANGED, side))


class DiffRenderer:
    """Bundle segments, hunks and a unified diff for a pair of code blobs"""

    def generate_diff(
        self,
        original_content: str,
        new_content: str,
        file_path: str = "selection",
    ) -> DiffResult:
        """Generate structured diff from original and new content"""
        segments = compute_diff(original_content, new_content)

        original_lines = original_content.splitlines(keepends=True)
        new_lines = new_content.splitlines(keepends=True)

        unified = []
        for line in unified_diff(
            original_lines,
            new_lines,
            fromfile=f"a/{file_path}",
            tofile=f"b/{file_path}",
        ):
            # Only a file's last line can lack a terminator; mark it the way git does
            if line.splitlines() == [line]:
                line += "\n" + NO_NEWLINE_MARKER + "\n"
            unified.append(line)

        return DiffResult(
            file_path=file_path,
            segments=segments,
            hunks=self._extract_hunks(original_lines, new_lines),
            unified_diff="".join(unified),
            preview_content=new_content,
            html=render(segments),
        )

    def _extract_hunks(
        self,
        original: list[str],
        modified: list[str],
    ) -> list[DiffHunk]:
        """Extract individual change hunks from diff"""
        matcher = SequenceMatcher(None, original, modified, autojunk=False)
        hunks = []

        for tag, i1, i2, j1, j2 in matcher.get_opcodes():
            if tag == "equal":
                continue

            change_type = "add" if tag == "insert" else "delete" if tag == "delete" else "modify"

            hunks.append(
                DiffHunk(
                    start_line=i1 + 1,  # 1-indexed for the editor
                    end_line=i2,
                    original_content="".join(original[i1:i2]),
                    new_content="".join(modified[j1:j2]),
                    change_type=change_type,
                )
            )

        return hunks
