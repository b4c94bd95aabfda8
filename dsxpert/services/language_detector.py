"""
Language Detector - Identify the language of a code selection
"""

from __future__ import annotations

import re

from dsxpert.log import get_logger
from dsxpert.services.languages import SUPPORTED_LANGUAGES, UNKNOWN_LANGUAGE
from dsxpert.services.llm_service import LLMService, LLMServiceError

logger = get_logger("dsxpert.detector")

# Checked in order; the first match wins
LANGUAGE_PATTERNS: list[tuple[str, re.Pattern]] = [
    ("python", re.compile(r"def\s+\w+\s*\(")),
    ("java", re.compile(r"public\s+class\s+|void\s+main\s*\(")),
    ("cpp", re.compile(r"#include\s+<.*>|int\s+main\s*\(")),
    ("javascript", re.compile(r"function\s+\w+\s*\(|const\s+\w+\s*=\s*\(\)\s*=>")),
    ("csharp", re.compile(r"using\s+System;|class\s+\w+\s*\{|static\s+void\s+Main\s*\(")),
    ("ruby", re.compile(r"def\s+\w+|class\s+\w+|module\s+\w+")),
    ("php", re.compile(r"<\?php|function\s+\w+\s*\(")),
    ("swift", re.compile(r"import\s+Foundation|func\s+\w+\s*\(")),
    ("go", re.compile(r"package\s+main|func\s+main\s*\(")),
    ("rust", re.compile(r"fn\s+main\s*\(")),
]

# Spellings models commonly answer with
LANGUAGE_ALIASES = {
    "c++": "cpp",
    "c#": "csharp",
    "cs": "csharp",
    "js": "javascript",
    "node": "javascript",
    "nodejs": "javascript",
    "ts": "typescript",
    "py": "python",
    "python3": "python",
    "golang": "go",
    "rs": "rust",
    "rb": "ruby",
}


def detect_language_by_pattern(code: str) -> str:
    """Best-effort detection from a fixed table of patterns"""
    for language, pattern in LANGUAGE_PATTERNS:
        if pattern.search(code):
            return language
    return UNKNOWN_LANGUAGE


def normalize_language(answer: str) -> str:
    """Reduce a free-text model answer to a supported tag, or 'unknown'"""
    first_word = answer.strip().lower().split()[0] if answer.strip() else ""
    cleaned = re.sub(r"[^a-z0-9#+]", "", first_word)
    cleaned = LANGUAGE_ALIASES.get(cleaned, cleaned)
    if cleaned in SUPPORTED_LANGUAGES:
        return cleaned
    return UNKNOWN_LANGUAGE


def build_detection_prompt(code: str) -> str:
    """Build prompt for language detection"""
    return f"""Determine the programming language of the following code snippet.
Respond ONLY with the language name in lowercase, nothing else.

Code:
{code}"""


class LanguageDetector:
    """Ask the model first, fall back to the pattern table"""

    def __init__(self, llm_service: LLMService):
        self.llm_service = llm_service

    async def detect(self, code: str) -> str:
        try:
            answer = await self.llm_service.generate_response(build_detection_prompt(code))
        except LLMServiceError as e:
            logger.warning(f"Model language detection failed, using patterns: {e}")
            return detect_language_by_pattern(code)

        language = normalize_language(answer)
        if language == UNKNOWN_LANGUAGE:
            logger.warning(f"Unsupported language from model: {answer.strip()[:40]!r}, using patterns")
            return detect_language_by_pattern(code)

        logger.info(f"Detected language: {language}")
        return language
