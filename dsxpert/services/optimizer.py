"""
Code Optimizer - Detect, validate, rewrite, refine and format a code selection

A single optimization attempt per request: any failure is reported to the
caller and the original code is never touched.
"""

from __future__ import annotations

import asyncio
import re

from dsxpert.log import get_logger
from dsxpert.models.optimize import OptimizationResult
from dsxpert.services.language_detector import LanguageDetector
from dsxpert.services.languages import get_language
from dsxpert.services.llm_service import LLMService, LLMServiceError, strip_code_fences
from dsxpert.services.syntax_checker import SyntaxChecker, format_issues

logger = get_logger("dsxpert.optimizer")

EXPLANATION_MAX_LENGTH = 500

FALLBACK_EXPLANATION = (
    "The code was optimized by replacing inefficient data structures with more "
    "efficient ones, for example hash-based lookups instead of linear scans."
)

# (pattern, replacement) pairs that make explanations less technical
_EXPLANATION_REWRITES = [
    (re.compile(r"time complexity of O\([^)]+\)"), "faster"),
    (re.compile(r"space complexity of O\([^)]+\)"), "more memory-efficient"),
    (re.compile(r"\bTherefore\b"), "So"),
    (re.compile(r"\bHowever\b"), "But"),
]


class OptimizationError(Exception):
    """Raised when an optimization attempt cannot produce a proposal"""


def simplify_explanation(explanation: str, max_length: int = EXPLANATION_MAX_LENGTH) -> str:
    """Tone down jargon and cap the length of an explanation"""
    for pattern, replacement in _EXPLANATION_REWRITES:
        explanation = pattern.sub(replacement, explanation)
    if len(explanation) > max_length:
        explanation = explanation[:max_length] + "..."
    return explanation


def build_optimize_prompt(code: str, language: str) -> str:
    """Build prompt for data-structure optimization"""
    return f"""Optimize the following {language} code to improve time and space complexity by changing data structures. Follow these rules:
1. Identify inefficient data structures (e.g., arrays, lists) and replace them with better alternatives (e.g., hash maps, sets, priority queues).
2. Ensure the logic and correctness remain unchanged.
3. Respond ONLY with the optimized code.

Original Code:
{code}

Optimized Code:"""


def build_explanation_prompt(original: str, optimized: str, language: str) -> str:
    """Build prompt explaining the differences between two versions"""
    return f"""Explain how the following {language} code was optimized by changing data structures. Follow these rules:
1. Clearly describe the inefficient data structures in the original code.
2. Explain why the new data structures are more efficient.
3. Provide a step-by-step explanation of the changes made.
4. Use simple, human-readable language.

Original Code:
{original}

Optimized Code:
{optimized}

Explanation:"""


class CodeOptimizer:
    """Run one optimization attempt through the configured model"""

    def __init__(
        self,
        llm_service: LLMService,
        detector: LanguageDetector | None = None,
        checker: SyntaxChecker | None = None,
        formatter_timeout: float = 10,
    ):
        self.llm_service = llm_service
        self.detector = detector or LanguageDetector(llm_service)
        self.checker = checker or SyntaxChecker(llm_service)
        self.formatter_timeout = formatter_timeout

    async def optimize(self, code: str, language: str | None = None) -> OptimizationResult:
        if not code or not code.strip():
            raise OptimizationError("No code selected.")

        language = language or await self.detector.detect(code)
        logger.info(f"Optimization started (language={language}, {len(code)} chars)")

        validation = await self.checker.validate(code, language)
        if not validation.is_valid:
            raise OptimizationError(f"Original code has syntax issues:\n{format_issues(validation.issues)}")

        try:
            response = await self.llm_service.generate_response(build_optimize_prompt(code, language))
        except LLMServiceError as e:
            raise OptimizationError(f"Failed to optimize code: {e}") from e

        optimized = strip_code_fences(response)
        if not optimized:
            raise OptimizationError("Failed to optimize code: the model returned no code.")
        if code.endswith("\n"):
            optimized += "\n"

        support = get_language(language)
        optimized = support.refine(optimized)
        # Formatters are subprocesses; keep them off the event loop
        optimized = await asyncio.to_thread(support.format, optimized, self.formatter_timeout)

        explanation = await self.explain(code, optimized, language)
        logger.info(f"Optimization complete (changed={optimized != code})")

        return OptimizationResult(
            language=language,
            original=code,
            optimized=optimized,
            explanation=explanation,
        )

    async def explain(self, original: str, optimized: str, language: str) -> str:
        if original == optimized:
            return "No data-structure changes were necessary."
        try:
            response = await self.llm_service.generate_response(
                build_explanation_prompt(original, optimized, language)
            )
        except LLMServiceError as e:
            logger.warning(f"Explanation failed, using fallback: {e}")
            return FALLBACK_EXPLANATION
        return simplify_explanation(strip_code_fences(response))
