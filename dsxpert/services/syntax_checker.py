"""
Syntax Checker - Model-based syntax validation with a local fallback
"""

from __future__ import annotations

import asyncio

from pydantic import ValidationError

from dsxpert.log import get_logger
from dsxpert.models.optimize import SyntaxIssue, ValidationResult
from dsxpert.services.languages import get_language
from dsxpert.services.llm_service import LLMService, LLMServiceError, parse_json_from_response

logger = get_logger("dsxpert.syntax")


def build_syntax_prompt(code: str, language: str) -> str:
    """Build prompt asking the model to act as a compiler front end"""
    return f"""Act as a {language} compiler. Analyze this code strictly for syntax errors.
Rules:
1. Respond ONLY in JSON format
2. Use this structure: {{ "issues": [{{ "line": number, "column": number, "message": string, "severity": "error"|"warning" }}] }}
3. Line numbers start at 1
4. Column numbers start at 1
5. Be strict about language specifications
6. Mark semantic errors as warnings

Code:
{code}

JSON Response:"""


def format_issues(issues: list[SyntaxIssue]) -> str:
    """One `Line n: message` row per issue"""
    return "\n".join(f"Line {issue.line}: {issue.message}" for issue in issues)


class SyntaxChecker:
    """Validate code with the model, falling back to the language's local check"""

    def __init__(self, llm_service: LLMService):
        self.llm_service = llm_service

    async def validate(self, code: str, language: str) -> ValidationResult:
        try:
            response = await self.llm_service.generate_response(build_syntax_prompt(code, language))
            data = parse_json_from_response(response)
            raw_issues = data.get("issues", []) if isinstance(data, dict) else []
            issues = [SyntaxIssue(**issue) for issue in raw_issues]
        except (LLMServiceError, ValidationError, TypeError) as e:
            logger.warning(f"Model syntax check failed, using local check: {e}")
            return await self.local_check(code, language)

        # An empty report is not trusted on its own
        if not issues:
            return await self.local_check(code, language)

        result = ValidationResult(
            is_valid=all(issue.severity != "error" for issue in issues),
            issues=issues,
            raw_response=response,
        )
        logger.info(f"Syntax check ({language}): valid={result.is_valid} issues={len(issues)}")
        return result

    async def local_check(self, code: str, language: str) -> ValidationResult:
        # Local checks may shell out (`node --check`)
        return await asyncio.to_thread(get_language(language).check_syntax, code)
