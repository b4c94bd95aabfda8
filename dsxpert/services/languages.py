"""
Language Registry - Per-language refinement, local syntax checks and formatting

Each supported language tag maps to a `LanguageSupport` object. Languages
without a dedicated implementation get the generic one, which leaves code as
is and reports it valid.
"""

from __future__ import annotations

import ast
import re
import shutil
import subprocess

from dsxpert.log import get_logger
from dsxpert.models.optimize import SyntaxIssue, ValidationResult

logger = get_logger("dsxpert.languages")

SUPPORTED_LANGUAGES = (
    "python",
    "java",
    "cpp",
    "c",
    "javascript",
    "typescript",
    "csharp",
    "ruby",
    "php",
    "swift",
    "go",
    "rust",
)

UNKNOWN_LANGUAGE = "unknown"

_registry: dict[str, "LanguageSupport"] = {}


def run_formatter(command: list[str], code: str, timeout: float = 10) -> str:
    """Pipe code through an external formatter; return input unchanged on any failure"""
    if not shutil.which(command[0]):
        logger.debug(f"Formatter not installed: {command[0]}")
        return code

    try:
        logger.debug(f"Formatter exec: {' '.join(command)}")
        result = subprocess.run(
            command,
            input=code,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=True,
        )
    except subprocess.TimeoutExpired:
        logger.warning(f"Formatter timed out after {timeout}s: {command[0]}")
        return code
    except subprocess.CalledProcessError as e:
        logger.warning(f"Formatter failed: {command[0]} -> {e.stderr.strip()[:200]}")
        return code
    except OSError as e:
        logger.warning(f"Formatter could not run: {command[0]} -> {e}")
        return code

    return result.stdout or code


class LanguageSupport:
    """Generic language behavior: no refinement, no local check, no formatter"""

    name = UNKNOWN_LANGUAGE
    formatter: list[str] | None = None

    def refine(self, code: str) -> str:
        return code

    def check_syntax(self, code: str) -> ValidationResult:
        return ValidationResult(is_valid=True, issues=[])

    def format(self, code: str, timeout: float = 10) -> str:
        if not self.formatter:
            return code
        return run_formatter(self.formatter, code, timeout)


def register_language(*tags: str):
    """Class decorator registering an implementation under one or more tags"""

    def decorator(cls: type[LanguageSupport]) -> type[LanguageSupport]:
        instance = cls()
        for tag in tags:
            _registry[tag] = instance
        return cls

    return decorator


def get_language(tag: str | None) -> LanguageSupport:
    """Look up the implementation for a language tag"""
    return _registry.get((tag or "").lower(), _GENERIC)


def registered_languages() -> list[str]:
    return sorted(_registry)


_GENERIC = LanguageSupport()


@register_language("python")
class PythonSupport(LanguageSupport):
    name = "python"
    formatter = ["black", "-q", "-"]

    def check_syntax(self, code: str) -> ValidationResult:
        try:
            ast.parse(code)
        except SyntaxError as e:
            return ValidationResult(
                is_valid=False,
                issues=[
                    SyntaxIssue(
                        line=e.lineno or 1,
                        column=e.offset or 1,
                        message=e.msg or "invalid syntax",
                        severity="error",
                    )
                ],
            )
        return ValidationResult(is_valid=True, issues=[])


@register_language("javascript")
class JavaScriptSupport(LanguageSupport):
    name = "javascript"
    formatter = ["prettier", "--stdin-filepath", "selection.js"]

    _NODE_ERROR = re.compile(r"^(?P<name>\w*Error): (?P<message>.+)$", re.MULTILINE)
    _NODE_LOCATION = re.compile(r":(?P<line>\d+)\s*$", re.MULTILINE)

    def check_syntax(self, code: str) -> ValidationResult:
        # `node --check` parses without executing; skip when node is absent
        if not shutil.which("node"):
            return ValidationResult(is_valid=True, issues=[])

        try:
            result = subprocess.run(
                ["node", "--check", "--input-type=commonjs"],
                input=code,
                capture_output=True,
                text=True,
                timeout=10,
            )
        except subprocess.TimeoutExpired:
            logger.warning("node --check timed out")
            return ValidationResult(is_valid=True, issues=[])
        except OSError as e:
            logger.warning(f"node --check could not run: {e}")
            return ValidationResult(is_valid=True, issues=[])

        if result.returncode == 0:
            return ValidationResult(is_valid=True, issues=[])

        error = self._NODE_ERROR.search(result.stderr)
        location = self._NODE_LOCATION.search(result.stderr)
        return ValidationResult(
            is_valid=False,
            issues=[
                SyntaxIssue(
                    line=int(location.group("line")) if location else 1,
                    column=1,
                    message=error.group("message") if error else result.stderr.strip()[:200],
                    severity="error",
                )
            ],
        )


@register_language("typescript")
class TypeScriptSupport(LanguageSupport):
    name = "typescript"
    formatter = ["prettier", "--stdin-filepath", "selection.ts"]


@register_language("cpp", "c")
class CppSupport(LanguageSupport):
    name = "cpp"
    formatter = ["clang-format"]

    def refine(self, code: str) -> str:
        # std::endl flushes the stream on every line
        return re.sub(r"\bstd::endl\b", "'\\\\n'", code)


@register_language("java")
class JavaSupport(LanguageSupport):
    name = "java"
    formatter = ["google-java-format", "-"]


@register_language("go")
class GoSupport(LanguageSupport):
    name = "go"
    formatter = ["gofmt"]


@register_language("rust")
class RustSupport(LanguageSupport):
    name = "rust"
    formatter = ["rustfmt", "--emit", "stdout"]
