"""Services module - Business logic layer"""

from .config_manager import ConfigManager
from .diff_renderer import DiffRenderer, InputError, compute_diff, render
from .language_detector import LanguageDetector, detect_language_by_pattern
from .languages import LanguageSupport, get_language, register_language
from .llm_service import LLMService, LLMServiceError
from .optimizer import CodeOptimizer, OptimizationError
from .review_session import ReviewCycle, ReviewNotFoundError, ReviewSessionManager, ReviewStateError
from .syntax_checker import SyntaxChecker

__all__ = [
    "ConfigManager",
    "DiffRenderer",
    "InputError",
    "compute_diff",
    "render",
    "LanguageDetector",
    "detect_language_by_pattern",
    "LanguageSupport",
    "get_language",
    "register_language",
    "LLMService",
    "LLMServiceError",
    "CodeOptimizer",
    "OptimizationError",
    "ReviewCycle",
    "ReviewNotFoundError",
    "ReviewSessionManager",
    "ReviewStateError",
    "SyntaxChecker",
]
