"""Optimization API endpoints"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request

from dsxpert.dependencies import get_config_manager, get_llm_service, get_review_manager
from dsxpert.log import get_logger
from dsxpert.models.diff import DiffResult
from dsxpert.models.optimize import (
    CodeRequest,
    DiffRequest,
    FormatResponse,
    LanguageResponse,
    OptimizeResponse,
    ValidationResult,
)
from dsxpert.services.config_manager import ConfigManager
from dsxpert.services.diff_renderer import DiffRenderer, InputError
from dsxpert.services.language_detector import LanguageDetector
from dsxpert.services.languages import get_language
from dsxpert.services.llm_service import LLMService, LLMServiceError
from dsxpert.services.optimizer import CodeOptimizer, OptimizationError
from dsxpert.services.review_session import ReviewSessionManager
from dsxpert.services.syntax_checker import SyntaxChecker

logger = get_logger("dsxpert.api.optimize")

router = APIRouter()
diff_renderer = DiffRenderer()


async def _resolve_language(request: CodeRequest, llm_service: LLMService) -> str:
    if request.language:
        return request.language.lower()
    return await LanguageDetector(llm_service).detect(request.code)


@router.post("", response_model=OptimizeResponse)
async def optimize_code(
    request: CodeRequest,
    http_request: Request,
    llm_service: LLMService = Depends(get_llm_service),
    config_manager: ConfigManager = Depends(get_config_manager),
    review_manager: ReviewSessionManager = Depends(get_review_manager),
) -> OptimizeResponse:
    """Propose an optimization and open a review cycle for it"""
    optimizer = CodeOptimizer(
        llm_service,
        formatter_timeout=config_manager.get("formatterTimeoutSeconds", 10),
    )

    language = request.language.lower() if request.language else None

    try:
        result = await optimizer.optimize(request.code, language)
    except OptimizationError as e:
        logger.warning(f"Optimization failed: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    except LLMServiceError as e:
        logger.error(f"LLM service error during optimization: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    try:
        diff = diff_renderer.generate_diff(result.original, result.optimized, request.file_path)
    except InputError as e:
        raise HTTPException(status_code=422, detail=str(e))

    cycle = review_manager.open(
        result.original,
        result.optimized,
        language=result.language,
        explanation=result.explanation,
        file_path=request.file_path,
    )

    return OptimizeResponse(
        review_id=cycle.review_id,
        review_url=str(http_request.url_for("get_review_page", review_id=cycle.review_id)),
        language=result.language,
        explanation=result.explanation,
        optimized=result.optimized,
        is_optimized=cycle.is_changed,
        diff=diff,
    )


@router.post("/detect-language", response_model=LanguageResponse)
async def detect_language(
    request: CodeRequest,
    llm_service: LLMService = Depends(get_llm_service),
) -> LanguageResponse:
    """Detect the language of a code selection"""
    return LanguageResponse(language=await _resolve_language(request, llm_service))


@router.post("/validate", response_model=ValidationResult)
async def validate_syntax(
    request: CodeRequest,
    llm_service: LLMService = Depends(get_llm_service),
) -> ValidationResult:
    """Check a code selection for syntax issues"""
    language = await _resolve_language(request, llm_service)
    return await SyntaxChecker(llm_service).validate(request.code, language)


@router.post("/format", response_model=FormatResponse)
async def format_code(
    request: CodeRequest,
    llm_service: LLMService = Depends(get_llm_service),
    config_manager: ConfigManager = Depends(get_config_manager),
) -> FormatResponse:
    """Format a code selection with the language's formatter, if installed"""
    language = await _resolve_language(request, llm_service)
    formatted = await asyncio.to_thread(
        get_language(language).format,
        request.code,
        config_manager.get("formatterTimeoutSeconds", 10),
    )
    return FormatResponse(language=language, code=formatted, changed=formatted != request.code)


@router.post("/diff", response_model=DiffResult)
async def diff_code(request: DiffRequest) -> DiffResult:
    """Diff two code blobs without opening a review"""
    try:
        return diff_renderer.generate_diff(request.original, request.modified, request.file_path)
    except InputError as e:
        raise HTTPException(status_code=422, detail=str(e))
