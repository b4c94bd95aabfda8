"""Review surface API endpoints"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse
from pydantic import ValidationError

from dsxpert.dependencies import get_config_manager, get_review_manager
from dsxpert.models.review import ReviewOutcome, ReviewSummary
from dsxpert.services.config_manager import ConfigManager
from dsxpert.services.review_page import render_review_page
from dsxpert.services.review_session import (
    ReviewCycle,
    ReviewNotFoundError,
    ReviewSessionManager,
    ReviewStateError,
    parse_review_message,
)

router = APIRouter()


def _get_cycle(review_manager: ReviewSessionManager, review_id: str) -> ReviewCycle:
    try:
        return review_manager.get(review_id)
    except ReviewNotFoundError:
        raise HTTPException(status_code=404, detail=f"Review not found: {review_id}")


@router.get("/{review_id}", response_class=HTMLResponse)
async def get_review_page(
    review_id: str,
    request: Request,
    review_manager: ReviewSessionManager = Depends(get_review_manager),
) -> HTMLResponse:
    """Review page with the highlighted diff and accept/reject actions"""
    cycle = _get_cycle(review_manager, review_id)
    try:
        html = render_review_page(cycle, str(request.url_for("get_review_page", review_id=review_id)))
    except ReviewStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return HTMLResponse(html)


@router.get("/{review_id}/status", response_model=ReviewSummary)
async def get_review_status(
    review_id: str,
    review_manager: ReviewSessionManager = Depends(get_review_manager),
) -> ReviewSummary:
    """Current state of a review cycle"""
    return _get_cycle(review_manager, review_id).summary()


@router.post("/{review_id}/message", response_model=ReviewOutcome)
async def post_review_message(
    review_id: str,
    payload: dict[str, Any] = Body(...),
    review_manager: ReviewSessionManager = Depends(get_review_manager),
) -> ReviewOutcome:
    """Accept or reject the proposed change"""
    cycle = _get_cycle(review_manager, review_id)
    try:
        message = parse_review_message(payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    try:
        return cycle.handle_message(message)
    except ReviewStateError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/{review_id}/outcome", response_model=ReviewOutcome)
async def wait_review_outcome(
    review_id: str,
    timeout: float | None = None,
    review_manager: ReviewSessionManager = Depends(get_review_manager),
    config_manager: ConfigManager = Depends(get_config_manager),
) -> ReviewOutcome:
    """Wait until the reviewer decides, then hand the outcome to the editor"""
    _get_cycle(review_manager, review_id)
    if timeout is None:
        timeout = config_manager.get("reviewOutcomeTimeoutSeconds", 300)
    try:
        return await review_manager.wait_for_outcome(review_id, timeout)
    except asyncio.TimeoutError:
        raise HTTPException(status_code=408, detail="No review decision yet")


@router.delete("/{review_id}", response_model=ReviewOutcome)
async def close_review(
    review_id: str,
    review_manager: ReviewSessionManager = Depends(get_review_manager),
) -> ReviewOutcome:
    """Close the review surface; an undecided review counts as rejected"""
    _get_cycle(review_manager, review_id)
    return review_manager.close(review_id)
