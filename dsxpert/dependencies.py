"""Request-scoped access to the process-wide services held on app.state"""

from __future__ import annotations

from fastapi import Depends, Request

from dsxpert.services.config_manager import ConfigManager
from dsxpert.services.llm_service import LLMService
from dsxpert.services.review_session import ReviewSessionManager


def get_config_manager(request: Request) -> ConfigManager:
    return request.app.state.config_manager


def get_review_manager(request: Request) -> ReviewSessionManager:
    return request.app.state.review_manager


def get_llm_service(config_manager: ConfigManager = Depends(get_config_manager)) -> LLMService:
    """A service bound to the configuration as it is right now"""
    return LLMService(config_manager.get_config())
