"""Configuration API endpoints"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from dsxpert.dependencies import get_config_manager
from dsxpert.log import get_logger
from dsxpert.services.config_manager import ConfigManager
from dsxpert.services.llm_service import LLMService, LLMServiceError

logger = get_logger("dsxpert.api.config")

router = APIRouter()


class ConfigUpdateRequest(BaseModel):
    """Request to update configuration"""

    provider: Literal["gemini", "openai"] | None = None
    gemini: dict | None = None
    openai: dict | None = None
    maxRetries: int | None = None
    timeoutSeconds: int | None = None
    formatterTimeoutSeconds: int | None = None
    reviewOutcomeTimeoutSeconds: int | None = None


class ConfigResponse(BaseModel):
    """Configuration response"""

    provider: str
    gemini: dict
    openai: dict
    maxRetries: int
    timeoutSeconds: int
    formatterTimeoutSeconds: int
    reviewOutcomeTimeoutSeconds: int


class ValidateResponse(BaseModel):
    """Validation response"""

    valid: bool
    message: str
    provider: str


def mask_key(key: str) -> str:
    """Hide all but the first and last four characters of a key"""
    if not key:
        return ""
    if len(key) <= 8:
        return "*" * len(key)
    return key[:4] + "*" * (len(key) - 8) + key[-4:]


@router.get("", response_model=ConfigResponse)
async def get_config(config_manager: ConfigManager = Depends(get_config_manager)) -> ConfigResponse:
    """Get current configuration with API keys masked"""
    config = config_manager.get_config()

    gemini = config.get("gemini", {})
    openai = config.get("openai", {})
    gemini["apiKey"] = mask_key(gemini.get("apiKey", ""))
    openai["apiKey"] = mask_key(openai.get("apiKey", ""))

    return ConfigResponse(
        provider=config.get("provider", "gemini"),
        gemini=gemini,
        openai=openai,
        maxRetries=config["maxRetries"],
        timeoutSeconds=config["timeoutSeconds"],
        formatterTimeoutSeconds=config["formatterTimeoutSeconds"],
        reviewOutcomeTimeoutSeconds=config["reviewOutcomeTimeoutSeconds"],
    )


@router.put("")
async def update_config(
    request: ConfigUpdateRequest,
    config_manager: ConfigManager = Depends(get_config_manager),
) -> dict[str, Any]:
    """Update only the provided fields"""
    current_config = config_manager.get_config()

    for key, value in request.model_dump(exclude_none=True).items():
        if isinstance(value, dict):
            current_config[key] = {**current_config.get(key, {}), **value}
        else:
            current_config[key] = value

    config_manager.save_config(current_config)
    logger.info(f"Configuration updated: {sorted(request.model_dump(exclude_none=True))}")

    return {"status": "success", "message": "Configuration updated"}


@router.post("/validate", response_model=ValidateResponse)
async def validate_config(config_manager: ConfigManager = Depends(get_config_manager)) -> ValidateResponse:
    """Validate current configuration by testing the LLM connection"""
    config = config_manager.get_config()
    provider = config.get("provider", "gemini")

    try:
        response = await LLMService(config).generate_response("Say 'OK' if you can hear me.")
    except LLMServiceError as e:
        return ValidateResponse(valid=False, message=f"Connection failed: {e}", provider=provider)

    if response:
        return ValidateResponse(valid=True, message=f"Successfully connected to {provider}", provider=provider)
    return ValidateResponse(valid=False, message="Received empty response from LLM", provider=provider)
