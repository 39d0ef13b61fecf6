from fastapi import APIRouter, Depends
import logging

from ..models.settings import ApiKeyRequest, ApiKeyStatusResponse
from ..services.settings_service import NOT_CONFIGURED_MESSAGE, SettingsService

logger = logging.getLogger("recall-context.routes")

router = APIRouter(prefix="/settings", tags=["Settings"])

def get_settings_service() -> SettingsService:
    return SettingsService()

@router.post("/api-key", response_model=ApiKeyStatusResponse)
def save_api_key(
    request: ApiKeyRequest,
    service: SettingsService = Depends(get_settings_service)
):
    """
    Store the Anthropic API key.

    The key is encrypted before it is written and is never returned by the API.
    """
    service.save_api_key(request.api_key.strip())
    return {"configured": True, "message": "API key saved successfully"}

@router.get("/api-key/status", response_model=ApiKeyStatusResponse)
def get_api_key_status(service: SettingsService = Depends(get_settings_service)):
    if service.is_api_key_configured():
        return {"configured": True, "message": "API key is configured"}
    return {"configured": False, "message": NOT_CONFIGURED_MESSAGE}

@router.delete("/api-key", response_model=ApiKeyStatusResponse)
def delete_api_key(service: SettingsService = Depends(get_settings_service)):
    service.delete_api_key()
    return {"configured": False, "message": "API key deleted successfully"}
