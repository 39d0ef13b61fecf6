from pydantic import BaseModel, Field

class ApiKeyRequest(BaseModel):
    api_key: str = Field(..., min_length=1, pattern=r"\S", description="Anthropic API key")

class ApiKeyStatusResponse(BaseModel):
    configured: bool
    message: str
