"""
Schemas for the authentication endpoints.
"""

from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1, validation_alias=AliasChoices("name", "nombre"))
    email: str = Field(min_length=3)
    password: str = Field(min_length=6)


class LoginRequest(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)


class AuthenticatedUser(BaseModel):
    """The caller, as reported by the identity service."""
    id: str
    email: Optional[str] = None
    role: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)
    app_metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_identity(cls, payload: Dict[str, Any]) -> "AuthenticatedUser":
        app_metadata = payload.get("app_metadata") or {}
        user_metadata = payload.get("user_metadata") or {}
        return cls(
            id=str(payload["id"]),
            email=payload.get("email"),
            role=app_metadata.get("role") or user_metadata.get("role"),
            user_metadata=user_metadata,
            app_metadata=app_metadata,
        )


class SessionTokens(BaseModel):
    user: AuthenticatedUser
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
