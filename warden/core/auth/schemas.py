"""Schemas for auth IO."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, ValidationError, field_validator

from warden.core.auth.authentication import Authentication, RememberMeAuthentication


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("username cannot be blank")
        return v


class AuthenticationResponse(BaseModel):
    username: str
    authorities: List[str] = []
    remembered: bool = False


def serialize_authentication(authentication: Authentication) -> AuthenticationResponse:
    return AuthenticationResponse(
        username=authentication.name,
        authorities=list(authentication.authorities),
        remembered=isinstance(authentication, RememberMeAuthentication),
    )


def jsonable_errors(exc: ValidationError) -> list[dict]:
    errors = exc.errors()
    for err in errors:
        if "ctx" in err and isinstance(err["ctx"], dict):
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
    return errors


__all__ = ["LoginRequest", "AuthenticationResponse", "serialize_authentication", "jsonable_errors"]
