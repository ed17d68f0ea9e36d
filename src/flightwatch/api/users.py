"""API endpoints for traveler profiles."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from flightwatch.api.deps import normalize_phone
from flightwatch.db.deps import get_db
from flightwatch.models import User
from flightwatch.storage.users import get_user, new_user, save_user

router = APIRouter(prefix="/users", tags=["users"])


class CreateUserRequest(BaseModel):
    name: str
    phone: str  # E.164, "+" optional

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return normalize_phone(v)


class UserResponse(BaseModel):
    id: str
    name: str
    phone: str
    created_at: str


def _to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        phone=user.phone,
        created_at=user.created_at.isoformat(),
    )


@router.post("", response_model=UserResponse, status_code=201)
def create_user(req: CreateUserRequest, db: Session = Depends(get_db)):
    """Register a traveler. One profile per phone number."""
    try:
        get_user(db, req.phone)
        raise HTTPException(
            status_code=409,
            detail=f"User already exists with phone '{req.phone}'",
        )
    except KeyError:
        pass

    user = new_user(req.name, req.phone)
    save_user(db, user)
    return _to_response(user)


@router.get("/{phone}", response_model=UserResponse)
def read_user(phone: str, db: Session = Depends(get_db)):
    try:
        return _to_response(get_user(db, normalize_phone(phone)))
    except (KeyError, ValueError):
        raise HTTPException(status_code=404, detail=f"User '{phone}' not found")
