"""User profile endpoints: the authenticated username owns one profile."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from fitness_api.auth import require_user
from fitness_api.db import get_session
from fitness_api.tracker import service
from fitness_api.tracker.models import User, UserRegistrationRequest, UserUpdateRequest

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=User, status_code=201)
async def create_user(
    request: UserRegistrationRequest,
    session: AsyncSession = Depends(get_session),
    username: str = Depends(require_user),
) -> User:
    return await service.create_user(session, username, request)


@router.get("/me", response_model=User)
async def get_profile(
    session: AsyncSession = Depends(get_session),
    username: str = Depends(require_user),
) -> User:
    return await service.get_user(session, username)


@router.put("/me", response_model=User)
async def update_profile(
    request: UserUpdateRequest,
    session: AsyncSession = Depends(get_session),
    username: str = Depends(require_user),
) -> User:
    return await service.update_user(session, username, request)


@router.delete("/me", status_code=204)
async def delete_profile(
    session: AsyncSession = Depends(get_session),
    username: str = Depends(require_user),
) -> Response:
    await service.delete_user(session, username)
    return Response(status_code=204)
