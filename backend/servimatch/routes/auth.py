from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from servimatch import models, schemas
from servimatch.auth import get_current_user, token_for
from servimatch.config import settings
from servimatch.database import get_db
from servimatch.services import user_service

router = APIRouter()


def _set_token_cookie(resp: JSONResponse, access_token: str) -> None:
    resp.set_cookie(
        "access_token",
        access_token,
        httponly=True,
        secure=not settings.is_dev,
        samesite="none" if not settings.is_dev else "lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.post("/register", response_model=schemas.TokenWithUser, status_code=status.HTTP_201_CREATED)
async def register(payload: schemas.RegisterRequest, db: AsyncSession = Depends(get_db)):
    user = await user_service.register(db, payload)
    return schemas.TokenWithUser(
        access_token=token_for(user),
        token_type="bearer",
        user=await user_service.load_profile(db, user.id),
    )


@router.post("/login")
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.authenticate_credentials(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    access_token = token_for(user)
    resp = JSONResponse({"access_token": access_token, "token_type": "bearer"})
    _set_token_cookie(resp, access_token)
    return resp


@router.post("/logout")
async def logout():
    resp = JSONResponse({"message": "Logged out"})
    resp.delete_cookie("access_token", httponly=True)
    return resp


@router.get("/verify", response_model=schemas.UserProfileRead)
async def verify(
    current_user: models.User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.load_profile(db, current_user.id)
