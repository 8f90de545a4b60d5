import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from database import get_session
from errors import AuthenticationError, ValidationError
from models import User
from schemas import ItemResponse, LoginIn, RegisterIn, TokenResponse, UserRead
from security import create_access_token, hash_password, require_user, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=TokenResponse)
async def register(payload: RegisterIn, request: Request, session: AsyncSession = Depends(get_session)):
    settings = request.app.state.settings

    statement = select(User).where(or_(User.username == payload.username, User.email == payload.email))
    if (await session.execute(statement)).scalars().first() is not None:
        raise ValidationError("Username or email already exists")

    user = User(
        username=payload.username,
        email=payload.email,
        password=hash_password(payload.password, rounds=settings.BCRYPT_ROUNDS),
    )
    try:
        session.add(user)
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ValidationError("Username or email already exists")
    await session.refresh(user)

    logger.info("Registered user %s", user.username)
    return {"token": create_access_token(user, settings), "user": UserRead.model_validate(user)}


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginIn, request: Request, session: AsyncSession = Depends(get_session)):
    statement = select(User).where(User.username == payload.username)
    user = (await session.execute(statement)).scalars().first()
    if user is None or not verify_password(payload.password, user.password):
        raise AuthenticationError("Invalid credentials")

    return {
        "token": create_access_token(user, request.app.state.settings),
        "user": UserRead.model_validate(user),
    }


@router.get("/me", response_model=ItemResponse[UserRead])
async def me(user: User = Depends(require_user)):
    return {"data": UserRead.model_validate(user)}
