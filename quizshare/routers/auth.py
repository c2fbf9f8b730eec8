import logging

from fastapi import APIRouter, Depends
from fastapi_users import exceptions

from ..errors import ValidationFailed
from ..schemas.user_schema import LoginRequest, LoginResponse
from ..security import UserManager, get_jwt_strategy, get_user_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/auth', tags=['auth'])


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, user_manager: UserManager = Depends(get_user_manager)):
    """JSON login: the caller's identity plus a bearer token for the quiz routes."""
    try:
        user = await user_manager.get_by_email(payload.email)
    except exceptions.UserNotExists:
        raise ValidationFailed("Invalid credentials")

    valid, new_hash = user_manager.password_helper.verify_and_update(payload.password, user.hashed_password)
    if not valid or not user.is_active:
        raise ValidationFailed("Invalid credentials")

    if new_hash:
        user = await user_manager.user_db.update(user, {"hashed_password": new_hash})

    token = await get_jwt_strategy().write_token(user)
    logger.info("User %s logged in", user.id)
    return {
        "user": {"id": user.id, "email": user.email, "full_name": user.full_name},
        "token": token,
    }
