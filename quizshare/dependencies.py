from fastapi import Depends

from .errors import Unauthorized
from .models.user_model import User
from .security import current_optional_user


async def require_user(user: User | None = Depends(current_optional_user)) -> User:
    # caller identity is handed to every handler explicitly
    if user is None:
        raise Unauthorized()
    return user
