# backend/app/auth.py
"""
Caller context.

Authentication happens at the gateway; it forwards the verified user id
in X-User-Id. This module is the single place that turns that header
into a CallerContext and checks capabilities.
"""

import logging
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from .database import get_db
from .models.generated import Users as DBUsers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallerContext:
    user_id: int
    is_admin: bool = False


def get_optional_caller(
    x_user_id: int | None = Header(None),
    db: Session = Depends(get_db),
) -> CallerContext | None:
    if x_user_id is None:
        return None
    user = db.get(DBUsers, x_user_id)
    if not user:
        return None
    return CallerContext(user_id=user.id, is_admin=bool(user.is_admin))


def require_user(
    caller: CallerContext | None = Depends(get_optional_caller),
) -> CallerContext:
    if caller is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return caller


def require_admin(
    caller: CallerContext = Depends(require_user),
) -> CallerContext:
    if not caller.is_admin:
        logger.warning(f"Admin endpoint denied for user {caller.user_id}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return caller
