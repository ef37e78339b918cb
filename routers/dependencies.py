from typing import Optional
import logging

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from database.database import get_db
from database.models import Role, UserModel
from services.auth_service import resolve_user
from services.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> UserModel:
    """
    Dependency : utilisateur authentifié via l'en-tête 'Authorization: Bearer <token>'
    """
    try:
        return resolve_user(db, authorization)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e), headers={"WWW-Authenticate": "Bearer"})


def require_roles(*roles: Role):
    """Dependency : 403 si l'utilisateur n'a aucun des rôles demandés"""
    allowed = set(roles)

    def checker(user: UserModel = Depends(get_current_user)) -> UserModel:
        if user.role not in allowed:
            logger.warning(f"Accès refusé pour {user.username} (rôle {user.role.value})")
            raise HTTPException(status_code=403, detail="Accès refusé: droits insuffisants")
        return user

    return checker


# Toutes les routes de données acceptent USER et ADMIN
current_member = require_roles(Role.USER, Role.ADMIN)
current_admin = require_roles(Role.ADMIN)
