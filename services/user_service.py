from typing import List
import logging

from sqlalchemy.orm import Session

from database import crud
from database.models import UserModel
from models.user import UserFinancialsUpdate
from services.exceptions import UserNotFoundError

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_username(self, username: str) -> UserModel:
        if username is None or not username.strip():
            raise ValueError("Le nom d'utilisateur ne peut pas être vide")
        user = crud.get_user_by_username(self.db, username.strip())
        if not user:
            raise UserNotFoundError(username)
        return user

    def get_by_id(self, user_id: int) -> UserModel:
        user = crud.get_user_by_id(self.db, user_id)
        if not user:
            raise UserNotFoundError(user_id)
        return user

    def list_users(self) -> List[UserModel]:
        return crud.get_all_users(self.db)

    def update_financials(self, user_id: int, request: UserFinancialsUpdate) -> UserModel:
        """Met à jour revenu mensuel, épargne actuelle et dépenses cibles"""
        values = {k: round(v, 2) for k, v in request.model_dump(exclude_unset=True).items() if v is not None}
        user = crud.update_user_financials(self.db, user_id, **values)
        if not user:
            raise UserNotFoundError(user_id)
        logger.info(f"Profil financier mis à jour pour {user.username}: {values}")
        return user
