import logging

from sqlalchemy.orm import Session

from database import crud
from database.models import UserProfileModel
from models.user_profile import UserPreferencesUpdate

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "INR"


class UserProfileService:
    """
    Préférences utilisateur (devise, fuseau horaire, formats, notifications)
    """

    def __init__(self, db: Session):
        self.db = db

    def create_default_profile(self, user_id: int) -> UserProfileModel:
        logger.info(f"Création du profil par défaut pour l'utilisateur {user_id}")
        profile = UserProfileModel(
            user_id=user_id,
            preferred_currency=DEFAULT_CURRENCY,
            timezone="Asia/Kolkata",
            date_format="DD/MM/YYYY",
            number_format="IN",
            language="en",
            theme="light"
        )
        return crud.save_profile(self.db, profile)

    def get_profile(self, user_id: int) -> UserProfileModel:
        """Récupère le profil, en le créant avec les valeurs par défaut au premier accès"""
        profile = crud.get_profile_by_user_id(self.db, user_id)
        if profile is None:
            profile = self.create_default_profile(user_id)
        return profile

    def update_profile(self, user_id: int, request: UserPreferencesUpdate) -> UserProfileModel:
        profile = self.get_profile(user_id)
        old_currency = profile.preferred_currency
        for field, value in request.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(profile, field, value)
        profile = crud.save_profile(self.db, profile)
        if profile.preferred_currency != old_currency:
            logger.info(f"Devise de l'utilisateur {user_id} modifiée: {old_currency} -> {profile.preferred_currency}")
        logger.info(f"Profil mis à jour pour l'utilisateur {user_id}")
        return profile

    def get_preferred_currency(self, user_id: int) -> str:
        profile = crud.get_profile_by_user_id(self.db, user_id)
        return profile.preferred_currency if profile else DEFAULT_CURRENCY

    def update_currency(self, user_id: int, currency: str) -> UserProfileModel:
        return self.update_profile(user_id, UserPreferencesUpdate(preferred_currency=currency))

    def delete_profile(self, user_id: int) -> bool:
        """Supprime les préférences ; le prochain accès recrée le profil par défaut"""
        deleted = crud.delete_profile(self.db, user_id)
        if deleted:
            logger.info(f"Profil supprimé pour l'utilisateur {user_id}")
        return deleted
