import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from database.database import get_db
from database.models import UserModel
from models.user import User, UserFinancialsUpdate
from models.user_profile import CurrencyUpdateRequest, UserPreferences, UserPreferencesUpdate
from routers.dependencies import current_admin, current_member
from services.exceptions import UserNotFoundError
from services.user_profile_service import UserProfileService
from services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("/profile")
async def get_profile(user: UserModel = Depends(current_member)):
    """Profil financier de l'utilisateur connecté"""
    return JSONResponse(User.model_validate(user).to_json())

@router.put("/profile")
async def update_profile(
    request: UserFinancialsUpdate,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    """
    Met à jour revenu mensuel, épargne actuelle et dépenses cibles
    """
    try:
        updated = UserService(db).update_financials(user.id, request)
        return JSONResponse(User.model_validate(updated).to_json())
    except Exception as e:
        logger.error(f"Erreur lors de la mise à jour du profil de {user.username}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Erreur: {str(e)}")

@router.get("/profile/{user_id}")
async def get_profile_by_id(
    user_id: int,
    admin: UserModel = Depends(current_admin),
    db: Session = Depends(get_db)
):
    """Profil d'un utilisateur quelconque (ADMIN uniquement)"""
    try:
        return JSONResponse(User.model_validate(UserService(db).get_by_id(user_id)).to_json())
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Erreur: {str(e)}")

@router.put("/profile/{user_id}")
async def update_profile_by_id(
    user_id: int,
    request: UserFinancialsUpdate,
    admin: UserModel = Depends(current_admin),
    db: Session = Depends(get_db)
):
    try:
        updated = UserService(db).update_financials(user_id, request)
        logger.info(f"Profil de l'utilisateur {user_id} modifié par l'administrateur {admin.username}")
        return JSONResponse(User.model_validate(updated).to_json())
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Erreur: {str(e)}")

@router.get("/preferences")
async def get_preferences(user: UserModel = Depends(current_member), db: Session = Depends(get_db)):
    """
    Préférences (devise, formats, notifications) ; un profil par défaut est créé au premier accès
    """
    try:
        profile = UserProfileService(db).get_profile(user.id)
        return JSONResponse(UserPreferences.model_validate(profile).to_json())
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Erreur: {str(e)}")

@router.put("/preferences")
async def update_preferences(
    request: UserPreferencesUpdate,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    try:
        profile = UserProfileService(db).update_profile(user.id, request)
        return JSONResponse(UserPreferences.model_validate(profile).to_json())
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Erreur: {str(e)}")

@router.put("/preferences/currency")
async def update_currency(
    request: CurrencyUpdateRequest,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    try:
        profile = UserProfileService(db).update_currency(user.id, request.currency)
        return JSONResponse({
            "success": True,
            "preferredCurrency": profile.preferred_currency
        })
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Erreur: {str(e)}")

@router.delete("/preferences")
async def reset_preferences(user: UserModel = Depends(current_member), db: Session = Depends(get_db)):
    """
    Supprime les préférences : les valeurs par défaut s'appliquent à nouveau
    """
    try:
        deleted = UserProfileService(db).delete_profile(user.id)
        return JSONResponse({
            "success": True,
            "deleted": deleted,
            "message": "Préférences réinitialisées"
        })
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Erreur: {str(e)}")
