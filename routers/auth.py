import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from database.database import get_db
from database.models import UserModel
from models.user import AuthResponse, LoginRequest, SignupRequest, User
from routers.dependencies import current_admin
from services import auth_service
from services.exceptions import AuthenticationError
from services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _auth_payload(user: UserModel) -> dict:
    token = auth_service.create_access_token(user)
    return AuthResponse(**User.model_validate(user).model_dump(), token=token).to_json()

def _register(request: SignupRequest, db: Session):
    try:
        user = auth_service.register_user(db, request)
        return JSONResponse(_auth_payload(user))
    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Erreur lors de l'inscription de {request.username}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Erreur: {str(e)}")

@router.post("/signup")
async def signup(request: SignupRequest, db: Session = Depends(get_db)):
    """
    Inscription d'un nouvel utilisateur, retourne un jeton d'accès
    """
    return _register(request, db)

@router.post("/register")
async def register(request: SignupRequest, db: Session = Depends(get_db)):
    """Alias de /signup"""
    return _register(request, db)

@router.post("/login")
async def login(request: LoginRequest, db: Session = Depends(get_db)):
    """
    Connexion : nom d'utilisateur + mot de passe -> jeton d'accès
    """
    try:
        user = auth_service.authenticate_user(db, request.username, request.password)
        return JSONResponse(_auth_payload(user))
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except Exception as e:
        logger.error(f"Erreur lors de la connexion de {request.username}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Erreur: {str(e)}")

@router.post("/logout")
async def logout():
    # Jetons sans état : le client supprime simplement son jeton
    return JSONResponse({"success": True, "message": "Déconnexion réussie"})

@router.get("/users")
async def list_users(admin: UserModel = Depends(current_admin), db: Session = Depends(get_db)):
    """
    Liste des utilisateurs (ADMIN uniquement)
    """
    try:
        users = UserService(db).list_users()
        return JSONResponse([User.model_validate(u).to_json() for u in users])
    except Exception as e:
        logger.error(f"Erreur lors de la récupération des utilisateurs: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
