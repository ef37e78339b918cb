from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import os

import bcrypt
from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import crud
from database.models import Role, UserModel
from models.user import SignupRequest
from services.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

DEFAULT_SECRET_KEY = "dev-secret-key-change-me"


def _secret_key() -> str:
    return os.getenv("SECRET_KEY", DEFAULT_SECRET_KEY)

def _algorithm() -> str:
    return os.getenv("JWT_ALGORITHM", "HS256")

def _expire_minutes() -> int:
    return int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

def role_selection_allowed() -> bool:
    return os.getenv("ALLOW_ROLE_SELECTION", "false").strip().lower() in ("1", "true", "yes")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # hash corrompu ou mot de passe trop long
        return False


def create_access_token(user: UserModel, expires_delta: Optional[timedelta] = None) -> str:
    """Génère un jeton JWT signé contenant le nom d'utilisateur et son rôle"""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=_expire_minutes()))
    payload = {
        "sub": user.username,
        "role": Role(user.role).value,
        "exp": expire,
    }
    return jwt.encode(payload, _secret_key(), algorithm=_algorithm())

def decode_access_token(token: str) -> dict:
    """Vérifie la signature et l'expiration du jeton, retourne son contenu"""
    try:
        payload = jwt.decode(token, _secret_key(), algorithms=[_algorithm()])
    except JWTError as e:
        raise AuthenticationError("Jeton invalide ou expiré") from e
    if not payload.get("sub"):
        raise AuthenticationError("Jeton invalide: utilisateur manquant")
    return payload

def parse_bearer_token(authorization: Optional[str]) -> str:
    """
    Extrait le jeton d'un en-tête 'Authorization: Bearer <token>'
    """
    if not authorization:
        raise AuthenticationError("En-tête Authorization manquant")
    parts = authorization.strip().split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("En-tête Authorization invalide (format attendu: Bearer <token>)")
    return parts[1]


def register_user(db: Session, request: SignupRequest) -> UserModel:
    """
    Crée un nouvel utilisateur après vérification de l'unicité du nom et de l'email
    """
    if crud.exists_by_username(db, request.username):
        raise ValueError("Erreur: ce nom d'utilisateur est déjà pris")
    if crud.exists_by_email(db, request.email):
        raise ValueError("Erreur: cet email est déjà utilisé")

    role = Role.USER
    if request.role and role_selection_allowed():
        try:
            role = Role(request.role.upper())
        except ValueError:
            role = Role.USER

    try:
        user = crud.create_user(
            db,
            username=request.username,
            email=request.email,
            password_hash=hash_password(request.password),
            role=role
        )
    except IntegrityError:
        # inscription concurrente avec le même nom ou le même email
        db.rollback()
        logger.warning(f"Inscription en double rejetée: {request.username}")
        raise ValueError("Erreur: ce nom d'utilisateur ou cet email est déjà utilisé")
    logger.info(f"Nouvel utilisateur enregistré: {user.username} (id={user.id}, rôle={user.role.value})")
    return user

def authenticate_user(db: Session, username: str, password: str) -> UserModel:
    """Connexion par nom d'utilisateur ou par email"""
    user = crud.get_user_by_username(db, username)
    if user is None and "@" in username:
        user = crud.get_user_by_email(db, username.strip())
    if not user or not verify_password(password, user.password_hash):
        logger.warning(f"Échec de connexion pour l'utilisateur: {username}")
        raise AuthenticationError(
            "Erreur: nom d'utilisateur ou mot de passe invalide. Vérifiez vos identifiants ou inscrivez-vous."
        )
    logger.info(f"Connexion réussie: {username}")
    return user

def resolve_user(db: Session, authorization: Optional[str]) -> UserModel:
    """Retrouve l'utilisateur correspondant au jeton Bearer"""
    payload = decode_access_token(parse_bearer_token(authorization))
    user = crud.get_user_by_username(db, payload["sub"])
    if not user:
        raise AuthenticationError("Utilisateur du jeton introuvable")
    return user
