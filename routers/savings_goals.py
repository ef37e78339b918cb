from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from database.database import get_db
from database.models import GoalStatus, UserModel
from models.savings_goal import ContributionRequest, SavingsGoal, SavingsGoalCreate, SavingsGoalUpdate
from routers.dependencies import current_member
from services.exceptions import NotFoundError
from services.savings_goal_service import SavingsGoalService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/savings-goals", tags=["savings-goals"])


def _goal_response(goal, status_code: int = 200) -> JSONResponse:
    return JSONResponse(SavingsGoal.model_validate(goal).to_json(), status_code=status_code)


@router.post("")
async def create_goal(
    request: SavingsGoalCreate,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    """Crée un objectif d'épargne"""
    try:
        return _goal_response(SavingsGoalService(db).create_goal(user, request), status_code=201)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Erreur lors de la création de l'objectif: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@router.get("")
async def list_goals(
    status: Optional[GoalStatus] = None,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    """
    Objectifs d'épargne de l'utilisateur, optionnellement filtrés par statut
    """
    try:
        goals = SavingsGoalService(db).list_goals(user, status)
        return JSONResponse([SavingsGoal.model_validate(g).to_json() for g in goals])
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

@router.get("/{goal_id}")
async def get_goal(goal_id: int, user: UserModel = Depends(current_member), db: Session = Depends(get_db)):
    try:
        return _goal_response(SavingsGoalService(db).get_goal(user, goal_id))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

@router.put("/{goal_id}")
async def update_goal(
    goal_id: int,
    request: SavingsGoalUpdate,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    try:
        return _goal_response(SavingsGoalService(db).update_goal(user, goal_id, request))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

@router.post("/{goal_id}/contribute")
async def contribute(
    goal_id: int,
    request: ContributionRequest,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    """
    Ajoute un versement ; l'objectif passe à COMPLETED quand la cible est atteinte
    """
    try:
        return _goal_response(SavingsGoalService(db).contribute(user, goal_id, request.amount))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

@router.delete("/{goal_id}")
async def delete_goal(goal_id: int, user: UserModel = Depends(current_member), db: Session = Depends(get_db)):
    try:
        SavingsGoalService(db).delete_goal(user, goal_id)
        return JSONResponse({
            "success": True,
            "message": "Objectif d'épargne supprimé avec succès"
        })
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
