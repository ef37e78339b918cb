from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from database.database import get_db
from database.models import UserModel
from models.budget import Budget, BudgetCreate, BudgetStatus, BudgetUpdate
from routers.dependencies import current_member
from services.budget_service import BudgetService
from services.exceptions import NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/budgets", tags=["budgets"])


# Budget endpoints
@router.post("")
async def create_budget_endpoint(
    budget: BudgetCreate,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    """
    Crée ou met à jour un budget pour une catégorie
    """
    try:
        db_budget = BudgetService(db).create_or_update(user, budget)
        return JSONResponse({
            "success": True,
            "budget": Budget.model_validate(db_budget).to_json()
        })
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Erreur lors de l'enregistrement du budget: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@router.get("")
async def get_budgets_endpoint(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = None,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    """
    Récupère tous les budgets, optionnellement filtrés par mois/année
    """
    try:
        budgets = BudgetService(db).list_budgets(user, month, year)
        return JSONResponse({
            "success": True,
            "budgets": [Budget.model_validate(b).to_json() for b in budgets]
        })
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

@router.get("/summary")
async def get_budgets_summary(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = None,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    """
    Récupère un résumé des budgets avec les dépenses réelles et le reste
    """
    try:
        summary = BudgetService(db).summary(user, month, year)
        summary['budgets'] = [BudgetStatus.model_validate(s).to_json() for s in summary['budgets']]
        return JSONResponse({"success": True, **summary})
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

@router.put("/{budget_id}")
async def update_budget_endpoint(
    budget_id: int,
    budget_update: BudgetUpdate,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    """
    Met à jour un budget
    """
    try:
        db_budget = BudgetService(db).update_budget(user, budget_id, budget_update)
        return JSONResponse({
            "success": True,
            "budget": Budget.model_validate(db_budget).to_json()
        })
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

@router.delete("/{budget_id}")
async def delete_budget_endpoint(
    budget_id: int,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    """
    Supprime un budget
    """
    try:
        BudgetService(db).delete_budget(user, budget_id)
        return JSONResponse({
            "success": True,
            "message": "Budget supprimé avec succès"
        })
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
