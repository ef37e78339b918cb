from datetime import date
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from database.database import get_db
from database.models import TransactionType, UserModel
from routers.dependencies import current_member
from services.analysis_service import AnalysisService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/health")
async def get_financial_health(user: UserModel = Depends(current_member), db: Session = Depends(get_db)):
    """
    Score de santé financière (0-100), détail des facteurs et recommandations
    """
    try:
        return JSONResponse(AnalysisService(db).financial_health(user))
    except Exception as e:
        logger.error(f"Erreur lors du calcul de la santé financière: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@router.get("/categories")
async def get_category_breakdown(
    transaction_type: TransactionType = Query(TransactionType.EXPENSE, alias="type"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    try:
        breakdown = AnalysisService(db).category_breakdown(user.id, transaction_type, start_date, end_date)
        return JSONResponse(breakdown)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

@router.get("/trends")
async def get_trends(
    months: int = 6,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    try:
        return JSONResponse(AnalysisService(db).monthly_trends(user.id, months))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
