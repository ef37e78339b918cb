from datetime import date
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from database.database import get_db
from database.models import UserModel
from models.transaction import Transaction, TransactionCreate, TransactionUpdate
from routers.dependencies import current_member
from services.exceptions import NotFoundError
from services.transaction_service import TransactionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


def _serialize(transactions) -> List[dict]:
    return [Transaction.model_validate(t).to_json() for t in transactions]

def _bad_request(action: str, e: Exception) -> HTTPException:
    logger.error(f"Erreur lors de {action}: {str(e)}")
    return HTTPException(status_code=400, detail=f"Erreur: {str(e)}")


@router.post("")
async def create_transaction(
    request: TransactionCreate,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    """
    Crée une transaction (revenu ou dépense) pour l'utilisateur connecté
    """
    try:
        transaction = TransactionService(db).create_transaction(user, request)
        return JSONResponse(Transaction.model_validate(transaction).to_json(), status_code=201)
    except Exception as e:
        raise _bad_request("la création de la transaction", e)

@router.get("")
async def get_transactions(user: UserModel = Depends(current_member), db: Session = Depends(get_db)):
    """Toutes les transactions de l'utilisateur, les plus récentes d'abord"""
    try:
        return JSONResponse(_serialize(TransactionService(db).get_transactions(user)))
    except Exception as e:
        raise _bad_request("la récupération des transactions", e)

@router.get("/type/{transaction_type}")
async def get_transactions_by_type(
    transaction_type: str,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    try:
        return JSONResponse(_serialize(TransactionService(db).get_by_type(user, transaction_type)))
    except Exception as e:
        raise _bad_request("la récupération par type", e)

@router.get("/category/{category}")
async def get_transactions_by_category(
    category: str,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    try:
        return JSONResponse(_serialize(TransactionService(db).get_by_category(user, category)))
    except Exception as e:
        raise _bad_request("la récupération par catégorie", e)

@router.get("/date-range")
async def get_transactions_by_date_range(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    """
    Transactions entre deux dates incluses (chaque borne est optionnelle)
    """
    try:
        return JSONResponse(_serialize(TransactionService(db).get_by_date_range(user, start_date, end_date)))
    except Exception as e:
        raise _bad_request("la récupération par période", e)

@router.get("/summary")
async def get_financial_summary(user: UserModel = Depends(current_member), db: Session = Depends(get_db)):
    """Revenus totaux, dépenses totales, solde et nombre de transactions"""
    try:
        return JSONResponse(TransactionService(db).get_summary(user))
    except Exception as e:
        raise _bad_request("le calcul du résumé", e)

@router.get("/summary/{year}/{month}")
async def get_monthly_summary(
    year: int,
    month: int,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    try:
        return JSONResponse(TransactionService(db).get_monthly_summary(user, year, month))
    except Exception as e:
        raise _bad_request("le calcul du résumé mensuel", e)

@router.get("/breakdown/expenses")
async def get_expense_breakdown(user: UserModel = Depends(current_member), db: Session = Depends(get_db)):
    try:
        return JSONResponse(TransactionService(db).get_expense_breakdown(user))
    except Exception as e:
        raise _bad_request("le calcul de la répartition des dépenses", e)

@router.get("/breakdown/income")
async def get_income_breakdown(user: UserModel = Depends(current_member), db: Session = Depends(get_db)):
    try:
        return JSONResponse(TransactionService(db).get_income_breakdown(user))
    except Exception as e:
        raise _bad_request("le calcul de la répartition des revenus", e)

@router.get("/recent")
async def get_recent_transactions(
    limit: int = 10,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    try:
        return JSONResponse(_serialize(TransactionService(db).get_recent(user, limit)))
    except Exception as e:
        raise _bad_request("la récupération des transactions récentes", e)

@router.get("/statistics")
async def get_transaction_statistics(user: UserModel = Depends(current_member), db: Session = Depends(get_db)):
    try:
        return JSONResponse(TransactionService(db).get_statistics(user))
    except Exception as e:
        raise _bad_request("le calcul des statistiques", e)

@router.get("/trends")
async def get_monthly_trends(
    months: int = 6,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    """
    Revenus / dépenses / net des N derniers mois, du plus ancien au plus récent
    """
    try:
        return JSONResponse(TransactionService(db).get_trends(user, months))
    except Exception as e:
        raise _bad_request("le calcul des tendances", e)

@router.get("/{transaction_id}")
async def get_transaction(
    transaction_id: int,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    try:
        transaction = TransactionService(db).get_transaction(user, transaction_id)
        return JSONResponse(Transaction.model_validate(transaction).to_json())
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise _bad_request("la récupération de la transaction", e)

@router.put("/{transaction_id}")
async def update_transaction(
    transaction_id: int,
    request: TransactionUpdate,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    """
    Met à jour une transaction (seuls les champs fournis sont modifiés)
    """
    try:
        transaction = TransactionService(db).update_transaction(user, transaction_id, request)
        return JSONResponse(Transaction.model_validate(transaction).to_json())
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise _bad_request("la mise à jour de la transaction", e)

@router.delete("/{transaction_id}")
async def delete_transaction(
    transaction_id: int,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    """Supprime une transaction"""
    try:
        TransactionService(db).delete_transaction(user, transaction_id)
        return JSONResponse({
            "success": True,
            "message": "Transaction supprimée avec succès"
        })
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise _bad_request("la suppression de la transaction", e)
