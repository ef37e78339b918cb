import calendar
from datetime import date
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from database.database import get_db
from database.models import UserModel
from routers.dependencies import current_member
from services.exceptions import FileSizeLimitExceededError, NotFoundError
from services.export_service import (
    MAX_RANGE_DAYS, ExportService, export_preview, validate_export_request
)

logger = logging.getLogger(__name__)

# Rendu PDF/Excel synchrone : les handlers sont des fonctions simples, exécutées dans le threadpool
router = APIRouter(prefix="/api/export", tags=["export"])

PDF_MEDIA_TYPE = "application/pdf"
CSV_MEDIA_TYPE = "text/csv"
EXCEL_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def dated_filename(prefix: str, extension: str, start_date: Optional[date] = None, end_date: Optional[date] = None) -> str:
    """
    'prefix-YYYY-MM-DD-to-YYYY-MM-DD.ext' pour une période fermée, sinon 'prefix-<aujourd'hui>.ext'
    """
    if start_date and end_date:
        return f"{prefix}-{start_date.isoformat()}-to-{end_date.isoformat()}.{extension}"
    return f"{prefix}-{date.today().isoformat()}.{extension}"

def _attachment(content, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )

def _export_error(action: str, e: Exception) -> HTTPException:
    if isinstance(e, FileSizeLimitExceededError):
        return HTTPException(status_code=413, detail=str(e))
    if isinstance(e, (ValueError, NotFoundError)):
        return HTTPException(status_code=400, detail=str(e))
    logger.error(f"Erreur lors de l'export {action}: {str(e)}")
    return HTTPException(status_code=500, detail=f"Erreur lors de l'export {action}: {str(e)}")


@router.get("/transactions/pdf")
def export_transactions_pdf(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    """
    Rapport PDF des transactions sur une période (toutes les transactions par défaut)
    """
    try:
        content = ExportService(db).export_transactions_to_pdf(user.username, start_date, end_date)
        return _attachment(content, PDF_MEDIA_TYPE, dated_filename("transactions", "pdf", start_date, end_date))
    except HTTPException:
        raise
    except Exception as e:
        raise _export_error("PDF des transactions", e)

@router.get("/transactions/csv")
def export_transactions_csv(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    try:
        content = ExportService(db).export_transactions_to_csv(user.username, start_date, end_date)
        return _attachment(content, CSV_MEDIA_TYPE, dated_filename("transactions", "csv", start_date, end_date))
    except HTTPException:
        raise
    except Exception as e:
        raise _export_error("CSV des transactions", e)

@router.get("/analytics/pdf")
def export_analytics_pdf(user: UserModel = Depends(current_member), db: Session = Depends(get_db)):
    try:
        content = ExportService(db).export_analytics_to_pdf(user.username)
        return _attachment(content, PDF_MEDIA_TYPE, dated_filename("financial-analytics", "pdf"))
    except HTTPException:
        raise
    except Exception as e:
        raise _export_error("PDF analytique", e)

@router.get("/comprehensive")
def export_comprehensive_report(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    """
    Rapport complet (période limitée à 5 ans)
    """
    try:
        if start_date and end_date:
            if start_date > end_date:
                raise HTTPException(status_code=400, detail="La date de début doit être antérieure ou égale à la date de fin")
            if (end_date - start_date).days > MAX_RANGE_DAYS:
                raise HTTPException(status_code=400, detail="La période ne peut pas dépasser 5 ans")
        content = ExportService(db).generate_comprehensive_report(user.username, start_date, end_date)
        filename = dated_filename("comprehensive-financial-report", "pdf", start_date, end_date)
        return _attachment(content, PDF_MEDIA_TYPE, filename)
    except HTTPException:
        raise
    except Exception as e:
        raise _export_error("du rapport complet", e)

@router.get("/excel")
def export_excel(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    try:
        content = ExportService(db).export_to_excel(user.username, start_date, end_date)
        return _attachment(content, EXCEL_MEDIA_TYPE, dated_filename("financial-data", "xlsx", start_date, end_date))
    except HTTPException:
        raise
    except Exception as e:
        raise _export_error("Excel", e)

@router.get("/budget")
def export_budget_report(
    month: Optional[int] = None,
    year: Optional[int] = None,
    user: UserModel = Depends(current_member),
    db: Session = Depends(get_db)
):
    """
    Rapport de performance des budgets (mois courant par défaut)
    """
    try:
        today = date.today()
        if month is not None and (month < 1 or month > 12):
            raise HTTPException(status_code=400, detail="Le mois doit être compris entre 1 et 12")
        if year is not None and (year < 2000 or year > today.year + 1):
            raise HTTPException(status_code=400, detail=f"L'année doit être comprise entre 2000 et {today.year + 1}")
        if month is None:
            month = today.month
        if year is None:
            year = today.year

        content = ExportService(db).generate_budget_report(user.username, month, year)
        filename = f"budget-report-{calendar.month_name[month].lower()}-{year}.pdf"
        return _attachment(content, PDF_MEDIA_TYPE, filename)
    except HTTPException:
        raise
    except Exception as e:
        raise _export_error("du rapport de budget", e)

@router.get("/savings-goals")
def export_savings_goals_report(user: UserModel = Depends(current_member), db: Session = Depends(get_db)):
    try:
        content = ExportService(db).generate_savings_goals_report(user.username)
        return _attachment(content, PDF_MEDIA_TYPE, dated_filename("savings-goals-report", "pdf"))
    except HTTPException:
        raise
    except Exception as e:
        raise _export_error("des objectifs d'épargne", e)

@router.get("/preview")
def preview_export(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user: UserModel = Depends(current_member)
):
    """
    Aperçu d'un export : période, utilisateur et taille estimée
    """
    try:
        return JSONResponse(export_preview(user.username, start_date, end_date))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Erreur lors de l'aperçu de l'export: {str(e)}")

@router.post("/validate")
def validate_export(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    export_format: Optional[str] = Query(None, alias="format"),
    user: UserModel = Depends(current_member)
):
    """
    Valide une demande d'export : {valid, errors, warnings} et estimations
    """
    try:
        return JSONResponse(validate_export_request(start_date, end_date, export_format))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Erreur lors de la validation de l'export: {str(e)}")
