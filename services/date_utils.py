import calendar
from datetime import date
from typing import List, Tuple


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """Premier et dernier jour d'un mois calendaire"""
    if not 1 <= month <= 12:
        raise ValueError(f"Mois invalide: {month} (attendu entre 1 et 12)")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)

def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1

def last_n_months(today: date, count: int) -> List[Tuple[int, int]]:
    """Les `count` derniers mois (mois courant inclus), du plus ancien au plus récent"""
    return [shift_month(today.year, today.month, -offset) for offset in range(count - 1, -1, -1)]

def validate_range(start_date, end_date):
    if start_date is not None and end_date is not None and start_date > end_date:
        raise ValueError("La date de début doit être antérieure ou égale à la date de fin")
