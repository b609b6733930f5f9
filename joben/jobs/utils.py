from django.db import IntegrityError

from .constants import SALARY_CURRENCY

# SQLSTATE raised by PostgreSQL for unique_violation.
UNIQUE_VIOLATION = "23505"
_SQLITE_UNIQUE_ERRORS = {"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"}


def is_unique_violation(exc: Exception) -> bool:
    """True when ``exc`` is the database reporting a duplicate key.

    Django re-raises driver errors as ``IntegrityError`` with the driver
    exception chained as ``__cause__``.
    """
    if not isinstance(exc, IntegrityError):
        return False
    cause = exc.__cause__
    code = getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION
    errorname = getattr(cause, "sqlite_errorname", None)
    if errorname:
        return errorname in _SQLITE_UNIQUE_ERRORS
    return "unique constraint" in str(exc).lower()


def _fmt_amount(value: int) -> str:
    return f"{value:,}".replace(",", ".")


def format_salary(salary_min: int | None, salary_max: int | None, currency: str = SALARY_CURRENCY) -> str:
    if not salary_min and not salary_max:
        return "Salary not disclosed"
    if salary_min and salary_max:
        return f"{_fmt_amount(salary_min)} - {_fmt_amount(salary_max)} {currency}"
    if salary_min:
        return f"From {_fmt_amount(salary_min)} {currency}"
    return f"Up to {_fmt_amount(salary_max)} {currency}"


def salary_description_line(salary_min: int, salary_max: int) -> str:
    return f"\n\n---\n\nSalary: {format_salary(salary_min, salary_max)} net/month"


def truncate_text(text: str | None, max_length: int) -> str:
    text = text or ""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."
