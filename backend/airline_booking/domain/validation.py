"""
Passenger field validation.

Schema parsing only guarantees shapes; these rules decide whether a passenger
record is acceptable. Errors are collected rather than raised so a booking
request can report every problem of every passenger at once.
"""

import re
from datetime import date
from typing import Any, Mapping

NAME_PATTERN = re.compile(r"^[A-Za-z\s'\-]+$")
PASSPORT_PATTERN = re.compile(r"^[A-Z0-9]{6,20}$")
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]+$")
GENDERS = ("Male", "Female", "Other")
MAX_NAME_LENGTH = 50
MAX_AGE_YEARS = 120


def _parse_date(value: Any):
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            return None
    return None


def _age_on(born: date, today: date) -> int:
    years = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        years -= 1
    return years


def _check_name(label: str, value: Any, errors: list[str]) -> None:
    if not isinstance(value, str) or not value.strip():
        errors.append(f"{label} is required")
    elif len(value) > MAX_NAME_LENGTH:
        errors.append(f"{label} must be at most {MAX_NAME_LENGTH} characters")
    elif not NAME_PATTERN.match(value):
        errors.append(f"{label} can only contain letters, spaces, hyphens, and apostrophes")


def validate_passenger(data: Mapping[str, Any], today: date) -> list[str]:
    """Return the list of problems with one passenger record; empty means valid."""
    errors: list[str] = []

    _check_name("First name", data.get("first_name"), errors)
    _check_name("Last name", data.get("last_name"), errors)

    raw_dob = data.get("date_of_birth")
    if raw_dob in (None, ""):
        errors.append("Date of birth is required")
    else:
        born = _parse_date(raw_dob)
        if born is None:
            errors.append("Date of birth must be a valid ISO date")
        elif born > today:
            errors.append("Date of birth cannot be in the future")
        elif _age_on(born, today) > MAX_AGE_YEARS:
            errors.append(f"Age cannot exceed {MAX_AGE_YEARS} years")

    passport = data.get("passport_no")
    if not isinstance(passport, str) or not passport:
        errors.append("Passport number is required")
    elif not PASSPORT_PATTERN.match(passport):
        errors.append("Passport number must be 6-20 uppercase letters and digits")

    nationality = data.get("nationality")
    if not isinstance(nationality, str) or not nationality.strip():
        errors.append("Nationality is required")
    elif len(nationality) > MAX_NAME_LENGTH:
        errors.append(f"Nationality must be at most {MAX_NAME_LENGTH} characters")

    gender = data.get("gender")
    if gender is not None and gender not in GENDERS:
        errors.append("Gender must be Male, Female, or Other")

    phone = data.get("phone")
    if phone is not None and phone != "" and not PHONE_PATTERN.match(phone):
        errors.append("Phone number format is invalid")

    return errors
