# enrollment_portal/utils/validators.py
"""Enrollment form rules.

Every rule runs; failures are collected into a ``{field: message}`` map so a
form can highlight all invalid fields at once.
"""
import re
from datetime import date, datetime
from typing import Any, Dict, NamedTuple, Optional

from ..core.security_utils import sanitize_input

LRN_RE = re.compile(r"^\d{12}$")
PHONE_RE = re.compile(r"^(09\d{9}|639\d{9}|\+639\d{9})$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NAME_RE = re.compile(r"^[a-zA-Z\s\-'ñÑ]+$")

MIN_AGE = 5
MAX_AGE = 25
# Minimum age on the submission date, computed from birthDate
MIN_AGE_BY_TYPE = {"junior": 10, "senior": 14}

JUNIOR_DOCUMENT_FLAGS = ("hasForm10", "hasPSA", "hasBaptismal", "hasGoodMoral")
SENIOR_DOCUMENT_FLAGS = (
    "hasForm9",
    "hasForm10",
    "hasPSA",
    "hasMoral",
    "hasBaptismal",
    "hasCompletionCert",
    "hasESC",
    "hasNCAE",
)


class ValidationResult(NamedTuple):
    is_valid: bool
    errors: Dict[str, str]
    data: Dict[str, Any]


def validate_lrn(lrn: Any) -> bool:
    return isinstance(lrn, str) and bool(LRN_RE.match(lrn))


def validate_phone_number(phone: Any) -> bool:
    """Philippine mobile numbers: 09XX-XXX-XXXX, +639XXXXXXXXX, 639XXXXXXXXX"""
    if not isinstance(phone, str):
        return False
    return bool(PHONE_RE.match(re.sub(r"[\s-]", "", phone)))


def validate_email(email: Any) -> bool:
    return isinstance(email, str) and bool(EMAIL_RE.match(email))


def validate_age(age: int) -> bool:
    return MIN_AGE <= age <= MAX_AGE


def validate_general_average(average: float) -> bool:
    return 60 <= average <= 100


def validate_name(name: Any) -> bool:
    return isinstance(name, str) and bool(NAME_RE.match(name)) and len(name.strip()) >= 2


def parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def validate_date(value: Any, today: Optional[date] = None) -> bool:
    """Parseable and not in the future."""
    parsed = parse_date(value)
    return parsed is not None and parsed <= (today or date.today())


def calculate_age(birth_date: date, today: Optional[date] = None) -> int:
    today = today or date.today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def format_phone_number(phone: str) -> str:
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 11 and digits.startswith("09"):
        return f"{digits[:4]}-{digits[4:7]}-{digits[7:]}"
    return phone


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


def _as_number(value: Any, cast):
    try:
        return cast(value)
    except (TypeError, ValueError):
        return None


def _length_between(value: Any, low: int, high: int = None) -> bool:
    if not isinstance(value, str):
        return False
    return len(value) >= low and (high is None or len(value) <= high)


def _validate_base(data: Dict[str, Any], errors: Dict[str, str], today: date):
    if not validate_lrn(data.get("lrn")):
        errors["lrn"] = "LRN must be exactly 12 digits"

    if not validate_name(data.get("fullName")):
        errors["fullName"] = "Please enter a valid name"

    if data.get("userEmail") and not validate_email(data["userEmail"]):
        errors["userEmail"] = "Please enter a valid email address"

    if not validate_phone_number(data.get("contactNumber")):
        errors["contactNumber"] = "Please enter a valid Philippine mobile number"

    if data.get("age") is not None:
        age = _as_number(data["age"], int)
        if age is None or not validate_age(age):
            errors["age"] = f"Age must be between {MIN_AGE} and {MAX_AGE}"

    if not validate_date(data.get("birthDate"), today):
        errors["birthDate"] = "Please enter a valid birth date"

    if data.get("generalAverage") is not None:
        average = _as_number(data["generalAverage"], float)
        if average is None or not validate_general_average(average):
            errors["generalAverage"] = "General average must be between 60 and 100"

    if not _length_between(data.get("address"), 10, 200):
        errors["address"] = "Address must be between 10 and 200 characters"

    if not _length_between(data.get("religion"), 3, 50):
        errors["religion"] = "Religion must be between 3 and 50 characters"

    if not _length_between(data.get("guardianName"), 3):
        errors["guardianName"] = "Guardian name is required"

    if not _length_between(data.get("guardianRelation"), 2):
        errors["guardianRelation"] = "Guardian relationship is required"


def _validate_minimum_age(data: Dict[str, Any], errors: Dict[str, str], today: date, form_type: str):
    if "birthDate" in errors or "age" in errors:
        return
    birth_date = parse_date(data.get("birthDate"))
    minimum = MIN_AGE_BY_TYPE[form_type]
    if calculate_age(birth_date, today) < minimum:
        level = "junior high" if form_type == "junior" else "senior high"
        errors["age"] = f"Student must be at least {minimum} years old for {level}"


def validate_junior_high_form(data: Dict[str, Any], today: Optional[date] = None) -> Dict[str, str]:
    today = today or date.today()
    errors: Dict[str, str] = {}
    _validate_base(data, errors, today)
    _validate_minimum_age(data, errors, today, "junior")
    if not any(_flag(data.get(flag)) for flag in JUNIOR_DOCUMENT_FLAGS):
        errors["documents"] = "Please provide at least one document"
    return errors


def validate_senior_high_form(data: Dict[str, Any], today: Optional[date] = None) -> Dict[str, str]:
    today = today or date.today()
    errors: Dict[str, str] = {}
    _validate_base(data, errors, today)
    _validate_minimum_age(data, errors, today, "senior")

    if not data.get("strand"):
        errors["strand"] = "Please select academic strand"

    if not data.get("semester"):
        errors["semester"] = "Please select semester"

    birth_place = data.get("birthPlace")
    if not isinstance(birth_place, str) or len(birth_place.strip()) < 3:
        errors["birthPlace"] = "Please enter birth place"

    if not validate_name(data.get("fatherName")):
        errors["fatherName"] = "Please enter father's name"

    if not validate_name(data.get("motherName")):
        errors["motherName"] = "Please enter mother's name"

    if not any(_flag(data.get(flag)) for flag in SENIOR_DOCUMENT_FLAGS):
        errors["documents"] = "Please provide at least one document"
    return errors


def validate_enrollment_form(data: Dict[str, Any], today: Optional[date] = None) -> ValidationResult:
    """Sanitize string inputs, then run the rules for the form's ``type``.

    Forms without a recognised type are checked against the junior high rules.
    A valid local mobile number is stored in the 0917-123-4567 form.
    """
    sanitized = {
        key: sanitize_input(value) if isinstance(value, str) else value
        for key, value in data.items()
    }
    if sanitized.get("type") == "senior":
        errors = validate_senior_high_form(sanitized, today)
    else:
        errors = validate_junior_high_form(sanitized, today)
    if "contactNumber" not in errors:
        sanitized["contactNumber"] = format_phone_number(sanitized["contactNumber"])
    return ValidationResult(is_valid=not errors, errors=errors, data=sanitized)
