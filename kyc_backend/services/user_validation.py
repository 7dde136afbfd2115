"""
Validation of user registration payloads.

Each field has an explicit rule function returning an error message or None.
`validate_user_payload` runs every rule and collects all violations in field
order; within a field only the first failing check is reported.
"""

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional, Tuple

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel

TELEPHONE_PATTERN = re.compile(r'^[0-9]{7,15}$')
ALPHANUMERIC_PATTERN = re.compile(r'^[A-Za-z0-9]+$')

FieldRule = Callable[[str, Any], Optional[str]]


class Violation(BaseModel):
    field: str
    message: str


class ValidationResult(BaseModel):
    valid: bool
    violations: List[Violation] = []


def _string(name: str, value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return f'"{name}" must be a string'
    if value == "":
        return f'"{name}" is not allowed to be empty'
    return None


def _bounded_string(min_length: int, max_length: int) -> FieldRule:
    def rule(name: str, value: Any) -> Optional[str]:
        error = _string(name, value)
        if error:
            return error
        if len(value) < min_length:
            return f'"{name}" length must be at least {min_length} characters long'
        if len(value) > max_length:
            return f'"{name}" length must be less than or equal to {max_length} characters long'
        return None
    return rule


def validate_email_field(name: str, value: Any) -> Optional[str]:
    error = _string(name, value)
    if error:
        return error
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return f'"{name}" must be a valid email'
    return None


def validate_telephone(name: str, value: Any) -> Optional[str]:
    error = _string(name, value)
    if error:
        return error
    if not TELEPHONE_PATTERN.match(value):
        return f'"{name}" must contain between 7 and 15 digits'
    return None


def validate_id_number(name: str, value: Any) -> Optional[str]:
    error = _string(name, value)
    if error:
        return error
    if not ALPHANUMERIC_PATTERN.match(value):
        return f'"{name}" must only contain alpha-numeric characters'
    return _bounded_string(5, 20)(name, value)


def _to_decimal(value: Any) -> Optional[Decimal]:
    # bool is an int subclass; True must not pass as 1.
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float)):
        number = Decimal(str(value))
    elif isinstance(value, str) and value.strip():
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            return None
    else:
        return None
    # Must also survive the float conversion used when the record is stored.
    if not number.is_finite() or not math.isfinite(float(number)):
        return None
    return number


def validate_monthly_earns(name: str, value: Any) -> Optional[str]:
    number = _to_decimal(value)
    if number is None:
        return f'"{name}" must be a number'
    if number <= 0:
        return f'"{name}" must be a positive number'
    if number.normalize().as_tuple().exponent < -2:
        return f'"{name}" must have no more than 2 decimal places'
    return None


USER_SCHEMA: List[Tuple[str, FieldRule]] = [
    ("firstName", _bounded_string(2, 50)),
    ("lastName", _bounded_string(2, 50)),
    ("email", validate_email_field),
    ("phoneCountryCode", _string),
    ("telephone", validate_telephone),
    ("idType", _string),
    ("idNumber", validate_id_number),
    ("department", _bounded_string(2, 50)),
    ("municipality", _bounded_string(2, 50)),
    ("direction", _bounded_string(5, 255)),
    ("monthlyEarns", validate_monthly_earns),
]

USER_FIELDS = [name for name, _ in USER_SCHEMA]


def validate_user_payload(payload: Any) -> ValidationResult:
    """Checks every schema field of `payload` and returns all violations found."""
    if not isinstance(payload, dict):
        return ValidationResult(valid=False, violations=[Violation(field="payload", message='"payload" must be an object')])

    violations = []
    for name, rule in USER_SCHEMA:
        value = payload.get(name)
        if value is None:
            violations.append(Violation(field=name, message=f'"{name}" is required'))
            continue
        message = rule(name, value)
        if message:
            violations.append(Violation(field=name, message=message))

    return ValidationResult(valid=not violations, violations=violations)


def cleaned_user_fields(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Keeps only the schema fields of an already validated payload, with monthlyEarns
    normalized to a float.
    """
    fields = {name: payload[name] for name in USER_FIELDS}
    fields["monthlyEarns"] = float(_to_decimal(payload["monthlyEarns"]))
    return fields
