"""
Synchronous field validation.

A field carries at most one required rule and any number of validation rules.
Both are evaluated on every value change; the results are plain message lists
so that errors stay data rather than exceptions.
"""
from dataclasses import dataclass
import logging
from typing import Any, Callable, List, NamedTuple, Optional, Sequence, Union

logger = logging.getLogger(__name__)


def is_filled(value: Any) -> bool:
    """Default required check: rejects None, blank strings and empty containers."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ''
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return True


@dataclass(frozen=True)
class RequiredRule:
    """Required check. ``check(value)`` returning falsy yields ``message``."""
    message: str
    check: Callable[[Any], Any] = is_filled


@dataclass(frozen=True)
class Validation:
    """Validation rule. ``handler(value, formatted_value)`` returning falsy yields ``message``."""
    handler: Callable[[Any, Any], Any]
    message: str = ''


RequiredLike = Union[RequiredRule, str, None]


class ValidationErrors(NamedTuple):
    required_errors: List[str]
    validations_errors: List[str]


def as_required_rule(required: RequiredLike) -> Optional[RequiredRule]:
    """Normalize the ``required`` shorthand (a bare message string)."""
    if required is None or isinstance(required, RequiredRule):
        return required
    if isinstance(required, str):
        return RequiredRule(message=required)
    raise ValueError(f"Unsupported required rule: {required!r}")


def _passes(rule_name: str, fn: Callable[..., Any], *args: Any) -> bool:
    try:
        return bool(fn(*args))
    except Exception as e:
        logger.warning(f"{rule_name} raised, treating as failed: {e}")
        return False


def get_field_validations_errors(
    value: Any,
    formatted_value: Any,
    required: RequiredLike = None,
    validations: Optional[Sequence[Validation]] = None,
) -> ValidationErrors:
    """Evaluate the required rule and every validation rule.

    Validation rules still run when the required check fails, so both lists
    can be non-empty at once.

    Args:
        value: Raw field value (passed to the required check).
        formatted_value: Output of the field's formatter.
        required: Optional required rule or bare message string.
        validations: Validation rules, evaluated in order.

    Returns:
        ValidationErrors(required_errors, validations_errors)
    """
    rule = as_required_rule(required)
    required_errors: List[str] = []
    if rule is not None and not _passes('Required check', rule.check, value):
        required_errors.append(rule.message)

    validations_errors: List[str] = []
    for validation in validations or ():
        if not _passes('Validation', validation.handler, value, formatted_value):
            validations_errors.append(validation.message)

    return ValidationErrors(required_errors, validations_errors)
