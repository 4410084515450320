"""
Input validation and sanitization utilities.
Provides decorators and functions for validating and cleaning input data.
"""

from datetime import date
from typing import Any, Callable, Optional
import functools

import pydantic

from shared_utils.error_handler import ValidationError
from shared_utils.logging_utils import get_scoped_logger
from shared_utils.constants import Defaults, LogScope


class InputValidator:
    """Utility class for input validation."""

    @staticmethod
    def validate_non_empty_string(value: str, field_name: str) -> str:
        """Validate non-empty string.

        Args:
            value: String to validate
            field_name: Name of field for error messages

        Returns:
            Stripped string

        Raises:
            ValidationError: If validation fails
        """
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be a string")

        if not value or not value.strip():
            raise ValidationError(f"{field_name} cannot be empty")

        return value.strip()

    @staticmethod
    def validate_score(
        value: Any,
        field_name: str,
        minimum: int = Defaults.MIN_SCORE,
        maximum: int = Defaults.MAX_SCORE,
    ) -> int:
        """Validate a 1..5 rating."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{field_name} must be an integer")
        if value < minimum or value > maximum:
            raise ValidationError(f"{field_name} must be between {minimum} and {maximum}")
        return value

    @staticmethod
    def validate_iso_date(value: Any, field_name: str) -> date:
        """Parse a ``YYYY-MM-DD`` string (or pass through a date).

        Raises:
            ValidationError: If the value is empty or not an ISO date
        """
        if isinstance(value, date):
            return value
        text = InputValidator.validate_non_empty_string(value, field_name)
        try:
            return date.fromisoformat(text)
        except ValueError:
            raise ValidationError(
                f"{field_name} must be an ISO date (YYYY-MM-DD)",
                context={"value": text},
            )


def format_validation_errors(exc: pydantic.ValidationError) -> str:
    """Render pydantic errors as ``field: message`` pairs joined by ``; ``."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
        msg = err.get("msg", "invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid input"


def parse_model(model: Any, payload: Any, context: Optional[dict] = None) -> Any:
    """Validate ``payload`` into ``model`` raising the app ``ValidationError``.

    ``model`` may be a pydantic model class or a ``TypeAdapter``.
    """
    try:
        if isinstance(model, pydantic.TypeAdapter):
            return model.validate_python(payload)
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError(format_validation_errors(e), context=context) from e


def validate_input(
    validation_rules: dict[str, Callable],
    scope: str = LogScope.VALIDATION
):
    """Decorator to validate keyword arguments against rules.

    Args:
        validation_rules: Dict mapping param names to validation functions
        scope: Log scope

    Example:
        @validate_input({
            'name': lambda x: InputValidator.validate_non_empty_string(x, 'name'),
        })
        def create_meeting(*, name, date):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            logger = get_scoped_logger(scope)

            try:
                for param_name, validator in validation_rules.items():
                    if param_name in kwargs:
                        kwargs[param_name] = validator(kwargs[param_name])

                logger.debug(
                    f"{func.__name__}_validation_passed",
                    func_name=func.__name__,
                    validated_params=list(validation_rules.keys())
                )

                return func(*args, **kwargs)

            except ValidationError as e:
                logger.warning(
                    f"{func.__name__}_validation_failed",
                    func_name=func.__name__,
                    error=str(e)
                )
                raise

        return wrapper
    return decorator
