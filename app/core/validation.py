"""Schema-driven input validation that classifies input instead of raising."""

import json
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from fastapi import Request
from pydantic import BaseModel, ValidationError

from app.core.errors import ValidationFailedError

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class ValidationResult(Generic[ModelT]):
    """Either ok with the coerced model in `data`, or not ok with itemized `issues`."""

    ok: bool
    data: ModelT | None = None
    issues: list[dict[str, str]] = field(default_factory=list)

    def unwrap(self) -> ModelT:
        """Return the validated model or raise ValidationFailedError with the issues."""
        if not self.ok or self.data is None:
            raise ValidationFailedError(self.issues)
        return self.data


def format_validation_error(exc: ValidationError) -> list[dict[str, str]]:
    """Turn a Pydantic ValidationError into [{field, message}, ...]."""
    details: list[dict[str, str]] = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        if err.get("type") == "value_error" and "error" in err.get("ctx", {}):
            message = str(err["ctx"]["error"])
        else:
            message = err.get("msg", "Invalid value")
        details.append({"field": loc or "body", "message": message})
    return details


def validate(schema: type[ModelT], data: Any) -> ValidationResult[ModelT]:
    """Validate `data` against `schema`; never raises for bad input."""
    try:
        return ValidationResult(ok=True, data=schema.model_validate(data))
    except ValidationError as e:
        return ValidationResult(ok=False, issues=format_validation_error(e))


def invalid_body() -> ValidationResult[Any]:
    """Result for a request body that is not parseable JSON."""
    return ValidationResult(
        ok=False, issues=[{"field": "body", "message": "Request body must be valid JSON"}]
    )


async def validate_body(request: Request, schema: type[ModelT]) -> ValidationResult[ModelT]:
    """Parse the JSON request body and validate it; an empty body counts as {}."""
    raw = await request.body()
    if not raw.strip():
        return validate(schema, {})
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError):
        return invalid_body()
    return validate(schema, data)
