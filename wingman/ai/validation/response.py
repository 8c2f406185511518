"""Turn raw model text into a validated pydantic model."""

import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from wingman.ai.validation.repair import JsonRepairer
from wingman.exceptions import ResponseValidationError

logger = logging.getLogger("repair")

ModelT = TypeVar("ModelT", bound=BaseModel)

Normalizer = Callable[[dict[str, Any]], dict[str, Any]]


def format_validation_errors(exc: ValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors into ``[{"path": "a.b.0", "message": ...}]``."""
    errors = []
    for err in exc.errors():
        path = ".".join(str(part) for part in err.get("loc", ())) or "(root)"
        errors.append({"path": path, "message": err.get("msg", "Invalid value")})
    return errors


class ResponseRepairer(Generic[ModelT]):
    """Repair, normalize, then validate model output against ``model_cls``.

    Raises:
        ResponseFormatError: No repair stage produced a JSON object
        ResponseValidationError: The object does not match the schema; lists
            every failing field path
    """

    def __init__(
        self,
        model_cls: type[ModelT],
        normalizer: Normalizer | None = None,
        shape_pattern: str | None = None,
    ) -> None:
        self.model_cls = model_cls
        self._normalizer = normalizer
        self._json = JsonRepairer(shape_pattern=shape_pattern)

    def parse(self, raw_text: str) -> ModelT:
        result = self._json.repair(raw_text)
        if result.stages:
            logger.info(
                "Model output repaired",
                extra={
                    "service": "repair",
                    "repair_stages": result.stages,
                    "metadata": {"schema": self.model_cls.__name__},
                },
            )

        data = self._normalizer(result.data) if self._normalizer else result.data
        try:
            return self.model_cls.model_validate(data)
        except ValidationError as exc:
            errors = format_validation_errors(exc)
            logger.warning(
                "Model output failed schema validation",
                extra={
                    "service": "repair",
                    "metadata": {"schema": self.model_cls.__name__, "errors": errors},
                },
            )
            raise ResponseValidationError(errors) from exc
