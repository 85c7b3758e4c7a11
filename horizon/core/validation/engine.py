"""
Validation Engine - runs validators and captures structured results.

Validators raise on failure; the engine turns one run into a ValidationResult
that records which stages passed, which failed and which were never reached.
"""

import logging
import time
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ...exceptions import ValidationError, ValidationErrorCode
from .layers import ChainedValidator

logger = logging.getLogger(__name__)


def _stage_name(validator: Any) -> str:
    return getattr(validator, "name", None) or type(validator).__name__


def stages_of(validator: Any) -> list[Any]:
    """The stages a validator runs, in order."""
    if isinstance(validator, ChainedValidator):
        return list(validator.validators)
    return [validator]


def stage_names(validator: Any) -> list[str]:
    return [_stage_name(s) for s in stages_of(validator)]


class ValidationFailure(BaseModel):
    """A single validation failure."""
    code: ValidationErrorCode
    message: str
    stage: str
    height: Optional[int] = None
    details: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def from_error(cls, error: ValidationError, stage: str) -> "ValidationFailure":
        return cls(
            code=error.error_code,
            message=error.message,
            stage=stage,
            height=error.height,
            details=error.details,
        )

    def to_dict(self) -> dict[str, Any]:
        data = self.model_dump()
        data["code"] = self.code.value
        data["code_name"] = self.code.name
        return data


class ValidationResult(BaseModel):
    """Result of running a (possibly chained) validator."""
    is_valid: bool
    errors: list[ValidationFailure] = Field(default_factory=list)
    stages_passed: list[str] = Field(default_factory=list)
    stages_failed: list[str] = Field(default_factory=list)
    stages_skipped: list[str] = Field(default_factory=list)
    duration_ms: float = 0.0

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def first_error(self) -> Optional[ValidationFailure]:
        return self.errors[0] if self.errors else None

    def merged(self, other: "ValidationResult") -> "ValidationResult":
        """
        Combine with the result of a later run.

        If this result already failed, other's stages are reported as skipped.
        """
        if not self.is_valid:
            skipped = other.stages_passed + other.stages_failed + other.stages_skipped
            return self.model_copy(update={
                "stages_skipped": self.stages_skipped + skipped,
            })
        return ValidationResult(
            is_valid=other.is_valid,
            errors=self.errors + other.errors,
            stages_passed=self.stages_passed + other.stages_passed,
            stages_failed=self.stages_failed + other.stages_failed,
            stages_skipped=self.stages_skipped + other.stages_skipped,
            duration_ms=self.duration_ms + other.duration_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        data = self.model_dump(exclude={"errors"})
        data["errors"] = [e.to_dict() for e in self.errors]
        return data


class ValidationEngine:
    """
    Runs validators stage by stage.

    Usage:
        engine = ValidationEngine()
        result = engine.run(validators.final_state, height)

        if not result.is_valid:
            print(result.first_error.message)

    Only ValidationError is captured; any other exception is a bug and
    propagates to the caller.
    """

    def __init__(self) -> None:
        # Metrics
        self.runs = 0
        self.rejections = 0
        self.validation_times: list[float] = []

    def run(self, validator: Any, item: Any, *state: Any) -> ValidationResult:
        """
        Validate item with validator.

        Args:
            validator: A validator or ChainedValidator
            item: The item to validate (a height or a header)
            *state: Extra state for stateful validators

        Returns:
            ValidationResult with per-stage outcome
        """
        stages = stages_of(validator)
        start_time = time.perf_counter()
        errors: list[ValidationFailure] = []
        passed: list[str] = []
        failed: list[str] = []
        skipped: list[str] = []

        for i, stage in enumerate(stages):
            name = _stage_name(stage)
            try:
                stage.validate(item, *state)
            except ValidationError as e:
                logger.warning(f"Stage {name} rejected {item!r}: {e.message}")
                errors.append(ValidationFailure.from_error(e, name))
                failed.append(name)
                skipped.extend(_stage_name(s) for s in stages[i + 1:])
                break
            passed.append(name)
            logger.debug(f"Stage {name} passed for {item!r}")

        duration_ms = (time.perf_counter() - start_time) * 1000

        self.runs += 1
        self.validation_times.append(duration_ms)
        if errors:
            self.rejections += 1

        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            stages_passed=passed,
            stages_failed=failed,
            stages_skipped=skipped,
            duration_ms=duration_ms,
        )

    def run_pipeline(self, steps: list[tuple[Any, Any]]) -> ValidationResult:
        """
        Run (validator, item) steps in order.

        Once a step fails, the stages of every later step are reported as
        skipped without being run.
        """
        if not steps:
            raise ValueError("run_pipeline needs at least one step")

        first, *rest = steps
        result = self.run(*first)
        for validator, item in rest:
            if not result.is_valid:
                result = result.merged(ValidationResult(is_valid=True, stages_skipped=stage_names(validator)))
                continue
            result = result.merged(self.run(validator, item))
        return result

    def get_metrics(self) -> dict[str, Any]:
        """Get validation metrics."""
        times = self.validation_times
        return {
            "runs": self.runs,
            "rejections": self.rejections,
            "avg_time_ms": sum(times) / len(times) if times else 0.0,
            "max_time_ms": max(times) if times else 0.0,
        }
