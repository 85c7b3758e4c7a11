"""
Validation Layers - the validation capability and its chaining combinator.

Every consensus check implements one of two contracts:
- StatelessValidation: validate(item)
- Validation: validate(item, state), for checks that need external state

validate() returns None when the item is valid and raises a ValidationError
otherwise. Implementors only override what is relevant to them; the default
implementation always passes.

Checks compose with chain(): the resulting ChainedValidator runs its stages
in order and stops at the first failure, re-raising that stage's error as is.
"""

import logging
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
S = TypeVar("S")


class StatelessValidation(Generic[T]):
    """Validation that runs independently of external state."""

    name: str = "stateless"

    def validate(self, item: T) -> None:
        """Validate item, raising ValidationError on failure."""
        return None

    def chain(self, other: "StatelessValidation[T]") -> "ChainedValidator":
        """Create a validator that runs this validation followed by other."""
        return ChainedValidator(self, other)


class Validation(Generic[T, S]):
    """Validation that needs an auxiliary state object (e.g. a database handle)."""

    name: str = "stateful"

    def validate(self, item: T, state: S) -> None:
        """Validate item against state, raising ValidationError on failure."""
        return None

    def chain(self, other: "Validation[T, S]") -> "ChainedValidator":
        """Create a validator that runs this validation followed by other."""
        return ChainedValidator(self, other)


class ChainedValidator(StatelessValidation[Any], Validation[Any, Any]):
    """
    Runs an ordered list of validators with first-failure short-circuit.

    Chaining a ChainedValidator appends to a copy of its stage list, so
    A.chain(B).chain(C) holds (A, B, C) rather than nested pairs. Instances
    are immutable.
    """

    def __init__(self, *validators: Any):
        if not validators:
            raise ValueError("ChainedValidator needs at least one validator")
        stages: list[Any] = []
        for validator in validators:
            if isinstance(validator, ChainedValidator):
                stages.extend(validator.validators)
            else:
                stages.append(validator)
        self._validators = tuple(stages)

    @property
    def validators(self) -> tuple[Any, ...]:
        return self._validators

    @property
    def name(self) -> str:  # type: ignore[override]
        return "+".join(getattr(v, "name", type(v).__name__) for v in self._validators)

    def validate(self, item: Any, *state: Any) -> None:  # type: ignore[override]
        for validator in self._validators:
            validator.validate(item, *state)

    def chain(self, other: Any) -> "ChainedValidator":
        return ChainedValidator(self, other)

    def __len__(self) -> int:
        return len(self._validators)

    def __repr__(self) -> str:
        return f"ChainedValidator({self.name})"
