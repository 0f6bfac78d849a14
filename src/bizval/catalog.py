"""Per-entity collection of valuation methods."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from decimal import Decimal

from bizval.aggregation import ReconciledValuation, aggregate
from bizval.exceptions import ValidationError
from bizval.models import MethodWeightEdit, ValuationMethod
from bizval.validation import check_ratio


@dataclass(frozen=True)
class ValuationMethodCatalog:
    """Immutable set of methods for one entity; every change returns a new catalog."""

    entity_id: str
    methods: tuple[ValuationMethod, ...] = ()

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for method in self.methods:
            if method.method_id in seen:
                raise ValidationError(f"Duplicate valuation method id '{method.method_id}'.")
            seen.add(method.method_id)

    @classmethod
    def of(cls, entity_id: str, methods: Iterable[ValuationMethod]) -> ValuationMethodCatalog:
        return cls(entity_id=entity_id, methods=tuple(methods))

    def __len__(self) -> int:
        return len(self.methods)

    def add(self, method: ValuationMethod) -> ValuationMethodCatalog:
        return replace(self, methods=(*self.methods, method))

    def get(self, method_id: str) -> ValuationMethod:
        for method in self.methods:
            if method.method_id == method_id:
                return method
        raise ValidationError(f"Unknown valuation method id '{method_id}'.")

    def weights(self) -> dict[str, Decimal]:
        return {m.method_id: m.weight for m in self.methods}

    def primary(self) -> ValuationMethod:
        """Highest-confidence method, the default selection for display."""
        if not self.methods:
            raise ValidationError(f"Entity '{self.entity_id}' has no valuation methods.")
        return max(self.methods, key=lambda m: m.confidence)

    def apply_edits(self, edits: Iterable[MethodWeightEdit]) -> ValuationMethodCatalog:
        """Validate all pending weight edits, then commit them together.

        A single invalid edit rejects the whole batch and leaves this catalog
        untouched.
        """
        edits = tuple(edits)
        pending: dict[str, MethodWeightEdit] = {}
        for edit in edits:
            self.get(edit.method_id)
            if edit.confidence is not None:
                check_ratio(edit.confidence, "confidence")
            if edit.applicability is not None:
                check_ratio(edit.applicability, "applicability")
            if edit.method_id in pending:
                raise ValidationError(f"Conflicting edits for method id '{edit.method_id}'.")
            pending[edit.method_id] = edit

        updated = []
        for method in self.methods:
            edit = pending.get(method.method_id)
            if edit is None:
                updated.append(method)
                continue
            updated.append(
                replace(
                    method,
                    confidence=(
                        edit.confidence if edit.confidence is not None else method.confidence
                    ),
                    applicability=(
                        edit.applicability
                        if edit.applicability is not None
                        else method.applicability
                    ),
                )
            )
        return replace(self, methods=tuple(updated))

    def reconcile(self) -> ReconciledValuation:
        return aggregate(self.methods)
