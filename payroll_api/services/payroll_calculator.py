from __future__ import annotations

from numbers import Real
from typing import Any, Dict, Iterator, Optional, Tuple

from .amount_classifier import AmountClassifier


def _amounts(components: Optional[Dict[str, Any]]) -> Iterator[Tuple[str, float]]:
    """Yield (name, amount) for positive numeric entries; everything else contributes nothing."""
    for name, val in (components or {}).items():
        if isinstance(val, bool) or not isinstance(val, Real):
            continue
        amount = float(val)
        if amount > 0:
            yield name, amount


class PayrollCalculator:
    """Gross/net totals over an open map of named pay components."""

    def __init__(self, classifier: Optional[AmountClassifier] = None):
        self.classifier = classifier or AmountClassifier()

    def compute_full(self, components: Dict[str, Any]) -> Tuple[float, float]:
        gross = 0.0
        deductions = 0.0
        for name, amount in _amounts(components):
            if self.classifier.is_deduction(name):
                deductions += amount
            else:
                gross += amount
        return gross, gross - deductions

    def compute_prorated(self, components: Dict[str, Any], ratio: float) -> Tuple[float, float]:
        """
        Only basic-salary components scale by ``ratio`` (worked / period days);
        other income and all deductions count in full. ``ratio`` is not clamped.
        """
        gross = 0.0
        deductions = 0.0
        for name, amount in _amounts(components):
            if self.classifier.is_deduction(name, prorating=True):
                deductions += amount
            elif self.classifier.is_prorate_eligible(name):
                gross += amount * ratio
            else:
                gross += amount
        return gross, gross - deductions
