from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class ComponentKind(str, Enum):
    INCOME = "income"
    DEDUCTION = "deduction"


@dataclass(frozen=True)
class ClassifierPolicy:
    """
    Keyword policy for pay component names.

    - deductions match by *substring* of the lower-cased name
    - ``prorate_deduction_keywords`` extend the deduction set only when prorating
    - basic salary aliases match the lower-cased name *exactly*; only these
      components are scaled by the worked-days ratio
    """
    deduction_keywords: Tuple[str, ...] = (
        "tax", "insurance", "deduction", "扣款", "扣除", "罚款", "penalty",
    )
    prorate_deduction_keywords: Tuple[str, ...] = ("fund", "公积金")
    basic_salary_aliases: Tuple[str, ...] = (
        "basic_salary", "base_salary", "基本工资", "底薪",
    )


DEFAULT_POLICY = ClassifierPolicy()


class AmountClassifier:
    def __init__(self, policy: ClassifierPolicy = DEFAULT_POLICY):
        self.policy = policy

    def classify(self, name: str, prorating: bool = False) -> ComponentKind:
        low = (name or "").lower()
        keywords = self.policy.deduction_keywords
        if prorating:
            keywords = keywords + self.policy.prorate_deduction_keywords
        if any(k in low for k in keywords):
            return ComponentKind.DEDUCTION
        return ComponentKind.INCOME

    def is_deduction(self, name: str, prorating: bool = False) -> bool:
        return self.classify(name, prorating) is ComponentKind.DEDUCTION

    def is_prorate_eligible(self, name: str) -> bool:
        return (name or "").lower() in self.policy.basic_salary_aliases
