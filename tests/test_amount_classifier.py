import pytest

from payroll_api.services.amount_classifier import (
    DEFAULT_POLICY, AmountClassifier, ClassifierPolicy, ComponentKind,
)


@pytest.fixture
def classifier():
    return AmountClassifier()


@pytest.mark.parametrize("name", [
    "tax", "Income_Tax", "social_insurance", "late_deduction", "penalty_fee",
    "事假扣款", "迟到扣除", "罚款",
])
def test_deduction_keywords_match_by_substring(classifier, name):
    assert classifier.classify(name) is ComponentKind.DEDUCTION


@pytest.mark.parametrize("name", ["basic_salary", "meal_allowance", "bonus", "overtime", ""])
def test_everything_else_is_income(classifier, name):
    assert classifier.classify(name) is ComponentKind.INCOME


def test_fund_is_deduction_only_when_prorating(classifier):
    assert not classifier.is_deduction("housing_fund")
    assert classifier.is_deduction("housing_fund", prorating=True)
    assert not classifier.is_deduction("住房公积金")
    assert classifier.is_deduction("住房公积金", prorating=True)


def test_prorate_eligibility_is_exact_match(classifier):
    assert classifier.is_prorate_eligible("basic_salary")
    assert classifier.is_prorate_eligible("BASE_SALARY")
    assert classifier.is_prorate_eligible("基本工资")
    assert classifier.is_prorate_eligible("底薪")
    assert not classifier.is_prorate_eligible("basic_salary_bonus")
    assert not classifier.is_prorate_eligible("salary")


def test_policy_is_injectable():
    policy = ClassifierPolicy(deduction_keywords=("loan",), prorate_deduction_keywords=(),
                              basic_salary_aliases=("wage",))
    c = AmountClassifier(policy)
    assert c.is_deduction("loan_repayment")
    assert not c.is_deduction("tax")
    assert c.is_prorate_eligible("wage")
    assert DEFAULT_POLICY.deduction_keywords[0] == "tax"
