"""
Pytest configuration and shared fixtures for the corpus planner tests.
"""

from datetime import date

import pytest

from corpus_planner.config import EngineDefaults, reset_global_settings
from corpus_planner.models.records import (
    Expense,
    ExpenseFrequency,
    FinancialRecords,
    Goal,
    Income,
    Insurance,
    InsuranceType,
    Investment,
    InvestmentType,
    Loan,
)
from corpus_planner.models.scenario import ScenarioParameters
from corpus_planner.records import InMemoryRecordsProvider


@pytest.fixture(autouse=True)
def clean_global_settings():
    """Drop cached settings between tests."""
    reset_global_settings()
    yield
    reset_global_settings()


@pytest.fixture
def defaults():
    """Engine defaults as shipped."""
    return EngineDefaults()


@pytest.fixture
def as_of():
    """Fixed projection start date."""
    return date(2025, 1, 1)


@pytest.fixture
def scenario():
    """Age 35 retiring at 60 with a life expectancy of 85."""
    return ScenarioParameters(current_age=35, retirement_age=60, life_expectancy=85)


@pytest.fixture
def empty_records():
    """A user with no financial records at all."""
    return FinancialRecords(user_id="empty-user")


@pytest.fixture
def sample_records():
    """A typical salaried household."""
    return FinancialRecords(
        user_id="test-user",
        incomes=[Income(source="Salary", monthly_amount=150000, is_active=True)],
        investments=[
            Investment(
                name="Index Fund",
                type=InvestmentType.MUTUAL_FUND,
                current_value=500000,
                monthly_sip=20000,
            ),
            Investment(name="EPF", type=InvestmentType.EPF, current_value=800000),
            Investment(
                name="PPF",
                type=InvestmentType.PPF,
                current_value=300000,
                yearly_contribution=150000,
            ),
            Investment(name="House", type=InvestmentType.REAL_ESTATE, current_value=9000000),
            Investment(
                name="Savings",
                type=InvestmentType.CASH,
                current_value=200000,
                is_emergency_fund=True,
            ),
        ],
        loans=[Loan(name="Car Loan", outstanding_amount=300000, emi=12000)],
        insurances=[
            Insurance(
                policy_name="Term Plan",
                type=InsuranceType.TERM_LIFE,
                sum_assured=10000000,
                annual_premium=18000,
            )
        ],
        expenses=[
            Expense(name="Household", amount=40000, frequency=ExpenseFrequency.MONTHLY),
            Expense(
                name="School Fees",
                amount=60000,
                frequency=ExpenseFrequency.QUARTERLY,
                is_time_bound=True,
                end_date=date(2035, 3, 31),
            ),
        ],
        goals=[Goal(name="Car", target_amount=800000, target_year=2030)],
    )


@pytest.fixture
def provider(sample_records, empty_records):
    """In-memory provider holding the sample and empty users."""
    return InMemoryRecordsProvider([sample_records, empty_records])
