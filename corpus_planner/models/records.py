"""
Pydantic models for the financial records consumed by the engine.

These mirror the records kept by the (external) persistence layer. Every
monetary or rate field is optional: missing detail is normal, and the
aggregation layer coerces it to zero or to a default rate.
"""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


def whole_years_between(start: date, end: date) -> int:
    """Number of complete years from `start` to `end` (negative if end is earlier)."""
    years = end.year - start.year
    if (end.month, end.day) < (start.month, start.day):
        years -= 1
    return years


def add_years(start: date, years: int) -> date:
    """Same month and day `years` later; 29 February falls back to the 28th."""
    try:
        return start.replace(year=start.year + years)
    except ValueError:
        return start.replace(year=start.year + years, day=28)


class InvestmentType(str, Enum):
    MUTUAL_FUND = "MUTUAL_FUND"
    STOCK = "STOCK"
    FD = "FD"
    RD = "RD"
    PPF = "PPF"
    EPF = "EPF"
    NPS = "NPS"
    REAL_ESTATE = "REAL_ESTATE"
    GOLD = "GOLD"
    CRYPTO = "CRYPTO"
    CASH = "CASH"
    OTHER = "OTHER"


class InsuranceType(str, Enum):
    TERM_LIFE = "TERM_LIFE"
    HEALTH = "HEALTH"
    ULIP = "ULIP"
    ENDOWMENT = "ENDOWMENT"
    MONEY_BACK = "MONEY_BACK"
    ANNUITY = "ANNUITY"
    VEHICLE = "VEHICLE"
    OTHER = "OTHER"


class HealthInsuranceType(str, Enum):
    GROUP = "GROUP"
    PERSONAL = "PERSONAL"
    FAMILY_FLOATER = "FAMILY_FLOATER"


class ExpenseFrequency(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    HALF_YEARLY = "HALF_YEARLY"
    YEARLY = "YEARLY"
    ONE_TIME = "ONE_TIME"

    @property
    def months_interval(self) -> int:
        return {
            ExpenseFrequency.MONTHLY: 1,
            ExpenseFrequency.QUARTERLY: 3,
            ExpenseFrequency.HALF_YEARLY: 6,
            ExpenseFrequency.YEARLY: 12,
            ExpenseFrequency.ONE_TIME: 0,
        }[self]


# Insurance types that pay out a lump sum on maturity
MATURING_INSURANCE_TYPES = frozenset(
    {InsuranceType.ULIP, InsuranceType.ENDOWMENT, InsuranceType.MONEY_BACK}
)


class Income(BaseModel):
    """An income source."""

    id: Optional[str] = None
    source: Optional[str] = None
    monthly_amount: Optional[float] = None
    is_active: Optional[bool] = None


class Investment(BaseModel):
    """An investment holding."""

    id: Optional[str] = None
    name: Optional[str] = None
    type: Optional[InvestmentType] = None
    current_value: Optional[float] = None
    invested_amount: Optional[float] = None
    monthly_sip: Optional[float] = None
    yearly_contribution: Optional[float] = None
    interest_rate: Optional[float] = Field(
        default=None, description="Contracted rate (FD/RD), percent"
    )
    expected_return: Optional[float] = Field(
        default=None, description="Expected annual return, percent"
    )
    maturity_date: Optional[date] = None
    is_emergency_fund: Optional[bool] = None

    @property
    def value(self) -> float:
        """Current value, falling back to the invested amount, then zero."""
        if self.current_value is not None:
            return self.current_value
        if self.invested_amount is not None:
            return self.invested_amount
        return 0.0

    @property
    def instrument_rate(self) -> Optional[float]:
        """Instrument-specific rate, if the record carries one."""
        if self.interest_rate is not None:
            return self.interest_rate
        return self.expected_return

    @property
    def label(self) -> str:
        type_name = self.type.value if self.type is not None else InvestmentType.OTHER.value
        return f"{self.name or 'Investment'} ({type_name})"


class Loan(BaseModel):
    """An outstanding loan."""

    id: Optional[str] = None
    name: Optional[str] = None
    outstanding_amount: Optional[float] = None
    emi: Optional[float] = None
    remaining_months: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.outstanding_amount is not None and self.outstanding_amount > 0


class Insurance(BaseModel):
    """An insurance policy."""

    id: Optional[str] = None
    policy_name: Optional[str] = None
    type: Optional[InsuranceType] = None
    health_type: Optional[HealthInsuranceType] = None
    sum_assured: Optional[float] = None
    fund_value: Optional[float] = None
    maturity_benefit: Optional[float] = None
    maturity_date: Optional[date] = None
    annual_premium: Optional[float] = None
    continues_after_retirement: Optional[bool] = Field(
        default=None, description="Explicit override of the continuation policy"
    )
    coverage_end_age: Optional[int] = None

    # Annuity / pension payouts
    is_annuity_policy: Optional[bool] = None
    annuity_start_year: Optional[int] = None
    monthly_annuity_amount: Optional[float] = None
    annuity_growth_rate: Optional[float] = None

    @property
    def pays_annuity(self) -> bool:
        """Whether the policy produces an annuity income stream."""
        flagged = bool(self.is_annuity_policy) or self.type == InsuranceType.ANNUITY
        return (
            flagged
            and self.annuity_start_year is not None
            and (self.monthly_annuity_amount or 0) > 0
        )

    def annual_annuity_in_year(self, calendar_year: int) -> float:
        """Annuity received in a calendar year, grown from the start year."""
        if not self.pays_annuity or calendar_year < self.annuity_start_year:
            return 0.0
        growth = (1 + (self.annuity_growth_rate or 0) / 100) ** (
            calendar_year - self.annuity_start_year
        )
        return self.monthly_annuity_amount * 12 * growth

    @property
    def matures(self) -> bool:
        return self.type in MATURING_INSURANCE_TYPES and self.maturity_date is not None


class Expense(BaseModel):
    """A household expense."""

    id: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    amount: Optional[float] = None
    frequency: Optional[ExpenseFrequency] = None
    is_time_bound: Optional[bool] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @property
    def monthly_equivalent(self) -> float:
        """Monthly equivalent amount; one-time expenses have none."""
        if self.amount is None:
            return 0.0
        if self.frequency is None or self.frequency == ExpenseFrequency.MONTHLY:
            return self.amount
        if self.frequency == ExpenseFrequency.ONE_TIME:
            return 0.0
        return self.amount / self.frequency.months_interval

    @property
    def yearly_amount(self) -> float:
        if self.amount is None:
            return 0.0
        if self.frequency == ExpenseFrequency.ONE_TIME:
            return self.amount
        return self.monthly_equivalent * 12

    @property
    def end_year(self) -> Optional[int]:
        """Calendar year the expense stops, or None if it never does."""
        if not self.is_time_bound or self.end_date is None:
            return None
        return self.end_date.year

    def is_active_in_year(self, year: int) -> bool:
        if self.start_date is not None and self.start_date.year > year:
            return False
        end_year = self.end_year
        return end_year is None or year <= end_year

    def continues_after(self, retirement_year: int) -> bool:
        """Whether the expense is still being paid in the retirement year."""
        end_year = self.end_year
        return end_year is None or end_year >= retirement_year


class Goal(BaseModel):
    """A financial goal, optionally recurring."""

    id: Optional[str] = None
    name: Optional[str] = None
    target_amount: Optional[float] = Field(
        default=None, description="Amount in today's money"
    )
    target_year: Optional[int] = None
    is_recurring: Optional[bool] = None
    recurrence_interval: Optional[int] = Field(
        default=None, description="Years between occurrences (defaults to 1)"
    )
    recurrence_end_year: Optional[int] = None

    def occurrence_years(self, until_year: int) -> List[int]:
        """
        Calendar years in which the goal falls due.

        Recurring goals re-fire every `recurrence_interval` years from the
        target year up to the recurrence end year (or `until_year` when no end
        year is set).
        """
        if self.target_year is None:
            return []
        if not self.is_recurring:
            return [self.target_year] if self.target_year <= until_year else []

        interval = self.recurrence_interval if (self.recurrence_interval or 0) > 0 else 1
        last_year = until_year
        if self.recurrence_end_year is not None:
            last_year = min(last_year, self.recurrence_end_year)
        return list(range(self.target_year, last_year + 1, interval))


class FinancialRecords(BaseModel):
    """Read-only snapshot of a user's records, fetched once per invocation."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    incomes: List[Income] = Field(default_factory=list)
    investments: List[Investment] = Field(default_factory=list)
    loans: List[Loan] = Field(default_factory=list)
    insurances: List[Insurance] = Field(default_factory=list)
    expenses: List[Expense] = Field(default_factory=list)
    goals: List[Goal] = Field(default_factory=list)
