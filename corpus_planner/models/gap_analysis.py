"""
Gap analysis and required-corpus solver.

This module computes the corpus needed at retirement under each income
strategy and compares it with the projected corpus. The required corpus is:

    strategy multiplier x inflated yearly post-retirement expense
    + present value at retirement of goals falling due during retirement
    + continuing insurance premiums, capitalized like expenses
    - present value of annuity income received during retirement

floored at zero.
"""

import logging
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from corpus_planner.config import EngineDefaults

from .compounding import inflated_value, required_monthly_sip, sip_future_value
from .income_strategies import (
    IncomeStrategy,
    IncomeStrategyType,
    StrategyParameters,
    all_income_strategies,
    get_income_strategy,
)
from .records import (
    ExpenseFrequency,
    FinancialRecords,
    HealthInsuranceType,
    Insurance,
    InsuranceType,
)
from .scenario import ScenarioParameters

logger = logging.getLogger(__name__)

# Years to retirement below which delaying retirement is suggested
DELAYED_RETIREMENT_THRESHOLD = 25
DISCRETIONARY_CUT = 0.10

EXPENSE_PROJECTION_STEP = 5
EXPENSE_PROJECTION_LIMIT = 15

_IMPACT_RANK = {"high": 0, "medium": 1, "positive": 2}


class Suggestion(BaseModel):
    """An actionable suggestion for closing the gap."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    impact: str


class ContinuingInsurance(BaseModel):
    """An insurance policy whose premium continues after retirement."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    type: Optional[InsuranceType] = None
    health_type: Optional[HealthInsuranceType] = None
    annual_premium: float
    monthly_premium: float
    coverage_end_age: Optional[int] = None


class EndingExpense(BaseModel):
    """A time-bound expense that stops before retirement."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    category: Optional[str] = None
    monthly_amount: float
    yearly_amount: float
    end_year: int
    years_remaining: int
    potential_corpus: float = Field(
        ..., description="Corpus built by investing the freed-up amount until retirement"
    )


class CashFlowSummary(BaseModel):
    """Current monthly household cash flow."""

    model_config = ConfigDict(frozen=True)

    monthly_income: float = 0.0
    monthly_expenses: float = 0.0
    monthly_insurance_premiums: float = 0.0
    monthly_emi: float = 0.0
    monthly_sip: float = 0.0
    net_monthly_savings: float = 0.0
    available_monthly_savings: float = 0.0


class RequiredCorpusBreakdown(BaseModel):
    """Components of the required corpus under one strategy."""

    model_config = ConfigDict(frozen=True)

    strategy: IncomeStrategyType
    expenses: float = 0.0
    insurance: float = 0.0
    goals: float = 0.0
    annuity_offset: float = 0.0
    total: float = 0.0


class ExpenseProjectionPoint(BaseModel):
    """Monthly retirement outgo inflated to a point on the way to retirement."""

    model_config = ConfigDict(frozen=True)

    year: int
    label: str
    household_expense: float
    insurance_premium: float
    monthly_expense: float
    yearly_expense: float


class GapAnalysisResult(BaseModel):
    """Required versus projected corpus at retirement."""

    model_config = ConfigDict(frozen=True)

    income_strategy: IncomeStrategyType
    strategy_explanation: str
    years_to_retirement: int
    retirement_years: int
    yearly_expense_at_retirement: float

    required_corpus: float
    required_corpus_by_strategy: Dict[IncomeStrategyType, float]
    breakdown: RequiredCorpusBreakdown
    projected_corpus: float
    gap: float
    gap_percent: float
    is_on_track: bool
    additional_monthly_sip: float

    continuing_insurance: List[ContinuingInsurance] = Field(default_factory=list)
    ending_expenses: List[EndingExpense] = Field(default_factory=list)
    potential_corpus_from_freed_up_expenses: float = 0.0
    expense_projection: List[ExpenseProjectionPoint] = Field(default_factory=list)
    cash_flow: CashFlowSummary = Field(default_factory=CashFlowSummary)
    suggestions: List[Suggestion] = Field(default_factory=list)


def continues_after_retirement(policy: Insurance) -> bool:
    """
    Whether a policy's premium keeps being paid after retirement.

    An explicit flag on the record wins. Otherwise TERM_LIFE continues, HEALTH
    continues unless it is employer GROUP cover, and every other type
    (including untyped policies) stops.
    """
    if policy.continues_after_retirement is not None:
        return policy.continues_after_retirement
    if policy.type == InsuranceType.TERM_LIFE:
        return True
    if policy.type == InsuranceType.HEALTH:
        return policy.health_type != HealthInsuranceType.GROUP
    return False


class RequiredCorpusCalculator:
    """
    Required corpus at retirement for a fixed set of records.

    The calculator is built once per invocation and queried for any retirement
    year and strategy, so the matrix can ask "what if I retired at this row?"
    for every row.
    """

    def __init__(
        self,
        records: FinancialRecords,
        params: StrategyParameters,
        current_year: int,
    ):
        self.records = records
        self.params = params
        self.current_year = current_year
        self._monthly_premiums = sum(
            policy.annual_premium / 12
            for policy in records.insurances
            if continues_after_retirement(policy) and policy.annual_premium is not None
        )

    @property
    def monthly_premiums(self) -> float:
        """Monthly premiums of policies continuing after retirement, today's money."""
        return self._monthly_premiums

    def monthly_expense_continuing(self, retirement_year: int) -> float:
        """Monthly expenses, today's money, still being paid in `retirement_year`."""
        return sum(
            expense.monthly_equivalent
            for expense in self.records.expenses
            if expense.frequency != ExpenseFrequency.ONE_TIME
            and expense.continues_after(retirement_year)
        )

    def yearly_expense_at_retirement(self, years_to_retirement: int) -> float:
        """Continuing household expense for the first retirement year, inflated."""
        years = max(years_to_retirement, 0)
        monthly = self.monthly_expense_continuing(self.current_year + years)
        return inflated_value(monthly * 12, self.params.inflation_rate, years)

    def yearly_spending_at_retirement(self, years_to_retirement: int) -> float:
        """First-year retirement outgo: continuing expenses plus premiums, inflated."""
        years = max(years_to_retirement, 0)
        premiums = inflated_value(
            self._monthly_premiums * 12, self.params.inflation_rate, years
        )
        return self.yearly_expense_at_retirement(years) + premiums

    def _goals_present_value(self, retirement_year: int, retirement_years: int) -> float:
        discount = 1 + self.params.corpus_return_rate / 100
        last_year = retirement_year + retirement_years
        total = 0.0
        for goal in self.records.goals:
            amount = goal.target_amount or 0.0
            if amount <= 0:
                continue
            for year in goal.occurrence_years(last_year):
                if year <= retirement_year:
                    continue
                inflated = inflated_value(
                    amount, self.params.inflation_rate, year - self.current_year
                )
                total += inflated / discount ** (year - retirement_year)
        return total

    def _annuity_present_value(self, retirement_year: int, retirement_years: int) -> float:
        discount = 1 + self.params.corpus_return_rate / 100
        total = 0.0
        for policy in self.records.insurances:
            if not policy.pays_annuity:
                continue
            for offset in range(retirement_years):
                income = policy.annual_annuity_in_year(retirement_year + offset)
                total += income / discount**offset
        return total

    def breakdown(
        self,
        strategy: IncomeStrategy,
        years_to_retirement: int,
        retirement_years: int,
    ) -> RequiredCorpusBreakdown:
        """Required corpus and its components for one strategy."""
        years_to_retirement = max(years_to_retirement, 0)
        retirement_years = max(retirement_years, 0)
        retirement_year = self.current_year + years_to_retirement

        yearly_expense = self.yearly_expense_at_retirement(years_to_retirement)
        yearly_premiums = inflated_value(
            self._monthly_premiums * 12, self.params.inflation_rate, years_to_retirement
        )

        expenses = strategy.corpus_for_expenses(
            yearly_expense, retirement_years, self.params
        )
        insurance = strategy.corpus_for_expenses(
            yearly_premiums, retirement_years, self.params
        )
        goals = self._goals_present_value(retirement_year, retirement_years)
        annuity = self._annuity_present_value(retirement_year, retirement_years)

        return RequiredCorpusBreakdown(
            strategy=strategy.strategy_type,
            expenses=expenses,
            insurance=insurance,
            goals=goals,
            annuity_offset=annuity,
            total=max(expenses + insurance + goals - annuity, 0.0),
        )

    def required_corpus(
        self,
        strategy: IncomeStrategy,
        years_to_retirement: int,
        retirement_years: int,
    ) -> float:
        return self.breakdown(strategy, years_to_retirement, retirement_years).total

    def required_by_strategy(
        self, years_to_retirement: int, retirement_years: int
    ) -> Dict[IncomeStrategyType, float]:
        """Required corpus under each of the three strategies."""
        return {
            strategy.strategy_type: self.required_corpus(
                strategy, years_to_retirement, retirement_years
            )
            for strategy in all_income_strategies()
        }


def strategy_parameters(
    scenario: ScenarioParameters, defaults: EngineDefaults
) -> StrategyParameters:
    """Strategy rates for a scenario, falling back to the engine defaults."""
    resolved = scenario.resolved(defaults)
    return StrategyParameters(
        corpus_return_rate=resolved.corpus_return_rate,
        withdrawal_rate=resolved.withdrawal_rate,
        inflation_rate=resolved.inflation_rate,
    )


def summarize_cash_flow(
    records: FinancialRecords, monthly_premiums: float
) -> CashFlowSummary:
    """Current monthly income against expenses, EMIs and SIPs."""
    income = sum(
        item.monthly_amount or 0.0
        for item in records.incomes
        if item.is_active is not False
    )
    expenses = sum(expense.monthly_equivalent for expense in records.expenses)
    emi = sum(loan.emi or 0.0 for loan in records.loans if loan.is_active)
    sip = sum(investment.monthly_sip or 0.0 for investment in records.investments)
    net = income - expenses - monthly_premiums - emi

    return CashFlowSummary(
        monthly_income=income,
        monthly_expenses=expenses,
        monthly_insurance_premiums=monthly_premiums,
        monthly_emi=emi,
        monthly_sip=sip,
        net_monthly_savings=net,
        available_monthly_savings=net - sip,
    )


def _continuing_insurance(records: FinancialRecords) -> List[ContinuingInsurance]:
    return [
        ContinuingInsurance(
            name=policy.policy_name,
            type=policy.type,
            health_type=policy.health_type,
            annual_premium=policy.annual_premium,
            monthly_premium=policy.annual_premium / 12,
            coverage_end_age=policy.coverage_end_age,
        )
        for policy in records.insurances
        if continues_after_retirement(policy) and policy.annual_premium is not None
    ]


def _ending_expenses(
    records: FinancialRecords,
    current_year: int,
    retirement_year: int,
    invest_rate: float,
) -> List[EndingExpense]:
    ending = []
    for expense in records.expenses:
        end_year = expense.end_year
        if end_year is None or end_year >= retirement_year:
            continue
        monthly = expense.monthly_equivalent
        ending.append(
            EndingExpense(
                name=expense.name,
                category=expense.category,
                monthly_amount=monthly,
                yearly_amount=expense.yearly_amount,
                end_year=end_year,
                years_remaining=end_year - current_year,
                potential_corpus=sip_future_value(
                    monthly, invest_rate, retirement_year - end_year
                ),
            )
        )
    return ending


def project_expenses(
    monthly_household: float,
    monthly_premiums: float,
    inflation_rate: float,
    years_to_retirement: int,
) -> List[ExpenseProjectionPoint]:
    """
    Continuing expenses and premiums today, every five years (up to year 15)
    and at retirement, each inflated from today's money.
    """
    marks = [(0, "Current")]
    marks += [
        (year, f"Year {year}")
        for year in range(
            EXPENSE_PROJECTION_STEP,
            min(years_to_retirement, EXPENSE_PROJECTION_LIMIT) + 1,
            EXPENSE_PROJECTION_STEP,
        )
    ]
    marks.append((years_to_retirement, "At Retirement"))

    points = []
    for year, label in marks:
        household = inflated_value(monthly_household, inflation_rate, year)
        premium = inflated_value(monthly_premiums, inflation_rate, year)
        points.append(
            ExpenseProjectionPoint(
                year=year,
                label=label,
                household_expense=household,
                insurance_premium=premium,
                monthly_expense=household + premium,
                yearly_expense=(household + premium) * 12,
            )
        )
    return points


def build_suggestions(
    gap: float,
    additional_monthly_sip: float,
    monthly_expenses: float,
    years_to_retirement: int,
) -> List[Suggestion]:
    """Deterministic suggestions, highest impact first."""
    if gap <= 0:
        return [
            Suggestion(
                title="You're On Track!",
                description="Your projected corpus exceeds your retirement needs.",
                impact="positive",
            )
        ]

    suggestions = [
        Suggestion(
            title="Increase Monthly SIP",
            description=(
                f"Increase your monthly SIP by {additional_monthly_sip:,.0f} to close the gap"
            ),
            impact="high",
        ),
        Suggestion(
            title="Reduce Discretionary Expenses",
            description=(
                f"Cutting {monthly_expenses * DISCRETIONARY_CUT:,.0f}/month from expenses "
                "and investing it can help"
            ),
            impact="medium",
        ),
    ]
    if years_to_retirement < DELAYED_RETIREMENT_THRESHOLD:
        suggestions.append(
            Suggestion(
                title="Consider Delayed Retirement",
                description="Working 2-3 more years can significantly boost your corpus",
                impact="high",
            )
        )
    suggestions.append(
        Suggestion(
            title="Review Asset Allocation",
            description="Higher equity allocation early on may provide better returns",
            impact="medium",
        )
    )
    return sorted(suggestions, key=lambda s: _IMPACT_RANK[s.impact])


def analyze_gap(
    records: FinancialRecords,
    scenario: ScenarioParameters,
    defaults: EngineDefaults,
    projected_corpus: float,
    current_year: int,
) -> GapAnalysisResult:
    """
    Compare the projected corpus at retirement with the required corpus.

    Args:
        records: Financial records snapshot
        scenario: Scenario in effect (unset rates fall back to `defaults`)
        defaults: Engine-wide defaults
        projected_corpus: Corpus projected at retirement
        current_year: Calendar year of projection year 0

    Returns:
        GapAnalysisResult for the scenario's income strategy
    """
    params = strategy_parameters(scenario, defaults)
    strategy = get_income_strategy(scenario.income_strategy)
    years_to_retirement = scenario.years_to_retirement
    retirement_years = scenario.retirement_years
    retirement_year = current_year + years_to_retirement

    calculator = RequiredCorpusCalculator(records, params, current_year)
    breakdown = calculator.breakdown(strategy, years_to_retirement, retirement_years)
    required = breakdown.total

    gap = required - projected_corpus
    gap_percent = gap / required * 100 if required > 0 else 0.0

    additional_sip = 0.0
    if gap > 0 and years_to_retirement > 0:
        additional_sip = required_monthly_sip(gap, defaults.mf_return, years_to_retirement)

    ending = _ending_expenses(records, current_year, retirement_year, defaults.mf_return)
    cash_flow = summarize_cash_flow(records, calculator.monthly_premiums)

    logger.debug(
        f"Gap analysis: required={required:.0f} projected={projected_corpus:.0f} "
        f"strategy={strategy.strategy_type.value}"
    )

    return GapAnalysisResult(
        income_strategy=strategy.strategy_type,
        strategy_explanation=strategy.explanation(retirement_years, params),
        years_to_retirement=years_to_retirement,
        retirement_years=retirement_years,
        yearly_expense_at_retirement=calculator.yearly_expense_at_retirement(
            years_to_retirement
        ),
        required_corpus=required,
        required_corpus_by_strategy=calculator.required_by_strategy(
            years_to_retirement, retirement_years
        ),
        breakdown=breakdown,
        projected_corpus=projected_corpus,
        gap=gap,
        gap_percent=gap_percent,
        is_on_track=gap <= 0,
        additional_monthly_sip=additional_sip,
        continuing_insurance=_continuing_insurance(records),
        ending_expenses=ending,
        potential_corpus_from_freed_up_expenses=sum(e.potential_corpus for e in ending),
        expense_projection=project_expenses(
            calculator.monthly_expense_continuing(retirement_year),
            calculator.monthly_premiums,
            params.inflation_rate,
            years_to_retirement,
        ),
        cash_flow=cash_flow,
        suggestions=build_suggestions(
            gap, additional_sip, cash_flow.monthly_expenses, years_to_retirement
        ),
    )
