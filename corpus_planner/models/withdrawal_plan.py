"""
Withdrawal-order plan for the retirement years.

Groups holdings into three withdrawal phases (taxable and liquid assets first,
tax-deferred accounts second, tax-free and long-term assets last), schedules
yearly drawdowns against inflating expenses, and attaches static tax tips and
general notes. No tax is computed.
"""

import logging
from typing import Dict, Iterable, List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field

from corpus_planner.config import EngineDefaults

from .compounding import future_value, inflated_value, sip_future_value
from .records import Expense, Investment, InvestmentType
from .scenario import ScenarioParameters

logger = logging.getLogger(__name__)

SCHEDULE_HORIZON = 30
SAFE_WITHDRAWAL_RATE = 0.04
SUSTAINABLE_WITHDRAWAL_RATE = 0.06

# Growth of untouched phases while an earlier phase is being drawn down
PHASE_2_GROWTH = 0.08
PHASE_3_GROWTH = 0.07


class AssetGuidance(NamedTuple):
    phase: int
    reason: str
    tax_treatment: str
    withdrawal_tip: Optional[str] = None
    mandatory_annuity_percent: Optional[int] = None


_GUIDANCE: Dict[Optional[InvestmentType], AssetGuidance] = {
    InvestmentType.CASH: AssetGuidance(
        1,
        "Already taxed, no growth benefit from deferral",
        "Interest taxed as income",
        "Use for immediate expenses in early retirement",
    ),
    InvestmentType.FD: AssetGuidance(
        1,
        "Low returns, interest taxed annually",
        "Interest taxed as per income slab",
        "Withdraw as they mature, don't renew",
    ),
    InvestmentType.RD: AssetGuidance(
        1,
        "Low returns, interest taxed annually",
        "Interest taxed as per income slab",
        "Withdraw as they mature, don't renew",
    ),
    InvestmentType.STOCK: AssetGuidance(
        1,
        "Taxable gains, harvest losses strategically",
        "LTCG above ₹1L taxed at 10%",
        "Harvest ₹1L LTCG tax-free each year",
    ),
    InvestmentType.CRYPTO: AssetGuidance(
        1,
        "High volatility, use during favorable markets",
        "30% flat tax on gains",
        "Sell during bull markets, use for discretionary",
    ),
    InvestmentType.EPF: AssetGuidance(
        2,
        "Tax-free after 5 years, withdraw gradually",
        "Tax-free if 5+ years of service",
        "Consider pension option for regular income",
    ),
    InvestmentType.NPS: AssetGuidance(
        2,
        "40% mandatory annuity, 60% tax-free",
        "60% tax-free, annuity income taxable",
        "Choose annuity with return of purchase price",
        mandatory_annuity_percent=40,
    ),
    InvestmentType.MUTUAL_FUND: AssetGuidance(
        2,
        "Tax-efficient if held long-term",
        "LTCG after 1 year, indexed for debt",
        "SWP for tax-efficient regular income",
    ),
    InvestmentType.PPF: AssetGuidance(
        3,
        "Completely tax-free, continue to grow",
        "100% tax-free (EEE status)",
        "Extend in 5-year blocks, withdraw last",
    ),
    InvestmentType.GOLD: AssetGuidance(
        3,
        "Inflation hedge, emergency reserve",
        "SGB maturity tax-free, physical gold LTCG after 3 years",
        "Sell only in emergencies or for legacy",
    ),
    InvestmentType.REAL_ESTATE: AssetGuidance(
        3,
        "Legacy asset, consider rental income",
        "LTCG after 2 years with indexation",
        "Rental income or reverse mortgage option",
    ),
    None: AssetGuidance(2, "Default category for unspecified type", "Varies"),
}

_STANDARD_GUIDANCE = AssetGuidance(2, "Standard tax treatment", "Varies by holding period")

_PHASE_NAMES = {
    1: ("Taxable & Liquid Assets", "Use first - already taxed, let other assets grow"),
    2: ("Tax-Deferred Accounts", "Mandatory withdrawals, plan around them"),
    3: ("Tax-Free & Long-Term", "Keep growing tax-free, use as backup"),
}


class PlanAsset(BaseModel):
    """A holding assigned to a withdrawal phase."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    name: Optional[str] = None
    type: str
    current_value: float
    projected_value: float = Field(..., description="Projected value at retirement")
    reason: str
    tax_treatment: str
    withdrawal_tip: Optional[str] = None
    mandatory_annuity_percent: Optional[int] = None


class WithdrawalPhase(BaseModel):
    """One phase of the withdrawal order."""

    model_config = ConfigDict(frozen=True)

    priority: int
    name: str
    description: str
    suggested_age_range: str
    total: float
    years_covered: int
    assets: List[PlanAsset] = Field(default_factory=list)


class ScheduledWithdrawal(BaseModel):
    """Drawdown instruction for one retirement year."""

    model_config = ConfigDict(frozen=True)

    year: int
    age: int
    yearly_expense: float
    corpus_at_start: float
    withdraw_from: str
    corpus_at_end: float
    warning: Optional[str] = None


class TaxTip(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    savings_estimate: str


class WithdrawalPlanSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_corpus_at_retirement: float
    monthly_expense_at_retirement: float
    yearly_expense_at_retirement: float
    total_years_covered: int
    retirement_years: int
    safe_monthly_withdrawal: float
    sustainable_monthly_withdrawal: float
    is_sustainable: bool
    shortfall_or_surplus: float


class WithdrawalPlan(BaseModel):
    """Three-phase withdrawal order with a yearly schedule."""

    model_config = ConfigDict(frozen=True)

    phases: List[WithdrawalPhase]
    summary: WithdrawalPlanSummary
    schedule: List[ScheduledWithdrawal] = Field(default_factory=list)
    tax_tips: List[TaxTip] = Field(default_factory=list)
    important_notes: List[str] = Field(default_factory=list)


TAX_TIPS = [
    TaxTip(
        title="Stay under ₹7L taxable income",
        description=(
            "Senior citizens (60+) get higher basic exemption. "
            "Plan withdrawals to stay under limit."
        ),
        savings_estimate="Up to ₹31,200/year in tax savings",
    ),
    TaxTip(
        title="Harvest LTCG up to ₹1L/year",
        description=(
            "Sell and rebuy equity investments to reset cost basis "
            "and use tax-free LTCG limit."
        ),
        savings_estimate="₹10,000/year in tax savings",
    ),
    TaxTip(
        title="Use SCSS & PMVVY",
        description=(
            "Senior Citizen Savings Scheme and Pradhan Mantri Vaya Vandana Yojana "
            "offer 8%+ returns."
        ),
        savings_estimate="1-2% higher returns than FD",
    ),
    TaxTip(
        title="Health insurance premium deduction",
        description="Deduction up to ₹50,000 for senior citizens under Section 80D.",
        savings_estimate="Up to ₹15,600/year in tax savings",
    ),
]

IMPORTANT_NOTES = [
    "Keep 1-2 years expenses in liquid form for emergencies",
    "Increase withdrawal by 5-6% annually to maintain lifestyle against inflation",
    "Avoid selling equity in down markets - use other assets temporarily",
    "Review and rebalance portfolio annually",
    "Consult a tax advisor as tax laws change frequently",
]


def guidance_for(investment_type: Optional[InvestmentType]) -> AssetGuidance:
    return _GUIDANCE.get(investment_type, _STANDARD_GUIDANCE)


def default_return_for_type(
    investment_type: Optional[InvestmentType], defaults: EngineDefaults
) -> float:
    """Expected return assumed for a holding with no expected return of its own."""
    return {
        InvestmentType.STOCK: 12.0,
        InvestmentType.MUTUAL_FUND: 10.0,
        InvestmentType.FD: 6.5,
        InvestmentType.RD: 6.0,
        InvestmentType.PPF: defaults.ppf_return,
        InvestmentType.EPF: defaults.epf_return,
        InvestmentType.NPS: 10.0,
        InvestmentType.GOLD: 8.0,
        InvestmentType.REAL_ESTATE: 7.0,
        InvestmentType.CASH: 3.5,
        InvestmentType.CRYPTO: 15.0,
    }.get(investment_type, defaults.other_return)


def projected_value_at_retirement(
    investment: Investment, years_to_retirement: int, defaults: EngineDefaults
) -> float:
    """Today's value and monthly SIP grown to retirement at the expected return."""
    value = investment.value
    if value <= 0:
        return 0.0
    rate = investment.expected_return
    if rate is None:
        rate = default_return_for_type(investment.type, defaults)
    projected = future_value(value, rate, years_to_retirement)
    projected += sip_future_value(investment.monthly_sip or 0.0, rate, years_to_retirement)
    return projected


def _age_ranges(retirement_age: int, life_expectancy: int) -> Dict[int, str]:
    early = min(retirement_age + 5, life_expectancy)
    middle = min(retirement_age + 15, life_expectancy)
    return {
        1: f"{retirement_age} - {early}",
        2: f"{early} - {middle}",
        3: f"{middle} - {life_expectancy}+",
    }


def _schedule(
    totals: Dict[int, float],
    yearly_expense_at_retirement: float,
    inflation_rate: float,
    retirement_age: int,
    retirement_years: int,
) -> List[ScheduledWithdrawal]:
    balances = dict(totals)
    schedule: List[ScheduledWithdrawal] = []

    for year in range(min(retirement_years, SCHEDULE_HORIZON)):
        expense = inflated_value(yearly_expense_at_retirement, inflation_rate, year)
        corpus_at_start = sum(balances.values())

        if balances[1] > 0:
            phase = 1
            balances[2] *= 1 + PHASE_2_GROWTH
            balances[3] *= 1 + PHASE_3_GROWTH
        elif balances[2] > 0:
            phase = 2
            balances[3] *= 1 + PHASE_3_GROWTH
        else:
            phase = 3
        balances[phase] -= min(expense, balances[phase])

        corpus_at_end = max(sum(balances.values()), 0.0)
        depleted = corpus_at_end <= 0
        schedule.append(
            ScheduledWithdrawal(
                year=year + 1,
                age=retirement_age + year,
                yearly_expense=expense,
                corpus_at_start=corpus_at_start,
                withdraw_from=f"Phase {phase}",
                corpus_at_end=corpus_at_end,
                warning="Corpus depleted" if depleted else None,
            )
        )
        if depleted:
            break

    return schedule


def build_withdrawal_plan(
    investments: Iterable[Investment],
    expenses: Iterable[Expense],
    scenario: ScenarioParameters,
    defaults: EngineDefaults,
) -> WithdrawalPlan:
    """
    Build the three-phase withdrawal plan.

    Args:
        investments: All holdings, illiquid ones included
        expenses: Household expenses (one-time expenses are ignored)
        scenario: Resolved scenario (ages and inflation)
        defaults: Engine-wide defaults

    Returns:
        WithdrawalPlan with phases, summary, yearly schedule, tax tips and notes
    """
    years_to_retirement = scenario.years_to_retirement
    retirement_years = scenario.retirement_years
    retirement_age = scenario.current_age + years_to_retirement
    inflation = scenario.inflation_rate
    if inflation is None:
        inflation = defaults.inflation_rate

    assets: Dict[int, List[PlanAsset]] = {1: [], 2: [], 3: []}
    totals: Dict[int, float] = {1: 0.0, 2: 0.0, 3: 0.0}
    for investment in investments:
        projected = projected_value_at_retirement(investment, years_to_retirement, defaults)
        if projected <= 0:
            continue
        guidance = guidance_for(investment.type)
        assets[guidance.phase].append(
            PlanAsset(
                id=investment.id,
                name=investment.name,
                type=(investment.type or InvestmentType.OTHER).value,
                current_value=investment.current_value or 0.0,
                projected_value=projected,
                reason=guidance.reason,
                tax_treatment=guidance.tax_treatment,
                withdrawal_tip=guidance.withdrawal_tip,
                mandatory_annuity_percent=guidance.mandatory_annuity_percent,
            )
        )
        totals[guidance.phase] += projected

    monthly_expenses = sum(expense.monthly_equivalent for expense in expenses)
    monthly_at_retirement = inflated_value(monthly_expenses, inflation, years_to_retirement)
    yearly_at_retirement = monthly_at_retirement * 12

    def years_covered(total: float) -> int:
        if yearly_at_retirement <= 0:
            return 0
        return int(total // yearly_at_retirement)

    age_ranges = _age_ranges(retirement_age, scenario.life_expectancy)
    phases = [
        WithdrawalPhase(
            priority=priority,
            name=_PHASE_NAMES[priority][0],
            description=_PHASE_NAMES[priority][1],
            suggested_age_range=age_ranges[priority],
            total=totals[priority],
            years_covered=years_covered(totals[priority]),
            assets=assets[priority],
        )
        for priority in (1, 2, 3)
    ]

    total_corpus = sum(totals.values())
    safe_monthly = total_corpus * SAFE_WITHDRAWAL_RATE / 12
    logger.debug(
        f"Withdrawal plan: corpus {total_corpus:,.0f}, "
        f"yearly expense at retirement {yearly_at_retirement:,.0f}"
    )

    return WithdrawalPlan(
        phases=phases,
        summary=WithdrawalPlanSummary(
            total_corpus_at_retirement=total_corpus,
            monthly_expense_at_retirement=monthly_at_retirement,
            yearly_expense_at_retirement=yearly_at_retirement,
            total_years_covered=sum(phase.years_covered for phase in phases),
            retirement_years=retirement_years,
            safe_monthly_withdrawal=safe_monthly,
            sustainable_monthly_withdrawal=total_corpus * SUSTAINABLE_WITHDRAWAL_RATE / 12,
            is_sustainable=safe_monthly >= monthly_at_retirement,
            shortfall_or_surplus=safe_monthly - monthly_at_retirement,
        ),
        schedule=_schedule(
            totals, yearly_at_retirement, inflation, retirement_age, retirement_years
        ),
        tax_tips=list(TAX_TIPS),
        important_notes=list(IMPORTANT_NOTES),
    )
