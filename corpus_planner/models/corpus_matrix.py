"""
Corpus matrix generator.

This module produces the year-by-year corpus projection. Rows run from year 0
(today) to the retirement year; the post-retirement years up to life
expectancy are produced separately as decumulation rows by the active income
strategy.

Each accumulation year every asset class grows one year with its contributions,
the mutual-fund SIP is stepped up, and administered rates may be reduced. Every
row also credits instrument maturities and annuity income, debits inflated goal
outflows and the optional one-time withdrawal, and records the corpus required
to retire at that row under each of the three strategies.
"""

import logging
from collections import defaultdict
from datetime import date
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from corpus_planner.config import EngineDefaults

from .aggregation import (
    RATE_REDUCED_CLASSES,
    AssetClass,
    AssetPosition,
    MaturityEvent,
    MaturitySchedule,
    aggregate_positions,
    collect_maturities,
    maturing_before_retirement,
    split_maturing,
)
from .compounding import future_value, grow_with_sip, inflated_value
from .gap_analysis import (
    GapAnalysisResult,
    RequiredCorpusCalculator,
    analyze_gap,
    strategy_parameters,
)
from .income_strategies import (
    IncomeProjectionPoint,
    IncomeStrategy,
    IncomeStrategyType,
    StrategyParameters,
    WithdrawalState,
    all_income_strategies,
    get_income_strategy,
    project_retirement_income,
)
from .records import FinancialRecords
from .scenario import ScenarioParameters
from .step_up_optimizer import StepUpOptimization, optimize_step_up

logger = logging.getLogger(__name__)


class ProjectionPhase(str, Enum):
    ACCUMULATION = "ACCUMULATION"
    RETIREMENT = "RETIREMENT"
    DECUMULATION = "DECUMULATION"


class ProjectionRow(BaseModel):
    """One projection year. Rows are never modified after creation."""

    model_config = ConfigDict(frozen=True)

    year_index: int
    year: int = Field(..., description="Calendar year")
    age: int
    phase: ProjectionPhase

    balances: Dict[AssetClass, float] = Field(default_factory=dict)
    reinvested_balance: float = Field(
        default=0.0,
        description="Maturities and annuities received, net of goals and withdrawals",
    )
    rates: Dict[AssetClass, float] = Field(default_factory=dict)
    mf_sip: float = 0.0
    total_corpus: float

    goal_outflow: float = 0.0
    goals: List[str] = Field(default_factory=list)
    maturity_inflow: float = 0.0
    maturing_instruments: List[str] = Field(default_factory=list)
    annuity_inflow: float = 0.0
    one_time_withdrawal: float = 0.0
    withdrawal: float = 0.0
    shortfall: float = 0.0

    sip_step_up_active: bool = False
    required_corpus: Dict[IncomeStrategyType, float] = Field(default_factory=dict)
    can_retire: Dict[IncomeStrategyType, bool] = Field(default_factory=dict)


class MatrixSummary(BaseModel):
    """Headline figures of a projection."""

    model_config = ConfigDict(frozen=True)

    final_corpus: float
    income_strategy: IncomeStrategyType
    strategy_name: str
    corpus_return_rate: float
    withdrawal_rate: float
    monthly_income_by_strategy: Dict[IncomeStrategyType, float]
    selected_monthly_income: float
    starting_balances: Dict[AssetClass, float]
    starting_mf_sip: float
    retirement_income_projection: List[IncomeProjectionPoint] = Field(
        default_factory=list
    )
    corpus_at_life_expectancy: float
    depletion_age: Optional[int] = Field(
        default=None, description="First age at which a planned withdrawal went unfunded"
    )
    excluded_from_corpus: str = "Gold, Real Estate, Crypto (illiquid assets)"
    step_up_optimization: StepUpOptimization


class RetirementMatrix(BaseModel):
    """Complete projection for one scenario."""

    model_config = ConfigDict(frozen=True)

    scenario: ScenarioParameters
    rows: List[ProjectionRow]
    decumulation_rows: List[ProjectionRow] = Field(default_factory=list)
    summary: MatrixSummary
    gap_analysis: GapAnalysisResult
    maturing_before_retirement: MaturitySchedule

    @property
    def final_corpus(self) -> float:
        return self.rows[-1].total_corpus

    @property
    def all_rows(self) -> List[ProjectionRow]:
        return self.rows + self.decumulation_rows


class CorpusMatrixGenerator:
    """
    Generates the year-by-year corpus projection for a records snapshot.

    Args:
        records: Financial records fetched once for this invocation
        scenario: Scenario parameters (unset rates fall back to `defaults`)
        defaults: Engine-wide defaults
        as_of: Date of projection year 0
    """

    def __init__(
        self,
        records: FinancialRecords,
        scenario: ScenarioParameters,
        defaults: EngineDefaults,
        as_of: date,
    ):
        self.records = records
        self.scenario = scenario.resolved(defaults)
        self.defaults = defaults
        self.as_of = as_of
        self.current_year = as_of.year

        self.params: StrategyParameters = strategy_parameters(self.scenario, defaults)
        self.strategy: IncomeStrategy = get_income_strategy(self.scenario.income_strategy)
        self.calculator = RequiredCorpusCalculator(records, self.params, self.current_year)

        self.years_to_retirement = self.scenario.years_to_retirement
        self.retirement_years = self.scenario.retirement_years
        self.last_year = (
            self.current_year + self.years_to_retirement + self.retirement_years
        )

        pooled, _ = split_maturing(records.investments, self.current_year, self.last_year)
        self.positions: Dict[AssetClass, AssetPosition] = aggregate_positions(
            pooled, self.scenario, defaults
        )
        self.maturities: Dict[int, List[MaturityEvent]] = defaultdict(list)
        for event in collect_maturities(
            records.investments,
            records.insurances,
            as_of,
            self.scenario,
            defaults,
            self.last_year,
        ):
            self.maturities[event.calendar_year].append(event)

    def rates_for_year(self, year_index: int) -> Dict[AssetClass, float]:
        """Effective rates in force in a projection year."""
        schedule = self.scenario.rate_reduction
        rates = {}
        for asset_class, position in self.positions.items():
            rate = position.rate
            if asset_class == AssetClass.MUTUAL_FUND:
                rate = self.scenario.mf_rate_for_year(year_index, rate)
            elif schedule is not None and asset_class in RATE_REDUCED_CLASSES:
                rate = schedule.apply(rate, year_index)
            rates[asset_class] = rate
        return rates

    def _goal_outflow(self, calendar_year: int):
        outflow = 0.0
        names = []
        for goal in self.records.goals:
            if calendar_year not in goal.occurrence_years(self.last_year):
                continue
            outflow += inflated_value(
                goal.target_amount or 0.0,
                self.scenario.inflation_rate,
                calendar_year - self.current_year,
            )
            names.append(goal.name or "Goal")
        return outflow, names

    def _annuity_inflow(self, calendar_year: int) -> float:
        return sum(
            policy.annual_annuity_in_year(calendar_year)
            for policy in self.records.insurances
        )

    def _one_time_withdrawal(self, calendar_year: int) -> float:
        withdrawal = self.scenario.one_time_withdrawal
        if withdrawal is None or withdrawal.year != calendar_year:
            return 0.0
        return withdrawal.amount

    def _required_for_row(self, year_index: int, age: int, total_corpus: float):
        retirement_years = max(self.scenario.life_expectancy - age, 0)
        required = self.calculator.required_by_strategy(year_index, retirement_years)
        can_retire = {key: total_corpus >= value for key, value in required.items()}
        return required, can_retire

    def _phase(self, year_index: int) -> ProjectionPhase:
        if year_index < self.years_to_retirement:
            return ProjectionPhase.ACCUMULATION
        if year_index == self.years_to_retirement:
            return ProjectionPhase.RETIREMENT
        return ProjectionPhase.DECUMULATION

    def accumulation_rows(self) -> List[ProjectionRow]:
        """Rows for years 0 through retirement, inclusive."""
        step_up = self.scenario.sip_step_up_percent
        effective_from = self.scenario.effective_from_year

        balances = {cls: pos.current_value for cls, pos in self.positions.items()}
        balances[AssetClass.MUTUAL_FUND] += self.scenario.lumpsum_amount
        mf_sip = self.positions[AssetClass.MUTUAL_FUND].monthly_contribution
        reinvested = 0.0

        rows: List[ProjectionRow] = []
        for year_index in range(self.years_to_retirement + 1):
            calendar_year = self.current_year + year_index
            age = self.scenario.current_age + year_index
            rates = self.rates_for_year(year_index)
            sip_paid = mf_sip
            step_up_active = False

            if year_index > 0:
                for asset_class, position in self.positions.items():
                    monthly = (
                        mf_sip
                        if asset_class == AssetClass.MUTUAL_FUND
                        else position.monthly_contribution
                    )
                    balances[asset_class] = (
                        grow_with_sip(balances[asset_class], rates[asset_class], monthly)
                        + position.yearly_contribution
                    )
                reinvested = future_value(reinvested, rates[AssetClass.OTHER], 1)

                if step_up > 0 and year_index >= effective_from:
                    mf_sip *= 1 + step_up / 100
                    step_up_active = True

            events = self.maturities.get(calendar_year, [])
            maturity_inflow = sum(event.maturity_value for event in events)
            annuity_inflow = self._annuity_inflow(calendar_year)
            goal_outflow, goal_names = self._goal_outflow(calendar_year)
            reinvested += maturity_inflow + annuity_inflow - goal_outflow

            shortfall = 0.0
            requested = self._one_time_withdrawal(calendar_year)
            available = max(sum(balances.values()) + reinvested, 0.0)
            taken = min(requested, available)
            reinvested -= taken
            shortfall += requested - taken

            total = sum(balances.values()) + reinvested
            if total < 0:
                # Goals larger than the corpus; the uncovered part is a shortfall
                shortfall += -total
                reinvested -= total
                total = 0.0

            required, can_retire = self._required_for_row(year_index, age, total)
            rows.append(
                ProjectionRow(
                    year_index=year_index,
                    year=calendar_year,
                    age=age,
                    phase=self._phase(year_index),
                    balances=dict(balances),
                    reinvested_balance=reinvested,
                    rates=rates,
                    mf_sip=sip_paid,
                    total_corpus=total,
                    goal_outflow=goal_outflow,
                    goals=goal_names,
                    maturity_inflow=maturity_inflow,
                    maturing_instruments=[event.label for event in events],
                    annuity_inflow=annuity_inflow,
                    one_time_withdrawal=taken,
                    shortfall=shortfall,
                    sip_step_up_active=step_up_active,
                    required_corpus=required,
                    can_retire=can_retire,
                )
            )

        return rows

    def decumulation_rows(self, corpus_at_retirement: float) -> List[ProjectionRow]:
        """Post-retirement rows, one per year up to life expectancy."""
        growth = 1 + self.scenario.inflation_rate / 100
        yearly_spending = self.calculator.yearly_spending_at_retirement(
            self.years_to_retirement
        )
        corpus = corpus_at_retirement

        rows: List[ProjectionRow] = []
        for offset in range(1, self.retirement_years + 1):
            year_index = self.years_to_retirement + offset
            calendar_year = self.current_year + year_index
            age = self.scenario.current_age + year_index
            year_in_retirement = offset - 1

            outcome = self.strategy.project_withdrawal(
                WithdrawalState(
                    corpus=corpus,
                    corpus_at_retirement=corpus_at_retirement,
                    required_annual_expense=yearly_spending * growth**year_in_retirement,
                    year_in_retirement=year_in_retirement,
                    remaining_years=self.retirement_years - year_in_retirement,
                ),
                self.params,
            )
            corpus = outcome.new_corpus
            shortfall = outcome.shortfall

            events = self.maturities.get(calendar_year, [])
            maturity_inflow = sum(event.maturity_value for event in events)
            annuity_inflow = self._annuity_inflow(calendar_year)
            goal_outflow, goal_names = self._goal_outflow(calendar_year)
            corpus += maturity_inflow + annuity_inflow

            requested = goal_outflow + self._one_time_withdrawal(calendar_year)
            taken = min(requested, corpus)
            corpus -= taken
            shortfall += requested - taken

            required, can_retire = self._required_for_row(year_index, age, corpus)
            rows.append(
                ProjectionRow(
                    year_index=year_index,
                    year=calendar_year,
                    age=age,
                    phase=ProjectionPhase.DECUMULATION,
                    total_corpus=corpus,
                    goal_outflow=goal_outflow,
                    goals=goal_names,
                    maturity_inflow=maturity_inflow,
                    maturing_instruments=[event.label for event in events],
                    annuity_inflow=annuity_inflow,
                    one_time_withdrawal=max(taken - goal_outflow, 0.0),
                    withdrawal=outcome.withdrawal,
                    shortfall=shortfall,
                    required_corpus=required,
                    can_retire=can_retire,
                )
            )

        return rows

    def generate(self) -> RetirementMatrix:
        """
        Run the full projection.

        Returns:
            RetirementMatrix with accumulation and decumulation rows, the
            summary, gap analysis and instruments maturing before retirement
        """
        logger.info(
            f"Generating corpus matrix: age {self.scenario.current_age} to "
            f"{self.scenario.retirement_age}, life expectancy "
            f"{self.scenario.life_expectancy}, strategy "
            f"{self.strategy.strategy_type.value}"
        )

        rows = self.accumulation_rows()
        final_row = rows[-1]
        final_corpus = final_row.total_corpus
        decumulation = self.decumulation_rows(final_corpus)

        gap = analyze_gap(
            self.records, self.scenario, self.defaults, final_corpus, self.current_year
        )

        mf_final = final_row.balances[AssetClass.MUTUAL_FUND]
        optimization = optimize_step_up(
            self.positions[AssetClass.MUTUAL_FUND],
            self.scenario,
            required_corpus=gap.required_corpus_by_strategy[IncomeStrategyType.SUSTAINABLE],
            other_assets_corpus=final_corpus - mf_final,
        )

        summary = self._summarize(rows, decumulation, optimization)
        logger.info(
            f"Corpus matrix complete: {len(rows)} rows, final corpus {final_corpus:,.0f}"
        )

        return RetirementMatrix(
            scenario=self.scenario,
            rows=rows,
            decumulation_rows=decumulation,
            summary=summary,
            gap_analysis=gap,
            maturing_before_retirement=maturing_before_retirement(
                self.records.investments,
                self.records.insurances,
                self.as_of,
                self.scenario,
                self.defaults,
            ),
        )

    def _summarize(
        self,
        rows: List[ProjectionRow],
        decumulation: List[ProjectionRow],
        optimization: StepUpOptimization,
    ) -> MatrixSummary:
        final_corpus = rows[-1].total_corpus
        monthly_income = {
            strategy.strategy_type: strategy.monthly_income(
                final_corpus, self.retirement_years, self.params
            )
            for strategy in all_income_strategies()
        }

        depletion_age = next(
            (row.age for row in [rows[-1]] + decumulation if row.shortfall > 0), None
        )
        corpus_at_life_expectancy = (
            decumulation[-1].total_corpus if decumulation else final_corpus
        )

        return MatrixSummary(
            final_corpus=final_corpus,
            income_strategy=self.strategy.strategy_type,
            strategy_name=self.strategy.display_name(self.params),
            corpus_return_rate=self.params.corpus_return_rate,
            withdrawal_rate=self.params.withdrawal_rate,
            monthly_income_by_strategy=monthly_income,
            selected_monthly_income=monthly_income[self.strategy.strategy_type],
            starting_balances={
                cls: pos.current_value for cls, pos in self.positions.items()
            },
            starting_mf_sip=self.positions[AssetClass.MUTUAL_FUND].monthly_contribution,
            retirement_income_projection=project_retirement_income(
                self.strategy,
                self.params,
                final_corpus,
                self.calculator.yearly_spending_at_retirement(self.years_to_retirement),
                retirement_age=rows[-1].age,
                retirement_years=self.retirement_years,
                horizon_cap=self.defaults.income_projection_horizon,
            ),
            corpus_at_life_expectancy=corpus_at_life_expectancy,
            depletion_age=depletion_age,
            step_up_optimization=optimization,
        )


def generate_matrix(
    records: FinancialRecords,
    scenario: ScenarioParameters,
    defaults: EngineDefaults,
    as_of: date,
) -> RetirementMatrix:
    """Convenience wrapper around CorpusMatrixGenerator."""
    return CorpusMatrixGenerator(records, scenario, defaults, as_of).generate()
