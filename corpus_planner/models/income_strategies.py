"""
Income strategy module for post-retirement decumulation.

This module provides the three interchangeable withdrawal models used after
retirement: a sustainable percentage-of-corpus withdrawal, the 4% safe
withdrawal rule, and simple depletion of the corpus by actual expenses.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, ClassVar, Dict, List, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .compounding import compound_monthly

logger = logging.getLogger(__name__)

SAFE_WITHDRAWAL_RATE = 4.0
SAFE_WITHDRAWAL_MULTIPLIER = 25.0


class IncomeStrategyType(str, Enum):
    """Closed set of post-retirement income strategies."""

    SUSTAINABLE = "SUSTAINABLE"
    SAFE_4_PERCENT = "SAFE_4_PERCENT"
    SIMPLE_DEPLETION = "SIMPLE_DEPLETION"

    @classmethod
    def from_key(cls, key: Any) -> "IncomeStrategyType":
        """Resolve a strategy key; null or unrecognized keys mean SUSTAINABLE."""
        if isinstance(key, cls):
            return key
        if isinstance(key, str):
            normalized = key.strip().upper()
            if normalized in cls.__members__:
                return cls[normalized]
            logger.warning(f"Unknown income strategy {key!r}, using SUSTAINABLE")
        return cls.SUSTAINABLE


class StrategyParameters(BaseModel):
    """Rates shared by all strategies (percent values)."""

    model_config = ConfigDict(frozen=True)

    corpus_return_rate: float = Field(default=10.0, ge=0)
    withdrawal_rate: float = Field(default=8.0, ge=0)
    inflation_rate: float = Field(default=6.0, ge=0)

    @model_validator(mode="after")
    def warn_zero_withdrawal_rate(self):
        if self.withdrawal_rate == 0:
            logger.warning(
                "Withdrawal rate is 0; SUSTAINABLE falls back to the 4% rule (25x expenses)"
            )
        return self

    @property
    def effective_withdrawal_rate(self) -> float:
        """Withdrawal rate with the 4% fallback for an unset (zero) rate."""
        return self.withdrawal_rate if self.withdrawal_rate > 0 else SAFE_WITHDRAWAL_RATE


class WithdrawalState(NamedTuple):
    """Corpus state at the start of one post-retirement year."""

    corpus: float
    corpus_at_retirement: float
    required_annual_expense: float
    year_in_retirement: int
    remaining_years: int
    months: int = 12


class WithdrawalOutcome(NamedTuple):
    """Result of one post-retirement year under a strategy."""

    new_corpus: float
    withdrawal: float
    shortfall: float


class IncomeProjectionPoint(BaseModel):
    """Snapshot of the detailed retirement income projection."""

    model_config = ConfigDict(frozen=True)

    year: int
    age: int
    corpus: float
    monthly_income: float


class IncomeStrategy(ABC):
    """Base class for post-retirement income strategies."""

    strategy_type: ClassVar[IncomeStrategyType]

    def project_withdrawal(
        self, state: WithdrawalState, params: StrategyParameters
    ) -> WithdrawalOutcome:
        """
        Advance the corpus by one post-retirement year.

        The corpus compounds monthly at the corpus return rate for the months in
        the year, then the strategy's withdrawal is deducted, capped at the
        available balance.

        Args:
            state: Corpus state at the start of the year
            params: Shared strategy rates

        Returns:
            WithdrawalOutcome with the closing corpus, amount withdrawn and any
            unfunded shortfall
        """
        if state.remaining_years <= 0 or state.months <= 0:
            return WithdrawalOutcome(state.corpus, 0.0, 0.0)

        planned = self.planned_withdrawal(state, params)
        step = compound_monthly(
            state.corpus,
            params.corpus_return_rate,
            min(state.months, 12),
            closing_withdrawal=planned,
        )
        return WithdrawalOutcome(step.balance, step.withdrawn, step.shortfall)

    @abstractmethod
    def planned_withdrawal(self, state: WithdrawalState, params: StrategyParameters) -> float:
        """Withdrawal the strategy asks for in the year described by `state`."""

    @abstractmethod
    def corpus_for_expenses(
        self, yearly_expense: float, retirement_years: int, params: StrategyParameters
    ) -> float:
        """Corpus needed at retirement to fund `yearly_expense` under this strategy."""

    @abstractmethod
    def monthly_income(
        self, corpus: float, retirement_years: int, params: StrategyParameters
    ) -> float:
        """First-year monthly income a corpus supports under this strategy."""

    @abstractmethod
    def explanation(self, retirement_years: int, params: StrategyParameters) -> str:
        """Plain-language description of how the required corpus is derived."""

    def display_name(self, params: StrategyParameters) -> str:
        return self.strategy_type.value


class SustainableStrategy(IncomeStrategy):
    """Withdraw a fixed percentage of the current corpus each year."""

    strategy_type = IncomeStrategyType.SUSTAINABLE

    def planned_withdrawal(self, state: WithdrawalState, params: StrategyParameters) -> float:
        return state.corpus * params.effective_withdrawal_rate / 100

    def corpus_for_expenses(
        self, yearly_expense: float, retirement_years: int, params: StrategyParameters
    ) -> float:
        if params.withdrawal_rate > 0:
            return yearly_expense / (params.withdrawal_rate / 100)
        return yearly_expense * SAFE_WITHDRAWAL_MULTIPLIER

    def monthly_income(
        self, corpus: float, retirement_years: int, params: StrategyParameters
    ) -> float:
        return corpus * params.effective_withdrawal_rate / 100 / 12

    def explanation(self, retirement_years: int, params: StrategyParameters) -> str:
        return f"Yearly expense / {params.effective_withdrawal_rate:g}% withdrawal"

    def display_name(self, params: StrategyParameters) -> str:
        return (
            f"Sustainable ({params.corpus_return_rate:g}% return, "
            f"{params.effective_withdrawal_rate:g}% withdrawal)"
        )


class SafeFourPercentStrategy(IncomeStrategy):
    """Withdraw 4% of the retirement corpus, held constant in real terms."""

    strategy_type = IncomeStrategyType.SAFE_4_PERCENT

    def planned_withdrawal(self, state: WithdrawalState, params: StrategyParameters) -> float:
        initial = state.corpus_at_retirement * SAFE_WITHDRAWAL_RATE / 100
        return initial * (1 + params.inflation_rate / 100) ** state.year_in_retirement

    def corpus_for_expenses(
        self, yearly_expense: float, retirement_years: int, params: StrategyParameters
    ) -> float:
        return yearly_expense * SAFE_WITHDRAWAL_MULTIPLIER

    def monthly_income(
        self, corpus: float, retirement_years: int, params: StrategyParameters
    ) -> float:
        return corpus * SAFE_WITHDRAWAL_RATE / 100 / 12

    def explanation(self, retirement_years: int, params: StrategyParameters) -> str:
        return "25x yearly expenses (4% rule)"

    def display_name(self, params: StrategyParameters) -> str:
        return "4% Safe Withdrawal"


class SimpleDepletionStrategy(IncomeStrategy):
    """Draw down actual inflation-adjusted expenses until the corpus runs out."""

    strategy_type = IncomeStrategyType.SIMPLE_DEPLETION

    def planned_withdrawal(self, state: WithdrawalState, params: StrategyParameters) -> float:
        return max(state.required_annual_expense, 0.0)

    def corpus_for_expenses(
        self, yearly_expense: float, retirement_years: int, params: StrategyParameters
    ) -> float:
        growth = 1 + params.inflation_rate / 100
        return sum(yearly_expense * growth**year for year in range(max(retirement_years, 0)))

    def monthly_income(
        self, corpus: float, retirement_years: int, params: StrategyParameters
    ) -> float:
        if retirement_years <= 0:
            return 0.0
        return corpus / retirement_years / 12

    def explanation(self, retirement_years: int, params: StrategyParameters) -> str:
        return f"Corpus depletes over {max(retirement_years, 0)} years"

    def display_name(self, params: StrategyParameters) -> str:
        return "Simple Depletion"


_STRATEGIES: Dict[IncomeStrategyType, IncomeStrategy] = {
    IncomeStrategyType.SUSTAINABLE: SustainableStrategy(),
    IncomeStrategyType.SAFE_4_PERCENT: SafeFourPercentStrategy(),
    IncomeStrategyType.SIMPLE_DEPLETION: SimpleDepletionStrategy(),
}


def get_income_strategy(key: Any) -> IncomeStrategy:
    """Get the strategy for a key; unknown or null keys give SUSTAINABLE."""
    return _STRATEGIES[IncomeStrategyType.from_key(key)]


def all_income_strategies() -> List[IncomeStrategy]:
    """All strategies in declaration order."""
    return [_STRATEGIES[strategy_type] for strategy_type in IncomeStrategyType]


def project_retirement_income(
    strategy: IncomeStrategy,
    params: StrategyParameters,
    corpus_at_retirement: float,
    yearly_expense_at_retirement: float,
    retirement_age: int,
    retirement_years: int,
    horizon_cap: int = 30,
    step: int = 5,
) -> List[IncomeProjectionPoint]:
    """
    Detailed income projection at `step`-year intervals after retirement.

    The projection stops at min(retirement_years, horizon_cap). Between points
    the corpus is advanced one year at a time, never past the final
    retirement year.
    """
    points: List[IncomeProjectionPoint] = []
    corpus = corpus_at_retirement
    horizon = min(max(retirement_years, 0), horizon_cap)
    growth = 1 + params.inflation_rate / 100

    def state_for(year: int, balance: float) -> WithdrawalState:
        return WithdrawalState(
            corpus=balance,
            corpus_at_retirement=corpus_at_retirement,
            required_annual_expense=yearly_expense_at_retirement * growth**year,
            year_in_retirement=year,
            remaining_years=retirement_years - year,
        )

    for year in range(0, horizon + 1, step):
        state = state_for(year, corpus)
        monthly_income = 0.0
        if state.remaining_years > 0:
            monthly_income = min(strategy.planned_withdrawal(state, params), corpus) / 12

        points.append(
            IncomeProjectionPoint(
                year=year,
                age=retirement_age + year,
                corpus=corpus,
                monthly_income=monthly_income,
            )
        )

        offset = 0
        while offset < step and year + offset < retirement_years:
            corpus = strategy.project_withdrawal(
                state_for(year + offset, corpus), params
            ).new_corpus
            offset += 1

    return points
