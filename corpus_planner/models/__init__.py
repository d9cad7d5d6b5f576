"""Data models and engines for retirement corpus projections."""

from .records import (
    Expense,
    ExpenseFrequency,
    FinancialRecords,
    Goal,
    HealthInsuranceType,
    Income,
    Insurance,
    InsuranceType,
    Investment,
    InvestmentType,
    Loan,
)
from .income_strategies import (
    IncomeStrategy,
    IncomeStrategyType,
    StrategyParameters,
    get_income_strategy,
)
from .scenario import (
    OneTimeWithdrawal,
    PeriodReturn,
    RateReductionSchedule,
    ScenarioParameters,
    default_scenario,
)
from .aggregation import (
    AssetClass,
    AssetPosition,
    MaturityEvent,
    MaturitySchedule,
    aggregate_positions,
)
from .gap_analysis import GapAnalysisResult, RequiredCorpusCalculator, analyze_gap
from .step_up_optimizer import StepUpOptimization, optimize_step_up
from .corpus_matrix import (
    CorpusMatrixGenerator,
    ProjectionRow,
    RetirementMatrix,
    generate_matrix,
)
from .monte_carlo import MonteCarloConfig, MonteCarloSimulator, SimulationResult
from .withdrawal_plan import WithdrawalPlan, build_withdrawal_plan

__all__ = [
    "Income",
    "Investment",
    "InvestmentType",
    "Loan",
    "Insurance",
    "InsuranceType",
    "HealthInsuranceType",
    "Expense",
    "ExpenseFrequency",
    "Goal",
    "FinancialRecords",
    "IncomeStrategy",
    "IncomeStrategyType",
    "StrategyParameters",
    "get_income_strategy",
    "ScenarioParameters",
    "PeriodReturn",
    "RateReductionSchedule",
    "OneTimeWithdrawal",
    "default_scenario",
    "AssetClass",
    "AssetPosition",
    "MaturityEvent",
    "MaturitySchedule",
    "aggregate_positions",
    "GapAnalysisResult",
    "RequiredCorpusCalculator",
    "analyze_gap",
    "StepUpOptimization",
    "optimize_step_up",
    "CorpusMatrixGenerator",
    "ProjectionRow",
    "RetirementMatrix",
    "generate_matrix",
    "MonteCarloConfig",
    "MonteCarloSimulator",
    "SimulationResult",
    "WithdrawalPlan",
    "build_withdrawal_plan",
]
