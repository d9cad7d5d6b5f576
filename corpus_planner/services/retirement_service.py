"""
Retirement service exposing the engine's per-user entry points.

Each entry point fetches the user's records once, resolves the scenario in
effect (caller supplied, else persisted settings, else defaults) and runs the
relevant engine components. Nothing is written back to the provider.
"""

import logging
from datetime import date
from typing import Optional

from corpus_planner.config import EngineDefaults, get_global_settings
from corpus_planner.models.aggregation import (
    MaturitySchedule,
    aggregate_positions,
    maturing_before_retirement,
)
from corpus_planner.models.corpus_matrix import RetirementMatrix, generate_matrix
from corpus_planner.models.gap_analysis import GapAnalysisResult
from corpus_planner.models.monte_carlo import (
    MonteCarloConfig,
    MonteCarloSimulator,
    SimulationResult,
)
from corpus_planner.models.scenario import ScenarioParameters, default_scenario
from corpus_planner.models.withdrawal_plan import WithdrawalPlan, build_withdrawal_plan
from corpus_planner.records.base import FinancialRecordsProvider, require_user_id

logger = logging.getLogger(__name__)


class RetirementService:
    """Service coordinating the projection engine for one records provider."""

    def __init__(
        self,
        provider: FinancialRecordsProvider,
        defaults: Optional[EngineDefaults] = None,
        max_simulations: Optional[int] = None,
    ) -> None:
        """Initialize the retirement service.

        Args:
            provider: Source of users' financial records
            defaults: Engine defaults (built from the global settings if omitted)
            max_simulations: Ceiling on Monte Carlo paths per call
        """
        settings = get_global_settings()
        self.provider = provider
        self.defaults = defaults or settings.to_defaults()
        self.max_simulations = max_simulations or settings.monte_carlo_max_simulations

    def resolve_scenario(
        self, user_id: str, scenario: Optional[ScenarioParameters] = None
    ) -> ScenarioParameters:
        """Scenario in effect: the caller's, else persisted settings, else defaults."""
        if scenario is None:
            scenario = self.provider.get_scenario_settings(user_id)
            if scenario is None:
                logger.debug(f"No saved scenario for user {user_id}, using defaults")
                scenario = default_scenario(self.defaults)
        return scenario.resolved(self.defaults)

    def generate_retirement_matrix(
        self,
        user_id: str,
        scenario: Optional[ScenarioParameters] = None,
        as_of: Optional[date] = None,
    ) -> RetirementMatrix:
        """Generate the year-by-year corpus matrix for a user.

        Args:
            user_id: User whose records are projected
            scenario: Scenario overrides for this call
            as_of: Date of projection year 0 (today if omitted)

        Returns:
            RetirementMatrix with rows, summary and gap analysis

        Raises:
            MissingUserContextError: If `user_id` is missing
        """
        user_id = require_user_id(user_id)
        logger.info(f"Generating retirement matrix for user {user_id}")

        records = self.provider.fetch_records(user_id)
        resolved = self.resolve_scenario(user_id, scenario)
        return generate_matrix(records, resolved, self.defaults, as_of or date.today())

    def calculate_required_corpus_for_user(
        self,
        user_id: str,
        scenario: Optional[ScenarioParameters] = None,
        as_of: Optional[date] = None,
    ) -> GapAnalysisResult:
        """Gap analysis of required versus projected corpus for a user.

        The projected corpus is the matrix's corpus at retirement, so the gap
        reflects maturities, goals and withdrawals before retirement.

        Raises:
            MissingUserContextError: If `user_id` is missing
        """
        matrix = self.generate_retirement_matrix(user_id, scenario, as_of)
        return matrix.gap_analysis

    def generate_withdrawal_strategy(
        self,
        user_id: str,
        scenario: Optional[ScenarioParameters] = None,
    ) -> WithdrawalPlan:
        """Three-phase withdrawal order plan for a user.

        Raises:
            MissingUserContextError: If `user_id` is missing
        """
        user_id = require_user_id(user_id)
        logger.info(f"Generating withdrawal strategy for user {user_id}")

        records = self.provider.fetch_records(user_id)
        resolved = self.resolve_scenario(user_id, scenario)
        return build_withdrawal_plan(
            records.investments, records.expenses, resolved, self.defaults
        )

    def run_monte_carlo_simulation(
        self,
        user_id: str,
        simulations: int = 1000,
        years: int = 10,
        scenario: Optional[ScenarioParameters] = None,
        seed: Optional[int] = None,
        as_of: Optional[date] = None,
    ) -> SimulationResult:
        """Run a Monte Carlo simulation of the user's corpus.

        Paths start from the aggregated corpus and monthly SIPs and grow around
        the scenario's mutual-fund return. Success is measured against the
        required corpus from the gap solver, computed on the same records.

        Args:
            user_id: User whose records are simulated
            simulations: Number of paths (capped at the configured maximum)
            years: Horizon in years
            scenario: Scenario overrides for the target corpus
            seed: Optional seed for reproducible runs
            as_of: Date the target corpus is computed from (today if omitted)

        Returns:
            SimulationResult with percentile bands and success rate

        Raises:
            MissingUserContextError: If `user_id` is missing
        """
        user_id = require_user_id(user_id)
        if simulations > self.max_simulations:
            logger.warning(
                f"Requested {simulations} simulations, capping at {self.max_simulations}"
            )
            simulations = self.max_simulations

        records = self.provider.fetch_records(user_id)
        resolved = self.resolve_scenario(user_id, scenario)
        matrix = generate_matrix(records, resolved, self.defaults, as_of or date.today())
        target = matrix.gap_analysis.required_corpus

        positions = aggregate_positions(records.investments, resolved, self.defaults)
        initial_value = sum(position.current_value for position in positions.values())
        monthly_sip = sum(position.monthly_contribution for position in positions.values())

        logger.info(
            f"Running {simulations} Monte Carlo paths over {years} years "
            f"for user {user_id}"
        )
        config = MonteCarloConfig(
            simulations=simulations,
            years=years,
            initial_value=initial_value,
            monthly_sip=monthly_sip,
            mean_return=resolved.mf_return,
            std_dev=self.defaults.monte_carlo_std_dev,
            target_corpus=target,
            seed=seed,
        )
        return MonteCarloSimulator(config).run()

    def calculate_maturing_before_retirement(
        self,
        user_id: str,
        scenario: Optional[ScenarioParameters] = None,
        as_of: Optional[date] = None,
    ) -> MaturitySchedule:
        """Investments and policies maturing between today and retirement.

        Raises:
            MissingUserContextError: If `user_id` is missing
        """
        user_id = require_user_id(user_id)
        records = self.provider.fetch_records(user_id)
        resolved = self.resolve_scenario(user_id, scenario)
        return maturing_before_retirement(
            records.investments,
            records.insurances,
            as_of or date.today(),
            resolved,
            self.defaults,
        )
