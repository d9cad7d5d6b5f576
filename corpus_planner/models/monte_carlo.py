"""
Monte Carlo simulator for corpus outcomes.

This module runs independent return paths over a fixed horizon. Each path
draws a normally distributed annual return around the mutual-fund mean and
compounds the current corpus plus a year of SIP contributions. Terminal values
are reduced to percentile bands, an average, and a success rate against a
target corpus.
"""

import logging
from typing import Optional

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

PERCENTILE_LEVELS = (0.10, 0.25, 0.50, 0.75, 0.90)


class MonteCarloConfig(BaseModel):
    """Configuration for a Monte Carlo run."""

    simulations: int = Field(
        default=1000, ge=1, le=100000, description="Number of simulation paths"
    )
    years: int = Field(default=10, ge=0, le=100, description="Horizon in years")
    initial_value: float = Field(default=0.0, ge=0, description="Corpus today")
    monthly_sip: float = Field(default=0.0, ge=0, description="Monthly contribution")
    mean_return: float = Field(default=12.0, description="Mean annual return, percent")
    std_dev: float = Field(
        default=8.0, ge=0, description="Standard deviation of annual return, percent"
    )
    target_corpus: float = Field(default=0.0, ge=0, description="Success threshold")
    seed: Optional[int] = Field(
        default=None, ge=0, description="Random seed for reproducibility"
    )


class PercentileBands(BaseModel):
    """Terminal corpus at fixed percentiles (ordered by construction)."""

    p10: float
    p25: float
    p50: float
    p75: float
    p90: float


class SimulationResult(BaseModel):
    """Result of a Monte Carlo run."""

    model_config = {"arbitrary_types_allowed": True}

    simulations: int
    years: int
    percentiles: PercentileBands
    average: float
    success_rate: float = Field(..., ge=0, le=1, description="Success rate (0-1)")
    target_corpus: float
    mean_return: float
    std_dev: float
    # Sorted terminal corpus of every path (simulations,)
    terminal_values: NDArray[np.float64] = Field(
        ..., description="Sorted terminal values"
    )


class MonteCarloSimulator:
    """Vectorised Monte Carlo corpus simulator."""

    def __init__(self, config: MonteCarloConfig):
        """Initialize the simulator.

        Args:
            config: Configuration for the run
        """
        self.config = config
        self.rng = np.random.default_rng(config.seed)

    def simulate_returns(self) -> NDArray[np.float64]:
        """
        Draw annual returns for every path.

        Returns:
            Array of shape (years, simulations) with returns in percent
        """
        shape = (self.config.years, self.config.simulations)
        return self.config.mean_return + self.rng.standard_normal(shape) * self.config.std_dev

    def terminal_values(self, returns: NDArray[np.float64]) -> NDArray[np.float64]:
        """
        Compound every path to the horizon.

        Each year the corpus earns the drawn return, and a year of SIP is added
        earning half the return on average.
        """
        values = np.full(self.config.simulations, self.config.initial_value, dtype=np.float64)
        yearly_sip = self.config.monthly_sip * 12

        for year_returns in returns:
            rate = year_returns / 100
            values = values * (1 + rate) + yearly_sip * (1 + rate / 2)

        return values

    def run(self) -> SimulationResult:
        """
        Run the simulation.

        Returns:
            SimulationResult with percentile bands, average and success rate
        """
        n = self.config.simulations
        final_values = np.sort(self.terminal_values(self.simulate_returns()))

        def at(level: float) -> float:
            return float(final_values[min(int(n * level), n - 1)])

        p10, p25, p50, p75, p90 = (at(level) for level in PERCENTILE_LEVELS)
        success_rate = float(np.mean(final_values >= self.config.target_corpus))

        logger.debug(
            f"Monte Carlo: {n} paths over {self.config.years} years, "
            f"median {p50:,.0f}, success rate {success_rate:.3f}"
        )

        return SimulationResult(
            simulations=n,
            years=self.config.years,
            percentiles=PercentileBands(p10=p10, p25=p25, p50=p50, p75=p75, p90=p90),
            average=float(np.mean(final_values)),
            success_rate=success_rate,
            target_corpus=self.config.target_corpus,
            mean_return=self.config.mean_return,
            std_dev=self.config.std_dev,
            terminal_values=final_values,
        )
