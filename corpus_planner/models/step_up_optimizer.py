"""
SIP step-up optimizer.

Scans "stop stepping up the SIP after year N" candidates and recommends the
earliest stop year whose projected corpus still meets the required corpus.
This is a bounded scenario scan, not a true optimizer.
"""

import logging
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .aggregation import AssetPosition
from .compounding import grow_with_sip
from .scenario import ScenarioParameters

logger = logging.getLogger(__name__)


class OptimizationScenario(BaseModel):
    """Projected outcome of stopping the step-up after `stop_year`."""

    model_config = ConfigDict(frozen=True)

    stop_year: int = Field(..., ge=0)
    mf_corpus: float
    projected_corpus: float = Field(..., description="Other assets plus MF corpus")
    meets_target: bool
    surplus: float
    final_sip_at_stop: float
    label: str


class StepUpOptimization(BaseModel):
    """Result of the step-up scan."""

    model_config = ConfigDict(frozen=True)

    step_up_percent: float
    effective_from_year: int
    starting_sip: float
    required_corpus: float
    other_assets_corpus: float
    full_step_up_corpus: float
    optimal_stop_year: Optional[int] = None
    can_stop_early: bool = False
    sip_at_full_step_up: float
    sip_at_optimal_stop: float
    monthly_relief: float = 0.0
    recommendation: str
    scenarios: List[OptimizationScenario] = Field(default_factory=list)


def sip_after_step_ups(
    monthly_sip: float, step_up_percent: float, effective_from_year: int, stop_year: int
) -> float:
    """SIP in force once step-ups in years [effective_from_year, stop_year) are applied."""
    step_ups = max(stop_year - max(effective_from_year, 1), 0)
    return monthly_sip * (1 + step_up_percent / 100) ** step_ups


def project_mf_corpus(
    opening_balance: float,
    monthly_sip: float,
    scenario: ScenarioParameters,
    default_rate: float,
    stop_year: int,
) -> Tuple[float, float]:
    """
    Project the mutual-fund corpus to retirement with step-up stopping at `stop_year`.

    Each year the balance grows one year with the SIP in force; the SIP is then
    stepped up if the year is at or after the effective-from year and before
    the stop year.

    Returns:
        Tuple of (corpus at retirement, SIP in force at the end)
    """
    step_up = scenario.sip_step_up_percent or 0.0
    corpus = opening_balance
    sip = monthly_sip

    for year in range(1, scenario.years_to_retirement + 1):
        rate = scenario.mf_rate_for_year(year, default_rate)
        corpus = grow_with_sip(corpus, rate, sip)
        if step_up > 0 and scenario.effective_from_year <= year < stop_year:
            sip *= 1 + step_up / 100

    return corpus, sip


def _label(stop_year: int, effective_from_year: int, years_to_retirement: int) -> str:
    if stop_year <= max(effective_from_year, 1):
        return "No step-up"
    if stop_year >= years_to_retirement:
        return "Step-up until retirement"
    return f"Stop step-up after year {stop_year}"


def optimize_step_up(
    mf_position: AssetPosition,
    scenario: ScenarioParameters,
    required_corpus: float,
    other_assets_corpus: float = 0.0,
) -> StepUpOptimization:
    """
    Find the earliest SIP step-up stop year that still meets the target.

    Args:
        mf_position: Aggregated mutual-fund position (value, SIP and rate)
        scenario: Resolved scenario (step-up percent, effective-from year,
            years to retirement, MF period returns, lump sum)
        required_corpus: Corpus to meet at retirement
        other_assets_corpus: Projected retirement value of all non-MF assets

    Returns:
        StepUpOptimization with every scanned scenario and a recommendation
    """
    step_up = scenario.sip_step_up_percent or 0.0
    years_to_retirement = scenario.years_to_retirement
    effective_from = scenario.effective_from_year
    starting_sip = mf_position.monthly_contribution
    opening = mf_position.current_value + (scenario.lumpsum_amount or 0.0)

    scenarios: List[OptimizationScenario] = []
    for stop_year in range(0, years_to_retirement + 1):
        mf_corpus, _ = project_mf_corpus(
            opening, starting_sip, scenario, mf_position.rate, stop_year
        )
        projected = other_assets_corpus + mf_corpus
        scenarios.append(
            OptimizationScenario(
                stop_year=stop_year,
                mf_corpus=mf_corpus,
                projected_corpus=projected,
                meets_target=projected >= required_corpus,
                surplus=projected - required_corpus,
                final_sip_at_stop=sip_after_step_ups(
                    starting_sip, step_up, effective_from, stop_year
                ),
                label=_label(stop_year, effective_from, years_to_retirement),
            )
        )

    full = scenarios[-1]
    optimal = next((s for s in scenarios if s.meets_target), None)
    sip_at_full = sip_after_step_ups(
        starting_sip, step_up, effective_from, years_to_retirement
    )
    sip_at_optimal = optimal.final_sip_at_stop if optimal is not None else sip_at_full
    can_stop_early = (
        step_up > 0
        and starting_sip > 0
        and optimal is not None
        and optimal.stop_year < years_to_retirement
    )

    if step_up <= 0 or starting_sip <= 0:
        status = "meets" if full.meets_target else "falls short of"
        recommendation = (
            f"No SIP step-up in effect. A flat SIP of {starting_sip:,.0f}/month "
            f"projects {full.projected_corpus:,.0f}, which {status} the required "
            f"{required_corpus:,.0f}."
        )
    elif can_stop_early:
        recommendation = (
            f"You can stop SIP step-up after year {optimal.stop_year} "
            f"(age {scenario.current_age + optimal.stop_year}) and still meet your "
            f"target. This saves {years_to_retirement - optimal.stop_year} years of "
            f"step-up, reducing the monthly SIP by {sip_at_full - sip_at_optimal:,.0f} "
            "in the final years."
        )
    else:
        recommendation = "Continue SIP step-up until retirement to meet your target corpus."

    logger.debug(
        f"Step-up scan over {len(scenarios)} stop years, optimal="
        f"{optimal.stop_year if optimal is not None else None}"
    )

    return StepUpOptimization(
        step_up_percent=step_up,
        effective_from_year=effective_from,
        starting_sip=starting_sip,
        required_corpus=required_corpus,
        other_assets_corpus=other_assets_corpus,
        full_step_up_corpus=full.projected_corpus,
        optimal_stop_year=optimal.stop_year if optimal is not None else None,
        can_stop_early=can_stop_early,
        sip_at_full_step_up=sip_at_full,
        sip_at_optimal_stop=sip_at_optimal,
        monthly_relief=sip_at_full - sip_at_optimal,
        recommendation=recommendation,
        scenarios=scenarios,
    )
