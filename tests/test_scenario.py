"""
Tests for scenario parameters.
"""

import pytest
from pydantic import ValidationError

from corpus_planner.models.income_strategies import IncomeStrategyType
from corpus_planner.models.scenario import (
    PeriodReturn,
    RateReductionSchedule,
    ScenarioParameters,
    default_scenario,
)


class TestScenarioParameters:
    """Test scenario coercion and derived years."""

    def test_defaults(self):
        """Test default ages and strategy."""
        scenario = ScenarioParameters()
        assert scenario.current_age == 35
        assert scenario.retirement_age == 60
        assert scenario.life_expectancy == 85
        assert scenario.income_strategy == IncomeStrategyType.SUSTAINABLE

    def test_years(self, scenario):
        """Test years to retirement and in retirement."""
        assert scenario.years_to_retirement == 25
        assert scenario.retirement_years == 25
        assert scenario.horizon_years == 50

    def test_negative_ages_coerced(self):
        """Test ages are clamped to non-negative."""
        scenario = ScenarioParameters(current_age=-5, retirement_age=-1, life_expectancy=80)
        assert scenario.current_age == 0
        assert scenario.retirement_age == 0

    def test_null_ages_use_defaults(self):
        """Test unset ages fall back to the field defaults."""
        scenario = ScenarioParameters(current_age=None, retirement_age=None)
        assert scenario.current_age == 35
        assert scenario.retirement_age == 60

    def test_retirement_before_current_age(self):
        """Test years to retirement is floored at zero."""
        scenario = ScenarioParameters(current_age=65, retirement_age=60, life_expectancy=85)
        assert scenario.years_to_retirement == 0
        assert scenario.retirement_years == 20

    @pytest.mark.parametrize("key", [None, "unknown", 42])
    def test_unknown_strategy_falls_back(self, key):
        """Test unrecognized strategies mean SUSTAINABLE."""
        scenario = ScenarioParameters(income_strategy=key)
        assert scenario.income_strategy == IncomeStrategyType.SUSTAINABLE

    def test_strategy_key_case_insensitive(self):
        """Test lower-case strategy keys resolve."""
        scenario = ScenarioParameters(income_strategy="simple_depletion")
        assert scenario.income_strategy == IncomeStrategyType.SIMPLE_DEPLETION

    def test_negative_rate_rejected(self):
        """Test rates may not be negative."""
        with pytest.raises(ValidationError):
            ScenarioParameters(inflation_rate=-1)

    def test_resolved_fills_unset_rates(self, defaults):
        """Test resolution against engine defaults keeps explicit values."""
        resolved = ScenarioParameters(mf_return=14.0).resolved(defaults)
        assert resolved.mf_return == 14.0
        assert resolved.inflation_rate == defaults.inflation_rate
        assert resolved.corpus_return_rate == defaults.corpus_return_rate
        assert resolved.sip_step_up_percent == 0.0
        assert resolved.lumpsum_amount == 0.0

    def test_default_scenario(self, defaults):
        """Test the fallback scenario used without saved settings."""
        scenario = default_scenario(defaults)
        assert (scenario.current_age, scenario.retirement_age) == (35, 60)
        assert scenario.inflation_rate == 6.0
        assert scenario.income_strategy == IncomeStrategyType.SUSTAINABLE
        assert scenario.sip_step_up_percent == defaults.sip_step_up_percent
        assert scenario.rate_reduction == RateReductionSchedule(years=5, percent=0.5, floor=4)

    def test_explicit_scenario_taken_as_given(self, defaults):
        """Test unset step-up and rate reduction stay off for explicit scenarios."""
        resolved = ScenarioParameters(current_age=40).resolved(defaults)
        assert resolved.sip_step_up_percent == 0.0
        assert resolved.rate_reduction is None


class TestPeriodReturns:
    """Test mutual-fund period return overrides."""

    def test_band_lookup(self):
        """Test the band covering a year wins, else the default."""
        scenario = ScenarioParameters(
            mf_period_returns=[
                PeriodReturn(from_year=1, to_year=5, rate=14),
                PeriodReturn(from_year=6, to_year=10, rate=11),
            ]
        )
        assert scenario.mf_rate_for_year(3, 12) == 14
        assert scenario.mf_rate_for_year(6, 12) == 11
        assert scenario.mf_rate_for_year(11, 12) == 12

    def test_inverted_band_rejected(self):
        """Test to_year must not precede from_year."""
        with pytest.raises(ValidationError):
            PeriodReturn(from_year=5, to_year=1, rate=10)


class TestRateReductionSchedule:
    """Test stepped rate reductions."""

    def test_steps(self):
        """Test a reduction every five years."""
        schedule = RateReductionSchedule(years=5, percent=0.5, floor=4)
        assert schedule.apply(7.1, 4) == 7.1
        assert schedule.apply(7.1, 5) == pytest.approx(6.6)
        assert schedule.apply(7.1, 12) == pytest.approx(6.1)

    @pytest.mark.parametrize("year_index", range(0, 60))
    def test_never_below_floor(self, year_index):
        """Test aggressive reductions stop at the floor."""
        schedule = RateReductionSchedule(years=1, percent=2, floor=4)
        assert schedule.apply(8.15, year_index) >= 4
        assert schedule.apply(7.1, year_index) >= 4

    def test_base_rate_below_floor_lifted(self):
        """Test a base rate under the floor is held at the floor after year 0."""
        schedule = RateReductionSchedule(years=1, percent=2, floor=4)
        assert schedule.apply(3.5, 0) == 3.5
        assert schedule.apply(3.5, 1) == 4
        assert schedule.apply(3.5, 10) == 4

    def test_no_reduction_before_first_step(self):
        schedule = RateReductionSchedule(years=5, percent=0.5, floor=4)
        assert schedule.apply(7.1, 3) == 7.1
