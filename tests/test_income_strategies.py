"""
Tests for post-retirement income strategies.
"""

import logging

import pytest

from corpus_planner.models.income_strategies import (
    IncomeStrategyType,
    SafeFourPercentStrategy,
    SimpleDepletionStrategy,
    StrategyParameters,
    SustainableStrategy,
    WithdrawalState,
    all_income_strategies,
    get_income_strategy,
    project_retirement_income,
)


@pytest.fixture
def params():
    return StrategyParameters(corpus_return_rate=10, withdrawal_rate=8, inflation_rate=6)


def make_state(corpus=1_000_000, remaining_years=20, year_in_retirement=0, expense=60000):
    return WithdrawalState(
        corpus=corpus,
        corpus_at_retirement=1_000_000,
        required_annual_expense=expense,
        year_in_retirement=year_in_retirement,
        remaining_years=remaining_years,
    )


class TestStrategyLookup:
    """Test strategy resolution."""

    def test_get_income_strategy(self):
        """Test keys resolve to strategy instances."""
        assert isinstance(get_income_strategy("SUSTAINABLE"), SustainableStrategy)
        assert isinstance(get_income_strategy("SAFE_4_PERCENT"), SafeFourPercentStrategy)
        assert isinstance(get_income_strategy("SIMPLE_DEPLETION"), SimpleDepletionStrategy)

    @pytest.mark.parametrize("key", [None, "", "AGGRESSIVE"])
    def test_unknown_key_is_sustainable(self, key):
        """Test unknown or null keys fall back to SUSTAINABLE."""
        assert isinstance(get_income_strategy(key), SustainableStrategy)

    def test_all_strategies(self):
        """Test all three strategies in declaration order."""
        types = [s.strategy_type for s in all_income_strategies()]
        assert types == list(IncomeStrategyType)


class TestStrategyParameters:
    """Test shared strategy rates."""

    def test_zero_withdrawal_rate_warns(self, caplog):
        """Test a zero withdrawal rate is accepted with a warning."""
        with caplog.at_level(logging.WARNING):
            params = StrategyParameters(withdrawal_rate=0)
        assert params.effective_withdrawal_rate == 4.0
        assert "Withdrawal rate is 0" in caplog.text

    def test_negative_rate_rejected(self):
        """Test negative rates fail validation."""
        with pytest.raises(Exception):  # Pydantic validation error
            StrategyParameters(corpus_return_rate=-1)


class TestProjectWithdrawal:
    """Test one post-retirement year under each strategy."""

    @pytest.mark.parametrize("strategy", all_income_strategies())
    def test_no_remaining_years_leaves_corpus_unchanged(self, strategy, params):
        """Test that a row with no remaining years is a no-op."""
        outcome = strategy.project_withdrawal(make_state(remaining_years=0), params)
        assert outcome.new_corpus == 1_000_000
        assert outcome.withdrawal == 0
        assert outcome.shortfall == 0

    def test_sustainable_withdraws_percent_of_corpus(self, params):
        """Test the sustainable withdrawal is 8% of the opening corpus."""
        outcome = SustainableStrategy().project_withdrawal(make_state(), params)
        grown = 1_000_000 * (1 + 0.10 / 12) ** 12
        assert outcome.withdrawal == pytest.approx(80000)
        assert outcome.new_corpus == pytest.approx(grown - 80000)

    def test_safe_four_percent_inflates(self, params):
        """Test the 4% withdrawal grows with inflation."""
        strategy = SafeFourPercentStrategy()
        assert strategy.planned_withdrawal(make_state(), params) == pytest.approx(40000)
        assert strategy.planned_withdrawal(
            make_state(year_in_retirement=3), params
        ) == pytest.approx(40000 * 1.06**3)

    def test_depletion_withdraws_expense(self, params):
        """Test simple depletion draws the required expense."""
        outcome = SimpleDepletionStrategy().project_withdrawal(
            make_state(expense=120000), params
        )
        assert outcome.withdrawal == pytest.approx(120000)

    def test_depletion_capped_at_corpus(self, params):
        """Test a withdrawal larger than the corpus records a shortfall."""
        outcome = SimpleDepletionStrategy().project_withdrawal(
            make_state(corpus=10000, expense=500000), params
        )
        assert outcome.new_corpus == 0
        assert outcome.shortfall > 0
        assert outcome.withdrawal + outcome.shortfall == pytest.approx(500000)


class TestCorpusForExpenses:
    """Test required corpus per strategy."""

    def test_sustainable(self, params):
        """Test yearly expense divided by the withdrawal rate."""
        strategy = SustainableStrategy()
        assert strategy.corpus_for_expenses(80000, 25, params) == pytest.approx(1_000_000)

    def test_sustainable_zero_rate_uses_multiplier(self):
        """Test the 25x fallback when the withdrawal rate is zero."""
        params = StrategyParameters(withdrawal_rate=0)
        assert SustainableStrategy().corpus_for_expenses(40000, 25, params) == 1_000_000

    def test_safe_four_percent(self, params):
        """Test 25x yearly expenses."""
        assert SafeFourPercentStrategy().corpus_for_expenses(40000, 25, params) == 1_000_000

    def test_simple_depletion(self, params):
        """Test the sum of inflated expenses over retirement."""
        expected = sum(100000 * 1.06**k for k in range(3))
        assert SimpleDepletionStrategy().corpus_for_expenses(
            100000, 3, params
        ) == pytest.approx(expected)

    def test_simple_depletion_no_retirement_years(self, params):
        """Test no retirement years need no corpus."""
        assert SimpleDepletionStrategy().corpus_for_expenses(100000, 0, params) == 0


class TestMonthlyIncome:
    """Test monthly income supported by a corpus."""

    def test_monthly_income(self, params):
        """Test first-year monthly income per strategy."""
        assert SustainableStrategy().monthly_income(1_200_000, 25, params) == pytest.approx(8000)
        assert SafeFourPercentStrategy().monthly_income(1_200_000, 25, params) == pytest.approx(
            4000
        )
        assert SimpleDepletionStrategy().monthly_income(1_200_000, 25, params) == pytest.approx(
            4000
        )

    def test_depletion_without_years(self, params):
        """Test no retirement years means no income."""
        assert SimpleDepletionStrategy().monthly_income(1_200_000, 0, params) == 0

    def test_display_names(self, params):
        """Test strategy display names."""
        assert SustainableStrategy().display_name(params) == (
            "Sustainable (10% return, 8% withdrawal)"
        )
        assert SafeFourPercentStrategy().display_name(params) == "4% Safe Withdrawal"


class TestProjectRetirementIncome:
    """Test the five-yearly income projection."""

    def test_points_every_five_years(self, params):
        """Test points at 0, 5, ..., 25 for 25 retirement years."""
        points = project_retirement_income(
            SustainableStrategy(), params, 10_000_000, 600000, 60, 25
        )
        assert [p.year for p in points] == [0, 5, 10, 15, 20, 25]
        assert [p.age for p in points] == [60, 65, 70, 75, 80, 85]
        assert points[0].corpus == 10_000_000
        assert points[0].monthly_income == pytest.approx(10_000_000 * 0.08 / 12)
        assert points[-1].monthly_income == 0

    def test_horizon_cap(self, params):
        """Test the projection stops at the horizon cap."""
        points = project_retirement_income(
            SustainableStrategy(), params, 10_000_000, 600000, 50, 40, horizon_cap=30
        )
        assert points[-1].year == 30

    def test_depleting_corpus_declines(self, params):
        """Test simple depletion runs the corpus down."""
        points = project_retirement_income(
            SimpleDepletionStrategy(), params, 1_000_000, 200000, 60, 25
        )
        assert points[-1].corpus < points[0].corpus
        assert all(p.corpus >= 0 for p in points)
