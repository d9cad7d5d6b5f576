"""
Tests for the three-phase withdrawal plan.
"""

import pytest

from corpus_planner.models.compounding import future_value, sip_future_value
from corpus_planner.models.records import Expense, ExpenseFrequency, Investment, InvestmentType
from corpus_planner.models.scenario import ScenarioParameters
from corpus_planner.models.withdrawal_plan import (
    IMPORTANT_NOTES,
    SCHEDULE_HORIZON,
    TAX_TIPS,
    build_withdrawal_plan,
    default_return_for_type,
    guidance_for,
    projected_value_at_retirement,
)


@pytest.fixture
def holdings():
    return [
        Investment(name="Bank FD", type=InvestmentType.FD, current_value=500000),
        Investment(name="EPF", type=InvestmentType.EPF, current_value=1_000_000),
        Investment(name="NPS", type=InvestmentType.NPS, current_value=400000),
        Investment(name="PPF", type=InvestmentType.PPF, current_value=600000),
        Investment(name="Unknown", current_value=100000),
        Investment(name="Empty", type=InvestmentType.STOCK, current_value=0),
    ]


@pytest.fixture
def expenses():
    return [
        Expense(amount=40000, frequency=ExpenseFrequency.MONTHLY),
        Expense(amount=200000, frequency=ExpenseFrequency.ONE_TIME),
    ]


class TestGuidance:
    """Test phase assignment per holding type."""

    @pytest.mark.parametrize(
        "investment_type,phase",
        [
            (InvestmentType.CASH, 1),
            (InvestmentType.FD, 1),
            (InvestmentType.RD, 1),
            (InvestmentType.STOCK, 1),
            (InvestmentType.CRYPTO, 1),
            (InvestmentType.EPF, 2),
            (InvestmentType.NPS, 2),
            (InvestmentType.MUTUAL_FUND, 2),
            (InvestmentType.PPF, 3),
            (InvestmentType.GOLD, 3),
            (InvestmentType.REAL_ESTATE, 3),
            (InvestmentType.OTHER, 2),
            (None, 2),
        ],
    )
    def test_phase(self, investment_type, phase):
        assert guidance_for(investment_type).phase == phase

    def test_nps_mandatory_annuity(self):
        assert guidance_for(InvestmentType.NPS).mandatory_annuity_percent == 40

    def test_untyped_holding(self):
        assert guidance_for(None).reason == "Default category for unspecified type"


class TestProjection:
    """Test value projection to retirement."""

    def test_default_return_for_type(self, defaults):
        assert default_return_for_type(InvestmentType.FD, defaults) == 6.5
        assert default_return_for_type(InvestmentType.PPF, defaults) == defaults.ppf_return
        assert default_return_for_type(None, defaults) == defaults.other_return

    def test_projected_value(self, defaults):
        investment = Investment(
            type=InvestmentType.MUTUAL_FUND,
            current_value=100000,
            monthly_sip=1000,
            expected_return=11,
        )
        expected = future_value(100000, 11, 10) + sip_future_value(1000, 11, 10)
        assert projected_value_at_retirement(investment, 10, defaults) == pytest.approx(
            expected
        )

    def test_zero_value_not_projected(self, defaults):
        investment = Investment(type=InvestmentType.MUTUAL_FUND, monthly_sip=1000)
        assert projected_value_at_retirement(investment, 10, defaults) == 0


class TestBuildWithdrawalPlan:
    """Test the assembled plan."""

    def test_phases(self, holdings, expenses, scenario, defaults):
        plan = build_withdrawal_plan(holdings, expenses, scenario, defaults)
        names = {phase.priority: [a.name for a in phase.assets] for phase in plan.phases}
        assert names == {1: ["Bank FD"], 2: ["EPF", "NPS", "Unknown"], 3: ["PPF"]}
        assert [phase.name for phase in plan.phases] == [
            "Taxable & Liquid Assets",
            "Tax-Deferred Accounts",
            "Tax-Free & Long-Term",
        ]

    def test_phase_totals(self, holdings, expenses, scenario, defaults):
        plan = build_withdrawal_plan(holdings, expenses, scenario, defaults)
        phase_1 = plan.phases[0]
        assert phase_1.total == pytest.approx(future_value(500000, 6.5, 25))
        assert plan.summary.total_corpus_at_retirement == pytest.approx(
            sum(phase.total for phase in plan.phases)
        )

    def test_age_ranges(self, holdings, expenses, scenario, defaults):
        plan = build_withdrawal_plan(holdings, expenses, scenario, defaults)
        assert [phase.suggested_age_range for phase in plan.phases] == [
            "60 - 65",
            "65 - 75",
            "75 - 85+",
        ]

    def test_summary(self, holdings, expenses, scenario, defaults):
        """Test expenses are inflated to retirement and one-time items ignored."""
        plan = build_withdrawal_plan(holdings, expenses, scenario, defaults)
        monthly = 40000 * 1.06**25
        summary = plan.summary
        assert summary.monthly_expense_at_retirement == pytest.approx(monthly)
        assert summary.yearly_expense_at_retirement == pytest.approx(monthly * 12)
        assert summary.retirement_years == 25
        assert summary.safe_monthly_withdrawal == pytest.approx(
            summary.total_corpus_at_retirement * 0.04 / 12
        )
        assert summary.is_sustainable == (summary.safe_monthly_withdrawal >= monthly)

    def test_schedule_draws_phases_in_order(self, holdings, expenses, scenario, defaults):
        plan = build_withdrawal_plan(holdings, expenses, scenario, defaults)
        phases = [entry.withdraw_from for entry in plan.schedule]
        assert phases[0] == "Phase 1"
        assert phases == sorted(phases)
        assert len(plan.schedule) <= SCHEDULE_HORIZON
        assert plan.schedule[0].age == 60
        assert plan.schedule[0].yearly_expense == pytest.approx(
            plan.summary.yearly_expense_at_retirement
        )

    def test_schedule_stops_when_depleted(self, defaults):
        scenario = ScenarioParameters(current_age=60, retirement_age=60, life_expectancy=90)
        plan = build_withdrawal_plan(
            [Investment(type=InvestmentType.FD, current_value=300000)],
            [Expense(amount=10000, frequency=ExpenseFrequency.MONTHLY)],
            scenario,
            defaults,
        )
        assert plan.schedule[-1].warning == "Corpus depleted"
        assert plan.schedule[-1].corpus_at_end == 0
        assert len(plan.schedule) == 3

    def test_schedule_capped_at_horizon(self, defaults):
        scenario = ScenarioParameters(current_age=40, retirement_age=40, life_expectancy=100)
        plan = build_withdrawal_plan(
            [Investment(type=InvestmentType.PPF, current_value=1e9)],
            [Expense(amount=1000, frequency=ExpenseFrequency.MONTHLY)],
            scenario,
            defaults,
        )
        assert len(plan.schedule) == SCHEDULE_HORIZON

    def test_tips_and_notes(self, holdings, expenses, scenario, defaults):
        plan = build_withdrawal_plan(holdings, expenses, scenario, defaults)
        assert plan.tax_tips == TAX_TIPS
        assert len(plan.tax_tips) == 4
        assert plan.important_notes == IMPORTANT_NOTES
