"""
Asset aggregation layer.

Reduces a user's investment records into one blended `AssetPosition` per asset
class, and collects the lump-sum maturity events of investments and
investment-linked insurance. All null-to-zero and null-to-default coercion of
financial records happens here, so downstream code works with fully resolved
numbers.
"""

import logging
from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from corpus_planner.config import EngineDefaults

from .compounding import future_value, sip_future_value
from .records import (
    Insurance,
    InsuranceType,
    Investment,
    InvestmentType,
    add_years,
    whole_years_between,
)
from .scenario import ScenarioParameters

logger = logging.getLogger(__name__)


class AssetClass(str, Enum):
    """Asset classes tracked by the projection."""

    EPF = "EPF"
    PPF = "PPF"
    NPS = "NPS"
    MUTUAL_FUND = "MUTUAL_FUND"
    FD = "FD"
    RD = "RD"
    OTHER = "OTHER"


# Administered-rate instruments affected by a rate reduction schedule
RATE_REDUCED_CLASSES = frozenset(
    {AssetClass.EPF, AssetClass.PPF, AssetClass.FD, AssetClass.RD}
)

# Illiquid holdings kept out of the retirement corpus
ILLIQUID_TYPES = frozenset(
    {InvestmentType.REAL_ESTATE, InvestmentType.GOLD, InvestmentType.CRYPTO}
)

_TYPE_TO_CLASS = {
    InvestmentType.EPF: AssetClass.EPF,
    InvestmentType.PPF: AssetClass.PPF,
    InvestmentType.NPS: AssetClass.NPS,
    InvestmentType.MUTUAL_FUND: AssetClass.MUTUAL_FUND,
    InvestmentType.FD: AssetClass.FD,
    InvestmentType.RD: AssetClass.RD,
}


class AssetPosition(BaseModel):
    """Blended starting position of one asset class."""

    model_config = ConfigDict(frozen=True)

    asset_class: AssetClass
    current_value: float = Field(default=0.0, description="Sum of instrument values")
    monthly_contribution: float = Field(default=0.0, description="Total monthly SIP")
    yearly_contribution: float = Field(
        default=0.0, description="Total yearly lump contribution"
    )
    rate: float = Field(..., description="Value-weighted effective annual rate, percent")
    instrument_count: int = Field(default=0, ge=0)


class MaturityEvent(BaseModel):
    """A lump sum paid out when an instrument matures."""

    model_config = ConfigDict(frozen=True)

    label: str
    source: str = Field(..., description="INVESTMENT or INSURANCE")
    instrument_type: str
    maturity_date: date
    years_to_maturity: int
    current_value: float
    maturity_value: float

    @property
    def calendar_year(self) -> int:
        return self.maturity_date.year


def classify_investment(investment: Investment) -> Optional[AssetClass]:
    """
    Asset class an investment counts toward.

    Returns None for holdings excluded from the corpus (illiquid assets and
    emergency funds). STOCK, CASH, OTHER and untyped records map to OTHER.
    """
    if investment.is_emergency_fund:
        return None
    if investment.type in ILLIQUID_TYPES:
        return None
    return _TYPE_TO_CLASS.get(investment.type, AssetClass.OTHER)


def class_default_rate(
    asset_class: AssetClass, scenario: ScenarioParameters, defaults: EngineDefaults
) -> float:
    """Scenario-level class default, falling back to the engine default."""
    scenario_rates = {
        AssetClass.EPF: scenario.epf_return,
        AssetClass.PPF: scenario.ppf_return,
        AssetClass.NPS: scenario.nps_return,
        AssetClass.MUTUAL_FUND: scenario.mf_return,
    }
    override = scenario_rates.get(asset_class)
    if override is not None:
        return override

    return {
        AssetClass.EPF: defaults.epf_return,
        AssetClass.PPF: defaults.ppf_return,
        AssetClass.NPS: defaults.nps_return,
        AssetClass.MUTUAL_FUND: defaults.mf_return,
        AssetClass.FD: defaults.fd_return,
        AssetClass.RD: defaults.rd_return,
        AssetClass.OTHER: defaults.other_return,
    }[asset_class]


def instrument_rate(
    investment: Investment,
    asset_class: AssetClass,
    scenario: ScenarioParameters,
    defaults: EngineDefaults,
) -> float:
    """First non-null of the instrument rate, scenario default and engine default."""
    rate = investment.instrument_rate
    if rate is not None:
        return rate
    return class_default_rate(asset_class, scenario, defaults)


def aggregate_positions(
    investments: Iterable[Investment],
    scenario: ScenarioParameters,
    defaults: EngineDefaults,
) -> Dict[AssetClass, AssetPosition]:
    """
    Blend investments into one position per asset class.

    Args:
        investments: Investment records (nullable fields allowed)
        scenario: Scenario whose class defaults take priority over `defaults`
        defaults: Engine-wide defaults

    Returns:
        Mapping with an entry for every AssetClass, empty classes included
    """
    grouped: Dict[AssetClass, List[Investment]] = {cls: [] for cls in AssetClass}
    for investment in investments:
        asset_class = classify_investment(investment)
        if asset_class is None:
            logger.debug(f"Excluding {investment.label} from corpus")
            continue
        grouped[asset_class].append(investment)

    positions: Dict[AssetClass, AssetPosition] = {}
    for asset_class, members in grouped.items():
        default_rate = class_default_rate(asset_class, scenario, defaults)
        total_value = sum(max(inv.value, 0.0) for inv in members)

        if total_value > 0:
            weighted = sum(
                max(inv.value, 0.0) * instrument_rate(inv, asset_class, scenario, defaults)
                for inv in members
            )
            rate = weighted / total_value
        else:
            rate = default_rate

        positions[asset_class] = AssetPosition(
            asset_class=asset_class,
            current_value=total_value,
            monthly_contribution=sum(inv.monthly_sip or 0.0 for inv in members),
            yearly_contribution=sum(inv.yearly_contribution or 0.0 for inv in members),
            rate=rate,
            instrument_count=len(members),
        )

    return positions


def investment_maturity_value(
    investment: Investment,
    as_of: date,
    scenario: ScenarioParameters,
    defaults: EngineDefaults,
) -> float:
    """
    Expected payout of an investment at its maturity date.

    Today's value compounds at the instrument rate to the maturity date, plus
    the future value of any monthly SIP and yearly contributions until then.
    """
    value = max(investment.value, 0.0)
    if investment.maturity_date is None:
        return value
    years = whole_years_between(as_of, investment.maturity_date)
    if years <= 0:
        return value

    asset_class = classify_investment(investment) or AssetClass.OTHER
    rate = instrument_rate(investment, asset_class, scenario, defaults)
    maturity_value = future_value(value, rate, years)
    maturity_value += sip_future_value(investment.monthly_sip or 0.0, rate, years)
    maturity_value += sip_future_value(
        (investment.yearly_contribution or 0.0) / 12, rate, years
    )
    return maturity_value


def insurance_maturity_value(
    policy: Insurance, as_of: date, defaults: EngineDefaults
) -> float:
    """
    Expected payout of an investment-linked policy at maturity.

    Uses the declared maturity benefit; otherwise a ULIP fund value projected
    at the ULIP return, then the fund value, then the sum assured.
    """
    if policy.maturity_benefit is not None:
        return policy.maturity_benefit
    if policy.type == InsuranceType.ULIP and policy.fund_value is not None:
        years = 0
        if policy.maturity_date is not None:
            years = whole_years_between(as_of, policy.maturity_date)
        return future_value(policy.fund_value, defaults.ulip_return, years)
    if policy.fund_value is not None:
        return policy.fund_value
    return policy.sum_assured or 0.0


def split_maturing(
    investments: Iterable[Investment], first_year: int, last_year: int
) -> Tuple[List[Investment], List[Investment]]:
    """
    Separate investments that mature within [first_year, last_year].

    Maturing instruments are paid out as lump sums in their maturity year, so
    they are kept out of the pooled class positions.

    Returns:
        Tuple of (pooled, maturing) investments; excluded holdings are dropped
    """
    pooled: List[Investment] = []
    maturing: List[Investment] = []
    for investment in investments:
        if classify_investment(investment) is None:
            continue
        maturity = investment.maturity_date
        if maturity is not None and first_year <= maturity.year <= last_year:
            maturing.append(investment)
        else:
            pooled.append(investment)
    return pooled, maturing


def collect_maturities(
    investments: Iterable[Investment],
    insurances: Iterable[Insurance],
    as_of: date,
    scenario: ScenarioParameters,
    defaults: EngineDefaults,
    last_year: int,
) -> List[MaturityEvent]:
    """Maturity events from this year up to `last_year`, ordered by date."""
    events: List[MaturityEvent] = []

    _, maturing = split_maturing(investments, as_of.year, last_year)
    for investment in maturing:
        events.append(
            MaturityEvent(
                label=investment.label,
                source="INVESTMENT",
                instrument_type=(investment.type or InvestmentType.OTHER).value,
                maturity_date=investment.maturity_date,
                years_to_maturity=max(
                    whole_years_between(as_of, investment.maturity_date), 0
                ),
                current_value=max(investment.value, 0.0),
                maturity_value=investment_maturity_value(
                    investment, as_of, scenario, defaults
                ),
            )
        )

    for policy in insurances:
        if not policy.matures or not as_of.year <= policy.maturity_date.year <= last_year:
            continue
        events.append(
            MaturityEvent(
                label=policy.policy_name or "Policy",
                source="INSURANCE",
                instrument_type=policy.type.value,
                maturity_date=policy.maturity_date,
                years_to_maturity=max(whole_years_between(as_of, policy.maturity_date), 0),
                current_value=policy.fund_value or 0.0,
                maturity_value=insurance_maturity_value(policy, as_of, defaults),
            )
        )

    events.sort(key=lambda event: event.maturity_date)
    return events


class MaturitySchedule(BaseModel):
    """Instruments paying out between today and the retirement date."""

    model_config = ConfigDict(frozen=True)

    retirement_date: date
    investments: List[MaturityEvent] = Field(default_factory=list)
    insurance: List[MaturityEvent] = Field(default_factory=list)

    @property
    def total_maturing(self) -> float:
        return sum(e.maturity_value for e in self.investments + self.insurance)

    @property
    def investment_count(self) -> int:
        return len(self.investments)

    @property
    def insurance_count(self) -> int:
        return len(self.insurance)


def maturing_before_retirement(
    investments: Iterable[Investment],
    insurances: Iterable[Insurance],
    as_of: date,
    scenario: ScenarioParameters,
    defaults: EngineDefaults,
) -> MaturitySchedule:
    """Maturities strictly after `as_of` and strictly before the retirement date."""
    retirement_date = add_years(as_of, scenario.years_to_retirement)
    events = [
        event
        for event in collect_maturities(
            investments, insurances, as_of, scenario, defaults, retirement_date.year
        )
        if as_of < event.maturity_date < retirement_date
    ]
    return MaturitySchedule(
        retirement_date=retirement_date,
        investments=[e for e in events if e.source == "INVESTMENT"],
        insurance=[e for e in events if e.source == "INSURANCE"],
    )
