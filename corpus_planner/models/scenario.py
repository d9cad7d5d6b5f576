"""
Scenario parameters for corpus projections.

A scenario is the caller-supplied, immutable set of assumptions for a single
projection. Optional rates left unset are resolved against `EngineDefaults`.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from corpus_planner.config import EngineDefaults

from .income_strategies import IncomeStrategyType

_AGE_FIELDS = ("current_age", "retirement_age", "life_expectancy", "effective_from_year")


class PeriodReturn(BaseModel):
    """Return rate override for a band of projection years (inclusive)."""

    model_config = ConfigDict(frozen=True)

    from_year: int = Field(..., ge=0, description="First projection year of the band")
    to_year: int = Field(..., ge=0, description="Last projection year of the band")
    rate: float = Field(..., description="Annual return for the band, percent")

    @model_validator(mode="after")
    def validate_band(self):
        if self.to_year < self.from_year:
            raise ValueError("to_year must be >= from_year")
        return self


class RateReductionSchedule(BaseModel):
    """Stepped reduction of administered rates (PPF/EPF/FD/RD)."""

    model_config = ConfigDict(frozen=True)

    years: int = Field(default=5, ge=1, description="Years between reductions")
    percent: float = Field(default=0.5, ge=0, description="Reduction per step, percent")
    floor: float = Field(default=4.0, ge=0, description="Rate never reduced below this")

    def apply(self, base_rate: float, year_index: int) -> float:
        """Rate in force after `year_index` years of reductions.

        From year 1 on the rate is held at or above the floor, even when the
        base rate itself is lower.
        """
        if year_index <= 0:
            return base_rate
        steps = year_index // self.years
        return max(self.floor, base_rate - steps * self.percent)


class OneTimeWithdrawal(BaseModel):
    """A single withdrawal from the corpus in a given calendar year."""

    model_config = ConfigDict(frozen=True)

    year: int = Field(..., description="Calendar year of the withdrawal")
    amount: float = Field(..., ge=0, description="Amount in that year's money")


class ScenarioParameters(BaseModel):
    """Immutable assumptions for one projection."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="Default")

    current_age: int = Field(default=35)
    retirement_age: int = Field(default=60)
    life_expectancy: int = Field(default=85)

    inflation_rate: Optional[float] = Field(default=None, ge=0)
    epf_return: Optional[float] = Field(default=None, ge=0)
    ppf_return: Optional[float] = Field(default=None, ge=0)
    mf_return: Optional[float] = Field(default=None, ge=0)
    nps_return: Optional[float] = Field(default=None, ge=0)
    mf_period_returns: List[PeriodReturn] = Field(default_factory=list)

    corpus_return_rate: Optional[float] = Field(default=None, ge=0)
    withdrawal_rate: Optional[float] = Field(default=None, ge=0)

    sip_step_up_percent: Optional[float] = Field(default=None, ge=0)
    effective_from_year: int = Field(
        default=1, description="First projection year in which SIP step-up applies"
    )
    rate_reduction: Optional[RateReductionSchedule] = None

    income_strategy: IncomeStrategyType = Field(default=IncomeStrategyType.SUSTAINABLE)

    lumpsum_amount: Optional[float] = Field(default=None, ge=0)
    one_time_withdrawal: Optional[OneTimeWithdrawal] = None

    @model_validator(mode="before")
    @classmethod
    def drop_missing_ages(cls, data: Any) -> Any:
        """Unset ages and years fall back to the field defaults."""
        if isinstance(data, dict):
            data = {
                key: value
                for key, value in data.items()
                if not (key in _AGE_FIELDS and value is None)
            }
        return data

    @field_validator(*_AGE_FIELDS, mode="before")
    @classmethod
    def coerce_non_negative(cls, v: Any) -> int:
        return max(int(v), 0)

    @field_validator("income_strategy", mode="before")
    @classmethod
    def coerce_strategy(cls, v: Any) -> IncomeStrategyType:
        return IncomeStrategyType.from_key(v)

    @property
    def years_to_retirement(self) -> int:
        return max(self.retirement_age - self.current_age, 0)

    @property
    def retirement_years(self) -> int:
        return max(self.life_expectancy - max(self.retirement_age, self.current_age), 0)

    @property
    def horizon_years(self) -> int:
        return self.years_to_retirement + self.retirement_years

    def mf_rate_for_year(self, year_index: int, default_rate: float) -> float:
        """Mutual-fund rate in force for a projection year."""
        for band in self.mf_period_returns:
            if band.from_year <= year_index <= band.to_year:
                return band.rate
        return default_rate

    def resolved(self, defaults: EngineDefaults) -> "ScenarioParameters":
        """Copy of the scenario with every unset rate taken from `defaults`."""

        def pick(value: Optional[float], fallback: float) -> float:
            return fallback if value is None else value

        return self.model_copy(
            update={
                "inflation_rate": pick(self.inflation_rate, defaults.inflation_rate),
                "epf_return": pick(self.epf_return, defaults.epf_return),
                "ppf_return": pick(self.ppf_return, defaults.ppf_return),
                "mf_return": pick(self.mf_return, defaults.mf_return),
                "nps_return": pick(self.nps_return, defaults.nps_return),
                "corpus_return_rate": pick(
                    self.corpus_return_rate, defaults.corpus_return_rate
                ),
                "withdrawal_rate": pick(self.withdrawal_rate, defaults.withdrawal_rate),
                "sip_step_up_percent": pick(self.sip_step_up_percent, 0.0),
                "lumpsum_amount": pick(self.lumpsum_amount, 0.0),
            }
        )


def default_scenario(defaults: EngineDefaults) -> ScenarioParameters:
    """
    Scenario used when the caller has no saved settings.

    Unlike an explicit scenario, which is taken as given, the fallback turns on
    the default SIP step-up and administered-rate reductions.
    """
    return ScenarioParameters(
        current_age=defaults.current_age,
        retirement_age=defaults.retirement_age,
        life_expectancy=defaults.life_expectancy,
        inflation_rate=defaults.inflation_rate,
        sip_step_up_percent=defaults.sip_step_up_percent,
        rate_reduction=RateReductionSchedule(),
        income_strategy=IncomeStrategyType.SUSTAINABLE,
    )
