"""Harness configuration: journey sizes, example counts and shrink mode."""

from __future__ import annotations

from hypothesis import HealthCheck, Phase, settings
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class HarnessSettings(BaseSettings):
    """Environment-driven harness settings (``LOCKSTEP_*`` variables)."""

    max_examples: int = Field(default=200, ge=1)
    journey_min_length: int = Field(default=0, ge=0)  # unconstrained journeys
    journey_max_length: int = Field(default=100, ge=0)
    valid_journey_max_steps: int = Field(default=200, ge=1)
    reduce_range_max: int = Field(default=200, ge=0)  # ReduceItem selector/amount upper bound
    manual_shrink: bool = False
    derandomize: bool = False

    model_config = {"env_prefix": "LOCKSTEP_", "env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _check_length_range(self) -> HarnessSettings:
        if self.journey_min_length > self.journey_max_length:
            raise ValueError(
                f"journey_min_length ({self.journey_min_length}) exceeds "
                f"journey_max_length ({self.journey_max_length})"
            )
        return self

    def hypothesis_settings(self, *, shrink: bool = True) -> settings:
        """Build the Hypothesis settings a property run uses.

        With ``shrink=False`` Hypothesis stops at the first failing example
        and leaves minimisation to the caller.
        """
        phases = [Phase.explicit, Phase.reuse, Phase.generate]
        if shrink:
            phases.append(Phase.shrink)
        return settings(
            max_examples=self.max_examples,
            derandomize=self.derandomize,
            deadline=None,
            database=None,
            report_multiple_bugs=False,
            phases=phases,
            suppress_health_check=[
                HealthCheck.too_slow,
                HealthCheck.data_too_large,
                HealthCheck.large_base_example,
            ],
        )
