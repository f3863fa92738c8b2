"""Lookup table from step ids to step objects."""
from __future__ import annotations

from typing import Dict, Mapping

from .emergency import EmergencyOptionsStep
from .judicial import CourtOptionsStep, CourtTermsStep
from .legislature import (
    ReferendumThresholdsStep,
    SenateSeatsStep,
    SenateTermsStep,
    SenateThresholdsStep,
)
from .linkage import LinkChannelsStep, LinkRolesStep
from .steps import Step, StepId
from .system import (
    DDOptionsStep,
    ParliamentaryOptionsStep,
    PresidentialOptionsStep,
    SelectPoliticalSystemStep,
)


def build_registry() -> Dict[StepId, Step]:
    steps = [
        SelectPoliticalSystemStep(),
        PresidentialOptionsStep(),
        ParliamentaryOptionsStep(),
        DDOptionsStep(),
        SenateTermsStep(),
        SenateSeatsStep(),
        SenateThresholdsStep(),
        ReferendumThresholdsStep(),
        CourtOptionsStep(),
        CourtTermsStep(),
        LinkRolesStep(),
        LinkChannelsStep(),
        EmergencyOptionsStep(),
    ]
    registry = {step.step_id: step for step in steps}
    missing = set(StepId) - set(registry)
    if missing:
        raise ValueError(f"Steps without an implementation: {sorted(missing)}")
    return registry


# Steps hold no state of their own, so one table serves every session.
STEP_REGISTRY: Mapping[StepId, Step] = build_registry()


__all__ = ["STEP_REGISTRY", "build_registry"]
