#!/usr/bin/env python3
"""
RESTAGE Gate - Reference-quality checkpoint.

The verdict from the quality stage either lets the pipeline proceed or blocks
it until the caller decides whether to continue or cancel.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class QualityVerdict:
    """Structured answer of the reference-quality stage."""

    suitable: bool
    reasoning: str


class GateDecision(Enum):
    PROCEED = 'proceed'
    BLOCKED = 'blocked'


class Resolution(Enum):
    """Caller's answer to a blocked gate."""

    CONTINUE = 'continue'
    CANCEL = 'cancel'


WarningCallback = Callable[[str], Resolution]


def evaluate(verdict: QualityVerdict) -> GateDecision:
    """Map a suitability verdict to a gate decision."""
    return GateDecision.PROCEED if verdict.suitable else GateDecision.BLOCKED


def resolve(on_warning: Optional[WarningCallback], reasoning: str) -> Resolution:
    """
    Ask the caller how to handle a blocked gate.

    Without a callback nobody can approve the override, so the run is cancelled.
    """
    if on_warning is None:
        log.info("Quality gate blocked and no warning handler supplied; cancelling run")
        return Resolution.CANCEL

    resolution = on_warning(reasoning)
    if not isinstance(resolution, Resolution):
        raise TypeError(f"Warning handler must return a Resolution, got {resolution!r}")
    return resolution
