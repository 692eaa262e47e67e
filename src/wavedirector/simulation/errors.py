# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Exceptions raised inside the simulation package.

None of these escape a tick: the scheduler and controller catch them at
their boundaries and fall back (deterministic round, default action,
failed-transaction event).
"""

from __future__ import annotations


class WaveDirectorError(Exception):
    """Base class for wavedirector simulation errors."""


class MalformedRoundError(WaveDirectorError, ValueError):
    """A round definition is missing groups or carries invalid numbers."""


class InsufficientFundsError(WaveDirectorError):
    """A debit exceeds the available funds and debt is disabled."""

    def __init__(self, amount: int, available: int) -> None:
        super().__init__(f"cannot debit {amount}, only {available} available")
        self.amount = amount
        self.available = available

