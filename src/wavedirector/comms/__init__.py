# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Session messaging."""

from .event_bus import EventBus, drain

__all__ = ["EventBus", "drain"]
