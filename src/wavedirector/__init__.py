# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""WaveDirector — adaptive round generation for wave-based defense games.

Decides, every round, which hostile unit types spawn, in what groups, at
what cadence and with what health, so that difficulty follows the
player's demonstrated skill.  See ``wavedirector.session.GameSession``
for the assembled engine.
"""

__version__ = "0.1.0"
