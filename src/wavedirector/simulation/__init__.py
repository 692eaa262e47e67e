# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Round pipeline: scheduling, tracking, health scaling, control and composition."""
