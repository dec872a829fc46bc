from __future__ import annotations

# Point-equality epsilon for ring deduplication and closure checks.
EPS_RING = 1e-10

# Area epsilon for degenerate ring checks.
EPS_AREA = 1e-12

# Tolerance (square units) for area invariants: net vs original, overlap bounds.
EPS_AREA_CHECK = 1e-3
