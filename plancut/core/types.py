from __future__ import annotations

from typing import List, Tuple


Point2 = Tuple[float, float]
Ring = List[Point2]  # closed once normalized: first == last
Polygon = List[Ring]  # ring 0 outer, rings 1..n holes
MultiPolygon = List[Polygon]

__all__ = ["Point2", "Ring", "Polygon", "MultiPolygon"]
