from plancut.core.hashing import stable_hash, stable_json_dumps
from plancut.core.settings import CutoutSettings, settings_from_env
from plancut.core.types import MultiPolygon, Point2, Polygon, Ring

__all__ = [
    "Point2",
    "Ring",
    "Polygon",
    "MultiPolygon",
    "stable_hash",
    "stable_json_dumps",
    "CutoutSettings",
    "settings_from_env",
]
