from __future__ import annotations

import re
from typing import Iterable

from plancut.cutouts.model import Cutout

CUTOUT_NAME_PREFIX = "./."
_NAME_RE = re.compile(r"^\./\.(\d+)$")


def format_cutout_name(number: int) -> str:
    return f"{CUTOUT_NAME_PREFIX}{int(number):02d}"


def next_cutout_name(existing: Iterable[Cutout], plan_id: str, reserved: Iterable[str] = ()) -> str:
    """Next ``./.NN`` name in ``plan_id``: one past the highest number in use.

    ``reserved`` holds names handed out in the same plan but not yet stored.
    """
    names = [c.name for c in existing if c.plan_id == plan_id]
    names.extend(reserved)
    highest = 0
    for name in names:
        m = _NAME_RE.match(name)
        if m:
            highest = max(highest, int(m.group(1)))
    return format_cutout_name(highest + 1)


def format_overlap(value: float, unit: str = "m²", digits: int = 2) -> str:
    """Display string for a deducted overlap, e.g. ``-4.00 m²``.

    The minus sign is presentation only; the stored magnitude is always positive.
    """
    magnitude = abs(float(value))
    text = f"{magnitude:.{int(digits)}f}"
    if float(text) == 0.0:
        return f"{text} {unit}"
    return f"-{text} {unit}"
