from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

from staffid.services.id_format import compile_pattern

logger = logging.getLogger(__name__)


def next_sequence(fmt: str, existing_ids: Iterable[str], today: date | None = None) -> int:
    """Next unused sequence among IDs the format issued for the current period.

    Date placeholders are pinned to ``today``, so a yearly format restarts at 1
    each year. IDs from another format never match and are ignored.
    """
    pattern = compile_pattern(fmt, today or date.today())
    if "sequence" not in pattern.group_names:
        return 1

    highest = 0
    for employee_id in existing_ids:
        match = pattern.fullmatch(employee_id)
        if match:
            highest = max(highest, int(match.group("sequence")))

    logger.debug("Highest sequence for %s is %d", fmt, highest)
    return highest + 1


def matches_skeleton(fmt: str, employee_id: str) -> bool:
    """Whether ``employee_id`` has the shape of ``fmt`` in any year."""
    return compile_pattern(fmt).fullmatch(employee_id) is not None
