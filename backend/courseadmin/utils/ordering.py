"""Helpers for position-ordered sibling lists (chapters in a course, lessons in a chapter).

Positions are 1-based, contiguous and unique per parent; the database
enforces uniqueness with a `(parent_id, position)` constraint, so every
rewrite goes through `renumber`.
"""

from typing import Iterable, List, Sequence

from sqlmodel import Session


def renumber(session: Session, rows: Sequence) -> None:
    """Assign positions 1..n to `rows` in their given order.

    Runs in two flushed phases (negative placeholders first) so no UPDATE
    ever collides with a sibling's current position.
    """
    if not rows:
        return
    for idx, row in enumerate(rows, start=1):
        row.position = -idx
        session.add(row)
    session.flush()
    for idx, row in enumerate(rows, start=1):
        row.position = idx
    session.flush()


def diff_order(current_ids: Iterable[str], submitted_ids: Sequence[str]):
    """Compare a submitted order with the current sibling set.

    Returns `(missing, extra)` id sets and raises ValueError on duplicates.
    """
    seen = set()
    dupes: List[str] = []
    for item in submitted_ids:
        if item in seen:
            dupes.append(item)
        seen.add(item)
    if dupes:
        raise ValueError(f"Duplicate ids in order: {', '.join(sorted(set(dupes)))}")
    current = set(current_ids)
    return current - seen, seen - current
