"""Order arithmetic shared by challenge tasks and template tasks.

Each helper takes rows sorted by order_num and returns the {id: new_order}
map to hand to ``database.update_order_nums``; rows that keep their position
are left out.
"""
import random
from typing import Dict, Optional, Sequence

from .errors import InvalidPosition, TaskNotFound


def compact_updates(rows: Sequence) -> Dict[int, int]:
    return {row.id: index + 1 for index, row in enumerate(rows) if row.order_num != index + 1}


def move_updates(rows: Sequence, row_id: int, new_position: int) -> Dict[int, int]:
    if new_position < 1 or new_position > len(rows):
        raise InvalidPosition(f"position must be between 1 and {len(rows)}")

    moving = next((row for row in rows if row.id == row_id), None)
    if moving is None:
        raise TaskNotFound()

    old_position = moving.order_num
    if new_position == old_position:
        return {}

    updates = {}
    for row in rows:
        if row.id == row_id:
            continue
        if new_position < old_position and new_position <= row.order_num < old_position:
            updates[row.id] = row.order_num + 1
        elif new_position > old_position and old_position < row.order_num <= new_position:
            updates[row.id] = row.order_num - 1
    updates[row_id] = new_position
    return updates


def shuffle_updates(rows: Sequence, rng: Optional[random.Random] = None) -> Dict[int, int]:
    if len(rows) < 2:
        return {}
    positions = list(range(1, len(rows) + 1))
    # random.shuffle is a Fisher-Yates pass
    (rng or random).shuffle(positions)
    return {row.id: position for row, position in zip(rows, positions) if row.order_num != position}
