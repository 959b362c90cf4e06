"""Default classroom template and tag vocabulary."""
from __future__ import annotations

from typing import List

from .models import Layout, Seat

STUDENT_TAGS = ("front row", "back row", "near TB")

# Card geometry of the default template, in pixels
CARD_W = 120
CARD_H = 156
ROW_GAP = 14
AISLE = 75


def default_template(rows: int = 6, pairs_per_row: int = 3) -> Layout:
    """Desks in pairs with an aisle between pairs, ids ``d1``, ``d2``, ... row by row."""
    seats: List[Seat] = []
    cols = pairs_per_row * 2
    for r in range(rows):
        for c in range(cols):
            pair_index, in_pair = divmod(c, 2)
            x = pair_index * (2 * CARD_W + AISLE) + in_pair * CARD_W
            y = r * (CARD_H + ROW_GAP)
            seats.append(Seat(id=f"d{r * cols + c + 1}", x=x, y=y))
    return Layout(seats=seats)
