"""Row normalization: turn one tabular record into the text that gets embedded."""
from numbers import Integral
from typing import Any, Iterable, List, Sequence

import numpy as np

FIELD_DELIMITER = ", "
NULL_LITERAL = "null"
UNSUPPORTED_PLACEHOLDER = "missing"


def render_field(value: Any) -> str:
    """Render a single field value.

    Strings pass through, integers are decimal-formatted and ``None`` becomes
    ``"null"``. Any other kind (floats, booleans, dates...) degrades to the
    placeholder so a single odd cell never aborts a large load.
    """
    if value is None:
        return NULL_LITERAL
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, np.bool_)):
        return UNSUPPORTED_PLACEHOLDER
    if isinstance(value, Integral):
        return str(int(value))
    return UNSUPPORTED_PLACEHOLDER


def normalize_row(row: Sequence[Any]) -> str:
    """Join the rendered fields of a row with ``", "``."""
    return FIELD_DELIMITER.join(render_field(value) for value in row)


def normalize_rows(rows: Iterable[Sequence[Any]]) -> List[str]:
    """Normalize every row, one text per row, in input order."""
    return [normalize_row(row) for row in rows]
