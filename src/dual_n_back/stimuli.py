import math
import string


def grid_shape(alphabet_size: int) -> tuple[int, int]:
    """Rows and columns of the position grid: 9 -> 3x3, 16 -> 4x4, 25 -> 5x5."""
    if alphabet_size < 1:
        raise ValueError(f"alphabet_size must be positive, got {alphabet_size}")
    cols = math.ceil(math.sqrt(alphabet_size))
    rows = math.ceil(alphabet_size / cols)
    return rows, cols


def grid_position(value: int, alphabet_size: int) -> tuple[int, int]:
    """Row-major (row, col) of a 1-based visual stimulus value."""
    if not 1 <= value <= alphabet_size:
        raise ValueError(f"value {value} outside 1..{alphabet_size}")
    _rows, cols = grid_shape(alphabet_size)
    return divmod(value - 1, cols)


def letter_for(value: int) -> str:
    """Letter spoken for a 1-based audio stimulus value (1 -> "A")."""
    if not 1 <= value <= len(string.ascii_uppercase):
        raise ValueError(f"value {value} has no letter")
    return string.ascii_uppercase[value - 1]


def tone_frequency(value: int, base: float = 220.0) -> float:
    """Equal-tempered pitch per audio value, one semitone apart."""
    if value < 1:
        raise ValueError(f"value must be positive, got {value}")
    return base * 2 ** ((value - 1) / 12)
