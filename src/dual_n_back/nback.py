import math
import random


class InvalidParameter(ValueError):
    """Raised when sequence generation is asked for an impossible sequence."""


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def target_match_count(length: int, match_percentage: float, n: int) -> int:
    """Number of positions i >= n that must repeat the value n steps back."""
    return round_half_up(match_percentage / 100 * (length - n))


def generate_nback_sequence(
    length: int,
    alphabet_size: int,
    match_percentage: float,
    n: int,
    *,
    rng=None,
) -> list[int]:
    """
    Generate a stimulus sequence with a fixed number of n-back matches.

    The match positions are sampled uniformly without replacement from
    the eligible range [n, length). Matching positions copy the value
    n steps back; every other position draws a value that is *not* the
    one n steps back, so the random fill never adds an unintended match.

    `rng` is anything with `sample` and `choice` (the `random` module or
    a `random.Random` instance).
    """
    if n < 1:
        raise InvalidParameter(f"n must be >= 1, got {n}")
    if length <= n:
        raise InvalidParameter(f"length must be greater than n ({n}), got {length}")
    if alphabet_size < 2:
        raise InvalidParameter(f"alphabet_size must be >= 2, got {alphabet_size}")
    if not 0 <= match_percentage <= 100:
        raise InvalidParameter(
            f"match_percentage must be between 0 and 100, got {match_percentage}"
        )

    rng = rng or random
    matches = set(
        rng.sample(range(n, length), target_match_count(length, match_percentage, n))
    )

    sequence = [0] * length
    for i in range(length):
        if i in matches:
            sequence[i] = sequence[i - n]
            continue
        # Avoid the value n steps back, otherwise we get unintended matches.
        back = sequence[i - n] if i >= n else None
        sequence[i] = rng.choice(
            [x for x in range(1, alphabet_size + 1) if x != back]
        )
    return sequence


def match_flags(sequence: list[int], n: int) -> list[bool]:
    """Per-position truth: does sequence[i] equal sequence[i - n]?"""
    return [i >= n and sequence[i] == sequence[i - n] for i in range(len(sequence))]


def count_matches(sequence: list[int], n: int) -> int:
    return sum(match_flags(sequence, n))


class NBackSequence:
    """
    A generated n-back stimulus stream together with its ground truth.

    Iterating yields `(value, is_match)` pairs, where `is_match` says
    whether the value equals the one shown n steps earlier.
    """

    def __init__(
        self,
        length: int,
        n: int,
        alphabet_size: int = 9,
        match_percentage: float = 30,
        rng=None,
    ):
        self.length = length
        self.n = n
        self.alphabet_size = alphabet_size
        self.match_percentage = match_percentage

        self.sequence = generate_nback_sequence(
            length, alphabet_size, match_percentage, n, rng=rng
        )
        self.truth = match_flags(self.sequence, n)

        # for __next__
        self.current = 0

    def __len__(self) -> int:
        return self.length

    def __iter__(self):
        for i in range(self.length):
            yield self.sequence[i], self.truth[i]

    def __next__(self):
        if self.current >= self.length:
            raise StopIteration
        item = self.sequence[self.current], self.truth[self.current]
        self.current += 1
        return item
