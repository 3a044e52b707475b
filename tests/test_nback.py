import random
from unittest.mock import patch

import pytest

from dual_n_back.nback import (
    InvalidParameter,
    NBackSequence,
    count_matches,
    generate_nback_sequence,
    match_flags,
    target_match_count,
)


class TestGenerateNBackSequence:
    def test_length_and_range(self):
        """
        Every value lies in [1, alphabet_size] and the length is exact.
        """
        seq = generate_nback_sequence(20, 9, 30, 2, rng=random.Random(1))
        assert len(seq) == 20
        assert all(1 <= v <= 9 for v in seq)

    @pytest.mark.parametrize(
        "length,alphabet_size,match_percentage,n",
        [
            (10, 9, 30, 2),
            (10, 2, 30, 1),
            (20, 16, 50, 3),
            (25, 25, 0, 4),
            (12, 4, 100, 2),
            (30, 9, 33, 9),
            (3, 2, 50, 2),
        ],
    )
    def test_exact_match_count(self, length, alphabet_size, match_percentage, n):
        """
        The random fill never adds matches, so the count is exactly the target.
        """
        expected = target_match_count(length, match_percentage, n)
        for seed in range(25):
            seq = generate_nback_sequence(
                length, alphabet_size, match_percentage, n, rng=random.Random(seed)
            )
            assert count_matches(seq, n) == expected

    def test_target_rounds_half_up(self):
        """
        50% of 3 eligible positions rounds up to 2.
        """
        assert target_match_count(5, 50, 2) == 2
        assert target_match_count(10, 30, 2) == 2
        assert target_match_count(10, 0, 2) == 0
        assert target_match_count(10, 100, 2) == 8

    def test_generations_differ(self):
        """
        Identical inputs give different sequences from an unseeded source.
        """
        seqs = {tuple(generate_nback_sequence(20, 9, 30, 2)) for _ in range(10)}
        assert len(seqs) > 1

    def test_seeded_rng_is_deterministic(self):
        a = generate_nback_sequence(15, 9, 30, 2, rng=random.Random(42))
        b = generate_nback_sequence(15, 9, 30, 2, rng=random.Random(42))
        assert a == b

    @patch("random.sample", return_value=[2, 3, 4])
    @patch("random.choice")
    def test_match_positions_copy_back_value(self, mock_choice, mock_sample):
        """
        Sampled positions copy the value n steps back; choice fills the rest.
        """
        mock_choice.side_effect = [1, 2]

        seq = generate_nback_sequence(5, 4, 100, 2)

        assert seq == [1, 2, 1, 2, 1]
        args, _ = mock_sample.call_args
        assert list(args[0]) == [2, 3, 4]
        assert args[1] == 3

    @patch("random.sample", return_value=[])
    @patch("random.choice")
    def test_fill_excludes_back_value(self, mock_choice, mock_sample):
        """
        Non-match positions never offer the value n steps back.
        """
        mock_choice.side_effect = lambda options: options[0]

        seq = generate_nback_sequence(5, 4, 0, 2)

        assert seq == [1, 1, 2, 2, 1]
        offered = [call.args[0] for call in mock_choice.call_args_list]
        assert offered[0] == [1, 2, 3, 4]
        assert offered[2] == [2, 3, 4]
        assert offered[4] == [1, 3, 4]
        assert count_matches(seq, 2) == 0

    @pytest.mark.parametrize(
        "length,alphabet_size,match_percentage,n",
        [
            (2, 9, 30, 2),
            (10, 9, 30, 0),
            (10, 1, 30, 2),
            (10, 9, -1, 2),
            (10, 9, 101, 2),
        ],
    )
    def test_invalid_parameters(self, length, alphabet_size, match_percentage, n):
        with pytest.raises(InvalidParameter):
            generate_nback_sequence(length, alphabet_size, match_percentage, n)

    def test_invalid_parameter_is_value_error(self):
        with pytest.raises(ValueError):
            generate_nback_sequence(1, 9, 30, 1)


class TestMatchHelpers:
    def test_match_flags(self):
        assert match_flags([3, 7, 3, 1, 7], 2) == [False, False, True, False, False]

    def test_count_matches(self):
        assert count_matches([1, 1, 1, 2], 1) == 2
        assert count_matches([1, 2, 1, 2, 1, 2], 2) == 4


class TestNBackSequence:
    def test_init(self):
        """
        Test initialization of NBackSequence.
        """
        seq = NBackSequence(length=20, n=2, alphabet_size=4)
        assert seq.length == 20
        assert seq.n == 2
        assert seq.alphabet_size == 4
        assert len(seq.sequence) == 20
        assert seq.truth == match_flags(seq.sequence, 2)

    def test_len(self):
        seq = NBackSequence(length=25, n=3)
        assert len(seq) == 25

    def test_iter(self):
        """
        Iteration yields (value, is_match) pairs.
        """
        seq = NBackSequence(length=10, n=2, rng=random.Random(3))
        items = list(seq)
        assert len(items) == 10
        for i, (item, truth) in enumerate(items):
            assert item == seq.sequence[i]
            assert truth == seq.truth[i]
        assert sum(t for _, t in items) == 2

    def test_next(self):
        """
        Test the __next__ method, ensuring StopIteration is raised correctly.
        """
        seq = NBackSequence(length=3, n=1)
        _ = next(seq)
        _ = next(seq)
        _ = next(seq)
        with pytest.raises(StopIteration):
            next(seq)

    def test_invalid(self):
        with pytest.raises(InvalidParameter):
            NBackSequence(length=2, n=2)
