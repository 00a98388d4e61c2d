import numpy as np
import pytest

from demurrage_coin_model.model import InvalidArgument, LifetimeDistribution, generate_lifetimes


@pytest.mark.parametrize("k,p,m", [(1, 1.0, 0), (3, 10.0, 1), (20, 365.0, 10), (100, 0.5, 99), (7, 2.5, 0)])
def test_sum_invariant_and_counts(rng, k, p, m):
    dist = generate_lifetimes(k, p, m, rng=rng)

    assert dist.values.shape == (k,)
    assert dist.below.shape == (m,)
    assert dist.above.shape == (k - m,)
    assert np.isclose(np.sum(dist.values), k * p, rtol=0, atol=1e-9 * k * p)
    assert np.isclose(dist.total, k * p)


def test_values_keep_generation_order(rng):
    dist = generate_lifetimes(10, 4.0, 6, rng=rng)
    np.testing.assert_array_equal(dist.values[:6], dist.below)
    np.testing.assert_array_equal(dist.values[6:], dist.above)


def test_below_block_drawn_from_zero_to_p(rng):
    dist = generate_lifetimes(500, 3.0, 250, rng=rng)
    assert np.all(dist.below >= 0.0)
    assert np.all(dist.below < 3.0)


def test_above_block_is_shifted_raw_draw():
    seed = 99
    k, p, m = 5, 10.0, 2
    dist = generate_lifetimes(k, p, m, rng=np.random.default_rng(seed))

    ref = np.random.default_rng(seed)
    below = ref.uniform(0.0, p, size=m)
    above = ref.uniform(p, 2 * p, size=k - m)
    shift = (k * p - below.sum() - above.sum()) / (k - m)

    np.testing.assert_allclose(dist.below, below)
    np.testing.assert_allclose(dist.above, above + shift)
    assert dist.shift == pytest.approx(shift)


def test_seeded_generator_is_reproducible():
    a = generate_lifetimes(8, 1.0, 3, rng=np.random.default_rng(7))
    b = generate_lifetimes(8, 1.0, 3, rng=np.random.default_rng(7))
    np.testing.assert_array_equal(a.values, b.values)


def test_concrete_scenario_k3_p10_m1(rng):
    dist = generate_lifetimes(3, 10, 1, rng=rng)
    assert len(dist.below) == 1
    assert len(dist.above) == 2
    assert 0.0 <= dist.below[0] < 10.0
    assert np.sum(dist.values) == pytest.approx(30.0)


@pytest.mark.parametrize(
    "k,p,m",
    [
        (0, 1.0, 0),
        (-3, 1.0, 0),
        (5, 1.0, 5),
        (5, 1.0, 6),
        (5, 1.0, -1),
        (5, 0.0, 2),
        (5, -2.0, 2),
        (5, float("nan"), 2),
        (5, float("inf"), 2),
        (5.0, 1.0, 2),
        (True, 1.0, 0),
        (5, "abc", 2),
        (5, None, 2),
        (5, True, 2),
        (5, np.bool_(True), 2),
    ],
)
def test_invalid_arguments(k, p, m):
    class _NoDraws:
        def uniform(self, *args, **kwargs):
            raise AssertionError("sampled before validation")

    with pytest.raises(InvalidArgument):
        generate_lifetimes(k, p, m, rng=_NoDraws())


def test_invalid_argument_is_value_error():
    assert issubclass(InvalidArgument, ValueError)


def test_numpy_integer_arguments_accepted(rng):
    dist = generate_lifetimes(np.int64(4), 2.0, np.int32(1), rng=rng)
    assert dist.k == 4 and dist.m == 1


class _FixedDraws:
    """Returns preset arrays for the below and above draws, in call order."""

    def __init__(self, below, above):
        self._draws = [np.asarray(below, dtype=float), np.asarray(above, dtype=float)]

    def uniform(self, low, high, size):
        out = self._draws.pop(0)
        assert out.shape == (size,)
        return out


def test_shift_below_range_is_kept_not_clamped():
    warnings = []
    # shift = (30 - 9.9 - 29.9) / 2 = -4.9 -> above = [5.1, 15.0]
    dist = generate_lifetimes(3, 10.0, 1, rng=_FixedDraws([9.9], [10.0, 19.9]), warn_hook=warnings.append)

    np.testing.assert_allclose(dist.above, [5.1, 15.0])
    assert dist.n_out_of_range == 1
    assert np.sum(dist.values) == pytest.approx(30.0)
    assert len(warnings) == 1
    assert "outside [p, 2p)" in warnings[0]


def test_shift_above_range_is_kept_not_clamped():
    warnings = []
    # shift = 40 - 0 - 19.0 = 21 -> above = [40.0], past 2p
    dist = generate_lifetimes(4, 10.0, 3, rng=_FixedDraws([0.0, 0.0, 0.0], [19.0]), warn_hook=warnings.append)

    np.testing.assert_allclose(dist.above, [40.0])
    assert dist.n_out_of_range == 1
    assert dist.n_negative == 0
    assert len(warnings) == 1


def test_in_range_adjustment_does_not_warn():
    warnings = []
    # shift = (30 - 5.0 - 30.0) / 2 = -2.5 -> above = [12.5, 12.5]
    dist = generate_lifetimes(3, 10.0, 1, rng=_FixedDraws([5.0], [15.0, 15.0]), warn_hook=warnings.append)

    np.testing.assert_allclose(dist.above, [12.5, 12.5])
    assert dist.n_out_of_range == 0
    assert warnings == []


def test_adjusted_lifetimes_never_negative():
    # the shift is bounded below by -p, and raw above draws are >= p
    for seed in range(200):
        dist = generate_lifetimes(3, 1.0, 2, rng=np.random.default_rng(seed))
        assert dist.n_negative == 0
        assert np.all(dist.values >= 0.0)


def test_distribution_is_frozen(rng):
    dist = generate_lifetimes(3, 1.0, 1, rng=rng)
    assert isinstance(dist, LifetimeDistribution)
    with pytest.raises(AttributeError):
        dist.shift = 0.0
