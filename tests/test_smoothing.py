import pytest

from systems.smoothing import BoundedSmoother, clamp


class TestClamp:
    def test_inside_and_outside(self):
        assert clamp(5, 0, 10) == 5
        assert clamp(-1, 0, 10) == 0
        assert clamp(11, 0, 10) == 10


class TestBoundedSmoother:
    def test_plain_ema(self):
        smoother = BoundedSmoother(0.0, alpha=0.5)
        assert smoother.update(10.0) == pytest.approx(5.0)
        assert smoother.update(10.0) == pytest.approx(7.5)

    def test_upper_bound_holds(self):
        smoother = BoundedSmoother(5.0, alpha=1.0, lower=0.0, upper=8.0)
        assert smoother.update(100.0) == 8.0

    def test_step_limit_is_fraction_of_current_value(self):
        smoother = BoundedSmoother(10.0, alpha=1.0, max_step_fraction=0.25)
        assert smoother.update(100.0) == pytest.approx(12.5)
        assert smoother.update(0.0) == pytest.approx(12.5 - 12.5 * 0.25)

    def test_step_limit_does_not_freeze_at_zero(self):
        smoother = BoundedSmoother(0.0, alpha=0.5, max_step_fraction=0.25)
        assert smoother.update(10.0) == pytest.approx(0.5)

    def test_initial_value_is_clamped(self):
        assert BoundedSmoother(10.0, alpha=0.1, lower=0.0, upper=4.0).value == 4.0

    def test_reset_returns_to_initial(self):
        smoother = BoundedSmoother(1.0, alpha=0.5)
        smoother.update(0.0)
        smoother.reset()
        assert smoother.value == 1.0
        smoother.reset(0.25)
        assert smoother.value == 0.25

    @pytest.mark.parametrize("alpha", [0.0, -0.1, 1.5])
    def test_invalid_alpha(self, alpha):
        with pytest.raises(ValueError):
            BoundedSmoother(1.0, alpha=alpha)

    def test_inverted_bounds(self):
        with pytest.raises(ValueError):
            BoundedSmoother(1.0, alpha=0.5, lower=2.0, upper=1.0)
