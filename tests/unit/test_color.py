import numpy as np
import pytest

from voxscan.core.color import Color, linear_to_srgb, luminance, srgb_to_linear


def test_srgb_transfer_reference_points() -> None:
    assert srgb_to_linear(0.0) == 0.0
    assert srgb_to_linear(1.0) == pytest.approx(1.0)
    assert srgb_to_linear(0.5) == pytest.approx(0.21404, abs=1e-5)
    # linear segment below the knee
    assert srgb_to_linear(0.04) == pytest.approx(0.04 / 12.92)
    assert linear_to_srgb(0.002) == pytest.approx(0.002 * 12.92)
    assert linear_to_srgb(0.21404114) == pytest.approx(0.5, abs=1e-6)


def test_srgb_transfer_is_vectorized() -> None:
    values = np.linspace(0.0, 1.0, 11)
    np.testing.assert_allclose(linear_to_srgb(srgb_to_linear(values)), values, atol=1e-12)


def test_luminance_weights_sum_to_one() -> None:
    assert luminance(1.0, 1.0, 1.0) == pytest.approx(1.0)
    assert luminance(0.0, 1.0, 0.0) == pytest.approx(0.7152)


def test_color_conversions_preserve_alpha() -> None:
    c = Color(0.5, 0.25, 1.0, 0.3)
    lin = c.linear
    assert lin.a == 0.3
    assert lin.r == pytest.approx(0.21404, abs=1e-5)
    back = lin.gamma
    assert (back.r, back.g, back.b, back.a) == pytest.approx((0.5, 0.25, 1.0, 0.3))


def test_color_clamped_and_rgb8() -> None:
    c = Color(1.2, -0.1, 0.5, 2.0).clamped()
    assert (c.r, c.g, c.b, c.a) == (1.0, 0.0, 0.5, 1.0)
    assert Color(1.0, 0.0, 0.5).to_rgb8() == (255, 0, 128)
    assert Color.from_rgb8((255, 0, 51)).b == pytest.approx(0.2)


def test_color_from_array_rejects_bad_channel_count() -> None:
    assert Color.from_array(np.array([0.1, 0.2, 0.3])).a == 1.0
    with pytest.raises(ValueError):
        Color.from_array(np.array([0.1, 0.2]))
