import pytest

from eventmap.models import GridPoint
from eventmap.simplify import point_to_segment_distance, simplify_path


def _path(*coords):
    return [GridPoint(row=r, col=c) for r, c in coords]


def _coords(path):
    return [(p.row, p.col) for p in path]


L_SHAPE = _path(*[(1, c) for c in range(1, 6)], *[(r, 5) for r in range(2, 6)])
ZIGZAG = _path((1, 1), (2, 2), (1, 3), (2, 4), (1, 5), (4, 5), (4, 1))


class TestPointToSegmentDistance:
    def test_perpendicular(self):
        assert point_to_segment_distance(3, 2, 1, 1, 1, 5) == pytest.approx(2.0)

    def test_clamped_to_endpoints(self):
        assert point_to_segment_distance(1, 10, 1, 1, 1, 5) == pytest.approx(5.0)
        assert point_to_segment_distance(1, -2, 1, 1, 1, 5) == pytest.approx(3.0)

    def test_zero_length_segment(self):
        assert point_to_segment_distance(4, 5, 1, 1, 1, 1) == pytest.approx(5.0)


class TestSimplifyPath:
    @pytest.mark.parametrize("tolerance", [0, 0.5, 3])
    def test_straight_line_collapses_to_endpoints(self, tolerance):
        row = _path(*[(2, c) for c in range(1, 9)])
        diagonal = _path(*[(i, i) for i in range(1, 6)])
        assert _coords(simplify_path(row, tolerance)) == [(2, 1), (2, 8)]
        assert _coords(simplify_path(diagonal, tolerance)) == [(1, 1), (5, 5)]

    def test_short_paths_are_unchanged(self):
        assert simplify_path([]) == []
        two = _path((1, 1), (3, 7))
        assert simplify_path(two) == two

    def test_corner_is_kept(self):
        assert _coords(simplify_path(L_SHAPE)) == [(1, 1), (1, 5), (5, 5)]

    def test_large_tolerance_drops_the_corner(self):
        assert _coords(simplify_path(L_SHAPE, 10)) == [(1, 1), (5, 5)]

    @pytest.mark.parametrize("path", [L_SHAPE, ZIGZAG])
    @pytest.mark.parametrize("tolerance", [0.5, 0.8, 1.5])
    def test_idempotent(self, path, tolerance):
        once = simplify_path(path, tolerance)
        assert simplify_path(once, tolerance) == once

    def test_endpoints_always_survive(self):
        result = simplify_path(ZIGZAG, 0.5)
        assert result[0] == ZIGZAG[0]
        assert result[-1] == ZIGZAG[-1]
