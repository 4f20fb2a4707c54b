import pytest

from eventmap.models import Block, Hall, PointLike
from eventmap.polygon import (
    hall_for_block,
    hall_for_point,
    point_in_polygon,
)

SQUARE = [(1, 1), (1, 10), (10, 10), (10, 1)]
HEXAGON = [(1, 4), (3, 8), (7, 8), (9, 4), (7, 1), (3, 1)]


class TestPointInPolygon:
    @pytest.mark.parametrize("vertices", [SQUARE, HEXAGON])
    def test_every_vertex_is_inside(self, vertices):
        for r, c in vertices:
            assert point_in_polygon(r, c, vertices)

    def test_rectangle_matches_bounding_box(self):
        # Boundary rows/cols are excluded: ray casting is half-open there
        for r in range(-1, 13):
            for c in range(-1, 13):
                if r in (1, 10) or c in (1, 10):
                    continue
                expected = 1 < r < 10 and 1 < c < 10
                assert point_in_polygon(r, c, SQUARE) == expected, (r, c)

    def test_fractional_points(self):
        assert point_in_polygon(5.5, 5.5, SQUARE)
        assert not point_in_polygon(10.5, 5.5, SQUARE)

    def test_concave_polygon(self):
        # U shape opening upwards between cols 4 and 6
        u_shape = [(1, 1), (1, 3), (5, 3), (5, 7), (1, 7), (1, 9), (8, 9), (8, 1)]
        assert point_in_polygon(3, 2, u_shape)
        assert not point_in_polygon(3, 5, u_shape)
        assert point_in_polygon(6, 5, u_shape)

    def test_degenerate_polygons_never_match(self):
        assert not point_in_polygon(1, 1, [])
        assert not point_in_polygon(1, 1, [(1, 1), (2, 2)])

    def test_accepts_models_and_dicts(self):
        models = [PointLike(row=r, col=c) for r, c in SQUARE]
        dicts = [{"row": r, "col": c} for r, c in SQUARE]
        assert point_in_polygon(5, 5, models)
        assert point_in_polygon(5, 5, dicts)


class TestHallHelpers:
    def test_first_hall_in_definition_order_wins(self, halls):
        overlapping = Hall(
            id="big", name="Big",
            vertices=[PointLike(row=0, col=0), PointLike(row=0, col=30),
                      PointLike(row=30, col=30), PointLike(row=30, col=0)],
        )
        assert hall_for_point(5, 5, halls + [overlapping]).id == "east"
        assert hall_for_point(5, 5, [overlapping] + halls).id == "big"

    def test_halls_with_too_few_vertices_are_ignored(self):
        triangle = Hall(
            id="tri", name="Tri",
            vertices=[PointLike(row=0, col=0), PointLike(row=0, col=10), PointLike(row=10, col=0)],
        )
        assert hall_for_point(2, 2, [triangle]) is None

    def test_no_hall_outside_all_polygons(self, halls):
        assert hall_for_point(50, 50, halls) is None

    def test_block_center_assignment(self, blocks, halls):
        assert hall_for_block(blocks[0], halls).id == "east"
        assert hall_for_block(blocks[1], halls).id == "west"

    def test_block_center_is_fractional(self):
        b = Block(name="X", start_row=1, start_col=1, end_row=2, end_col=4)
        assert (b.center.row, b.center.col) == (1.5, 2.5)
