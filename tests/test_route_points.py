from eventmap.models import ShoppingItem, VisitPoint
from eventmap.route_points import (
    add_route_point,
    remove_route_point,
    reorder_route_points,
    update_route_point,
    visit_points_from_items,
)


def _points(*point_ids):
    return [VisitPoint(id=p, row=1, col=n + 1, order=n) for n, p in enumerate(point_ids)]


def _state(points):
    return [(p.id, p.order) for p in points]


class TestRoutePointOrder:
    def test_add_inserts_at_order_and_renumbers(self):
        points = add_route_point(_points("a", "b", "c"), VisitPoint(id="x", row=5, col=5, order=1))
        assert _state(points) == [("a", 0), ("x", 1), ("b", 2), ("c", 3)]

    def test_add_replaces_same_id(self):
        points = add_route_point(_points("a", "b", "c"), VisitPoint(id="a", row=9, col=9, order=2))
        assert _state(points) == [("b", 0), ("a", 1), ("c", 2)]
        assert points[1].row == 9

    def test_add_past_the_end_appends(self):
        points = add_route_point(_points("a"), VisitPoint(id="b", row=1, col=1, order=10))
        assert _state(points) == [("a", 0), ("b", 1)]

    def test_remove_keeps_order_dense(self):
        points = remove_route_point(_points("a", "b", "c"), "b")
        assert _state(points) == [("a", 0), ("c", 1)]
        assert _state(remove_route_point(points, "zzz")) == [("a", 0), ("c", 1)]

    def test_reorder_by_ids(self):
        points = reorder_route_points(_points("a", "b", "c"), ["c", "missing", "a", "b"])
        assert _state(points) == [("c", 0), ("a", 1), ("b", 2)]

    def test_update_in_place(self):
        changed = VisitPoint(id="b", row=7, col=7, order=99, item_ids=["i9"])
        points = update_route_point(_points("a", "b"), changed)
        assert _state(points) == [("a", 0), ("b", 1)]
        assert points[1].item_ids == ["i9"]
        assert update_route_point(points, VisitPoint(id="q", row=1, col=1)) == points


class TestVisitPointsFromItems:
    def test_one_point_per_cell_in_visit_order(self, items, blocks):
        order = ["i2", "i1", "i7", "i5", "i3"]
        points = visit_points_from_items(items, order, blocks, event_date="day1")

        assert [(p.row, p.col) for p in points] == [(2, 14), (2, 4), (3, 4)]
        assert [p.order for p in points] == [0, 1, 2]
        assert points[1].item_ids == ["i1", "i7"]
        assert points[1].block_name == "A"
        assert points[1].number == 1

    def test_other_dates_are_left_out(self, blocks):
        other_day = [ShoppingItem(id="x", block="A", number="1", event_date="day2")]
        assert visit_points_from_items(other_day, ["x"], blocks, event_date="day1") == []
