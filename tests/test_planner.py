from eventmap import plan_route
from eventmap.config import Settings
from eventmap.models import Block, GateStatus, Hall, PointLike, ShoppingItem


def _items():
    return [
        ShoppingItem(id="a", block="ア", number="1", event_date="day1"),
        ShoppingItem(id="b", block="イ", number="2", event_date="day1"),
        ShoppingItem(id="c", block="ア", number="2", event_date="day1"),
        ShoppingItem(id="d", block="ア", number="1", event_date="day2"),
    ]


class TestPlanRoute:
    def test_detects_blocks_and_routes_between_visits(self, two_block_grid):
        plan = plan_route(two_block_grid, _items(), event_date="day1")

        assert [b.name for b in plan.blocks] == ["ア", "イ"]
        assert plan.diagnostics["block_source"] == "detected"
        assert [i.id for i in plan.ordered_items] == ["a", "b", "c"]
        assert [(p.row, p.col) for p in plan.visit_points] == [(2, 4), (7, 10), (3, 4)]
        assert len(plan.segments) == 2
        assert all(s.found for s in plan.segments)
        assert all(s.simplified for s in plan.segments)
        assert plan.diagnostics["fallback_segments"] == 0
        assert len(plan.label_cells) == 8

    def test_without_halls_quality_warns(self, two_block_grid):
        plan = plan_route(two_block_grid, _items(), event_date="day1")
        assert plan.quality.overall == GateStatus.WARN
        halls_check = next(c for c in plan.quality.checks if c.name == "Halls defined")
        assert halls_check.status == GateStatus.WARN

    def test_saved_blocks_win_over_detection(self, two_block_grid):
        grid = two_block_grid.model_copy(update={
            "blocks": [Block(name="ア", start_row=2, start_col=2, end_row=3, end_col=4)],
        })
        plan = plan_route(grid, _items())
        assert plan.diagnostics["block_source"] == "saved"
        assert [b.name for b in plan.blocks] == ["ア"]
        assert plan.visit_points == []

    def test_halls_group_the_visits(self, two_block_grid):
        halls = [
            Hall(id="south", name="South",
                 vertices=[PointLike(row=5, col=0), PointLike(row=5, col=13),
                           PointLike(row=9, col=13), PointLike(row=9, col=0)]),
            Hall(id="north", name="North",
                 vertices=[PointLike(row=0, col=0), PointLike(row=0, col=13),
                           PointLike(row=4.5, col=13), PointLike(row=4.5, col=0)]),
            Hall(id="broken", name="Broken", vertices=[PointLike(row=0, col=0)]),
        ]
        plan = plan_route(two_block_grid, _items(), halls, event_date="day1")

        assert [g.group_id for g in plan.groups] == ["south", "north"]
        assert [i.id for i in plan.ordered_items] == ["b", "a", "c"]
        assert plan.diagnostics["hall_count"] == 2
        assert plan.diagnostics["ignored_halls"] == ["Broken"]

    def test_settings_flow_through(self, two_block_grid):
        settings = Settings(diagonal_cost=1.9, simplify_tolerance=100)
        plan = plan_route(two_block_grid, _items(), event_date="day1", settings=settings)
        assert all(len(s.simplified) == 2 for s in plan.segments)
