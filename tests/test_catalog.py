import pytest

from eventmap.blocks import BLOCK_COLORS
from eventmap.catalog import HALL_COLORS, BlockCatalog, HallCatalog
from eventmap.errors import DuplicateNameError, MapValidationError
from eventmap.grid import build_index
from eventmap.models import Block, CellGroup, CellGroupType, PointLike

SQUARE = [PointLike(row=r, col=c) for r, c in [(0, 0), (0, 5), (5, 5), (5, 0)]]


def _block(name, row=1):
    return Block(name=name, start_row=row, start_col=1, end_row=row, end_col=3)


class TestBlockCatalog:
    def test_add_and_get(self):
        catalog = BlockCatalog()
        assert catalog.add(_block(" A "))
        assert catalog.get("A").name == "A"
        assert len(catalog) == 1

    def test_duplicate_without_decision_raises(self):
        catalog = BlockCatalog([_block("A")])
        with pytest.raises(DuplicateNameError) as exc:
            catalog.add(_block("A", row=5))
        assert exc.value.name == "A"
        assert catalog.get("A").start_row == 1

    def test_duplicate_declined(self):
        catalog = BlockCatalog([_block("A")])
        asked = []
        assert not catalog.add(_block("A", row=5), confirm_replace=lambda n: asked.append(n) or False)
        assert asked == ["A"]
        assert catalog.get("A").start_row == 1

    def test_duplicate_replaced(self):
        catalog = BlockCatalog([_block("A"), _block("B")])
        assert catalog.add(_block("A", row=5), confirm_replace=lambda n: True)
        assert [b.name for b in catalog.blocks] == ["B", "A"]
        assert catalog.get("A").start_row == 5

    def test_validation(self):
        catalog = BlockCatalog()
        with pytest.raises(MapValidationError):
            catalog.add(_block("  "))
        with pytest.raises(MapValidationError):
            catalog.add(Block(name="W", start_row=0, start_col=0, end_row=0, end_col=0,
                              cell_groups=[CellGroup(type=CellGroupType.INDIVIDUAL)]))
        with pytest.raises(MapValidationError):
            catalog.add(Block(name="Z", start_row=0, start_col=0, end_row=0, end_col=0))

    def test_rename_onto_existing_name(self):
        catalog = BlockCatalog([_block("A"), _block("B")])
        with pytest.raises(DuplicateNameError):
            catalog.update("A", _block("B"))
        assert catalog.update("A", _block("C")).name == "C"
        assert [b.name for b in catalog.blocks] == ["C", "B"]

    def test_remove_and_clear(self):
        catalog = BlockCatalog([_block("A"), _block("B")])
        assert catalog.next_color() == BLOCK_COLORS[2]
        assert catalog.remove("A")
        assert not catalog.remove("A")
        catalog.clear()
        assert len(catalog) == 0

    def test_recompute_against_grid(self, two_block_grid):
        catalog = BlockCatalog([
            Block(name="ア", start_row=2, start_col=2, end_row=3, end_col=4),
        ])
        [block] = catalog.recompute(build_index(two_block_grid))
        assert [nc.value for nc in block.number_cells] == [1, 2]


class TestHallCatalog:
    def test_create_assigns_id_and_color(self):
        catalog = HallCatalog()
        first = catalog.create("East", SQUARE)
        second = catalog.create("West", SQUARE)
        assert first.id.startswith("hall-")
        assert first.id != second.id
        assert [first.color, second.color] == HALL_COLORS[:2]

    def test_colors_cycle(self):
        catalog = HallCatalog()
        halls = [catalog.create(f"H{i}", SQUARE) for i in range(len(HALL_COLORS) + 1)]
        assert halls[-1].color == HALL_COLORS[0]

    @pytest.mark.parametrize("count", [0, 3, 7])
    def test_vertex_count_outside_four_to_six(self, count):
        vertices = [PointLike(row=i, col=i * 2 % 5) for i in range(count)]
        with pytest.raises(MapValidationError):
            HallCatalog().create("Bad", vertices)

    def test_duplicate_name(self):
        catalog = HallCatalog()
        original = catalog.create("East", SQUARE, hall_id="h1")
        with pytest.raises(DuplicateNameError):
            catalog.create("East", SQUARE)
        assert catalog.create("East", SQUARE, confirm_replace=lambda n: False) is None
        replaced = catalog.create("East", SQUARE, hall_id="h2", confirm_replace=lambda n: True)
        assert [h.id for h in catalog.halls] == ["h2"]
        assert replaced.id != original.id

    def test_update_and_remove(self):
        catalog = HallCatalog()
        hall = catalog.create("East", SQUARE)
        renamed = catalog.update(hall.model_copy(update={"name": "North"}))
        assert catalog.get(hall.id).name == "North"
        assert renamed.id == hall.id
        assert catalog.remove(hall.id)
        assert len(catalog) == 0

    def test_clear(self):
        catalog = HallCatalog()
        catalog.create("East", SQUARE)
        catalog.clear()
        assert catalog.halls == []
        assert catalog.find_by_name("East") is None
