import logging
import uuid
from collections import OrderedDict

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from eventmap import plan_route
from eventmap.blocks import block_label_cells, detect_blocks
from eventmap.catalog import BlockCatalog, HallCatalog, validate_hall
from eventmap.config import load_settings
from eventmap.errors import (
    DuplicateNameError,
    EventMapError,
    GroupMismatchError,
    IndexOutOfGroupError,
)
from eventmap.grid import GridIndex, build_index
from eventmap.models import Block, GridMap, GridPoint, Hall, PointLike, ShoppingItem
from eventmap.pathfinding import generate_route_segments, search_path
from eventmap.polygon import hall_for_point
from eventmap.simplify import simplify_path
from eventmap.visit_list import (
    END_OF_LIST,
    DropPosition,
    GroupingContext,
    ListColumn,
    VisitListSession,
)

load_dotenv()

settings = load_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("eventmap.api")

app = FastAPI()
app.state.settings = settings
app.state.sessions = OrderedDict()
app.state.block_catalog = BlockCatalog()
app.state.hall_catalog = HallCatalog()


@app.exception_handler(EventMapError)
async def event_map_error(request: Request, exc: EventMapError):
    status = 422
    content = {"error": type(exc).__name__, "detail": str(exc)}
    if isinstance(exc, DuplicateNameError):
        # Client asks the user, then resends with "replace": true or false
        status = 409
        content["name"] = exc.name
    elif isinstance(exc, GroupMismatchError):
        status = 409
    elif isinstance(exc, IndexOutOfGroupError):
        status = 400
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content=content)


def _labels(
    grid: GridMap,
    index: GridIndex,
    label_cells: list[GridPoint] | None,
) -> set[tuple[int, int]]:
    """Explicit label cells, or the ones implied by the grid's block-name merges."""
    if label_cells is not None:
        return {p.key() for p in label_cells}
    return block_label_cells(grid.merged_cells, index)


def _request_halls(halls: list[Hall] | None) -> list[Hall]:
    """Halls sent with a request are validated; without them the saved halls apply."""
    if halls is None:
        return app.state.hall_catalog.halls
    for hall in halls:
        validate_hall(hall)
    return halls


def _replace_decision(replace: bool | None):
    if replace is None:
        return None
    return lambda name: replace


# --- Map endpoints ---


@app.post("/api/detect-blocks")
def detect(grid: GridMap):
    """Detect blocks from the sheet's block-name merges."""
    index = build_index(grid)
    blocks = detect_blocks(
        grid.merged_cells, index, search_radius=settings.block_search_radius,
    )
    labels = block_label_cells(grid.merged_cells, index)
    return {
        "blocks": [b.model_dump() for b in blocks],
        "label_cells": [{"row": r, "col": c} for r, c in sorted(labels)],
    }


class PathRequest(BaseModel):
    grid: GridMap
    start: GridPoint
    end: GridPoint
    label_cells: list[GridPoint] | None = None  # None = derive from merges


@app.post("/api/path")
def path(req: PathRequest):
    index = build_index(req.grid)
    result = search_path(
        index,
        req.start.row, req.start.col, req.end.row, req.end.col,
        _labels(req.grid, index, req.label_cells),
        diagonal_cost=settings.diagonal_cost,
    )
    return result.model_dump()


class SegmentsRequest(BaseModel):
    grid: GridMap
    points: list[GridPoint]
    label_cells: list[GridPoint] | None = None
    simplify: bool = True


@app.post("/api/route-segments")
def route_segments(req: SegmentsRequest):
    index = build_index(req.grid)
    segments = generate_route_segments(
        index,
        req.points,
        _labels(req.grid, index, req.label_cells),
        diagonal_cost=settings.diagonal_cost,
        simplify_tolerance=settings.simplify_tolerance if req.simplify else None,
    )
    return {"segments": [s.model_dump() for s in segments]}


class SimplifyRequest(BaseModel):
    path: list[GridPoint]
    tolerance: float | None = Field(default=None, ge=0)


@app.post("/api/simplify")
def simplify(req: SimplifyRequest):
    tolerance = settings.simplify_tolerance if req.tolerance is None else req.tolerance
    return {"path": [p.model_dump() for p in simplify_path(req.path, tolerance)]}


class ClassifyRequest(BaseModel):
    point: PointLike
    halls: list[Hall] | None = None  # None = saved halls


@app.post("/api/classify")
def classify(req: ClassifyRequest):
    """Which hall (if any) a grid point falls in."""
    hall = hall_for_point(req.point.row, req.point.col, _request_halls(req.halls))
    return {"hall_id": hall.id if hall else None}


class PlanRequest(BaseModel):
    grid: GridMap
    items: list[ShoppingItem] = Field(default_factory=list)
    halls: list[Hall] | None = None
    event_date: str | None = None
    group_order: list[str] = Field(default_factory=list)


@app.post("/api/plan")
def plan(req: PlanRequest):
    """Run the planning pipeline and return the full plan as JSON.

    A grid without blocks of its own uses the saved block definitions.
    """
    grid = req.grid
    if not grid.blocks and len(app.state.block_catalog):
        grid = grid.model_copy(update={"blocks": app.state.block_catalog.blocks})
    result = plan_route(
        grid, req.items, _request_halls(req.halls),
        event_date=req.event_date,
        group_order=req.group_order,
        settings=settings,
    )
    return result.model_dump()


# --- Block and hall definitions ---


class BlockSaveRequest(BaseModel):
    block: Block
    replace: bool | None = None  # None = fail with 409 on a duplicate name


@app.get("/api/blocks")
def list_blocks():
    return {"blocks": [b.model_dump() for b in app.state.block_catalog.blocks]}


@app.post("/api/blocks")
def save_block(req: BlockSaveRequest):
    catalog = app.state.block_catalog
    saved = catalog.add(req.block, confirm_replace=_replace_decision(req.replace))
    return {"saved": saved, "blocks": [b.model_dump() for b in catalog.blocks]}


@app.put("/api/blocks/{name}")
def update_block(name: str, block: Block):
    return app.state.block_catalog.update(name, block).model_dump()


@app.delete("/api/blocks/{name}")
def delete_block(name: str):
    if not app.state.block_catalog.remove(name):
        return JSONResponse(
            status_code=404,
            content={"error": "Unknown block", "detail": name},
        )
    return {"deleted": name}


@app.post("/api/blocks/recompute")
def recompute_blocks(grid: GridMap):
    """Rebuild the saved blocks' number cells against a newly loaded sheet."""
    blocks = app.state.block_catalog.recompute(build_index(grid))
    return {"blocks": [b.model_dump() for b in blocks]}


class HallSaveRequest(BaseModel):
    name: str
    vertices: list[PointLike]
    color: str | None = None
    replace: bool | None = None


@app.get("/api/halls")
def list_halls():
    return {"halls": [h.model_dump() for h in app.state.hall_catalog.halls]}


@app.post("/api/halls")
def save_hall(req: HallSaveRequest):
    hall = app.state.hall_catalog.create(
        req.name, req.vertices, color=req.color,
        confirm_replace=_replace_decision(req.replace),
    )
    return {"saved": hall is not None, "hall": hall.model_dump() if hall else None}


@app.put("/api/halls/{hall_id}")
def update_hall(hall_id: str, hall: Hall):
    return app.state.hall_catalog.update(hall.model_copy(update={"id": hall_id})).model_dump()


@app.delete("/api/halls/{hall_id}")
def delete_hall(hall_id: str):
    if not app.state.hall_catalog.remove(hall_id):
        return JSONResponse(
            status_code=404,
            content={"error": "Unknown hall", "detail": hall_id},
        )
    return {"deleted": hall_id}


# --- Visit list sessions ---


class SessionRequest(BaseModel):
    items: list[ShoppingItem]
    candidates: list[ShoppingItem] = Field(default_factory=list)
    blocks: list[Block] | None = None  # None = saved blocks
    halls: list[Hall] | None = None
    group_order: list[str] = Field(default_factory=list)


class MoveRequest(BaseModel):
    group_id: str | None = None
    from_index: int
    to_index: int


class SwapRequest(BaseModel):
    group_id: str | None = None
    index1: int
    index2: int


class ReverseRequest(BaseModel):
    group_id: str | None = None
    start: int
    end: int


class MoveAcrossRequest(BaseModel):
    item_ids: list[str]
    target_id: str = END_OF_LIST
    target_column: ListColumn = ListColumn.VISIT
    position: DropPosition = DropPosition.BEFORE


def _session_state(session_id: str, session: VisitListSession) -> dict:
    return {
        "session_id": session_id,
        "items": [i.model_dump() for i in session.items],
        "candidates": [i.model_dump() for i in session.candidates],
        "groups": [
            {"group_id": g.group_id, "hall_name": g.hall_name, "item_ids": [i.id for i in g.items]}
            for g in session.groups
        ],
        "cursor": session.cursor,
        "can_undo": session.can_undo,
        "can_redo": session.can_redo,
    }


def _get_session(session_id: str) -> VisitListSession | None:
    session = app.state.sessions.get(session_id)
    if session is not None:
        app.state.sessions.move_to_end(session_id)
    return session


def _missing_session(session_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"error": "Unknown session", "detail": f"No visit list session '{session_id}'"},
    )


@app.post("/api/sessions")
def create_session(req: SessionRequest):
    """Open an editing session over a visit list.

    The least recently used session is closed once ``max_sessions`` are open.
    """
    blocks = app.state.block_catalog.blocks if req.blocks is None else req.blocks
    session_id = uuid.uuid4().hex
    session = VisitListSession(
        req.items,
        GroupingContext(blocks=blocks, halls=_request_halls(req.halls), group_order=req.group_order),
        history_limit=settings.history_limit,
        candidates=req.candidates,
    )
    sessions = app.state.sessions
    while len(sessions) >= settings.max_sessions:
        expired, _ = sessions.popitem(last=False)
        logger.info("Closed idle visit list session %s", expired)
    sessions[session_id] = session
    logger.info("Opened visit list session %s with %d items", session_id, len(req.items))
    return _session_state(session_id, session)


@app.get("/api/sessions/{session_id}")
def get_session(session_id: str):
    session = _get_session(session_id)
    if session is None:
        return _missing_session(session_id)
    return _session_state(session_id, session)


@app.delete("/api/sessions/{session_id}")
def close_session(session_id: str):
    if app.state.sessions.pop(session_id, None) is None:
        return _missing_session(session_id)
    return {"closed": session_id}


@app.post("/api/sessions/{session_id}/move")
def session_move(session_id: str, req: MoveRequest):
    session = _get_session(session_id)
    if session is None:
        return _missing_session(session_id)
    session.move_within_group(req.group_id, req.from_index, req.to_index)
    return _session_state(session_id, session)


@app.post("/api/sessions/{session_id}/swap")
def session_swap(session_id: str, req: SwapRequest):
    session = _get_session(session_id)
    if session is None:
        return _missing_session(session_id)
    session.swap_within_group(req.group_id, req.index1, req.index2)
    return _session_state(session_id, session)


@app.post("/api/sessions/{session_id}/reverse")
def session_reverse(session_id: str, req: ReverseRequest):
    session = _get_session(session_id)
    if session is None:
        return _missing_session(session_id)
    session.reverse_range(req.group_id, req.start, req.end)
    return _session_state(session_id, session)


@app.post("/api/sessions/{session_id}/move-across")
def session_move_across(session_id: str, req: MoveAcrossRequest):
    session = _get_session(session_id)
    if session is None:
        return _missing_session(session_id)
    session.move_across_groups(req.item_ids, req.target_id, req.target_column, req.position)
    return _session_state(session_id, session)


@app.post("/api/sessions/{session_id}/{action}")
def session_history(session_id: str, action: str):
    """undo / redo / confirm / cancel."""
    session = _get_session(session_id)
    if session is None:
        return _missing_session(session_id)
    if action == "undo":
        session.undo()
    elif action == "redo":
        session.redo()
    elif action == "confirm":
        session.confirm()
    elif action == "cancel":
        session.cancel()
    else:
        return JSONResponse(
            status_code=404,
            content={"error": "Unknown action", "detail": action},
        )
    return _session_state(session_id, session)
