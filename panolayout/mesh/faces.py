"""Face recovery for wireframe meshes.

Given a mesh with edges but no faces, every half-edge starts as its own
open loop. Loops are greedily joined end to start, guided by how parallel
their edges are, until they close; every closed loop becomes a face. The
search is driven by an explicit state machine (:class:`SearchState`).
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Tuple

import numpy as np

from ..errors import require
from .core import Mesh
from .handles import FaceHandle, HalfHandle, VertHandle
from .traversal import connected_components

logger = logging.getLogger(__name__)

ParallelismScorer = Callable[[Mesh, HalfHandle, HalfHandle], float]
EdgeMask = Callable[[Mesh, HalfHandle], bool]

PRIORITY_INIT = 100
PRIORITY_TRI_LOOP = 110
PRIORITY_QUA_LOOP = 150
PRIORITY_2QUA_LOOP = 200

QUAD_PARALLELISM_THRESHOLD = 0.9


class SearchState(enum.Enum):
    TOP_FORCE = "top_force"
    TOP_MERGE = "top_merge"
    SUB_MATTING = "sub_matting"
    SUB_FORCE = "sub_force"
    SUB_MERGE = "sub_merge"
    END = "end"


class StepResult(enum.IntEnum):
    NOT_FOUND = 0
    PERFORMED = 1
    FACE_FOUND = 2


@dataclass(eq=False)
class _Loop:
    halfedges: List[HalfHandle]
    priority: int = PRIORITY_INIT
    closed: bool = False


def _discard(loops: List[_Loop], loop: _Loop) -> None:
    loops[:] = [item for item in loops if item is not loop]


def _insert_by_priority(loops: List[_Loop], loop: _Loop) -> None:
    for idx, item in enumerate(loops):
        if item.priority < loop.priority:
            loops.insert(idx, loop)
            return
    loops.append(loop)


class _FaceSearch:
    def __init__(self, mesh: Mesh, scorer: ParallelismScorer, mask: EdgeMask) -> None:
        self.mesh = mesh
        self.scorer = scorer
        self.mask = mask
        self.half2loop: List[Optional[_Loop]] = [None] * len(mesh.internal_halfedges)
        self.face_loops: List[_Loop] = []
        self.tri_loop: Optional[Tuple[HalfHandle, HalfHandle, HalfHandle]] = None

    # -- helpers ----------------------------------------------------------

    def usable(self, hh: HalfHandle) -> bool:
        return not self.mesh.removed(hh) and bool(self.mask(self.mesh, hh))

    def outgoing(self, vh: VertHandle) -> List[HalfHandle]:
        return [hh for hh in self.mesh.topo(vh).halfedges if self.usable(hh)]

    def is_closed(self, loop: _Loop) -> bool:
        mesh = self.mesh
        return mesh.from_vertex(loop.halfedges[0]) == mesh.to_vertex(loop.halfedges[-1])

    def mark_face(self, loop: _Loop) -> None:
        loop.priority = 0
        loop.closed = True
        self.face_loops.append(loop)

    def set_priority(self, hh: HalfHandle, priority: int) -> None:
        loop = self.half2loop[hh]
        if loop is not None:
            loop.priority = priority

    def matting_value(self, loop0: _Loop, loop1: _Loop) -> float:
        if len(loop0.halfedges) == 1 and len(loop1.halfedges) == 1:
            return 1.0
        values = np.array(
            [self.scorer(self.mesh, h0, h1) ** 10.0 for h0 in loop0.halfedges for h1 in loop1.halfedges],
            dtype=float,
        )
        kept = values[values >= values.mean()]
        result = float(kept.mean()) if kept.size else 0.0
        return 0.1 if result == 0 else result

    def connect(self, loop0: _Loop, loop1: _Loop) -> _Loop:
        mesh = self.mesh
        require(
            mesh.to_vertex(loop0.halfedges[-1]) == mesh.from_vertex(loop1.halfedges[0]),
            "loops do not meet end to start",
        )
        mab = self.matting_value(loop0, loop1)
        loop0.priority = int(0.4 * mab * (loop0.priority + loop1.priority))
        for hh in loop1.halfedges:
            loop0.halfedges.append(hh)
            self.half2loop[hh] = loop0
        return loop0

    def loop_starting_at(self, hh: HalfHandle) -> Optional[_Loop]:
        loop = self.half2loop[hh]
        if loop is None or loop.closed or loop.halfedges[0] != hh:
            return None
        return loop

    # -- initial loop table ------------------------------------------------

    def build_loops(self) -> List[_Loop]:
        mesh = self.mesh
        for rec in mesh.internal_halfedges:
            if rec.exists and self.mask(mesh, rec.hd):
                self.half2loop[rec.hd] = _Loop([rec.hd])

        self._find_tri_loop()
        self._prioritize_quads()

        master = [loop for loop in self.half2loop if loop is not None]
        master.sort(key=lambda loop: loop.priority, reverse=True)
        return master

    def _find_tri_loop(self) -> None:
        mesh = self.mesh
        for vh in mesh.vertices():
            halfs = mesh.topo(vh).halfedges
            for i, h1 in enumerate(halfs):
                if not self.usable(h1):
                    continue
                if self.half2loop[h1].priority > PRIORITY_INIT:
                    continue
                h1to = mesh.to_vertex(h1)
                h3cands = mesh.topo(h1to).halfedges
                for j, h2 in enumerate(halfs):
                    if i == j or not self.usable(h2):
                        continue
                    h2to = mesh.to_vertex(h2)
                    for h3 in h3cands:
                        if not self.usable(h3) or mesh.to_vertex(h3) != h2to:
                            continue
                        # v -h1-> h1to -h3-> h2to <-h2- v
                        self.tri_loop = (h1, h3, mesh.opposite(h2))
                        for hh in (h1, h2, h3):
                            self.set_priority(hh, PRIORITY_TRI_LOOP)
                            self.set_priority(mesh.opposite(hh), PRIORITY_TRI_LOOP)

    def _prioritize_quads(self) -> None:
        mesh = self.mesh
        count = len(mesh.internal_halfedges)
        quad_ids: List[Set[int]] = [set() for _ in range(count)]
        quads: List[Tuple[HalfHandle, ...]] = []

        for i in range(count):
            h1 = HalfHandle(i)
            if not self.usable(h1):
                continue
            for j in range(i + 1, count):
                h2 = HalfHandle(j)
                if not self.usable(h2):
                    continue
                if self.scorer(mesh, h1, h2) < QUAD_PARALLELISM_THRESHOLD:
                    continue
                if quad_ids[h1] & quad_ids[h2]:
                    continue

                h1end = mesh.to_vertex(h1)
                for h1start_h in self.outgoing(mesh.from_vertex(h1)):
                    if h1start_h == h1:
                        continue
                    reached = mesh.to_vertex(h1start_h)
                    if reached == mesh.from_vertex(h2):
                        end_vert = mesh.to_vertex(h2)
                    elif reached == mesh.to_vertex(h2):
                        end_vert = mesh.from_vertex(h2)
                    else:
                        continue
                    for h1end_h in self.outgoing(h1end):
                        if h1end_h == h1 or mesh.to_vertex(h1end_h) != end_vert:
                            continue
                        if not self.scorer(mesh, h1end_h, h1start_h):
                            continue
                        quads.append((h1, h1start_h, h2, h1end_h))
                        quad_id = len(quads) - 1
                        for hh in quads[-1]:
                            quad_ids[hh].add(quad_id)
                            quad_ids[mesh.opposite(hh)].add(quad_id)

        for hh in mesh.halfedges():
            if mesh.first_half(hh) != hh:
                continue
            shared = len(quad_ids[hh])
            if shared > 1:
                priority = PRIORITY_2QUA_LOOP
            elif shared == 1:
                priority = PRIORITY_QUA_LOOP
            else:
                continue
            self.set_priority(hh, priority)
            self.set_priority(mesh.opposite(hh), priority)
        logger.debug("Found %d quad loops", len(quads))

    # -- moves -------------------------------------------------------------

    def first_move(self, master: List[_Loop]) -> StepResult:
        mesh = self.mesh
        v3 = VertHandle()
        for vh in mesh.vertices():
            if len(self.outgoing(vh)) == 3:
                v3 = vh
                break

        if v3.valid():
            halfs = self.outgoing(v3)
            for j in range(3):
                loop0 = self.half2loop[mesh.opposite(halfs[j])]
                loop1 = self.half2loop[halfs[(j + 1) % 3]]
                require(loop0 is not None and loop1 is not None, "unmasked half-edges around %r", v3)
                _discard(master, loop0)
                _discard(master, loop1)
                loop = self.connect(loop0, loop1)
                if self.is_closed(loop):
                    self.mark_face(loop)
                    return StepResult.FACE_FOUND
                _insert_by_priority(master, loop)
        elif self.tri_loop is not None:
            for hh in self.tri_loop:
                _discard(master, self.half2loop[hh])
            loop = _Loop(list(self.tri_loop))
            for hh in self.tri_loop:
                self.half2loop[hh] = loop
            self.mark_face(loop)
        else:
            logger.warning("No degree-3 vertex and no triangle to start the face search from")
        return StepResult.NOT_FOUND

    def force_connection_once(self, loops: List[_Loop]) -> StepResult:
        """Join a loop to its successor when exactly one loop can continue it."""

        mesh = self.mesh
        for loop in loops:
            end_h = loop.halfedges[-1]
            candidates = []
            for hh in self.outgoing(mesh.to_vertex(end_h)):
                if mesh.opposite(hh) == end_h:
                    continue
                nxt = self.loop_starting_at(hh)
                if nxt is None or nxt is loop:
                    continue
                candidates.append(nxt)
                if len(candidates) > 1:
                    break
            if len(candidates) != 1:
                continue

            _discard(loops, loop)
            _discard(loops, candidates[0])
            joined = self.connect(loop, candidates[0])
            if self.is_closed(joined):
                self.mark_face(joined)
                return StepResult.FACE_FOUND
            _insert_by_priority(loops, joined)
            return StepResult.PERFORMED
        return StepResult.NOT_FOUND

    def merge_once(self, loops: List[_Loop]) -> StepResult:
        """Close a loop, either on its own or together with a loop that completes the circle."""

        mesh = self.mesh
        for loop in loops:
            if self.is_closed(loop):
                _discard(loops, loop)
                self.mark_face(loop)
                return StepResult.FACE_FOUND
            end_h = loop.halfedges[-1]
            for hh in self.outgoing(mesh.to_vertex(end_h)):
                if mesh.opposite(hh) == end_h:
                    continue
                other = self.loop_starting_at(hh)
                if other is None or other is loop:
                    continue
                if mesh.from_vertex(loop.halfedges[0]) != mesh.to_vertex(other.halfedges[-1]):
                    continue
                if self._opposite_loops_coincide(loop, other):
                    continue
                _discard(loops, loop)
                _discard(loops, other)
                joined = self.connect(loop, other)
                require(self.is_closed(joined), "merged loop is not closed")
                self.mark_face(joined)
                return StepResult.FACE_FOUND
        return StepResult.NOT_FOUND

    def best_merge_once(self, loops: List[_Loop]) -> StepResult:
        """Extend the highest-priority non-trivial loop by its best-matting successor."""

        if not loops:
            return StepResult.NOT_FOUND
        mesh = self.mesh
        loop = next((item for item in loops if len(item.halfedges) > 1), loops[0])

        if self.is_closed(loop):
            _discard(loops, loop)
            self.mark_face(loop)
            return StepResult.FACE_FOUND

        end_h = loop.halfedges[-1]
        best_value = -1.0
        best: Optional[_Loop] = None
        for hh in self.outgoing(mesh.to_vertex(end_h)):
            if mesh.opposite(hh) == end_h:
                continue
            other = self.loop_starting_at(hh)
            if other is None or other is loop:
                continue
            if self._opposite_loops_coincide(loop, other):
                continue
            value = self.matting_value(loop, other)
            if value > best_value:
                best_value = value
                best = other
        if best is None:
            return StepResult.NOT_FOUND

        _discard(loops, loop)
        _discard(loops, best)
        joined = self.connect(loop, best)
        if self.is_closed(joined):
            self.mark_face(joined)
            return StepResult.FACE_FOUND
        _insert_by_priority(loops, joined)
        return StepResult.PERFORMED

    def _opposite_loops_coincide(self, loop: _Loop, other: _Loop) -> bool:
        mesh = self.mesh
        return self.half2loop[mesh.opposite(loop.halfedges[-1])] is self.half2loop[mesh.opposite(other.halfedges[0])]

    # -- driver --------------------------------------------------------------

    def run(self, max_steps: int) -> List[_Loop]:
        master = self.build_loops()
        working: List[_Loop] = []

        result = self.first_move(master)
        state = SearchState.TOP_MERGE if result == StepResult.FACE_FOUND else SearchState.TOP_FORCE
        sub_cycle_progress = False
        steps = 0

        while state is not SearchState.END:
            if not master:
                state = SearchState.END
                break
            steps += 1
            if steps > max_steps:
                logger.warning("Face search stopped after %d steps with %d open loops", max_steps, len(master))
                break

            if state is SearchState.TOP_FORCE:
                result = self.force_connection_once(master)
                state = SearchState.TOP_MERGE if result == StepResult.NOT_FOUND else SearchState.TOP_FORCE
            elif state is SearchState.TOP_MERGE:
                result = self.merge_once(master)
                if result == StepResult.NOT_FOUND:
                    working = list(master)
                    sub_cycle_progress = False
                    state = SearchState.SUB_MATTING
                else:
                    state = SearchState.TOP_FORCE
            elif state is SearchState.SUB_MATTING:
                result = self.best_merge_once(working)
                if result == StepResult.FACE_FOUND:
                    master = working
                    state = SearchState.TOP_FORCE
                else:
                    sub_cycle_progress = sub_cycle_progress or result == StepResult.PERFORMED
                    state = SearchState.SUB_FORCE
            elif state is SearchState.SUB_FORCE:
                result = self.force_connection_once(working)
                if result == StepResult.FACE_FOUND:
                    master = working
                    state = SearchState.TOP_FORCE
                elif result == StepResult.PERFORMED:
                    sub_cycle_progress = True
                else:
                    state = SearchState.SUB_MERGE
            elif state is SearchState.SUB_MERGE:
                result = self.merge_once(working)
                if result == StepResult.FACE_FOUND:
                    master = working
                    state = SearchState.TOP_FORCE
                elif not sub_cycle_progress:
                    logger.warning("Face search stalled with %d open loops", len(working))
                    state = SearchState.END
                else:
                    sub_cycle_progress = False
                    state = SearchState.SUB_MATTING

        return self.face_loops


def search_and_add_faces(
    mesh: Mesh,
    scorer: ParallelismScorer,
    mask: Optional[EdgeMask] = None,
    max_steps: Optional[int] = None,
) -> List[FaceHandle]:
    """Recover faces of a wireframe ``mesh`` and add them; returns the new face handles.

    ``scorer(mesh, h1, h2)`` rates how parallel two half-edges are in ``[0, 1]``;
    ``mask(mesh, h)`` restricts the search to a subset of half-edges.
    """

    mask = mask or (lambda m, h: True)
    if max_steps is None:
        max_steps = 10 * len(mesh.internal_halfedges) + 100
    search = _FaceSearch(mesh, scorer, mask)
    loops = search.run(max_steps)
    faces = [mesh.add_face(loop.halfedges) for loop in loops]
    logger.info("Face search added %d faces", len(faces))
    return faces


def position_parallelism(mesh: Mesh, h1: HalfHandle, h2: HalfHandle) -> float:
    """``|cos|`` of the angle between two half-edges, using vertex positions as payloads."""

    d1 = np.asarray(mesh.data(mesh.from_vertex(h1)), dtype=float) - np.asarray(mesh.data(mesh.to_vertex(h1)), dtype=float)
    d2 = np.asarray(mesh.data(mesh.from_vertex(h2)), dtype=float) - np.asarray(mesh.data(mesh.to_vertex(h2)), dtype=float)
    n1 = np.linalg.norm(d1)
    n2 = np.linalg.norm(d2)
    if n1 == 0 or n2 == 0:
        return 0.0
    return float(abs(np.dot(d1 / n1, d2 / n2)))


def search_and_add_faces_from_positions(mesh: Mesh) -> List[FaceHandle]:
    """Run :func:`search_and_add_faces` per connected component, scoring edges by their positions."""

    component_ids: Dict[VertHandle, int] = {}

    def record(_mesh: Mesh, vh: VertHandle, cid: int) -> None:
        component_ids[vh] = cid

    count = connected_components(mesh, record)
    faces: List[FaceHandle] = []
    for cid in range(count):
        def in_component(m: Mesh, hh: HalfHandle, cid: int = cid) -> bool:
            return component_ids.get(m.from_vertex(hh)) == cid

        faces.extend(search_and_add_faces(mesh, position_parallelism, in_component))
    return faces
