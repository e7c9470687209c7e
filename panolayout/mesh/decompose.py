"""Cutting closed meshes along internal edge loops."""

from __future__ import annotations

import copy
import logging
from collections import deque
from typing import Callable, Deque, List, Optional, Sequence, Tuple

from ..errors import require
from .core import Mesh, assert_edges_are_stitched
from .handles import FaceHandle, HalfHandle, VertHandle

logger = logging.getLogger(__name__)

IntersectFn = Callable[[Mesh, HalfHandle, HalfHandle], bool]
CompareLoopFn = Callable[[Sequence[HalfHandle], Sequence[HalfHandle]], bool]
ColinearFn = Callable[[Mesh, Sequence[HalfHandle]], bool]

MIN_LOOP_VERTEX_DEGREE = 4


def _faces_of_edge(mesh: Mesh, hh: HalfHandle) -> List[FaceHandle]:
    faces = [mesh.face_of(hh)]
    opposite = mesh.opposite(hh)
    if opposite.valid():
        faces.append(mesh.face_of(opposite))
    return [fh for fh in faces if fh.valid()]


def construct_internal_loop_from(
    mesh: Mesh,
    initial: HalfHandle,
    intersect_fn: IntersectFn,
    max_paths: int = 10000,
) -> List[HalfHandle]:
    """Breadth-first search for the shortest closed edge loop through ``initial``.

    Every vertex on the loop must have degree at least 4, the loop may not
    revisit a vertex or an edge, no two of its edges may border a common
    face, and ``intersect_fn`` must reject no pair of its edges. Returns an
    empty list when no such loop exists or more than ``max_paths`` partial
    paths were expanded.
    """

    start = mesh.from_vertex(initial)
    if mesh.degree(start) < MIN_LOOP_VERTEX_DEGREE or mesh.degree(mesh.to_vertex(initial)) < MIN_LOOP_VERTEX_DEGREE:
        return []

    queue: Deque[List[HalfHandle]] = deque([[initial]])
    expanded = 0
    while queue:
        path = queue.popleft()
        expanded += 1
        if expanded > max_paths:
            logger.warning("Internal loop search from %r gave up after %d paths", initial, max_paths)
            return []

        end = mesh.to_vertex(path[-1])
        if end == start:
            return path

        on_path = set(path)
        path_vertices = {mesh.to_vertex(hh) for hh in path}
        path_faces = set()
        for hh in path:
            path_faces.update(_faces_of_edge(mesh, hh))

        extensions = []
        for nexth in mesh.topo(end).halfedges:
            if mesh.removed(nexth):
                continue
            if nexth in on_path or mesh.opposite(nexth) in on_path:
                continue
            vh = mesh.to_vertex(nexth)
            if mesh.degree(vh) < MIN_LOOP_VERTEX_DEGREE:
                continue
            if vh in path_vertices:
                continue
            if any(fh in path_faces for fh in _faces_of_edge(mesh, nexth)):
                continue
            if any(intersect_fn(mesh, hh, nexth) for hh in path):
                continue
            extensions.append(nexth)

        if len(extensions) == 1:
            path.append(extensions[0])
            queue.append(path)
        else:
            for nexth in extensions:
                queue.append(path + [nexth])
    return []


def _side_halfedges(mesh: Mesh, vh: VertHandle, incoming: HalfHandle, loop: Sequence[HalfHandle]) -> List[HalfHandle]:
    """Outgoing half-edges of ``vh`` that lie on the far side of the loop from its faces."""

    side = {mesh.opposite(incoming)}
    side_faces = {mesh.face_of(hh) for hh in side}
    loop_set = set(loop)
    found = True
    while found:
        found = False
        for related in mesh.topo(vh).halfedges:
            if related in side or related in loop_set or mesh.removed(related):
                continue
            face = mesh.face_of(mesh.opposite(related))
            if face.valid() and face in side_faces:
                side.add(related)
                side_faces.add(mesh.face_of(related))
                found = True
                break
    return sorted(side)


def decompose_on_internal_loop(
    mesh: Mesh,
    loop: Sequence[HalfHandle],
    face_data=None,
    oppo_face_data=None,
) -> Tuple[FaceHandle, FaceHandle]:
    """Split ``mesh`` along the closed half-edge ``loop``.

    Each loop vertex is duplicated and the half-edges on the far side are
    moved onto the duplicates, so the loop edges lose their opposites. Two
    new faces close the cut, one per side, and the half-edges added for them
    inherit the payloads of the half-edges they face across the cut.
    Returns the pair of new faces; an empty loop yields two invalid handles.
    """

    if not loop:
        return FaceHandle(), FaceHandle()
    loop = list(loop)
    require(mesh.from_vertex(loop[0]) == mesh.to_vertex(loop[-1]), "loop is not closed")

    this_vhs: List[VertHandle] = []
    other_vhs: List[VertHandle] = []
    for i, hh in enumerate(loop):
        nexth = loop[(i + 1) % len(loop)]
        vh = mesh.to_vertex(hh)
        require(mesh.degree(vh) >= MIN_LOOP_VERTEX_DEGREE, "loop vertex %r has degree below 4", vh)
        this_vhs.append(vh)
        vh2 = mesh.add_vertex(copy.deepcopy(mesh.data(vh)))
        other_vhs.append(vh2)

        side = _side_halfedges(mesh, vh, hh, loop)
        for side_h in side:
            rec = mesh.topo(side_h)
            require(rec.from_v == vh, "half-edge %r does not leave %r", side_h, vh)
            rec.from_v = vh2
            opposite = rec.opposite
            require(mesh.to_vertex(opposite) == vh, "opposite of %r does not enter %r", side_h, vh)
            if opposite != hh:
                mesh.topo(opposite).to_v = vh2
        mesh.topo(mesh.opposite(nexth)).to_v = vh2

        side_set = set(side)
        mesh.topo(vh).halfedges = [h for h in mesh.topo(vh).halfedges if h not in side_set]
        mesh.topo(vh2).halfedges = side + mesh.topo(vh2).halfedges

    for hh in loop:
        opposite = mesh.opposite(hh)
        mesh.topo(opposite).opposite = HalfHandle()
        mesh.topo(hh).opposite = HalfHandle()

    fh1 = mesh.add_face_from_vertices(this_vhs, True, face_data)
    fh2 = mesh.add_face_from_vertices(other_vhs, True, oppo_face_data)

    count = len(loop)
    for i in range(count):
        other_h = _cap_halfedge(mesh, other_vhs[i], other_vhs[(i + 1) % count], (fh1, fh2))
        this_h = _cap_halfedge(mesh, this_vhs[i], this_vhs[(i + 1) % count], (fh1, fh2))
        mesh.set_data(other_h, copy.deepcopy(mesh.data(mesh.opposite(this_h))))
        mesh.set_data(this_h, copy.deepcopy(mesh.data(mesh.opposite(other_h))))

    logger.info("Decomposed mesh on a loop of %d edges", count)
    return fh1, fh2


def _cap_halfedge(mesh: Mesh, a: VertHandle, b: VertHandle, caps: Tuple[FaceHandle, FaceHandle]) -> HalfHandle:
    hh = HalfHandle()
    for candidate in mesh.topo(a).halfedges:
        if not mesh.removed(candidate) and mesh.to_vertex(candidate) == b:
            hh = candidate
            break
    require(hh.valid(), "no edge between %r and %r after the cut", a, b)
    if mesh.face_of(hh) not in caps:
        hh = mesh.opposite(hh)
    require(hh.valid() and mesh.face_of(hh) in caps, "edge %r-%r does not bound a cut face", a, b)
    return hh


def _fewer_edges(loop1: Sequence[HalfHandle], loop2: Sequence[HalfHandle]) -> bool:
    return len(loop1) < len(loop2)


def decompose_all(
    mesh: Mesh,
    intersect_fn: IntersectFn,
    compare_loop: Optional[CompareLoopFn] = None,
    max_rounds: Optional[int] = None,
) -> List[Tuple[FaceHandle, FaceHandle]]:
    """Cut ``mesh`` along its best internal loop until none is left.

    ``compare_loop(a, b)`` returns ``True`` when loop ``a`` is preferable to
    ``b``; by default the loop with fewer edges wins. The mesh must be fully
    stitched. Returns the cap faces created by every cut.
    """

    assert_edges_are_stitched(mesh)
    compare_loop = compare_loop or _fewer_edges
    if max_rounds is None:
        max_rounds = len(mesh.internal_vertices) + 1

    cut_faces: List[Tuple[FaceHandle, FaceHandle]] = []
    for _ in range(max_rounds):
        best: List[HalfHandle] = []
        for hh in list(mesh.halfedges()):
            loop = construct_internal_loop_from(mesh, hh, intersect_fn)
            if loop and (not best or compare_loop(loop, best)):
                best = loop
        if not best:
            break
        faces = decompose_on_internal_loop(mesh, best)
        if faces[0].valid() and faces[1].valid():
            cut_faces.append(faces)
    else:
        logger.warning("Decomposition stopped after %d rounds", max_rounds)
    logger.info("Decomposed mesh into %d cuts", len(cut_faces))
    return cut_faces


def find_upper_bound_of_drf(mesh: Mesh, faces: Sequence[FaceHandle], colinear_fn: ColinearFn) -> int:
    """Upper bound of the rotational degrees of freedom of a closed face set.

    Faces are inserted greedily, each time picking the face sharing the most
    edges with those already inserted; every insertion whose shared edges are
    judged colinear by ``colinear_fn(mesh, halfedges)`` adds one degree of
    freedom on top of the initial three.
    """

    if not faces:
        return 0
    face_set = set(faces)
    for fh in faces:
        for hh in mesh.topo(fh).halfedges:
            require(
                mesh.face_of(mesh.opposite(hh)) in face_set,
                "face %r has a neighbour outside the face set",
                fh,
            )

    upper_bound = 3
    not_inserted = set(faces[1:])
    while not_inserted:
        current = FaceHandle()
        current_hhs: List[HalfHandle] = []
        for fh in faces[1:]:
            if fh not in not_inserted:
                continue
            hhs = [
                hh
                for hh in mesh.topo(fh).halfedges
                if mesh.face_of(mesh.opposite(hh)) not in not_inserted
            ]
            if hhs and len(hhs) > len(current_hhs):
                current = fh
                current_hhs = hhs
        require(current.valid(), "the faces are not all connected")
        if colinear_fn(mesh, current_hhs):
            upper_bound += 1
        not_inserted.discard(current)
    return upper_bound
