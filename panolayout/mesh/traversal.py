"""Graph traversals over mesh vertices and generic element sets."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Hashable, Iterable, List, TypeVar

from ..errors import require
from .core import Mesh
from .handles import VertHandle

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Hashable)


def _neighbors(mesh: Mesh, vh: VertHandle) -> List[VertHandle]:
    result = []
    for hh in mesh.topo(vh).halfedges:
        rec = mesh.topo(hh)
        if rec.exists:
            result.append(rec.to_v)
    return result


def depth_first_search(mesh: Mesh, callback: Callable[[Mesh, VertHandle], bool]) -> bool:
    """Visit every live vertex once in pre-order, tree by tree.

    Trees are rooted at the lowest unvisited vertex. The search stops as soon
    as ``callback`` returns ``False``; the return value tells whether the
    whole mesh was visited.
    """

    visited = [False] * len(mesh.internal_vertices)
    for root in mesh.vertices():
        if visited[root]:
            continue
        stack = [root]
        while stack:
            vh = stack.pop()
            if visited[vh]:
                continue
            if not callback(mesh, vh):
                return False
            visited[vh] = True
            # reversed so the first outgoing half-edge is explored first
            for nb in reversed(_neighbors(mesh, vh)):
                if not visited[nb]:
                    stack.append(nb)
    return True


def connected_components(mesh: Mesh, record: Callable[[Mesh, VertHandle, int], None]) -> int:
    """Label every live vertex with a component id; returns the number of components."""

    visited = [False] * len(mesh.internal_vertices)
    cid = 0
    for root in mesh.vertices():
        if visited[root]:
            continue
        stack = [root]
        visited[root] = True
        while stack:
            vh = stack.pop()
            record(mesh, vh, cid)
            for nb in _neighbors(mesh, vh):
                require(not mesh.removed(nb), "live half-edge leads to removed vertex %r", nb)
                if not visited[nb]:
                    visited[nb] = True
                    stack.append(nb)
        cid += 1
    return cid


def connected_components_of(
    elements: Iterable[T],
    neighbors: Callable[[T], Iterable[T]],
    record: Callable[[T, int], None],
) -> int:
    """Component labelling over an arbitrary element graph given by ``neighbors``.

    Components are numbered in the order their first element appears in
    ``elements``. Neighbours outside ``elements`` are ignored.
    """

    ordered = list(elements)
    members = set(ordered)
    labels: Dict[T, int] = {}
    cid = 0
    for root in ordered:
        if root in labels:
            continue
        labels[root] = cid
        stack = [root]
        while stack:
            item = stack.pop()
            record(item, cid)
            for nb in neighbors(item):
                if nb in members and nb not in labels:
                    labels[nb] = cid
                    stack.append(nb)
        cid += 1
    return cid


def remove_dangling_components(mesh: Mesh) -> int:
    """Repeatedly remove live vertices with fewer than two live outgoing half-edges.

    Returns the number of vertices removed.
    """

    removed_total = 0
    while True:
        dangling = [vh for vh in mesh.vertices() if mesh.degree(vh) < 2]
        if not dangling:
            break
        for vh in dangling:
            mesh.remove(vh)
        removed_total += len(dangling)
    if removed_total:
        logger.info("Removed %d dangling vertices", removed_total)
    return removed_total
