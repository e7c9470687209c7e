"""Half-edge mesh storage with tombstoned entities and handle compaction."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, List, MutableSequence, Optional, Sequence, Tuple, Union

from ..errors import require
from .handles import FaceHandle, HalfHandle, VertHandle

logger = logging.getLogger(__name__)

AnyHandle = Union[VertHandle, HalfHandle, FaceHandle]


@dataclass
class VertexRecord:
    hd: VertHandle
    halfedges: List[HalfHandle] = field(default_factory=list)
    data: Any = None
    exists: bool = True


@dataclass
class HalfEdgeRecord:
    hd: HalfHandle
    from_v: VertHandle = field(default_factory=VertHandle)
    to_v: VertHandle = field(default_factory=VertHandle)
    opposite: HalfHandle = field(default_factory=HalfHandle)
    face: FaceHandle = field(default_factory=FaceHandle)
    data: Any = None
    exists: bool = True


@dataclass
class FaceRecord:
    hd: FaceHandle
    halfedges: List[HalfHandle] = field(default_factory=list)
    data: Any = None
    exists: bool = True


class Mesh:
    """Doubly connected edge list.

    Entities live in three append-only tables and are addressed by typed
    integer handles. Removal only flips the ``exists`` flag (cascading from
    vertices to edges to faces); :meth:`gc` compacts the tables and remaps
    every stored handle.

    Every call to :meth:`add_edge` creates (or reuses) a pair of opposite
    half-edges, so half-edge ``h`` and ``opposite(h)`` always satisfy
    ``from(opposite(h)) == to(h)``.
    """

    def __init__(self) -> None:
        self._verts: List[VertexRecord] = []
        self._halfs: List[HalfEdgeRecord] = []
        self._faces: List[FaceRecord] = []

    # -- raw tables -------------------------------------------------------

    @property
    def internal_vertices(self) -> List[VertexRecord]:
        return self._verts

    @property
    def internal_halfedges(self) -> List[HalfEdgeRecord]:
        return self._halfs

    @property
    def internal_faces(self) -> List[FaceRecord]:
        return self._faces

    # -- live views -------------------------------------------------------

    def vertices(self) -> Iterator[VertHandle]:
        return (v.hd for v in self._verts if v.exists)

    def halfedges(self) -> Iterator[HalfHandle]:
        return (h.hd for h in self._halfs if h.exists)

    def faces(self) -> Iterator[FaceHandle]:
        return (f.hd for f in self._faces if f.exists)

    def num_vertices(self) -> int:
        return sum(1 for v in self._verts if v.exists)

    def num_halfedges(self) -> int:
        return sum(1 for h in self._halfs if h.exists)

    def num_faces(self) -> int:
        return sum(1 for f in self._faces if f.exists)

    def summary(self) -> str:
        return (
            f"Mesh(vertices={self.num_vertices()}/{len(self._verts)}, "
            f"halfedges={self.num_halfedges()}/{len(self._halfs)}, "
            f"faces={self.num_faces()}/{len(self._faces)})"
        )

    def __repr__(self) -> str:
        return self.summary()

    # -- record access ----------------------------------------------------

    def topo(self, handle: AnyHandle):
        """Return the mutable record behind ``handle`` (vertex, half-edge or face)."""

        table = self._table_for(handle)
        require(0 <= handle < len(table), "%r is out of range (%d entries)", handle, len(table))
        return table[handle]

    def data(self, handle: AnyHandle) -> Any:
        return self.topo(handle).data

    def set_data(self, handle: AnyHandle, value: Any) -> None:
        self.topo(handle).data = value

    def from_vertex(self, hh: HalfHandle) -> VertHandle:
        return self.topo(hh).from_v

    def to_vertex(self, hh: HalfHandle) -> VertHandle:
        return self.topo(hh).to_v

    def opposite(self, hh: HalfHandle) -> HalfHandle:
        return self.topo(hh).opposite

    def face_of(self, hh: HalfHandle) -> FaceHandle:
        return self.topo(hh).face

    def _table_for(self, handle: AnyHandle) -> list:
        if isinstance(handle, VertHandle):
            return self._verts
        if isinstance(handle, HalfHandle):
            return self._halfs
        if isinstance(handle, FaceHandle):
            return self._faces
        raise TypeError(f"expected a mesh handle, got {type(handle).__name__}")

    # -- construction -----------------------------------------------------

    def add_vertex(self, data: Any = None) -> VertHandle:
        vh = VertHandle(len(self._verts))
        self._verts.append(VertexRecord(hd=vh, data=data))
        return vh

    def add_edge(
        self,
        from_v: VertHandle,
        to_v: VertHandle,
        data: Any = None,
        reverse_data: Any = None,
        merge_duplicate: bool = True,
    ) -> HalfHandle:
        """Connect ``from_v`` to ``to_v`` and return the forward half-edge.

        With ``merge_duplicate`` an existing half-edge in either direction is
        reused instead of creating a parallel one. A self-loop request returns
        an invalid handle.
        """

        require(0 <= from_v < len(self._verts), "vertex %r is out of range", from_v)
        require(0 <= to_v < len(self._verts), "vertex %r is out of range", to_v)
        if from_v == to_v:
            return HalfHandle()

        forward = HalfHandle()
        backward = HalfHandle()
        if merge_duplicate:
            forward = self.find_edge(from_v, to_v)
            backward = self.find_edge(to_v, from_v)

        if forward.invalid():
            forward = self._append_half(from_v, to_v, data)
        if backward.invalid():
            backward = self._append_half(to_v, from_v, reverse_data)

        self._halfs[forward].opposite = backward
        self._halfs[backward].opposite = forward
        return forward

    def _append_half(self, from_v: VertHandle, to_v: VertHandle, data: Any) -> HalfHandle:
        hh = HalfHandle(len(self._halfs))
        self._halfs.append(HalfEdgeRecord(hd=hh, from_v=VertHandle(from_v), to_v=VertHandle(to_v), data=data))
        self._verts[from_v].halfedges.append(hh)
        return hh

    def add_face(self, halfedges: Sequence[HalfHandle], data: Any = None) -> FaceHandle:
        """Create a face bounded by ``halfedges``, which must form a closed cycle."""

        require(len(halfedges) > 0, "a face needs at least one half-edge")
        for i, hh in enumerate(halfedges):
            require(0 <= hh < len(self._halfs), "half-edge %r is out of range", hh)
            nxt = halfedges[(i + 1) % len(halfedges)]
            require(
                self._halfs[hh].to_v == self._halfs[nxt].from_v,
                "half-edges %r and %r are not consecutive on a face boundary",
                hh,
                nxt,
            )

        fh = FaceHandle(len(self._faces))
        self._faces.append(FaceRecord(hd=fh, halfedges=[HalfHandle(h) for h in halfedges], data=data))
        for hh in halfedges:
            self._halfs[hh].face = fh
        return fh

    def add_face_from_vertices(
        self, vertices: Sequence[VertHandle], autoflip: bool = True, data: Any = None
    ) -> FaceHandle:
        """Create the edges around ``vertices`` and a face over them.

        With ``autoflip`` the winding is reversed when one of the directed
        edges is already bounding another face.
        """

        require(len(vertices) >= 3, "a face needs at least 3 vertices, got %d", len(vertices))
        verts = list(vertices)
        if autoflip:
            for i in range(len(verts)):
                hh = self.find_edge(verts[i], verts[(i + 1) % len(verts)])
                if hh.valid() and self._halfs[hh].face.valid():
                    verts.reverse()
                    break

        halfs = [self.add_edge(verts[i], verts[(i + 1) % len(verts)]) for i in range(len(verts))]
        return self.add_face(halfs, data)

    # -- queries ----------------------------------------------------------

    def find_edge(self, from_v: VertHandle, to_v: VertHandle) -> HalfHandle:
        require(0 <= from_v < len(self._verts), "vertex %r is out of range", from_v)
        for hh in self._verts[from_v].halfedges:
            rec = self._halfs[hh]
            if rec.exists and rec.to_v == to_v:
                return hh
        return HalfHandle()

    def degree(self, handle: Union[VertHandle, FaceHandle]) -> int:
        """Number of live outgoing half-edges of a vertex, or boundary length of a face."""

        if isinstance(handle, FaceHandle):
            return len(self.topo(handle).halfedges)
        return sum(1 for hh in self.topo(handle).halfedges if self._halfs[hh].exists)

    def first_half(self, hh: HalfHandle) -> HalfHandle:
        """The lower-numbered half-edge of the pair containing ``hh``."""

        opposite = self._halfs[hh].opposite
        if opposite.valid() and opposite < hh:
            return opposite
        return hh

    def removed(self, handle: AnyHandle) -> bool:
        return not self.topo(handle).exists

    # -- removal ----------------------------------------------------------

    def remove(self, handle: AnyHandle) -> None:
        """Tombstone ``handle``; vertices take their edges with them, edges their faces."""

        if handle.invalid() or self.removed(handle):
            return
        if isinstance(handle, FaceHandle):
            self._remove_face(handle)
        elif isinstance(handle, HalfHandle):
            self._remove_edge(handle)
        else:
            self._remove_vertex(handle)

    def _remove_face(self, fh: FaceHandle) -> None:
        rec = self._faces[fh]
        rec.exists = False
        for hh in rec.halfedges:
            if hh.valid() and self._halfs[hh].face == fh:
                self._halfs[hh].face = FaceHandle()
        rec.halfedges.clear()

    def _remove_edge(self, hh: HalfHandle) -> None:
        pair = [hh]
        opposite = self._halfs[hh].opposite
        if opposite.valid():
            pair.append(opposite)
        for h in pair:
            self._halfs[h].exists = False
        for h in pair:
            self.remove(self._halfs[h].face)

    def _remove_vertex(self, vh: VertHandle) -> None:
        rec = self._verts[vh]
        rec.exists = False
        for hh in list(rec.halfedges):
            self.remove(hh)
        rec.halfedges.clear()

    # -- whole-mesh operations -------------------------------------------

    def unite(self, other: "Mesh") -> "Mesh":
        """Append a copy of the live part of ``other``; returns ``self``."""

        vtable = {}
        htable = {}
        for vh in other.vertices():
            vtable[vh] = self.add_vertex(copy.deepcopy(other.data(vh)))
        for hh in other.halfedges():
            rec = other.topo(hh)
            if hh in htable:
                continue
            reverse_data = other.data(rec.opposite) if rec.opposite.valid() else None
            new_h = self.add_edge(
                vtable[rec.from_v],
                vtable[rec.to_v],
                copy.deepcopy(rec.data),
                copy.deepcopy(reverse_data),
            )
            htable[hh] = new_h
            if rec.opposite.valid():
                htable[rec.opposite] = self._halfs[new_h].opposite
        for fh in other.faces():
            rec = other.topo(fh)
            self.add_face([htable[hh] for hh in rec.halfedges], copy.deepcopy(rec.data))
        logger.debug("United mesh, now %s", self.summary())
        return self

    def gc(
        self,
        vert_refs: Optional[MutableSequence[VertHandle]] = None,
        half_refs: Optional[MutableSequence[HalfHandle]] = None,
        face_refs: Optional[MutableSequence[FaceHandle]] = None,
    ) -> Tuple[List[VertHandle], List[HalfHandle], List[FaceHandle]]:
        """Drop removed entities and renumber the survivors.

        Handles stored inside the mesh and in the optional external sequences
        are rewritten in place; references to dropped entities become invalid.
        Returns the old-id to new-handle tables.
        """

        vmap = _compaction_table(self._verts, VertHandle)
        hmap = _compaction_table(self._halfs, HalfHandle)
        fmap = _compaction_table(self._faces, FaceHandle)

        def remap(table, handle, kind):
            return table[handle] if handle.valid() else kind()

        self._verts = [rec for rec in self._verts if rec.exists]
        self._halfs = [rec for rec in self._halfs if rec.exists]
        self._faces = [rec for rec in self._faces if rec.exists]

        for rec in self._verts:
            rec.hd = vmap[rec.hd]
            rec.halfedges = [hmap[hh] for hh in rec.halfedges if hmap[hh].valid()]
        for rec in self._halfs:
            rec.hd = hmap[rec.hd]
            rec.from_v = remap(vmap, rec.from_v, VertHandle)
            rec.to_v = remap(vmap, rec.to_v, VertHandle)
            rec.opposite = remap(hmap, rec.opposite, HalfHandle)
            rec.face = remap(fmap, rec.face, FaceHandle)
        for rec in self._faces:
            rec.hd = fmap[rec.hd]
            rec.halfedges = [hmap[hh] for hh in rec.halfedges if hh.valid() and hmap[hh].valid()]

        for refs, table, kind in ((vert_refs, vmap, VertHandle), (half_refs, hmap, HalfHandle), (face_refs, fmap, FaceHandle)):
            if refs is None:
                continue
            for i, handle in enumerate(refs):
                refs[i] = remap(table, handle, kind)

        logger.debug("Garbage collected mesh, now %s", self.summary())
        return vmap, hmap, fmap

    def clear(self) -> None:
        self._verts.clear()
        self._halfs.clear()
        self._faces.clear()

    def copy(self) -> "Mesh":
        return copy.deepcopy(self)


def _compaction_table(records, kind) -> list:
    table = []
    next_id = 0
    for rec in records:
        if rec.exists:
            table.append(kind(next_id))
            next_id += 1
        else:
            table.append(kind())
    return table


def transform(
    mesh: Mesh,
    vert_fn: Callable[[Any], Any],
    half_fn: Optional[Callable[[Any], Any]] = None,
    face_fn: Optional[Callable[[Any], Any]] = None,
) -> Mesh:
    """Return a mesh with identical topology whose payloads are mapped through the given functions."""

    half_fn = half_fn or (lambda d: d)
    face_fn = face_fn or (lambda d: d)
    result = Mesh()
    for rec in mesh.internal_vertices:
        result.internal_vertices.append(
            VertexRecord(hd=rec.hd, halfedges=list(rec.halfedges), data=vert_fn(rec.data), exists=rec.exists)
        )
    for rec in mesh.internal_halfedges:
        result.internal_halfedges.append(
            HalfEdgeRecord(
                hd=rec.hd,
                from_v=rec.from_v,
                to_v=rec.to_v,
                opposite=rec.opposite,
                face=rec.face,
                data=half_fn(rec.data),
                exists=rec.exists,
            )
        )
    for rec in mesh.internal_faces:
        result.internal_faces.append(
            FaceRecord(hd=rec.hd, halfedges=list(rec.halfedges), data=face_fn(rec.data), exists=rec.exists)
        )
    return result


def make_proxy(mesh: Mesh) -> Mesh:
    """A topological copy of ``mesh`` whose payloads are the source handles."""

    proxy = transform(mesh, lambda d: None, lambda d: None, lambda d: None)
    for rec in proxy.internal_vertices:
        rec.data = rec.hd
    for rec in proxy.internal_halfedges:
        rec.data = rec.hd
    for rec in proxy.internal_faces:
        rec.data = rec.hd
    return proxy


def assert_edges_are_stitched(mesh: Mesh) -> None:
    """Check that every live half-edge is fully linked to its vertices, face and opposite."""

    for hh in mesh.halfedges():
        rec = mesh.topo(hh)
        require(rec.opposite.valid(), "%r has no opposite", hh)
        require(rec.face.valid(), "%r bounds no face", hh)
        require(rec.from_v.valid() and rec.to_v.valid(), "%r has a dangling endpoint", hh)
        require(hh in mesh.topo(rec.from_v).halfedges, "%r is missing from its origin vertex", hh)
        require(hh in mesh.topo(rec.face).halfedges, "%r is missing from its face", hh)
        opposite = mesh.topo(rec.opposite)
        require(opposite.opposite == hh, "%r and %r are not mutual opposites", hh, rec.opposite)
        require(opposite.from_v == rec.to_v, "%r and its opposite disagree on endpoints", hh)
