import argparse
import logging
from typing import Callable, Dict, Optional, Sequence

from panolayout import (
    Mesh,
    ReconstructionOptions,
    assert_edges_are_stitched,
    make_cone,
    make_corner_scene,
    make_icosahedron,
    make_prism,
    make_quad_faced_cube,
    make_star_prism,
    make_tetrahedron,
    make_tri_faced_cube,
    reconstruct_layout,
    search_and_add_faces_from_positions,
)
from panolayout.recon.scenes import CORNER_LINE_DEPTH

logger = logging.getLogger(__name__)

SHAPES: Dict[str, Callable[[], Mesh]] = {
    "tetrahedron": make_tetrahedron,
    "cube": make_quad_faced_cube,
    "tri-cube": make_tri_faced_cube,
    "icosahedron": make_icosahedron,
    "prism": lambda: make_prism(6, 1.0),
    "cone": lambda: make_cone(8, 1.0),
    "star": lambda: make_star_prism(5, 0.5, 1.0, 1.0),
}


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _run_mesh(args: argparse.Namespace) -> None:
    mesh = SHAPES[args.shape]()
    assert_edges_are_stitched(mesh)
    print(f"{args.shape}: {mesh.summary()}")

    if args.search_faces:
        for fh in list(mesh.faces()):
            mesh.remove(fh)
        mesh.gc()
        logger.info("Stripped faces, searching on %s", mesh.summary())
        faces = search_and_add_faces_from_positions(mesh)
        print(f"recovered {len(faces)} faces: {mesh.summary()}")


def _run_scene(args: argparse.Namespace) -> None:
    scene = make_corner_scene()
    options = ReconstructionOptions(
        trial_num=args.trials,
        use_weighted_random_selection=args.weighted,
        random_seed=args.seed,
    )
    result = reconstruct_layout(scene, options, constant_eta=CORNER_LINE_DEPTH)

    print(f"score: {result.score:.6g}")
    for ri, plane in sorted(result.reconstructed_planes.items()):
        root = plane.root()
        print(f"region {tuple(ri)}: root=({root[0]:.4f}, {root[1]:.4f}, {root[2]:.4f})")
    for li, line in sorted(result.reconstructed_lines.items()):
        a, b = line.first, line.second
        print(
            f"line {tuple(li)}: ({a[0]:.4f}, {a[1]:.4f}, {a[2]:.4f}) -> ({b[0]:.4f}, {b[1]:.4f}, {b[2]:.4f})"
        )


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Half-edge mesh and panorama layout demos")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    mesh_parser = sub.add_parser("mesh", help="Build a sample polyhedron and print its counts")
    mesh_parser.add_argument("--shape", choices=sorted(SHAPES), default="cube")
    mesh_parser.add_argument(
        "--search-faces",
        action="store_true",
        help="Strip the faces and recover them from the wireframe",
    )

    scene_parser = sub.add_parser("scene", help="Reconstruct the built-in two-wall corner scene")
    scene_parser.add_argument(
        "--trials",
        type=int,
        default=1,
        help="Number of independent solver trials (default: 1)",
    )
    scene_parser.add_argument(
        "--seed",
        type=int,
        default=123,
        help="Random seed for the trials (default: 123)",
    )
    scene_parser.add_argument(
        "--weighted",
        action="store_true",
        help="Pick choices at random weighted by probability instead of greedily",
    )
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    if args.command == "mesh":
        _run_mesh(args)
    else:
        _run_scene(args)


if __name__ == "__main__":
    main()
