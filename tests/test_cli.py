from types import SimpleNamespace

import numpy as np

import panolayout.__main__ as cli
from panolayout.geometry import Line3, Plane3
from panolayout.recon import RegionIndex, LineIndex


def test_mesh_command_prints_counts(capsys):
    cli.main(["mesh", "--shape", "cube"])

    out = capsys.readouterr().out
    assert "cube: Mesh(vertices=8/8, halfedges=24/24, faces=6/6)" in out


def test_mesh_command_recovers_faces(capsys):
    cli.main(["mesh", "--shape", "tetrahedron", "--search-faces"])

    out = capsys.readouterr().out
    assert "recovered" in out


def test_scene_command_passes_options(monkeypatch, capsys):
    captured = {}

    def _reconstruct(scene, options, constant_eta):
        captured["options"] = options
        captured["eta"] = constant_eta
        return SimpleNamespace(
            score=0.0,
            reconstructed_planes={RegionIndex(0, 0): Plane3([2, 0, 0], [1, 0, 0])},
            reconstructed_lines={LineIndex(0, 0): Line3([2, 3, -1], [2, 3, 1])},
        )

    monkeypatch.setattr(cli, "reconstruct_layout", _reconstruct)

    cli.main(["--log-level", "WARNING", "scene", "--trials", "3", "--seed", "5", "--weighted"])

    out = capsys.readouterr().out
    assert captured["options"].trial_num == 3
    assert captured["options"].random_seed == 5
    assert captured["options"].use_weighted_random_selection
    assert np.isclose(captured["eta"], cli.CORNER_LINE_DEPTH)
    assert "score: 0" in out
    assert "region (0, 0): root=(2.0000, 0.0000, 0.0000)" in out
    assert "line (0, 0): (2.0000, 3.0000, -1.0000) -> (2.0000, 3.0000, 1.0000)" in out


def test_scene_command_end_to_end(capsys):
    cli.main(["scene"])

    out = capsys.readouterr().out
    assert "region (0, 1): root=(0.0000, 3.0000, 0.0000)" in out
