import main
from tests.test_mesh_loader import SAMPLE_CUBE


def test_process_mesh_prints_statistics(capsys):
    main.process_mesh(str(SAMPLE_CUBE))
    out = capsys.readouterr().out

    assert "Triangles: 12" in out
    assert "Min area: 2" in out
    assert "Avg area: 2" in out
    assert "Done!" in out


def test_subdivide_command(capsys):
    main.subdivide_mesh(str(SAMPLE_CUBE), "1")
    out = capsys.readouterr().out

    assert "Subdivided x1: 26 vertices, 48 triangles" in out
    assert "Max area: 0.5" in out


def test_inside_command(capsys):
    main.query_point(str(SAMPLE_CUBE), ["0", "0", "0"])
    main.query_point(str(SAMPLE_CUBE), ["100", "100", "100"])
    out = capsys.readouterr().out

    assert "Point (0, 0, 0): inside (1 ray hits)" in out
    assert "Point (100, 100, 100): outside (0 ray hits)" in out


def test_list_command(capsys):
    main.list_meshes(str(SAMPLE_CUBE.parent))
    out = capsys.readouterr().out
    assert "cube  (cube.json)" in out


def test_load_error_is_reported(capsys, tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text('{"geometry_object": {"vertices": [], "triangles": [0]}}', encoding="utf-8")

    main.show_statistics(str(broken))
    out = capsys.readouterr().out
    assert "InvalidIndexError" in out
