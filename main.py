"""
trigeom - triangle mesh geometry engine

Main entry point (command line driver)
"""

import sys
import os
import logging
import time
from pathlib import Path

# Ensure repository root is on sys.path so "trigeom" is importable.
ROOT_DIR = Path(__file__).resolve().parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from trigeom.core.runtime_defaults import DEFAULTS
from trigeom.core.logging_utils import format_exception_message

_LOGGER = logging.getLogger(__name__)
_LOG_PATH = None


def run_cli():
    """Run the command line interface."""
    global _LOG_PATH
    try:
        from trigeom.core.logging_utils import setup_logging

        _LOG_PATH = setup_logging(capture_warnings=True)
    except Exception as e:
        _LOGGER.debug("Failed to initialize logging: %s", e, exc_info=True)

    if len(sys.argv) < 2:
        print_help()
        return

    cmd = sys.argv[1]

    if cmd == '--help' or cmd == '-h':
        print_help()
        return

    if cmd == '--info' and len(sys.argv) > 2:
        show_file_info(sys.argv[2])
        return

    if cmd == '--list':
        list_meshes(sys.argv[2] if len(sys.argv) > 2 else None)
        return

    if cmd == '--stats' and len(sys.argv) > 2:
        show_statistics(sys.argv[2])
        return

    if cmd == '--subdivide' and len(sys.argv) > 2:
        subdivide_mesh(sys.argv[2], sys.argv[3] if len(sys.argv) > 3 else "1")
        return

    if cmd == '--inside' and len(sys.argv) > 5:
        query_point(sys.argv[2], sys.argv[3:6])
        return

    # Default: full processing
    if os.path.exists(cmd):
        process_mesh(cmd)
    else:
        print(f"Error: Unknown command or file not found: {cmd}")
        print("Use --help for usage information")


def print_help():
    """Print usage."""
    from trigeom.core.mesh_loader import MeshLoader

    print("=" * 60)
    print("trigeom - Triangle Mesh Geometry Engine")
    print("=" * 60)
    print()
    print("Usage:")
    print("  python main.py <mesh_file>                   # Load + statistics")
    print("  python main.py --info <mesh_file>            # Show file info")
    print("  python main.py --list [directory]            # List mesh files")
    print("  python main.py --stats <mesh_file>           # Triangle area statistics")
    print("  python main.py --subdivide <mesh_file> [n]   # Subdivide n times")
    print("  python main.py --inside <mesh_file> x y z    # Point containment")
    print()
    print(f"Supported formats: {list(MeshLoader.SUPPORTED_FORMATS.keys())}")
    print(f"Default mesh directory: {DEFAULTS.mesh_dir}")
    print()
    print("Examples:")
    print("  python main.py task_input/cube.json")
    print("  python main.py --subdivide task_input/cube.json 2")
    print("  python main.py --inside task_input/cube.json 0 0 0")


def _report_error(prefix: str, e: Exception) -> None:
    _LOGGER.error("%s", prefix, exc_info=True)
    print(format_exception_message(prefix, f"{type(e).__name__}: {e}", log_path=_LOG_PATH))


def _format_area(value: float) -> str:
    return f"{value:.6g}"


def _wait_for_statistics(record):
    """Start statistics and poll until the aggregator publishes them."""
    from trigeom.core.statistics import begin_statistics, poll

    handle = begin_statistics(record)
    interval = DEFAULTS.poll_interval_ms / 1000.0
    started = time.perf_counter()

    status = poll(handle)
    while status.pending:
        time.sleep(interval)
        status = poll(handle)

    if status.error is not None:
        raise status.error
    _LOGGER.debug("Statistics ready after %.3fs", time.perf_counter() - started)
    return status.statistics, handle.n_workers


def _print_statistics(stats, n_workers: int) -> None:
    min_text = _format_area(stats.min_area) if stats.has_min_area else "n/a (no positive area)"
    print(f"  Workers: {n_workers}")
    print(f"  Min area: {min_text}")
    print(f"  Max area: {_format_area(stats.max_area)}")
    print(f"  Avg area: {_format_area(stats.avg_area)}")


def show_file_info(filepath: str):
    """Show file info."""
    from trigeom.core.mesh_loader import MeshLoader

    print(f"\nFile Info: {filepath}")
    print("-" * 40)

    try:
        info = MeshLoader().get_file_info(filepath)
        for key, value in info.items():
            print(f"  {key}: {value}")
    except Exception as e:
        _report_error("Failed to read file info", e)


def list_meshes(directory: str | None = None):
    """List mesh files (the host UI's mesh picker)."""
    from trigeom.core.mesh_loader import MeshLoader

    directory = directory or DEFAULTS.mesh_dir
    print(f"\nMeshes in: {directory}")
    print("-" * 40)

    try:
        paths = MeshLoader().list_mesh_files(directory)
    except Exception as e:
        _report_error("Failed to list meshes", e)
        return

    if not paths:
        print("  (none)")
    for path in paths:
        print(f"  {path.stem}  ({path.name})")


def process_mesh(filepath: str):
    """Load a mesh and report its size and statistics."""
    from trigeom.core.mesh_loader import load_geometry

    print(f"\n{'='*60}")
    print(f"Processing: {filepath}")
    print(f"{'='*60}")

    try:
        print("\n[1/2] Loading mesh...")
        record = load_geometry(filepath)
        print(f"      Vertices: {record.n_vertices:,}")
        print(f"      Triangles: {record.n_triangles:,}")

        print("\n[2/2] Calculating statistics...")
        stats, n_workers = _wait_for_statistics(record)
        _print_statistics(stats, n_workers)

        print(f"\n{'='*60}")
        print("Done!")
        print(f"{'='*60}")

    except Exception as e:
        _report_error(f"Failed to process {filepath}", e)


def show_statistics(filepath: str):
    """Triangle area statistics only."""
    from trigeom.core.mesh_loader import load_geometry

    print(f"\nStatistics: {filepath}")
    print("-" * 40)

    try:
        record = load_geometry(filepath)
        stats, n_workers = _wait_for_statistics(record)
        print(f"  Triangles: {record.n_triangles:,}")
        _print_statistics(stats, n_workers)
    except Exception as e:
        _report_error(f"Failed to calculate statistics for {filepath}", e)


def subdivide_mesh(filepath: str, levels: str = "1"):
    """Subdivide and report the refined mesh."""
    from trigeom.core.mesh_loader import load_geometry
    from trigeom.core.subdivision import subdivide

    print(f"\nSubdividing: {filepath}")
    print("-" * 40)

    try:
        n = int(levels)
        if n > DEFAULTS.subdivision_max_levels:
            print(f"  Limiting levels {n} -> {DEFAULTS.subdivision_max_levels}")
            n = DEFAULTS.subdivision_max_levels

        record = load_geometry(filepath)
        print(f"  Loaded: {record.n_vertices:,} vertices, {record.n_triangles:,} triangles")

        started = time.perf_counter()
        subdivide(record, levels=n)
        print(f"  Subdivided x{n}: {record.n_vertices:,} vertices, {record.n_triangles:,} triangles"
              f" ({time.perf_counter() - started:.2f}s)")

        stats, n_workers = _wait_for_statistics(record)
        _print_statistics(stats, n_workers)
    except Exception as e:
        _report_error(f"Failed to subdivide {filepath}", e)


def query_point(filepath: str, coords):
    """Point containment query."""
    from trigeom.core.mesh_loader import load_geometry
    from trigeom.core.containment import count_ray_hits

    try:
        point = [float(c) for c in coords]
        record = load_geometry(filepath)
        hits = count_ray_hits(record, point)
        inside = hits % 2 == 1
        print(f"\nPoint ({point[0]:g}, {point[1]:g}, {point[2]:g}): "
              f"{'inside' if inside else 'outside'} ({hits} ray hits)")
    except Exception as e:
        _report_error(f"Failed to test point against {filepath}", e)


if __name__ == '__main__':
    run_cli()
