"""
Core geometry engine for trigeom
"""

from .geometry import GeometryRecord, Triangle
from .mesh_loader import (
    MeshLoader,
    load_geometry,
    LoadError,
    SourceUnreadableError,
    MalformedDocumentError,
    MissingFieldError,
    InvalidVertexError,
    InvalidIndexError,
    IndexOutOfRangeError,
)
from .normals import recalculate_normals, face_normals
from .statistics import (
    begin_statistics,
    poll,
    StatisticsHandle,
    StatisticsStatus,
    StatisticsBusyError,
    TriangleStatistics,
    NO_MIN_AREA,
)
from .subdivision import subdivide
from .containment import is_point_inside, count_ray_hits, ray_triangle_intersect, RAY_DIRECTION

__all__ = [
    # Geometry record
    'GeometryRecord',
    'Triangle',
    # Mesh loading
    'MeshLoader',
    'load_geometry',
    'LoadError',
    'SourceUnreadableError',
    'MalformedDocumentError',
    'MissingFieldError',
    'InvalidVertexError',
    'InvalidIndexError',
    'IndexOutOfRangeError',
    # Normals
    'recalculate_normals',
    'face_normals',
    # Statistics
    'begin_statistics',
    'poll',
    'StatisticsHandle',
    'StatisticsStatus',
    'StatisticsBusyError',
    'TriangleStatistics',
    'NO_MIN_AREA',
    # Subdivision
    'subdivide',
    # Containment
    'is_point_inside',
    'count_ray_hits',
    'ray_triangle_intersect',
    'RAY_DIRECTION',
]
