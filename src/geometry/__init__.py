"""
geometry パッケージ: 頂点生成・交差探索・候補点の重複除去。
"""

from .candidates import CandidatePoint, PointAccumulator, PointKind, merge_threshold
from .copies import Copy, layout_copies
from .pairwise import find_pairwise_intersections
from .polygon import InvalidPolygonSpec, PolygonSpec, generate_vertices
from .star import find_self_intersections, has_self_intersections

__all__ = [
    "CandidatePoint",
    "PointAccumulator",
    "PointKind",
    "merge_threshold",
    "Copy",
    "layout_copies",
    "find_pairwise_intersections",
    "InvalidPolygonSpec",
    "PolygonSpec",
    "generate_vertices",
    "find_self_intersections",
    "has_self_intersections",
]
