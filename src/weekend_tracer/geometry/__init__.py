"""Geometry module for shape primitives.

Components:
    sphere: Sphere primitive, hit record and front-face normal convention

Intersection routines are Taichi functions (@ti.func) for parallel
intersection testing. Every primitive follows the pattern:
    rec = hit_shape(ray, shape, t_min, t_max)
and orients its normal through set_face_normal().
"""

from .sphere import (
    HitRecord,
    Sphere,
    hit_sphere,
    make_miss_record,
    make_sphere,
    set_face_normal,
)

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "make_sphere",
    "make_miss_record",
    "set_face_normal",
]
