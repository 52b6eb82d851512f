"""Scene module: sphere storage, intersection and ready-made scenes.

Components:
    intersection: Packed sphere table layout and closest-hit search
    manager: Host-side Scene builder with validation and packing
    presets: The classic weekend scene and a single-sphere test scene
"""

from .intersection import (
    MAX_SPHERES,
    SPHERE_STRIDE,
    SceneHitRecord,
    intersect_scene,
    load_sphere,
    to_hit_record,
)
from .manager import MAX_MATERIALS, Scene, SphereInfo
from .presets import create_single_sphere_scene, create_weekend_scene

__all__ = [
    "MAX_MATERIALS",
    "MAX_SPHERES",
    "SPHERE_STRIDE",
    "Scene",
    "SceneHitRecord",
    "SphereInfo",
    "create_single_sphere_scene",
    "create_weekend_scene",
    "intersect_scene",
    "load_sphere",
    "to_hit_record",
]
