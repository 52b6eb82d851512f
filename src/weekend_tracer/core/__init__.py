"""Core rendering module.

This module contains the fundamental building blocks for path tracing:

Components:
    ray: Ray data structure and vector utilities
    rng: Counter-based per-lane random streams
    sampler: Spherical Fibonacci hemisphere table
    integrator: Wavefront kernels and their buffers
    progressive: The PathTracer context driving them frame by frame

All compute-intensive operations use Taichi kernels for GPU acceleration.
"""

from .ray import (
    Ray,
    cross,
    dot,
    length,
    length_squared,
    make_ray,
    near_zero,
    normalize,
    ray_at,
    reflect,
    reflectance,
    refract,
    vec3,
)
from .rng import lane_seed, make_frame_key, random_in_unit_sphere, random_unit_vector, uniform
from .sampler import HEMISPHERE_SAMPLES, mirror_to_sphere, spherical_fibonacci

# Note: integrator and progressive are NOT imported here to avoid circular imports.
# Import PathTracer from weekend_tracer.core.progressive.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "refract",
    "reflectance",
    "near_zero",
    "lane_seed",
    "make_frame_key",
    "uniform",
    "random_unit_vector",
    "random_in_unit_sphere",
    "HEMISPHERE_SAMPLES",
    "spherical_fibonacci",
    "mirror_to_sphere",
]
