"""Lambertian (ideal diffuse) material implementation.

Scatter direction is the surface normal plus a random unit vector, which
yields a cosine-weighted distribution over the hemisphere around the normal.
With that sampling the BRDF and pdf cancel and the attenuation is simply the
albedo:

    attenuation = (albedo / pi) * cos_theta / (cos_theta / pi) = albedo

When the random vector nearly cancels the normal, the sum is degenerate and
the normal itself is used instead, so the scattered ray never has a
zero-length direction.

Example:
    >>> # Use within a Taichi kernel:
    >>> # result = scatter_lambertian(albedo, rec, seed)
"""

import taichi as ti
import taichi.math as tm

from weekend_tracer.core.ray import near_zero
from weekend_tracer.core.rng import random_unit_vector
from weekend_tracer.geometry.sphere import HitRecord
from weekend_tracer.materials.base import ScatterRecord

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def lambertian_direction(normal: vec3, random_vector: vec3) -> vec3:
    """Combine the normal and a random unit vector into a scatter direction.

    Args:
        normal: The oriented surface normal.
        random_vector: A unit vector drawn uniformly from the sphere.

    Returns:
        normal + random_vector, or normal if that sum is near zero.
    """
    direction = normal + random_vector
    if near_zero(direction):
        direction = normal
    return direction


@ti.func
def scatter_lambertian(albedo: vec3, rec: HitRecord, seed: ti.u32) -> ScatterRecord:
    """Scatter a ray off a Lambertian surface.

    Always scatters. Consumes draws 0 and 1 of the lane's stream.

    Args:
        albedo: The diffuse reflectance color.
        rec: The hit record (normal oriented against the incoming ray).
        seed: The lane's random stream key.

    Returns:
        A ScatterRecord with attenuation = albedo.
    """
    direction = lambertian_direction(rec.normal, random_unit_vector(seed, 0))
    return ScatterRecord(
        scattered=1,
        attenuation=albedo,
        origin=rec.point,
        direction=direction,
    )
