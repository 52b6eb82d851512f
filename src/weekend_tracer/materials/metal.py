"""Metal (specular reflective) material implementation.

Perfect metals (fuzz = 0) produce mirror reflections. Fuzzy metals perturb
the mirrored direction by a random point in a ball of radius fuzz:

    scattered = reflect(normalize(d), n) + fuzz * random_in_unit_sphere()

A scattered direction that ends up at or below the surface
(dot(scattered, n) <= 0) is absorbed. This models the self-shadowing of the
rough surface.

Example:
    >>> # Use within a Taichi kernel:
    >>> # result = scatter_metal(albedo, fuzz, ray, rec, seed)
"""

import taichi as ti
import taichi.math as tm

from weekend_tracer.core.ray import Ray, reflect
from weekend_tracer.core.rng import random_in_unit_sphere
from weekend_tracer.geometry.sphere import HitRecord
from weekend_tracer.materials.base import ScatterRecord

# Type alias for 3D vectors
vec3 = tm.vec3

# Fuzz values at or above 1 are clamped to this on the host
MAX_FUZZ = 0.999


@ti.func
def scatter_metal(
    albedo: vec3,
    fuzz: ti.f32,
    ray: Ray,
    rec: HitRecord,
    seed: ti.u32,
) -> ScatterRecord:
    """Reflect a ray off a (possibly fuzzy) metal surface.

    Consumes draws 0..2 of the lane's stream when fuzz > 0.

    Args:
        albedo: The reflective color.
        fuzz: Roughness in [0, 1). 0 = perfect mirror.
        ray: The incoming ray. Its direction is normalized before reflecting.
        rec: The hit record (normal oriented against the incoming ray).
        seed: The lane's random stream key.

    Returns:
        A ScatterRecord whose scattered flag is 1 exactly when
        dot(direction, normal) > 0. The direction is reported either way.
    """
    direction = reflect(tm.normalize(ray.direction), rec.normal)
    if fuzz > 0.0:
        direction += fuzz * random_in_unit_sphere(seed, 0)

    scattered = 0
    if tm.dot(direction, rec.normal) > 0.0:
        scattered = 1

    return ScatterRecord(
        scattered=scattered,
        attenuation=albedo,
        origin=rec.point,
        direction=direction,
    )
