"""Dielectric (glass/water) material implementation.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for Fresnel reflectance
    - Total internal reflection when ratio * sin(theta) > 1

Outside of total internal reflection the material picks reflection with
probability reflectance(cos_theta, ratio) and refraction otherwise. That
single stochastic branch is the whole model: the surface absorbs nothing and
the attenuation is always white.

An index-matched boundary (ratio exactly 1) has no reflection; the ray passes
straight through.

Example:
    >>> # Use within a Taichi kernel:
    >>> # result = scatter_dielectric(ior, ray, rec, seed)
"""

import taichi as ti
import taichi.math as tm

from weekend_tracer.core.ray import Ray, reflect, reflectance, refract
from weekend_tracer.core.rng import uniform
from weekend_tracer.geometry.sphere import HitRecord
from weekend_tracer.materials.base import ScatterRecord

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def refraction_ratio(ior: ti.f32, front_face: ti.i32) -> ti.f32:
    """1 / ior when entering the material, ior when leaving it."""
    ratio = 1.0 / ior
    if front_face == 0:
        ratio = ior
    return ratio


@ti.func
def _cos_incidence(ray: Ray, rec: HitRecord) -> ti.f32:
    return tm.min(tm.dot(-tm.normalize(ray.direction), rec.normal), 1.0)


@ti.func
def cannot_refract(ior: ti.f32, ray: Ray, rec: HitRecord) -> ti.i32:
    """Return 1 if the ray is totally internally reflected at this hit."""
    ratio = refraction_ratio(ior, rec.front_face)
    cos_theta = _cos_incidence(ray, rec)
    sin_theta = ti.sqrt(tm.max(0.0, 1.0 - cos_theta * cos_theta))
    return ratio * sin_theta > 1.0


@ti.func
def scatter_dielectric(ior: ti.f32, ray: Ray, rec: HitRecord, seed: ti.u32) -> ScatterRecord:
    """Reflect or refract a ray at a dielectric boundary.

    Consumes draw 0 of the lane's stream.

    Args:
        ior: Index of refraction of the material.
        ray: The incoming ray.
        rec: The hit record (normal oriented against the incoming ray).
        seed: The lane's random stream key.

    Returns:
        A ScatterRecord with white attenuation. Always scatters.
    """
    ratio = refraction_ratio(ior, rec.front_face)
    unit_direction = tm.normalize(ray.direction)
    cos_theta = _cos_incidence(ray, rec)

    direction = vec3(0.0, 0.0, 0.0)
    if ratio == 1.0:
        direction = refract(unit_direction, rec.normal, ratio)
    elif cannot_refract(ior, ray, rec) == 1 or reflectance(cos_theta, ratio) > uniform(seed, 0):
        direction = reflect(unit_direction, rec.normal)
    else:
        direction = refract(unit_direction, rec.normal, ratio)

    return ScatterRecord(
        scattered=1,
        attenuation=vec3(1.0, 1.0, 1.0),
        origin=rec.point,
        direction=direction,
    )
