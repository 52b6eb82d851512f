"""Sphere primitive with robust ray-sphere intersection.

This module provides the Sphere and HitRecord dataclasses, the front-face
normal convention, and the intersection routine.

The intersection uses the robust quadratic formula from Ray Tracing Gems to
avoid catastrophic cancellation when b^2 is nearly equal to 4ac.

Front-face convention:
    Every successful hit stores a normal that points against the incoming
    ray. set_face_normal() is the only place that orientation is decided;
    hittables pass it the geometric outward normal exactly once per hit.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from weekend_tracer.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5, material_id=0)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from weekend_tracer.core.ray import Ray, ray_at

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
        material_id: Index into the scene material table.
    """

    center: vec3
    radius: ti.f32
    material_id: ti.i32


@ti.dataclass
class HitRecord:
    """Record of a ray-surface intersection.

    Attributes:
        hit: Whether the ray intersected the surface (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
        point: The 3D point where the ray intersected the surface.
        normal: Unit surface normal oriented against the incoming ray.
        front_face: 1 if the ray hit the outside of the surface, 0 if it hit
            from inside.

    All fields other than hit are only meaningful when hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def set_face_normal(rec: HitRecord, ray: Ray, outward_normal: vec3) -> HitRecord:
    """Return rec with its normal oriented against the ray.

    front_face = dot(ray.direction, outward_normal) < 0
    normal     = outward_normal if front_face else -outward_normal

    Args:
        rec: The hit record to update (passed by value).
        ray: The incoming ray.
        outward_normal: The geometric normal pointing out of the surface.
            Must not be pre-corrected.

    Returns:
        A copy of rec with normal and front_face set.
    """
    normal = outward_normal
    front_face = 1
    if tm.dot(ray.direction, outward_normal) >= 0.0:
        normal = -outward_normal
        front_face = 0

    return HitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=normal,
        front_face=front_face,
    )


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 using a numerically stable method.

    Args:
        h: Half of the linear coefficient.
        a: Quadratic coefficient.
        c: Constant term.
        sqrt_d: Square root of discriminant (h^2 - a*c).

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    # q = -(h + sign(h) * sqrt(discriminant))
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        # Tangent ray through the origin side; fall back to the textbook form
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def make_miss_record() -> HitRecord:
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
    )


@ti.func
def hit_sphere(ray: Ray, sphere: Sphere, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Test for ray-sphere intersection inside the open interval (t_min, t_max).

    The intersection is found by solving:
        |origin + t * direction - center|^2 = radius^2

    which expands to a*t^2 + 2*h*t + c = 0 with
        a = dot(direction, direction)
        h = dot(direction, oc)
        c = dot(oc, oc) - radius^2
        oc = origin - center

    Of the two roots the smaller one inside the interval wins. t_min slightly
    above zero keeps scattered rays from re-hitting their own surface; t_max
    culls hits beyond the far plane or a closer hit found earlier.

    Args:
        ray: The ray to test. The direction need not be normalized.
        sphere: The sphere to test against.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        A HitRecord; check its hit field to see whether an intersection
        occurred.
    """
    oc = ray.origin - sphere.center

    a = tm.dot(ray.direction, ray.direction)
    h = tm.dot(ray.direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius

    discriminant = h * h - a * c

    rec = make_miss_record()

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

        t = t0
        valid = (t > t_min) and (t < t_max)

        if not valid:
            t = t1
            valid = (t > t_min) and (t < t_max)

        if valid:
            point = ray_at(ray, t)
            outward_normal = (point - sphere.center) / sphere.radius
            rec = HitRecord(hit=1, t=t, point=point, normal=outward_normal, front_face=1)
            rec = set_face_normal(rec, ray, outward_normal)

    return rec


@ti.func
def make_sphere(center: vec3, radius: ti.f32, material_id: ti.i32) -> Sphere:
    return Sphere(center=center, radius=radius, material_id=material_id)
