"""Scene-level sphere intersection over a packed sphere table.

Spheres live in a 2D float field with one row per sphere and SPHERE_STRIDE
columns:

    [cx, cy, cz, radius, material_id, 0, 0, 0]

The last three columns are reserved. Scene.pack_spheres() produces rows in
this layout and intersect_scene() consumes them; both read the stride from
this module so producer and consumer cannot drift apart.

Example:
    >>> @ti.kernel
    ... def first_hit(spheres: ti.template(), n: ti.i32) -> ti.f32:
    ...     ray = Ray(origin=vec3(0, 0, 0), direction=vec3(0, 0, -1))
    ...     return intersect_scene(ray, spheres, n, 1e-3, 1e10).t
"""

import taichi as ti
import taichi.math as tm

from weekend_tracer.core.ray import Ray
from weekend_tracer.geometry.sphere import HitRecord, Sphere, hit_sphere

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Maximum number of spheres a tracer allocates room for
MAX_SPHERES = 1024

# Floats per sphere row in the packed sphere table
SPHERE_STRIDE = 8


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection with material information.

    Extends the basic HitRecord with material_id for scene-level queries.

    Attributes:
        hit: Whether the ray intersected any sphere (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
        point: The 3D point where the ray intersected the surface.
        normal: Unit normal oriented against the incoming ray.
        front_face: Whether the ray hit the outside (1) or inside (0).
        material_id: The material ID of the hit sphere. -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32


@ti.func
def _make_scene_miss_record() -> SceneHitRecord:
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=-1,
    )


@ti.func
def to_hit_record(rec: SceneHitRecord) -> HitRecord:
    """Drop the material id, leaving the plain HitRecord materials consume."""
    return HitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=rec.normal,
        front_face=rec.front_face,
    )


@ti.func
def load_sphere(spheres: ti.template(), index: ti.i32) -> Sphere:
    """Unpack one sphere row."""
    return Sphere(
        center=vec3(spheres[index, 0], spheres[index, 1], spheres[index, 2]),
        radius=spheres[index, 3],
        material_id=ti.cast(spheres[index, 4], ti.i32),
    )


@ti.func
def intersect_scene(
    ray: Ray,
    spheres: ti.template(),
    num_spheres: ti.i32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Test a ray against every packed sphere and keep the closest hit.

    Each sphere is tested against (t_min, closest_t), so a later sphere only
    replaces the current result when it is strictly nearer.

    Args:
        ray: The ray to test.
        spheres: Packed sphere table of shape (MAX_SPHERES, SPHERE_STRIDE).
        num_spheres: Number of valid rows in the table.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        A SceneHitRecord for the closest intersection, or a miss record.
    """
    closest_t = t_max
    result = _make_scene_miss_record()

    for k in range(num_spheres):
        sphere = load_sphere(spheres, k)
        rec = hit_sphere(ray, sphere, t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = SceneHitRecord(
                hit=1,
                t=rec.t,
                point=rec.point,
                normal=rec.normal,
                front_face=rec.front_face,
                material_id=sphere.material_id,
            )

    return result
