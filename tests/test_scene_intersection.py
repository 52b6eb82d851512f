"""Unit tests for scene-level intersection over a packed sphere table.

Tests cover:
- Closest-hit selection across overlapping spheres
- Material ID reporting and the miss record
- Unpacking rows with load_sphere
- num_spheres limiting the search
"""

import numpy as np
import taichi as ti


def _closest_hit(scene, origin, direction, num_spheres=None):
    """Intersect one ray against the packed spheres of a Scene."""
    from weekend_tracer.core.ray import Ray
    from weekend_tracer.scene import SPHERE_STRIDE, intersect_scene

    packed = scene.pack_spheres()
    count = len(packed) if num_spheres is None else num_spheres
    spheres = ti.field(dtype=ti.f32, shape=(max(len(packed), 1), SPHERE_STRIDE))
    if len(packed) > 0:
        spheres.from_numpy(packed)
    ray_in = ti.field(dtype=ti.f32, shape=6)
    ray_in.from_numpy(np.array([*origin, *direction], dtype=np.float32))
    out = ti.field(dtype=ti.f32, shape=6)

    @ti.kernel
    def test_kernel(n: ti.i32):
        ray = Ray(
            origin=ti.math.vec3(ray_in[0], ray_in[1], ray_in[2]),
            direction=ti.math.vec3(ray_in[3], ray_in[4], ray_in[5]),
        )
        rec = intersect_scene(ray, spheres, n, 1e-3, 1e10)
        out[0] = ti.cast(rec.hit, ti.f32)
        out[1] = rec.t
        out[2] = ti.cast(rec.material_id, ti.f32)
        out[3] = rec.normal.x
        out[4] = rec.normal.y
        out[5] = rec.normal.z

    test_kernel(count)
    o = out.to_numpy()
    return int(o[0]), float(o[1]), int(o[2]), o[3:6]


def _row_of_spheres():
    """Three spheres along -Z, each with its own material."""
    from weekend_tracer.scene import Scene

    scene = Scene()
    scene.add_lambertian_sphere((0, 0, -5), 0.5, (0.5, 0.5, 0.5))
    scene.add_metal_sphere((0, 0, -2), 0.5, (0.8, 0.8, 0.8))
    scene.add_dielectric_sphere((0, 0, -8), 0.5, 1.5)
    return scene


class TestIntersectScene:
    """Tests for intersect_scene."""

    def test_closest_hit_wins(self):
        hit, t, material_id, normal = _closest_hit(_row_of_spheres(), (0, 0, 0), (0, 0, -1))
        assert hit == 1
        assert abs(t - 1.5) < 1e-5
        assert material_id == 1
        np.testing.assert_allclose(normal, [0, 0, 1], atol=1e-5)

    def test_insertion_order_does_not_matter(self):
        from weekend_tracer.scene import Scene

        scene = Scene()
        far = scene.add_lambertian_material((0.5, 0.5, 0.5))
        near = scene.add_lambertian_material((0.2, 0.2, 0.2))
        scene.add_sphere((0, 0, -2), 0.5, near)
        scene.add_sphere((0, 0, -5), 0.5, far)
        _, t_forward, id_forward, _ = _closest_hit(scene, (0, 0, 0), (0, 0, -1))

        reversed_scene = Scene()
        far = reversed_scene.add_lambertian_material((0.5, 0.5, 0.5))
        near = reversed_scene.add_lambertian_material((0.2, 0.2, 0.2))
        reversed_scene.add_sphere((0, 0, -5), 0.5, far)
        reversed_scene.add_sphere((0, 0, -2), 0.5, near)
        _, t_reversed, id_reversed, _ = _closest_hit(reversed_scene, (0, 0, 0), (0, 0, -1))

        assert t_forward == t_reversed
        assert id_forward == id_reversed == near

    def test_miss_has_no_material(self):
        hit, _, material_id, _ = _closest_hit(_row_of_spheres(), (0, 0, 0), (0, 1, 0))
        assert hit == 0
        assert material_id == -1

    def test_num_spheres_limits_search(self):
        """Only the first row is visible when num_spheres is 1."""
        hit, t, material_id, _ = _closest_hit(
            _row_of_spheres(), (0, 0, 0), (0, 0, -1), num_spheres=1
        )
        assert hit == 1
        assert abs(t - 4.5) < 1e-5
        assert material_id == 0

    def test_empty_scene_misses(self):
        from weekend_tracer.scene import Scene

        hit, _, _, _ = _closest_hit(Scene(), (0, 0, 0), (0, 0, -1))
        assert hit == 0

    def test_nested_spheres_hit_outer_first(self):
        """The hollow glass sphere: the outer shell is hit before the bubble."""
        from weekend_tracer.scene import Scene

        scene = Scene()
        glass = scene.add_dielectric_material(1.5)
        bubble = scene.add_dielectric_material(1.0 / 1.5)
        scene.add_sphere((0, 0, -1), 0.5, glass)
        scene.add_sphere((0, 0, -1), 0.4, bubble)
        hit, t, material_id, _ = _closest_hit(scene, (0, 0, 0), (0, 0, -1))
        assert hit == 1
        assert abs(t - 0.5) < 1e-5
        assert material_id == glass


class TestLoadSphere:
    """Tests for unpacking a sphere row."""

    def test_load_sphere(self):
        from weekend_tracer.scene import SPHERE_STRIDE, load_sphere

        spheres = ti.field(dtype=ti.f32, shape=(2, SPHERE_STRIDE))
        rows = np.zeros((2, SPHERE_STRIDE), dtype=np.float32)
        rows[1, :5] = [1.0, 2.0, 3.0, 0.25, 4.0]
        spheres.from_numpy(rows)
        out = ti.field(dtype=ti.f32, shape=5)

        @ti.kernel
        def test_kernel():
            sphere = load_sphere(spheres, 1)
            out[0] = sphere.center.x
            out[1] = sphere.center.y
            out[2] = sphere.center.z
            out[3] = sphere.radius
            out[4] = ti.cast(sphere.material_id, ti.f32)

        test_kernel()
        np.testing.assert_allclose(out.to_numpy(), [1.0, 2.0, 3.0, 0.25, 4.0])
