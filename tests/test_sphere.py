"""Unit tests for sphere intersection and the front-face convention.

Tests cover:
- Ray hitting sphere from outside (front face)
- Ray missing sphere
- Ray starting inside sphere (back face)
- Open-interval (t_min, t_max) root selection
- set_face_normal orientation
- Numerical stability edge cases, including exact tangents
"""

import numpy as np
import pytest
import taichi as ti


def _trace(origin, direction, center, radius, t_min=1e-3, t_max=1e10):
    """Run hit_sphere once and return the record as a dict."""
    from weekend_tracer.core.ray import Ray
    from weekend_tracer.geometry.sphere import hit_sphere, make_sphere

    inputs = ti.field(dtype=ti.f32, shape=12)
    inputs.from_numpy(
        np.array([*origin, *direction, *center, radius, t_min, t_max], dtype=np.float32)
    )
    out = ti.field(dtype=ti.f32, shape=9)

    @ti.kernel
    def test_kernel():
        ray = Ray(
            origin=ti.math.vec3(inputs[0], inputs[1], inputs[2]),
            direction=ti.math.vec3(inputs[3], inputs[4], inputs[5]),
        )
        sphere = make_sphere(ti.math.vec3(inputs[6], inputs[7], inputs[8]), inputs[9], 0)
        rec = hit_sphere(ray, sphere, inputs[10], inputs[11])
        out[0] = ti.cast(rec.hit, ti.f32)
        out[1] = rec.t
        out[2] = rec.point.x
        out[3] = rec.point.y
        out[4] = rec.point.z
        out[5] = rec.normal.x
        out[6] = rec.normal.y
        out[7] = rec.normal.z
        out[8] = ti.cast(rec.front_face, ti.f32)

    test_kernel()
    o = out.to_numpy()
    return {
        "hit": int(o[0]),
        "t": float(o[1]),
        "point": o[2:5],
        "normal": o[5:8],
        "front_face": int(o[8]),
    }


class TestSphereBasics:
    """Tests for Sphere dataclass and basic operations."""

    def test_make_sphere(self):
        """Test make_sphere convenience function."""
        from weekend_tracer.geometry.sphere import make_sphere, vec3

        center_result = ti.field(dtype=ti.math.vec3, shape=())
        radius_result = ti.field(dtype=ti.f32, shape=())
        material_result = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            sphere = make_sphere(vec3(1.0, 2.0, 3.0), 0.5, 7)
            center_result[None] = sphere.center
            radius_result[None] = sphere.radius
            material_result[None] = sphere.material_id

        test_kernel()
        c = center_result[None]
        assert abs(c[0] - 1.0) < 1e-6
        assert abs(c[1] - 2.0) < 1e-6
        assert abs(c[2] - 3.0) < 1e-6
        assert abs(radius_result[None] - 0.5) < 1e-6
        assert material_result[None] == 7


class TestSphereIntersection:
    """Tests for ray-sphere intersection."""

    def test_direct_hit(self):
        """Ray from z=5 toward a unit sphere at the origin hits at z=1."""
        rec = _trace((0, 0, 5), (0, 0, -1), (0, 0, 0), 1.0)
        assert rec["hit"] == 1
        assert abs(rec["t"] - 4.0) < 1e-5
        np.testing.assert_allclose(rec["point"], [0, 0, 1], atol=1e-5)
        np.testing.assert_allclose(rec["normal"], [0, 0, 1], atol=1e-5)
        assert rec["front_face"] == 1

    def test_miss(self):
        rec = _trace((0, 5, 5), (0, 0, -1), (0, 0, 0), 1.0)
        assert rec["hit"] == 0

    def test_inside_hits_far_wall_as_back_face(self):
        """From the center, the only root in range is the far side."""
        rec = _trace((0, 0, 0), (0, 0, -1), (0, 0, 0), 1.0)
        assert rec["hit"] == 1
        assert abs(rec["t"] - 1.0) < 1e-5
        assert rec["front_face"] == 0
        # Outward normal is (0, 0, -1); the stored normal opposes the ray
        np.testing.assert_allclose(rec["normal"], [0, 0, 1], atol=1e-5)

    def test_behind_ray_is_miss(self):
        rec = _trace((0, 0, 5), (0, 0, 1), (0, 0, 0), 1.0)
        assert rec["hit"] == 0

    def test_t_max_excludes_hit(self):
        rec = _trace((0, 0, 5), (0, 0, -1), (0, 0, 0), 1.0, t_max=3.9)
        assert rec["hit"] == 0

    def test_t_min_skips_near_root(self):
        """With t_min past the near root the far root is reported."""
        rec = _trace((0, 0, 5), (0, 0, -1), (0, 0, 0), 1.0, t_min=4.5)
        assert rec["hit"] == 1
        assert abs(rec["t"] - 6.0) < 1e-5
        assert rec["front_face"] == 0

    def test_interval_is_open(self):
        """A root exactly at t_max is excluded."""
        rec = _trace((0, 0, 5), (0, 0, -1), (0, 0, 0), 1.0, t_min=1e-3, t_max=4.0)
        assert rec["hit"] == 0

    def test_both_roots_outside_interval(self):
        rec = _trace((0, 0, 5), (0, 0, -1), (0, 0, 0), 1.0, t_min=6.5, t_max=100.0)
        assert rec["hit"] == 0

    def test_unnormalized_direction(self):
        """t is measured in units of the given direction."""
        rec = _trace((0, 0, 5), (0, 0, -2), (0, 0, 0), 1.0)
        assert rec["hit"] == 1
        assert abs(rec["t"] - 2.0) < 1e-5
        np.testing.assert_allclose(rec["point"], [0, 0, 1], atol=1e-5)

    def test_normal_is_unit_length_oblique(self):
        rec = _trace((0.3, 0.2, 5), (0, 0, -1), (0, 0, 0), 1.0)
        assert rec["hit"] == 1
        assert abs(np.linalg.norm(rec["normal"]) - 1.0) < 1e-5
        # Normal opposes the incoming ray
        assert rec["normal"][2] > 0.0

    def test_large_distant_sphere(self):
        """Ground-sphere scale: radius 100 at y=-100.5."""
        rec = _trace((0, 0, 0), (0, -1, 0), (0, -100.5, -1), 100.0)
        assert rec["hit"] == 1
        assert abs(rec["t"] - 0.505) < 1e-2
        assert rec["normal"][1] > 0.99

    def test_exact_tangent_hits_double_root(self):
        """Grazing the top of the unit sphere gives a zero discriminant and t = 5."""
        rec = _trace((0, 1, 5), (0, 0, -1), (0, 0, 0), 1.0)
        assert rec["hit"] == 1
        assert abs(rec["t"] - 5.0) < 1e-5
        np.testing.assert_allclose(rec["point"], [0.0, 1.0, 0.0], atol=1e-5)
        np.testing.assert_allclose(rec["normal"], [0.0, 1.0, 0.0], atol=1e-5)

    @pytest.mark.parametrize("t_min, t_max", [(1e-3, 5.0), (5.0, 1e10)])
    def test_exact_tangent_on_interval_bound_misses(self, t_min, t_max):
        rec = _trace((0, 1, 5), (0, 0, -1), (0, 0, 0), 1.0, t_min=t_min, t_max=t_max)
        assert rec["hit"] == 0


class TestSetFaceNormal:
    """Tests for the front-face convention."""

    @pytest.mark.parametrize(
        "direction, outward, expected_normal, expected_front",
        [
            ((0, 0, -1), (0, 0, 1), (0, 0, 1), 1),
            ((0, 0, -1), (0, 0, -1), (0, 0, 1), 0),
            ((0, 0, 1), (0, 0, 1), (0, 0, -1), 0),
        ],
    )
    def test_orientation(self, direction, outward, expected_normal, expected_front):
        from weekend_tracer.core.ray import Ray
        from weekend_tracer.geometry.sphere import make_miss_record, set_face_normal

        inputs = ti.field(dtype=ti.f32, shape=6)
        inputs.from_numpy(np.array([*direction, *outward], dtype=np.float32))
        normal = ti.Vector.field(3, dtype=ti.f32, shape=())
        front = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            ray = Ray(
                origin=ti.math.vec3(0.0, 0.0, 0.0),
                direction=ti.math.vec3(inputs[0], inputs[1], inputs[2]),
            )
            rec = set_face_normal(
                make_miss_record(), ray, ti.math.vec3(inputs[3], inputs[4], inputs[5])
            )
            normal[None] = rec.normal
            front[None] = rec.front_face

        test_kernel()
        np.testing.assert_allclose(normal[None].to_numpy(), expected_normal, atol=1e-6)
        assert front[None] == expected_front

    def test_grazing_counts_as_back_face(self):
        """dot == 0 is not strictly negative, so the normal is flipped."""
        from weekend_tracer.core.ray import Ray
        from weekend_tracer.geometry.sphere import make_miss_record, set_face_normal

        front = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            ray = Ray(origin=ti.math.vec3(0.0, 0.0, 0.0), direction=ti.math.vec3(1.0, 0.0, 0.0))
            rec = set_face_normal(make_miss_record(), ray, ti.math.vec3(0.0, 1.0, 0.0))
            front[None] = rec.front_face

        test_kernel()
        assert front[None] == 0
