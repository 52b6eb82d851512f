"""End-to-end rendering tests.

These render small images through the full pipeline: scene building,
packing, camera ray generation, bounce generations, accumulation and
readback.
"""

import numpy as np
import pytest


class TestSingleSphere:
    """The single grey sphere scene."""

    def test_probe_center_hits_sphere(self, active_tracer, single_sphere):
        scene, camera = single_sphere
        active_tracer.render_frame(camera.frame_params(max_bounces=8), scene)

        probe = active_tracer.probe_pixel(7, 7)
        assert probe.hit
        assert probe.t == pytest.approx(0.5, abs=1e-3)
        assert probe.normal[2] > 0.99
        np.testing.assert_allclose(probe.point, [0.0, 0.0, -0.5], atol=1e-3)

    def test_corner_sees_sky(self, active_tracer, single_sphere):
        scene, camera = single_sphere
        active_tracer.render_frame(camera.frame_params(max_bounces=8), scene)
        assert not active_tracer.probe_pixel(0, 14).hit

    def test_image_is_finite_and_in_range(self, active_tracer, single_sphere):
        scene, camera = single_sphere
        params = camera.frame_params(max_bounces=8)
        for _ in range(4):
            stats = active_tracer.render_frame(params, scene)
        assert stats.sample_count == 4 * active_tracer.config.samples_per_frame

        image = active_tracer.get_image_numpy()
        assert np.all(np.isfinite(image))
        assert image.min() >= 0.0
        assert image.max() <= 1.0
        assert image.max() > 0.0

    def test_sphere_is_darker_than_sky(self, active_tracer, single_sphere):
        """A 50% grey diffuse sphere reflects at most half the sky it sees."""
        scene, camera = single_sphere
        params = camera.frame_params(max_bounces=8)
        for _ in range(8):
            active_tracer.render_frame(params, scene)

        image = active_tracer.get_image_numpy()
        center = image[7, 7]
        corner = image[0, 0]
        assert np.all(center < corner)
        assert center.mean() < 0.55

    def test_same_seed_is_deterministic(self, small_config, single_sphere):
        from weekend_tracer.core.progressive import PathTracer

        scene, camera = single_sphere
        params = camera.frame_params(max_bounces=8)
        images = []
        for _ in range(2):
            with PathTracer(small_config) as tracer:
                tracer.render_frame(params, scene)
                tracer.render_frame(params, scene)
                images.append(tracer.get_image_numpy())
        np.testing.assert_array_equal(images[0], images[1])

    def test_different_seed_differs(self, small_config, single_sphere):
        from weekend_tracer.config import TracerConfig
        from weekend_tracer.core.progressive import PathTracer

        scene, camera = single_sphere
        params = camera.frame_params(max_bounces=8)
        other = TracerConfig.from_dict({**small_config.to_dict(), "seed": 99})
        images = []
        for config in (small_config, other):
            with PathTracer(config) as tracer:
                tracer.render_frame(params, scene)
                images.append(tracer.get_image_numpy())
        assert not np.array_equal(images[0], images[1])

    def test_one_bounce_limit_is_black_on_sphere(self, small_config, single_sphere):
        """With max_bounces 1 a path that scatters retires without light."""
        from weekend_tracer.core.progressive import PathTracer

        scene, camera = single_sphere
        with PathTracer(small_config) as tracer:
            tracer.render_frame(camera.frame_params(max_bounces=1), scene)
            image = tracer.get_image_numpy()
        np.testing.assert_allclose(image[7, 7], [0.0, 0.0, 0.0])
        assert image[0, 0].min() > 0.0


class TestWeekendScene:
    """The ground plus three spheres scene."""

    def test_renders(self, small_config):
        from weekend_tracer.core.progressive import PathTracer
        from weekend_tracer.scene import create_weekend_scene

        scene, camera = create_weekend_scene(aspect_ratio=small_config.aspect_ratio)
        params = camera.frame_params(max_bounces=16)
        with PathTracer(small_config) as tracer:
            for _ in range(2):
                stats = tracer.render_frame(params, scene)
            image = tracer.get_image_numpy(gamma=2.2)
            probe = tracer.probe_pixel(7, 7)

        assert stats.generations >= 2
        assert np.all(np.isfinite(image))
        assert image.max() > 0.0
        # The camera is aimed at the center sphere
        assert probe.hit

    def test_depth_of_field_changes_image(self, small_config):
        from weekend_tracer.core.progressive import PathTracer
        from weekend_tracer.scene import create_weekend_scene

        images = []
        for aperture in (0.0, 2.0):
            scene, camera = create_weekend_scene(
                aspect_ratio=small_config.aspect_ratio, aperture=aperture
            )
            with PathTracer(small_config) as tracer:
                tracer.render_frame(camera.frame_params(max_bounces=4), scene)
                images.append(tracer.get_image_numpy())
        assert not np.array_equal(images[0], images[1])
