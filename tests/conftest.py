"""Pytest configuration for path tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield
    # Note: We don't call ti.reset() here as it can cause issues
    # with subsequent tests if any cleanup happens after


@pytest.fixture
def small_config():
    """A tiny tracer configuration that renders quickly on the CPU."""
    from weekend_tracer.config import TracerConfig

    return TracerConfig(width=15, height=15, samples_per_frame=2, hemisphere_samples=256)


@pytest.fixture
def single_sphere():
    """The single grey sphere scene and its camera."""
    from weekend_tracer.scene.presets import create_single_sphere_scene

    return create_single_sphere_scene()


@pytest.fixture
def active_tracer(small_config):
    """An activated PathTracer, released after the test."""
    from weekend_tracer.core.progressive import PathTracer

    tracer = PathTracer(small_config)
    tracer.activate()
    yield tracer
    tracer.release()
