"""Progressive Taichi path tracer for analytic sphere scenes.

This package provides GPU-accelerated path tracing using Taichi, with support for:
- Lambertian, metal (optionally fuzzy) and dielectric materials
- Sphere primitives in a packed, fixed-stride scene table
- Depth of field driven by a spherical Fibonacci lattice
- Progressive accumulation that resets when the view or scene changes

Subpackages:
    core: Rays, random streams, the Fibonacci sampler, integrator kernels
        and the progressive path tracer context
    geometry: Sphere primitive and hit records
    materials: Scatter functions and the material variant
    scene: Host-side scene building and GPU scene intersection
    camera: Thin-lens camera model
    preview: Tone mapping and PNG export
"""

__version__ = "0.1.0"
