"""Camera module for primary ray generation.

Components:
    thin_lens: Thin-lens camera with depth of field and the per-frame
        parameter snapshot compared by the tracer
"""

from .thin_lens import FrameParams, ThinLensCamera, generate_camera_ray

__all__ = ["FrameParams", "ThinLensCamera", "generate_camera_ray"]
