"""Preview module for output.

Components:
    display: Tone mapping (Reinhard, exposure) and gamma correction
    export: 8-bit PNG export via Pillow

Example:
    >>> from weekend_tracer.preview import save_png
    >>> save_png(tracer, "output.png", gamma=2.2)
"""

from weekend_tracer.preview.display import (
    ToneMapMethod,
    apply_gamma,
    process_image_for_display,
    tone_map_exposure,
    tone_map_reinhard,
)
from weekend_tracer.preview.export import (
    compute_rmse,
    image_to_uint8,
    save_png,
    save_png_from_array,
)

__all__ = [
    # Tone mapping
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "ToneMapMethod",
    # Export functions
    "save_png",
    "save_png_from_array",
    "image_to_uint8",
    "compute_rmse",
]
