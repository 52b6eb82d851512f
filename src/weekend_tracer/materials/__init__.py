"""Materials module for light scattering models.

Components:
    base: MaterialKind tag and the ScatterRecord result type
    lambertian: Ideal diffuse reflection
    metal: Specular reflection with optional fuzz
    dielectric: Glass-like reflection/refraction with Schlick reflectance
    material: Host-side Material variant, packing and GPU dispatch

Each scatter routine takes the incoming ray, the hit record and a per-lane
random stream key, and returns a ScatterRecord: either an attenuation plus
an outgoing ray, or absorption.
"""

from .base import MaterialKind, ScatterRecord, make_absorbed_record
from .dielectric import cannot_refract, refraction_ratio, scatter_dielectric
from .lambertian import lambertian_direction, scatter_lambertian
from .material import MATERIAL_STRIDE, Material, scatter, scatter_from_table
from .metal import MAX_FUZZ, scatter_metal

__all__ = [
    "MaterialKind",
    "ScatterRecord",
    "make_absorbed_record",
    "Material",
    "MATERIAL_STRIDE",
    "scatter",
    "scatter_from_table",
    # Lambertian
    "lambertian_direction",
    "scatter_lambertian",
    # Metal
    "MAX_FUZZ",
    "scatter_metal",
    # Dielectric
    "cannot_refract",
    "refraction_ratio",
    "scatter_dielectric",
]
