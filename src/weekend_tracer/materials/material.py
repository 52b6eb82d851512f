"""Material variant: host-side description, packing and GPU dispatch.

Materials form a closed tagged variant (MaterialKind) with one payload per
kind. On the host a Material is validated once, at scene-load time, and then
packed into a fixed-stride float row:

    [kind, albedo_r, albedo_g, albedo_b, fuzz, ior, 0, 0]

On the GPU a single dispatch function, scatter(), switches on the kind and
calls the matching scatter routine.

Example:
    >>> glass = Material.dielectric(1.5)
    >>> gold = Material.metal((0.8, 0.6, 0.2), fuzz=0.3)
    >>> gold.pack().shape
    (8,)
"""

import logging
import math
from dataclasses import dataclass
from typing import Any

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from weekend_tracer.core.ray import Ray
from weekend_tracer.geometry.sphere import HitRecord
from weekend_tracer.materials.base import MaterialKind, ScatterRecord, make_absorbed_record
from weekend_tracer.materials.dielectric import scatter_dielectric
from weekend_tracer.materials.lambertian import scatter_lambertian
from weekend_tracer.materials.metal import MAX_FUZZ, scatter_metal

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# Floats per material row in the packed material table
MATERIAL_STRIDE = 8


def _validate_albedo(albedo: tuple[float, float, float]) -> tuple[float, float, float]:
    if len(albedo) != 3:
        raise ValueError(f"Albedo must have 3 components, got {len(albedo)}")
    for i, component in enumerate(albedo):
        if not 0.0 <= component <= 1.0:
            raise ValueError(
                f"Albedo component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )
    return (float(albedo[0]), float(albedo[1]), float(albedo[2]))


@dataclass
class Material:
    """Host-side material description.

    Use the lambertian(), metal() and dielectric() constructors rather than
    building instances directly.

    Attributes:
        kind: Which variant this material is.
        albedo: Reflectance color for Lambertian and metal (ignored by
            dielectrics, which are white).
        fuzz: Metal roughness in [0, 1). Values >= 1 are clamped to MAX_FUZZ.
        ior: Dielectric index of refraction (> 0, finite).
    """

    kind: MaterialKind
    albedo: tuple[float, float, float] = (1.0, 1.0, 1.0)
    fuzz: float = 0.0
    ior: float = 1.0

    def __post_init__(self) -> None:
        self.kind = MaterialKind(self.kind)
        self.albedo = _validate_albedo(tuple(self.albedo))

        if not math.isfinite(self.fuzz):
            raise ValueError(f"Fuzz = {self.fuzz} is not finite.")
        if self.fuzz < 0.0:
            raise ValueError(f"Fuzz = {self.fuzz} is negative.")
        if self.fuzz >= 1.0:
            logger.warning("Clamping metal fuzz %.3f to %.3f", self.fuzz, MAX_FUZZ)
            self.fuzz = MAX_FUZZ

        if not math.isfinite(self.ior) or self.ior <= 0.0:
            raise ValueError(
                f"Index of refraction = {self.ior} must be positive and finite."
            )

    @classmethod
    def lambertian(cls, albedo: tuple[float, float, float]) -> "Material":
        return cls(kind=MaterialKind.LAMBERTIAN, albedo=albedo)

    @classmethod
    def metal(cls, albedo: tuple[float, float, float], fuzz: float = 0.0) -> "Material":
        """Create a metal; fuzz > 0 makes it a fuzzy metal."""
        return cls(kind=MaterialKind.METAL, albedo=albedo, fuzz=fuzz)

    @classmethod
    def dielectric(cls, ior: float = 1.5) -> "Material":
        return cls(kind=MaterialKind.DIELECTRIC, ior=ior)

    @property
    def is_fuzzy(self) -> bool:
        return self.kind == MaterialKind.METAL and self.fuzz > 0.0

    def pack(self) -> npt.NDArray[np.float32]:
        """Pack into a MATERIAL_STRIDE float row for the GPU material table."""
        row = np.zeros(MATERIAL_STRIDE, dtype=np.float32)
        row[0] = float(int(self.kind))
        row[1:4] = self.albedo
        row[4] = self.fuzz
        row[5] = self.ior
        return row

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.kind.name.lower()}
        if self.kind == MaterialKind.LAMBERTIAN:
            data["albedo"] = list(self.albedo)
        elif self.kind == MaterialKind.METAL:
            data["albedo"] = list(self.albedo)
            data["fuzz"] = self.fuzz
        else:
            data["ior"] = self.ior
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Material":
        """Inverse of to_dict().

        Raises:
            ValueError: If the type is unknown or parameters are invalid.
        """
        mat_type = data.get("type")
        if mat_type == "lambertian":
            return cls.lambertian(tuple(data["albedo"]))
        if mat_type == "metal":
            return cls.metal(tuple(data["albedo"]), data.get("fuzz", 0.0))
        if mat_type == "dielectric":
            return cls.dielectric(data.get("ior", 1.5))
        raise ValueError(f"Unknown material type: {mat_type}")


# =============================================================================
# GPU dispatch
# =============================================================================


@ti.func
def scatter(
    kind: ti.i32,
    albedo: vec3,
    fuzz: ti.f32,
    ior: ti.f32,
    ray: Ray,
    rec: HitRecord,
    seed: ti.u32,
) -> ScatterRecord:
    """Dispatch to the scatter routine of the given material kind.

    Args:
        kind: MaterialKind value.
        albedo: Reflectance color (Lambertian and metal).
        fuzz: Metal roughness.
        ior: Dielectric index of refraction.
        ray: The incoming ray.
        rec: The hit record.
        seed: The lane's random stream key.

    Returns:
        The ScatterRecord of the selected material. Unknown kinds absorb.
    """
    result = make_absorbed_record(rec.point)
    if kind == int(MaterialKind.LAMBERTIAN):
        result = scatter_lambertian(albedo, rec, seed)
    elif kind == int(MaterialKind.METAL):
        result = scatter_metal(albedo, fuzz, ray, rec, seed)
    elif kind == int(MaterialKind.DIELECTRIC):
        result = scatter_dielectric(ior, ray, rec, seed)
    return result


@ti.func
def scatter_from_table(
    materials: ti.template(),
    material_id: ti.i32,
    ray: Ray,
    rec: HitRecord,
    seed: ti.u32,
) -> ScatterRecord:
    """Look up a packed material row and scatter with it."""
    kind = -1
    albedo = vec3(0.0, 0.0, 0.0)
    fuzz = 0.0
    ior = 1.0
    if 0 <= material_id < materials.shape[0]:
        kind = ti.cast(materials[material_id, 0], ti.i32)
        albedo = vec3(
            materials[material_id, 1],
            materials[material_id, 2],
            materials[material_id, 3],
        )
        fuzz = materials[material_id, 4]
        ior = materials[material_id, 5]
    return scatter(kind, albedo, fuzz, ior, ray, rec, seed)
