"""Shared material types: the variant tag and the scatter result."""

from enum import IntEnum

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


class MaterialKind(IntEnum):
    """Tag of the closed material variant.

    Fuzzy metal is METAL with a non-zero fuzz, not a separate kind.
    """

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


@ti.dataclass
class ScatterRecord:
    """Outcome of a material's response to an incoming ray.

    Attributes:
        scattered: 1 if the material produced an outgoing ray, 0 if the ray
            was absorbed.
        attenuation: Color multiplier applied to the path throughput.
        origin: Origin of the scattered ray (the hit point).
        direction: Direction of the scattered ray. Not necessarily unit length.
    """

    scattered: ti.i32
    attenuation: vec3
    origin: vec3
    direction: vec3


@ti.func
def make_absorbed_record(origin: vec3) -> ScatterRecord:
    return ScatterRecord(
        scattered=0,
        attenuation=vec3(0.0, 0.0, 0.0),
        origin=origin,
        direction=vec3(0.0, 0.0, 0.0),
    )
