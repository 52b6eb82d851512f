"""Host-side scene builder for spheres and their materials.

The Scene keeps a list of materials and a list of spheres that reference
them by index. It never touches Taichi fields; a PathTracer snapshots the
scene at the start of each frame through pack_spheres() and
pack_materials() and uploads the arrays only when they changed.

Validation happens here, when objects are added, so kernels never see a
non-physical configuration:
- radius <= 0 is rejected, as are non-finite centers and radii
- a sphere must reference an existing material
- capacity limits (MAX_SPHERES, MAX_MATERIALS) raise RuntimeError

Every mutation bumps Scene.version, which callers can use to cheaply tell
whether anything changed since they last looked.

Example:
    >>> scene = Scene()
    >>> ground = scene.add_lambertian_material(albedo=(0.8, 0.8, 0.0))
    >>> scene.add_sphere((0, -100.5, -1), 100.0, ground)
    0
    >>> scene.add_dielectric_sphere((-1, 0, -1), 0.5, ior=1.5)
    1
    >>> scene.pack_spheres().shape
    (2, 8)
"""

import logging
import math
from dataclasses import dataclass
from typing import Any

import numpy as np
import numpy.typing as npt

from weekend_tracer.materials.material import MATERIAL_STRIDE, Material
from weekend_tracer.scene.intersection import MAX_SPHERES, SPHERE_STRIDE

logger = logging.getLogger(__name__)

# Maximum number of materials a tracer allocates room for
MAX_MATERIALS = 256


@dataclass
class SphereInfo:
    """Information about a sphere in the scene.

    Attributes:
        sphere_index: The row of the sphere in the packed sphere table.
        center: The center of the sphere.
        radius: The radius of the sphere.
        material_id: The material ID assigned to the sphere.
    """

    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int

    def pack(self) -> npt.NDArray[np.float32]:
        row = np.zeros(SPHERE_STRIDE, dtype=np.float32)
        row[0:3] = self.center
        row[3] = self.radius
        row[4] = float(self.material_id)
        return row


class Scene:
    """Ordered collection of materials and spheres.

    Attributes:
        materials: Registered materials; a material's ID is its list index.
        spheres: SphereInfo for every sphere, in insertion order.
        version: Counter bumped on every mutation.

    Example:
        >>> scene = Scene()
        >>> gold = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.3)
        >>> scene.add_sphere((1, 0, -1), 0.5, gold)
        0
    """

    def __init__(self) -> None:
        self.materials: list[Material] = []
        self.spheres: list[SphereInfo] = []
        self.version = 0

    def _touch(self) -> None:
        self.version += 1

    def clear(self) -> None:
        """Remove all spheres and materials."""
        self.materials.clear()
        self.spheres.clear()
        self._touch()

    # =========================================================================
    # Materials
    # =========================================================================

    def add_material(self, material: Material) -> int:
        """Register a material.

        Args:
            material: An already validated Material.

        Returns:
            The material ID to reference from spheres.

        Raises:
            RuntimeError: If MAX_MATERIALS materials are already registered.
        """
        if len(self.materials) >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")
        self.materials.append(material)
        self._touch()
        return len(self.materials) - 1

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        return self.add_material(Material.lambertian(albedo))

    def add_metal_material(
        self, albedo: tuple[float, float, float], fuzz: float = 0.0
    ) -> int:
        """Register a metal; fuzz >= 1 is clamped by Material."""
        return self.add_material(Material.metal(albedo, fuzz))

    def add_dielectric_material(self, ior: float = 1.5) -> int:
        return self.add_material(Material.dielectric(ior))

    def get_material(self, material_id: int) -> Material:
        """Look up a registered material.

        Raises:
            ValueError: If the ID does not name a registered material.
        """
        if not 0 <= material_id < len(self.materials):
            raise ValueError(
                f"Unknown material ID {material_id}; "
                f"{len(self.materials)} materials are registered"
            )
        return self.materials[material_id]

    # =========================================================================
    # Spheres
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere that references a registered material.

        Args:
            center: Sphere center.
            radius: Sphere radius. Must be positive.
            material_id: ID returned by one of the add_*_material methods.

        Returns:
            The sphere's row in the packed sphere table.

        Raises:
            ValueError: If the center or radius is not finite, radius <= 0,
                or the material ID is unknown.
            RuntimeError: If MAX_SPHERES spheres are already in the scene.
        """
        if not all(math.isfinite(c) for c in center):
            raise ValueError(f"Sphere center must be finite, got {tuple(center)}")
        if not math.isfinite(radius) or radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive and finite, got {radius}")
        self.get_material(material_id)
        if len(self.spheres) >= MAX_SPHERES:
            raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")

        info = SphereInfo(
            sphere_index=len(self.spheres),
            center=(float(center[0]), float(center[1]), float(center[2])),
            radius=float(radius),
            material_id=int(material_id),
        )
        self.spheres.append(info)
        self._touch()
        return info.sphere_index

    def add_lambertian_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
    ) -> int:
        """Add a sphere with a new Lambertian material."""
        return self.add_sphere(center, radius, self.add_lambertian_material(albedo))

    def add_metal_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> int:
        """Add a sphere with a new metal material."""
        return self.add_sphere(center, radius, self.add_metal_material(albedo, fuzz))

    def add_dielectric_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        ior: float = 1.5,
    ) -> int:
        """Add a sphere with a new dielectric material."""
        return self.add_sphere(center, radius, self.add_dielectric_material(ior))

    @property
    def sphere_count(self) -> int:
        return len(self.spheres)

    @property
    def material_count(self) -> int:
        return len(self.materials)

    # =========================================================================
    # Packing
    # =========================================================================

    def pack_spheres(self) -> npt.NDArray[np.float32]:
        """Pack all spheres into an (n, SPHERE_STRIDE) float32 array."""
        packed = np.zeros((len(self.spheres), SPHERE_STRIDE), dtype=np.float32)
        for i, info in enumerate(self.spheres):
            packed[i] = info.pack()
        return packed

    def pack_materials(self) -> npt.NDArray[np.float32]:
        """Pack all materials into an (m, MATERIAL_STRIDE) float32 array."""
        packed = np.zeros((len(self.materials), MATERIAL_STRIDE), dtype=np.float32)
        for i, material in enumerate(self.materials):
            packed[i] = material.pack()
        return packed

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Export the scene as a JSON-compatible dictionary."""
        return {
            "materials": [material.to_dict() for material in self.materials],
            "spheres": [
                {
                    "center": list(info.center),
                    "radius": info.radius,
                    "material_id": info.material_id,
                }
                for info in self.spheres
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Scene":
        """Build a scene from a dictionary produced by to_dict().

        Raises:
            ValueError: If any material or sphere fails validation.
        """
        scene = cls()
        for material_data in data.get("materials", []):
            scene.add_material(Material.from_dict(material_data))
        for sphere_data in data.get("spheres", []):
            scene.add_sphere(
                tuple(sphere_data["center"]),
                sphere_data["radius"],
                sphere_data["material_id"],
            )
        logger.debug(
            "Loaded scene with %d materials and %d spheres",
            scene.material_count,
            scene.sphere_count,
        )
        return scene

    def __repr__(self) -> str:
        return (
            f"Scene(materials={self.material_count}, spheres={self.sphere_count}, "
            f"version={self.version})"
        )
