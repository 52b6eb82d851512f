"""Thin-lens camera model with depth of field.

The camera is described on the host by a ThinLensCamera dataclass and
reduced, once per frame, to a FrameParams snapshot: a camera-to-world
matrix, an OpenGL-style projection matrix and the lens parameters. The
snapshot is what the tracer compares frame to frame to decide whether
accumulated samples are still valid.

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

camera_to_world() stores u, v, w and the camera position as the four
columns of a 4x4 matrix, so camera space looks down -Z with +Y up.

On the GPU, generate_camera_ray() recovers the viewport from the
projection matrix, places the plane of perfect focus focus_distance units
in front of the lens, and starts the ray from a point on the lens disk of
diameter aperture. With aperture 0 it degenerates to a pinhole camera.

Example:
    >>> camera = ThinLensCamera(
    ...     lookfrom=(-2.0, 2.0, 1.0),
    ...     lookat=(0.0, 0.0, -1.0),
    ...     vfov=20.0,
    ...     aspect_ratio=16.0 / 9.0,
    ...     aperture=0.1,
    ... )
    >>> camera.focus_on((0.0, 0.0, -1.0))
    >>> params = camera.frame_params(max_bounces=8)
    >>> params.camera_to_world.shape
    (4, 4)
"""

import math
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from weekend_tracer.core.ray import Ray, make_ray

vec2 = tm.vec2
vec3 = tm.vec3
vec4 = tm.vec4
mat4 = tm.mat4

# Clip planes of the projection matrix. Only the x/y scale terms are read
# back by ray generation; the depth terms keep the matrix a valid projection.
NEAR_PLANE = 0.01
FAR_PLANE = 1000.0


# =============================================================================
# Frame parameter snapshot
# =============================================================================


def _check_lens(aperture: float, focus_distance: float) -> None:
    if not math.isfinite(aperture) or aperture < 0.0:
        raise ValueError(f"Aperture must be non-negative and finite, got {aperture}")
    if not math.isfinite(focus_distance) or focus_distance <= 0.0:
        raise ValueError(f"Focus distance must be positive and finite, got {focus_distance}")


@dataclass
class FrameParams:
    """Per-frame view and transport parameters.

    Attributes:
        camera_to_world: 4x4 float32 matrix (columns u, v, w, origin).
        projection: 4x4 float32 OpenGL-style projection matrix.
        aperture: Lens diameter. 0 disables depth of field.
        focus_distance: Distance from the lens to the plane of perfect focus.
        max_bounces: Maximum number of bounce generations per sample.
        time: Animation time. Carried along but not compared.
    """

    camera_to_world: npt.NDArray[np.float32]
    projection: npt.NDArray[np.float32]
    aperture: float
    focus_distance: float
    max_bounces: int
    time: float = 0.0

    def __post_init__(self) -> None:
        self.camera_to_world = np.array(self.camera_to_world, dtype=np.float32)
        self.projection = np.array(self.projection, dtype=np.float32)
        if self.camera_to_world.shape != (4, 4) or self.projection.shape != (4, 4):
            raise ValueError("Camera and projection matrices must be 4x4")
        if not np.isfinite(self.camera_to_world).all() or not np.isfinite(self.projection).all():
            raise ValueError("Camera and projection matrices must be finite")
        _check_lens(self.aperture, self.focus_distance)
        if self.max_bounces < 1:
            raise ValueError(f"max_bounces must be at least 1, got {self.max_bounces}")

    def matches(self, other: "FrameParams | None") -> bool:
        """Exact comparison of every tracked parameter.

        There is no epsilon: any bit-level change in a matrix or scalar
        counts as a change. time is not tracked.
        """
        if other is None:
            return False
        return (
            np.array_equal(self.camera_to_world, other.camera_to_world)
            and np.array_equal(self.projection, other.projection)
            and self.aperture == other.aperture
            and self.focus_distance == other.focus_distance
            and self.max_bounces == other.max_bounces
        )

    def copy(self) -> "FrameParams":
        return FrameParams(
            camera_to_world=self.camera_to_world.copy(),
            projection=self.projection.copy(),
            aperture=self.aperture,
            focus_distance=self.focus_distance,
            max_bounces=self.max_bounces,
            time=self.time,
        )


# =============================================================================
# Host-side camera description
# =============================================================================


@dataclass
class ThinLensCamera:
    """Configuration for a thin-lens (depth of field) camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction vector for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees, in (0, 180).
        aspect_ratio: Width divided by height of the output image.
        aperture: Lens diameter. 0 gives a pinhole camera.
        focus_distance: Distance to the plane of perfect focus.
    """

    lookfrom: tuple[float, float, float] = (0.0, 0.0, 0.0)
    lookat: tuple[float, float, float] = (0.0, 0.0, -1.0)
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 90.0
    aspect_ratio: float = 1.0
    aperture: float = 0.0
    focus_distance: float = 1.0

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check the lens and view parameters.

        Raises:
            ValueError: If any parameter is out of range or not finite.
        """
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov must be in (0, 180) degrees, got {self.vfov}")
        if not math.isfinite(self.aspect_ratio) or self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive and finite, got {self.aspect_ratio}")
        _check_lens(self.aperture, self.focus_distance)
        for name in ("lookfrom", "lookat", "vup"):
            if not all(math.isfinite(c) for c in getattr(self, name)):
                raise ValueError(f"{name} must be finite, got {tuple(getattr(self, name))}")

    def basis(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Compute the camera's orthonormal basis (u, v, w).

        Raises:
            ValueError: If lookfrom equals lookat or vup is parallel to the
                view direction.
        """
        lookfrom = np.array(self.lookfrom, dtype=np.float64)
        lookat = np.array(self.lookat, dtype=np.float64)
        vup = np.array(self.vup, dtype=np.float64)

        w = lookfrom - lookat
        w_len = np.linalg.norm(w)
        if w_len == 0.0:
            raise ValueError("lookfrom and lookat must differ")
        w = w / w_len

        u = np.cross(vup, w)
        u_len = np.linalg.norm(u)
        if u_len < 1e-12:
            raise ValueError("vup must not be parallel to the view direction")
        u = u / u_len

        v = np.cross(w, u)
        return u, v, w

    def camera_to_world(self) -> npt.NDArray[np.float32]:
        """4x4 matrix with columns u, v, w and the camera position."""
        u, v, w = self.basis()
        matrix = np.eye(4, dtype=np.float64)
        matrix[:3, 0] = u
        matrix[:3, 1] = v
        matrix[:3, 2] = w
        matrix[:3, 3] = self.lookfrom
        return matrix.astype(np.float32)

    def projection(self) -> npt.NDArray[np.float32]:
        """OpenGL-style perspective projection matrix.

        P[0, 0] = f / aspect and P[1, 1] = f with f = 1 / tan(vfov / 2).
        """
        f = 1.0 / math.tan(math.radians(self.vfov) / 2.0)
        matrix = np.zeros((4, 4), dtype=np.float64)
        matrix[0, 0] = f / self.aspect_ratio
        matrix[1, 1] = f
        matrix[2, 2] = (FAR_PLANE + NEAR_PLANE) / (NEAR_PLANE - FAR_PLANE)
        matrix[2, 3] = 2.0 * FAR_PLANE * NEAR_PLANE / (NEAR_PLANE - FAR_PLANE)
        matrix[3, 2] = -1.0
        return matrix.astype(np.float32)

    def focus_on(self, target: tuple[float, float, float]) -> None:
        """Aim the camera at target and focus exactly on it.

        Raises:
            ValueError: If target is not finite or coincides with the camera
                position.
        """
        distance = float(
            np.linalg.norm(np.array(self.lookfrom, dtype=np.float64) - np.array(target))
        )
        if not math.isfinite(distance):
            raise ValueError(f"Focus target must be finite, got {tuple(target)}")
        if distance == 0.0:
            raise ValueError("Cannot focus on a point at the camera position")
        self.lookat = (float(target[0]), float(target[1]), float(target[2]))
        self.focus_distance = distance

    def frame_params(self, max_bounces: int, time: float = 0.0) -> FrameParams:
        """Snapshot the camera into the parameters of one frame."""
        self.validate()
        return FrameParams(
            camera_to_world=self.camera_to_world(),
            projection=self.projection(),
            aperture=self.aperture,
            focus_distance=self.focus_distance,
            max_bounces=max_bounces,
            time=time,
        )


# =============================================================================
# Ray Generation (Taichi-compatible, GPU-callable)
# =============================================================================


@ti.func
def generate_camera_ray(
    camera_to_world: mat4,
    projection: mat4,
    s: ti.f32,
    t: ti.f32,
    aperture: ti.f32,
    focus_distance: ti.f32,
    lens: vec2,
) -> Ray:
    """Generate a primary ray through normalized image coordinates (s, t).

    The coordinates are normalized:
    - s = 0: left edge, s = 1: right edge
    - t = 0: bottom edge, t = 1: top edge

    Args:
        camera_to_world: Camera-to-world matrix (columns u, v, w, origin).
        projection: Projection matrix; only P[0, 0] and P[1, 1] are read.
        s: Horizontal coordinate in [0, 1].
        t: Vertical coordinate in [0, 1].
        aperture: Lens diameter.
        focus_distance: Distance to the plane of perfect focus.
        lens: Point in the unit disk selecting where on the lens the ray
            starts.

    Returns:
        A Ray with unit-length direction in world space.
    """
    tan_half_fov = 1.0 / projection[1, 1]
    aspect = projection[1, 1] / projection[0, 0]

    target = vec3(
        (2.0 * s - 1.0) * aspect * tan_half_fov,
        (2.0 * t - 1.0) * tan_half_fov,
        -1.0,
    ) * focus_distance

    lens_point = 0.5 * aperture * vec3(lens.x, lens.y, 0.0)
    local_direction = target - lens_point

    origin = (camera_to_world @ vec4(lens_point, 1.0)).xyz
    direction = (camera_to_world @ vec4(local_direction, 0.0)).xyz

    return make_ray(origin, tm.normalize(direction))
