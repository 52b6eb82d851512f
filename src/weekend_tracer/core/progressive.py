"""Progressive path tracer: accumulation, change detection and lifecycle.

PathTracer owns every GPU buffer of one rendering context and drives the
wavefront kernels in core.integrator once per frame. It is created and
owned explicitly by the caller; there is no global instance.

Each call to render_frame() does the following:
1. Snapshots the scene (packed with NumPy) and the frame parameters.
2. Compares the snapshot with the previous frame. Any difference in the
   camera matrices, aperture, focus distance, bounce limit or packed scene,
   or a pending notify_scene_changed()/reset(), invalidates the image.
3. On invalidation, uploads the scene and camera and zeroes the
   accumulation image, the sample counter and every transport record.
4. Traces samples_per_frame new samples for every pixel, one bounce
   generation per kernel launch, stopping early once no lane is active.
5. Accumulates the new samples and normalizes the display image.

Comparisons are exact. Parameters are only ever read from the snapshot
taken at the start of the frame, so changes made while a frame is being
traced take effect on the next one.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from weekend_tracer.config import TracerConfig
    >>> from weekend_tracer.core.progressive import PathTracer
    >>> from weekend_tracer.scene.presets import create_weekend_scene
    >>>
    >>> config = TracerConfig(width=400, height=225)
    >>> scene, camera = create_weekend_scene(aspect_ratio=config.aspect_ratio)
    >>> with PathTracer(config) as tracer:
    ...     for _ in range(16):
    ...         tracer.render_frame(camera.frame_params(max_bounces=8), scene)
    ...     image = tracer.get_image_numpy(gamma=2.2)
"""

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np
import numpy.typing as npt

from weekend_tracer.camera.thin_lens import FrameParams
from weekend_tracer.config import TracerConfig
from weekend_tracer.core import integrator
from weekend_tracer.core.rng import make_frame_key
from weekend_tracer.scene.manager import Scene

logger = logging.getLogger(__name__)


class TracerState(Enum):
    """Whether accumulated samples are still valid for the current frame."""

    STABLE = "stable"
    INVALIDATED = "invalidated"


@dataclass
class FrameStats:
    """Summary of one render_frame() call.

    Attributes:
        frame_index: Index of the frame that was rendered.
        sample_count: Samples per pixel accumulated after this frame.
        invalidated: Whether accumulation was reset at the start of it.
        reason: Why it was reset, or None.
        generations: Bounce generations actually launched.
    """

    frame_index: int
    sample_count: int
    invalidated: bool
    reason: str | None
    generations: int


@dataclass
class ProbeResult:
    """Primary-ray hit at a pixel center (debugging aid)."""

    hit: bool
    t: float
    normal: tuple[float, float, float]
    point: tuple[float, float, float]


@dataclass
class _SceneSnapshot:
    spheres: npt.NDArray[np.float32]
    materials: npt.NDArray[np.float32]

    @classmethod
    def of(cls, scene: Scene) -> "_SceneSnapshot":
        return cls(spheres=scene.pack_spheres(), materials=scene.pack_materials())

    def matches(self, other: "_SceneSnapshot | None") -> bool:
        if other is None:
            return False
        return np.array_equal(self.spheres, other.spheres) and np.array_equal(
            self.materials, other.materials
        )


class PathTracer:
    """A progressive path tracer that accumulates samples across frames.

    Attributes:
        config: Activation-time settings (image size, samples per frame,
            ray interval, seed, sky).

    Example:
        >>> tracer = PathTracer(TracerConfig(width=64, height=64))
        >>> tracer.activate()
        >>> stats = tracer.render_frame(params, scene)
        >>> tracer.release()
    """

    def __init__(self, config: TracerConfig) -> None:
        config.validate()
        self.config = config
        self._resources: integrator.RenderResources | None = None
        self._reset_tracking()

    def _reset_tracking(self) -> None:
        self._state = TracerState.INVALIDATED
        self._dirty_reason: str | None = "first frame"
        self._last_params: FrameParams | None = None
        self._last_scene: _SceneSnapshot | None = None
        self._num_spheres = 0
        self._sample_count = 0
        self._frame_index = 0

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_active(self) -> bool:
        return self._resources is not None

    def activate(self) -> None:
        """Allocate all buffers and upload the Fibonacci table.

        Calling activate() on an active tracer does nothing. If allocation
        fails, whatever was acquired is released before the error
        propagates.
        """
        if self._resources is not None:
            return

        try:
            self._resources = integrator.RenderResources(self.config)
        except Exception:
            self.release()
            raise

        self._reset_tracking()
        logger.info(
            "Activated path tracer: %dx%d, %d samples/frame, %d lanes, %d hemisphere samples",
            self.config.width,
            self.config.height,
            self.config.samples_per_frame,
            self.config.lane_count,
            self.config.hemisphere_samples,
        )

    def release(self) -> None:
        """Destroy all buffers. Safe to call more than once."""
        if self._resources is None:
            return
        resources = self._resources
        self._resources = None
        resources.destroy()
        self._reset_tracking()
        logger.info("Released path tracer buffers")

    def __enter__(self) -> "PathTracer":
        self.activate()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def _require_resources(self) -> integrator.RenderResources:
        if self._resources is None:
            raise RuntimeError("Path tracer not active. Call activate() first.")
        return self._resources

    # =========================================================================
    # State
    # =========================================================================

    @property
    def state(self) -> TracerState:
        return self._state

    @property
    def sample_count(self) -> int:
        """Samples per pixel accumulated since the last invalidation."""
        return self._sample_count

    @property
    def frame_index(self) -> int:
        """Number of frames rendered since activation."""
        return self._frame_index

    def reset(self) -> None:
        """Discard accumulated samples on the next frame."""
        self._mark_dirty("reset requested")

    def notify_scene_changed(self) -> None:
        """Force a scene re-upload and accumulation reset on the next frame."""
        self._mark_dirty("scene changed")

    def _mark_dirty(self, reason: str) -> None:
        self._state = TracerState.INVALIDATED
        if self._dirty_reason is None:
            self._dirty_reason = reason

    def _detect_change(self, params: FrameParams, scene: _SceneSnapshot) -> str | None:
        if self._dirty_reason is not None:
            return self._dirty_reason
        if not params.matches(self._last_params):
            return "view parameters changed"
        if not scene.matches(self._last_scene):
            return "scene geometry changed"
        return None

    # =========================================================================
    # Rendering
    # =========================================================================

    def render_frame(self, params: FrameParams, scene: Scene) -> FrameStats:
        """Trace one frame and fold it into the accumulated image.

        Args:
            params: Camera and transport parameters for this frame.
            scene: The scene to render. Packed at the start of the frame.

        Returns:
            FrameStats for the frame.

        Raises:
            RuntimeError: If the tracer is not active.
            ValueError: If params.max_bounces exceeds the configured limit.
        """
        res = self._require_resources()
        config = self.config

        if params.max_bounces > config.max_bounces_limit:
            raise ValueError(
                f"max_bounces {params.max_bounces} exceeds the configured limit "
                f"of {config.max_bounces_limit}"
            )

        params = params.copy()
        snapshot = _SceneSnapshot.of(scene)

        reason = self._detect_change(params, snapshot)
        if reason is not None:
            self._state = TracerState.INVALIDATED
            logger.debug("Invalidating accumulation at frame %d: %s", self._frame_index, reason)
            res.upload_scene(snapshot.spheres, snapshot.materials)
            res.upload_camera(params.camera_to_world, params.projection)
            res.accum.fill(0.0)
            res.image.fill(0.0)
            integrator.clear_paths(res.rays, res.lane_count)
            self._num_spheres = len(snapshot.spheres)
            self._sample_count = 0
            self._last_params = params
            self._last_scene = snapshot
            self._dirty_reason = None

        frame_key = make_frame_key(config.seed, self._frame_index)
        integrator.init_camera_rays(
            res.rays,
            res.hemisphere,
            res.camera_to_world,
            res.projection,
            res.lane_count,
            config.width,
            config.height,
            config.samples_per_frame,
            frame_key,
            self._frame_index,
            params.aperture,
            params.focus_distance,
        )

        generations = 0
        for _ in range(params.max_bounces):
            generations += 1
            active = integrator.trace_generation(
                res.rays,
                res.spheres,
                res.materials,
                res.sky,
                res.lane_count,
                self._num_spheres,
                frame_key,
                params.max_bounces,
                config.t_min,
                config.t_max,
            )
            if active == 0:
                logger.debug(
                    "All lanes retired after %d of %d generations",
                    generations,
                    params.max_bounces,
                )
                break

        integrator.accumulate(res.rays, res.accum, config.width, config.samples_per_frame)
        self._sample_count += config.samples_per_frame
        integrator.normalize_image(res.accum, res.image, self._sample_count)

        stats = FrameStats(
            frame_index=self._frame_index,
            sample_count=self._sample_count,
            invalidated=reason is not None,
            reason=reason,
            generations=generations,
        )
        self._frame_index += 1
        self._state = TracerState.STABLE
        return stats

    # =========================================================================
    # Readback
    # =========================================================================

    def get_accumulation_numpy(self) -> npt.NDArray[np.float32]:
        """Summed radiance as a (width, height, 3) array, j = 0 at the bottom."""
        return self._require_resources().accum.to_numpy()

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Get the normalized image as a NumPy array.

        Args:
            gamma: Gamma correction value. Default 1.0 (linear).
                Use 2.2 for sRGB display.

        Returns:
            NumPy array of shape (height, width, 3), top row first, with
            values clamped to [0, 1]. All zero before the first sample.
        """
        image = self._require_resources().image.to_numpy()
        image = np.transpose(image, (1, 0, 2))
        image = np.flipud(image)
        image = np.nan_to_num(image, nan=0.0, posinf=1.0, neginf=0.0)
        image = np.clip(image, 0.0, 1.0)

        if gamma != 1.0:
            image = np.power(image, 1.0 / gamma)

        return image.astype(np.float32)

    def probe_pixel(self, i: int, j: int) -> ProbeResult:
        """Report the primary-ray hit through the center of pixel (i, j).

        Uses the camera and scene uploaded by the last invalidation, with no
        jitter and no lens offset. j = 0 is the bottom row.

        Raises:
            RuntimeError: If the tracer is not active or no frame has been
                rendered since activation.
            IndexError: If (i, j) is outside the image.
        """
        res = self._require_resources()
        if self._last_params is None:
            raise RuntimeError("No frame rendered yet. Call render_frame() first.")
        if not (0 <= i < self.config.width and 0 <= j < self.config.height):
            raise IndexError(
                f"Pixel ({i}, {j}) outside {self.config.width}x{self.config.height} image"
            )

        out = integrator.probe_primary_hit(
            res.spheres,
            res.camera_to_world,
            res.projection,
            i,
            j,
            self.config.width,
            self.config.height,
            self._last_params.focus_distance,
            self._num_spheres,
            self.config.t_min,
            self.config.t_max,
        )
        return ProbeResult(
            hit=bool(out[0] > 0.5),
            t=float(out[1]),
            normal=(float(out[2]), float(out[3]), float(out[4])),
            point=(float(out[5]), float(out[6]), float(out[7])),
        )

    def __repr__(self) -> str:
        return (
            f"PathTracer(width={self.config.width}, height={self.config.height}, "
            f"active={self.is_active}, samples={self.sample_count})"
        )
