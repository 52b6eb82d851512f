"""Counter-based random streams for per-lane Monte Carlo sampling.

Every random draw in the tracer is a pure function of a key, so a lane never
shares generator state with another lane. A lane's key is built by hashing
(frame, lane, bounce) together; individual draws within a lane are then
numbered 0, 1, 2, ... and hashed against that key.

Hashing uses Thomas Wang's 32-bit integer hash. All constants fit in a
signed 32-bit integer so they can be cast to ti.u32 without overflow
warnings, and all arithmetic wraps modulo 2^32 like the NumPy mirror below.

Example:
    >>> @ti.kernel
    ... def fill(out: ti.template(), frame: ti.i32):
    ...     for lane in out:
    ...         seed = lane_seed(frame, lane, 0)
    ...         out[lane] = uniform(seed, 0)
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Scale from a 24-bit integer to a float in [0, 1)
_INV_2_24 = 1.0 / 16777216.0


@ti.func
def wang_hash(key: ti.u32) -> ti.u32:
    """Thomas Wang's 32-bit integer hash."""
    k = key
    k = (k ^ ti.cast(61, ti.u32)) ^ (k >> ti.cast(16, ti.u32))
    k = k * ti.cast(9, ti.u32)
    k = k ^ (k >> ti.cast(4, ti.u32))
    k = k * ti.cast(0x27D4EB2D, ti.u32)
    k = k ^ (k >> ti.cast(15, ti.u32))
    return k


@ti.func
def lane_seed(frame_key: ti.i32, lane: ti.i32, bounce: ti.i32) -> ti.u32:
    """Derive the random stream key of one lane in one bounce generation.

    Args:
        frame_key: Per-frame key (frame counter mixed with the config seed).
        lane: Lane index (pixel * samples_per_frame + slot).
        bounce: Generation number; 0 is camera-ray generation.

    Returns:
        A 32-bit key unique to (frame_key, lane, bounce) with high probability.
    """
    h = wang_hash(ti.cast(bounce, ti.u32))
    h = wang_hash(ti.cast(lane, ti.u32) ^ h)
    return wang_hash(ti.cast(frame_key, ti.u32) ^ h)


@ti.func
def uniform(seed: ti.u32, draw: ti.i32) -> ti.f32:
    """Return the draw-th uniform float in [0, 1) of the stream seeded by seed."""
    h = wang_hash(seed ^ wang_hash(ti.cast(draw, ti.u32) + ti.cast(1, ti.u32)))
    return ti.cast(h >> ti.cast(8, ti.u32), ti.f32) * _INV_2_24


@ti.func
def random_unit_vector(seed: ti.u32, draw: ti.i32) -> vec3:
    """Uniformly distributed unit vector on the sphere.

    Consumes draws draw and draw + 1. Closed form (uniform z and azimuth),
    so there is no rejection loop.
    """
    z = 1.0 - 2.0 * uniform(seed, draw)
    phi = 2.0 * tm.pi * uniform(seed, draw + 1)
    r = ti.sqrt(tm.max(0.0, 1.0 - z * z))
    return vec3(r * ti.cos(phi), r * ti.sin(phi), z)


@ti.func
def random_in_unit_sphere(seed: ti.u32, draw: ti.i32) -> vec3:
    """Uniformly distributed point inside the unit ball.

    Consumes draws draw .. draw + 2. The radius uses the cube root of a
    uniform draw so that points are uniform in volume.
    """
    direction = random_unit_vector(seed, draw)
    radius = tm.pow(uniform(seed, draw + 2), 1.0 / 3.0)
    return radius * direction


# =============================================================================
# NumPy mirror (host-side checks and seeding)
# =============================================================================


def wang_hash_numpy(key: npt.ArrayLike) -> npt.NDArray[np.uint32]:
    """Vectorised uint32 Wang hash matching wang_hash() bit for bit."""
    k = np.atleast_1d(np.asarray(key)).astype(np.uint32)
    k = (k ^ np.uint32(61)) ^ (k >> np.uint32(16))
    k = k * np.uint32(9)
    k = k ^ (k >> np.uint32(4))
    k = k * np.uint32(0x27D4EB2D)
    k = k ^ (k >> np.uint32(15))
    return k


def lane_seed_numpy(
    frame_key: npt.ArrayLike, lane: npt.ArrayLike, bounce: npt.ArrayLike
) -> npt.NDArray[np.uint32]:
    """Host-side equivalent of lane_seed()."""
    h = wang_hash_numpy(bounce)
    h = wang_hash_numpy(np.atleast_1d(np.asarray(lane)).astype(np.uint32) ^ h)
    return wang_hash_numpy(np.atleast_1d(np.asarray(frame_key)).astype(np.uint32) ^ h)


def uniform_numpy(seed: npt.ArrayLike, draw: int) -> npt.NDArray[np.float32]:
    """Host-side equivalent of uniform()."""
    seed_arr = np.atleast_1d(np.asarray(seed)).astype(np.uint32)
    h = wang_hash_numpy(seed_arr ^ wang_hash_numpy(np.uint32(draw) + np.uint32(1)))
    return ((h >> np.uint32(8)).astype(np.float32) * np.float32(_INV_2_24)).astype(np.float32)


def make_frame_key(seed: int, frame_index: int) -> int:
    """Fold the configured seed and frame counter into a non-negative i32 key."""
    mixed = int(wang_hash_numpy(seed)[0]) ^ (frame_index & 0xFFFFFFFF)
    return mixed & 0x7FFFFFFF
