"""Spherical Fibonacci hemisphere sampler.

Builds a deterministic, low-discrepancy set of unit directions over the +Y
hemisphere using the golden-angle recurrence:

    dphi = pi * (3 - sqrt(5))
    dz   = 1 / n
    z_0  = 1 - dz / 2,   z_{j+1} = z_j - dz
    phi_0 = 0,           phi_{j+1} = phi_j + dphi
    d_j  = (cos(phi_j) sin(theta_j), z_j, sin(phi_j) sin(theta_j)),  theta_j = acos(z_j)

The table is computed once on the host with NumPy and uploaded to a Taichi
field when the tracer is activated. It is reused across frames as a static
lookup table.

Indexing policy: the GPU side indexes the table by sample slot combined with
the frame counter (see table_index()), never by bounce depth. Consecutive
(frame, slot) pairs are spread across the table with an odd stride so that
early frames do not all read the near-pole entries.

Example:
    >>> directions = spherical_fibonacci(4096)
    >>> directions.shape
    (4096, 3)
    >>> bool((directions[:, 1] >= 0).all())
    True
"""

import math

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

vec2 = tm.vec2

# Default table size used by the tracer
HEMISPHERE_SAMPLES = 4096

# Odd stride (a Fibonacci number) so it is coprime with power-of-two table sizes
FIB_INDEX_STRIDE = 1597


def spherical_fibonacci(n: int) -> npt.NDArray[np.float32]:
    """Generate n unit directions spread evenly over the +Y hemisphere.

    Args:
        n: Number of directions to generate (power-of-two friendly, e.g. 4096).

    Returns:
        Array of shape (n, 3), dtype float32. Every row has unit length and a
        non-negative y component. The result depends only on n.

    Raises:
        ValueError: If n is not positive.
    """
    if n <= 0:
        raise ValueError(f"Sample count must be positive, got {n}")

    dphi = math.pi * (3.0 - math.sqrt(5.0))
    dz = 1.0 / n

    j = np.arange(n, dtype=np.float64)
    z = 1.0 - dz / 2.0 - j * dz
    phi = np.mod(j * dphi, 2.0 * math.pi)
    theta = np.arccos(z)

    out = np.empty((n, 3), dtype=np.float64)
    out[:, 0] = np.cos(phi) * np.sin(theta)
    out[:, 1] = z
    out[:, 2] = np.sin(phi) * np.sin(theta)
    return out.astype(np.float32)


def mirror_to_sphere(hemisphere: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Mirror a hemisphere table into a full sphere for visualization.

    The first half of the result is the input unchanged; the second half holds
    the same directions with y negated, in reverse order. Not used by light
    transport.

    Args:
        hemisphere: Array of shape (n, 3).

    Returns:
        Array of shape (2n, 3).
    """
    hemisphere = np.asarray(hemisphere, dtype=np.float32)
    if hemisphere.ndim != 2 or hemisphere.shape[1] != 3:
        raise ValueError(f"Expected an (n, 3) array, got shape {hemisphere.shape}")

    mirrored = hemisphere[::-1].copy()
    mirrored[:, 1] *= -1.0
    return np.concatenate([hemisphere, mirrored], axis=0)


# =============================================================================
# GPU-side lookup
# =============================================================================


@ti.func
def table_index(slot: ti.i32, frame_index: ti.i32, samples_per_frame: ti.i32, n: ti.i32) -> ti.i32:
    """Table entry used by a sample slot in a given frame."""
    sequence = (frame_index * samples_per_frame + slot) % n
    return (sequence * FIB_INDEX_STRIDE) % n


@ti.func
def lens_offset(
    table: ti.template(),
    slot: ti.i32,
    frame_index: ti.i32,
    samples_per_frame: ti.i32,
    rotation: ti.f32,
) -> vec2:
    """Area-uniform point in the unit disk for depth-of-field jitter.

    Keeps the azimuth of the selected hemisphere direction and remaps its
    height to the radius sqrt(1 - y). Heights of a uniform hemisphere table
    are uniform in [0, 1], so the radii are area-uniform over the disk. The
    point is then rotated by rotation * 2pi. The rotation is a
    per-lane uniform draw, so lanes sharing a table entry still land on
    different lens positions.
    """
    n = table.shape[0]
    d = table[table_index(slot, frame_index, samples_per_frame, n)]
    planar = vec2(d.x, d.z)
    rho = planar.norm()
    if rho > 0.0:
        planar = planar / rho * ti.sqrt(tm.max(0.0, 1.0 - d.y))
    angle = 2.0 * tm.pi * rotation
    c = ti.cos(angle)
    s = ti.sin(angle)
    return vec2(c * planar.x - s * planar.y, s * planar.x + c * planar.y)
