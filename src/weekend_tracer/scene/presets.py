"""Ready-made scenes.

create_weekend_scene() builds the classic ground plus three spheres scene:
- Ground: huge yellow-green diffuse sphere
- Center: blue diffuse sphere
- Left: hollow glass sphere (a glass ball with a smaller inverted-IOR bubble)
- Right: fuzzy gold metal sphere

create_single_sphere_scene() builds one diffuse sphere straight in front of
a camera at the origin. It is small enough for end-to-end tests.

Example:
    >>> scene, camera = create_weekend_scene(aspect_ratio=16.0 / 9.0)
    >>> params = camera.frame_params(max_bounces=8)
"""

from weekend_tracer.camera.thin_lens import ThinLensCamera
from weekend_tracer.scene.manager import Scene

# Glass used by the hollow sphere
GLASS_IOR = 1.5


def create_weekend_scene(
    aspect_ratio: float = 16.0 / 9.0,
    vfov: float = 20.0,
    aperture: float = 0.1,
) -> tuple[Scene, ThinLensCamera]:
    """Create the ground plus three spheres scene and a matching camera.

    Args:
        aspect_ratio: Width / height of the output image.
        vfov: Vertical field of view in degrees.
        aperture: Lens diameter. The camera is focused on the center sphere.

    Returns:
        Tuple of (scene, camera).
    """
    scene = Scene()

    ground = scene.add_lambertian_material(albedo=(0.8, 0.8, 0.0))
    center = scene.add_lambertian_material(albedo=(0.1, 0.2, 0.5))
    glass = scene.add_dielectric_material(ior=GLASS_IOR)
    bubble = scene.add_dielectric_material(ior=1.0 / GLASS_IOR)
    gold = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.3)

    scene.add_sphere((0.0, -100.5, -1.0), 100.0, ground)
    scene.add_sphere((0.0, 0.0, -1.2), 0.5, center)
    scene.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
    scene.add_sphere((-1.0, 0.0, -1.0), 0.4, bubble)
    scene.add_sphere((1.0, 0.0, -1.0), 0.5, gold)

    camera = ThinLensCamera(
        lookfrom=(-2.0, 2.0, 1.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=vfov,
        aspect_ratio=aspect_ratio,
        aperture=aperture,
    )
    camera.focus_on((0.0, 0.0, -1.2))

    return scene, camera


def create_single_sphere_scene(
    aspect_ratio: float = 1.0,
) -> tuple[Scene, ThinLensCamera]:
    """Create one grey diffuse sphere of radius 0.5 at (0, 0, -1).

    The camera sits at the origin looking down -Z with a 90 degree vertical
    field of view and no depth of field, so the image center sees the
    sphere's nearest point at t = 0.5.
    """
    scene = Scene()
    scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, albedo=(0.5, 0.5, 0.5))

    camera = ThinLensCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=aspect_ratio,
        aperture=0.0,
        focus_distance=1.0,
    )
    return scene, camera
