# Gallery of pre-generated image/scene pairs served as static assets.

from voxelize.client.state import Example

EXAMPLES: tuple[Example, ...] = (
    Example(
        image_ref="/examples/example1.png",
        scene_ref="/examples/example1.html",
        alt_text="Voxel art of a floating island with cherry blossom tree and waterfall",
    ),
    Example(
        image_ref="/examples/example2.png",
        scene_ref="/examples/example2.html",
        alt_text="Voxel art of a cat with jetpack flying through clouds",
    ),
    Example(
        image_ref="/examples/example3.png",
        scene_ref="/examples/example3.html",
        alt_text="Voxel art of a Japanese pagoda in a garden with pond",
    ),
)
