# ─────────────────────────────────────────────────────────────────────────────
# Prompt Templates — fixed instructions sent to the generative backend
# ─────────────────────────────────────────────────────────────────────────────


IMAGE_SYSTEM_PROMPT = "Generate an isolated object/scene on a simple background."

VOXEL_PROMPT = (
    "I have provided an image. Code a beautiful voxel art scene inspired by this image. "
    "Write threejs code as a single-page."
)


def build_image_prompt(subject: str, optimize: bool = True) -> str:
    """Wrap the user's subject in the image instruction.

    With ``optimize`` off the subject is sent untouched.
    """
    if not optimize:
        return subject
    return f"{IMAGE_SYSTEM_PROMPT}\n\nSubject: {subject}"
