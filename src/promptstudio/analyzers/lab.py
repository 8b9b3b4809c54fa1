"""Media lab: image generation, image-to-video and text-to-speech."""

from promptstudio.core.errors import ValidationError
from promptstudio.core.generation import DEFAULT_VOICE, GenerationClient
from promptstudio.core.llm_base import InlineData

IMAGE_ASPECT_RATIOS = ("1:1", "2:3", "3:2", "3:4", "4:3", "9:16", "16:9", "21:9")
IMAGE_SIZES = ("1K", "2K", "4K")
VIDEO_ASPECT_RATIOS = ("16:9", "9:16")


def _require(value: str, allowed: tuple[str, ...], what: str) -> None:
    if value not in allowed:
        raise ValidationError(f"Unsupported {what} '{value}', choose one of: {', '.join(allowed)}")


def _require_prompt(prompt: str) -> str:
    if not prompt or not prompt.strip():
        raise ValidationError("Prompt must not be empty")
    return prompt.strip()


class LabStudio:
    """Thin wrappers over the image, video and audio profiles with input checks."""

    def __init__(self, client: GenerationClient):
        self.client = client

    def generate_image(self, prompt: str, aspect_ratio: str = "16:9", size: str = "1K") -> bytes:
        """Generate an image and return its bytes (PNG unless the provider says otherwise)."""
        _require(aspect_ratio, IMAGE_ASPECT_RATIOS, "aspect ratio")
        _require(size, IMAGE_SIZES, "image size")
        part = self.client.generate_image(_require_prompt(prompt), aspect_ratio=aspect_ratio, image_size=size)
        return part.data

    def generate_video(
        self,
        image: bytes,
        prompt: str,
        aspect_ratio: str = "16:9",
        mime_type: str = "image/png",
    ) -> str:
        """
        Animate an image into a short video.

        Returns:
            Downloadable video URI

        Raises:
            PollTimeoutError: If synthesis does not finish within the configured bounds
        """
        _require(aspect_ratio, VIDEO_ASPECT_RATIOS, "video aspect ratio")
        if not image:
            raise ValidationError("An input image is required")
        return self.client.generate_video(
            _require_prompt(prompt),
            image=InlineData(mime_type=mime_type, data=image),
            aspect_ratio=aspect_ratio,
        )

    def speak(self, text: str, voice: str = DEFAULT_VOICE) -> bytes:
        """Read text aloud; returns raw audio bytes (24 kHz 16-bit PCM from the TTS model)."""
        return self.client.generate_speech(_require_prompt(text), voice=voice)
