"""Featured image generation."""

import logging
import re
from typing import Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential

from autoblog.config import settings

logger = logging.getLogger(__name__)


def image_style_for_niche(niche: str) -> str:
    """Visual style hint matched to the site's niche."""
    n = niche.lower()
    styles = [
        (r"food|restaurant|cook|recipe|bak", "appetizing professional food photography, warm lighting"),
        (r"fashion|beauty|cosmetic|skincare", "clean editorial photography, soft natural lighting"),
        (r"tech|saas|software|\bai\b|developer|coding|startup", "clean modern flat illustration, minimal tech aesthetic"),
        (r"health|fitness|medical|wellness|yoga", "bright clean lifestyle photography, natural and uplifting"),
        (r"finance|banking|invest|insurance|accounting|invoic", "professional corporate illustration, trustworthy blue palette"),
        (r"travel|hotel|tourism|adventure", "vivid landscape photography, cinematic composition"),
        (r"education|learning|school|course|tutoring", "friendly modern illustration, approachable and colorful"),
        (r"real.?estate|property|home|interior", "professional architectural photography, bright interiors"),
        (r"marketing|seo|content|social.?media|agency", "clean flat illustration with bold accent colors"),
        (r"ecommerce|shop|retail|product", "clean product photography on a minimal background"),
    ]
    for pattern, style in styles:
        if re.search(pattern, n):
            return style
    return "clean professional illustration, modern and relevant to the topic"


class ImageService:
    """Client for an OpenAI-compatible image generation endpoint."""

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.IMAGE_API_KEY
        self.base_url = settings.IMAGE_BASE_URL
        self.model = settings.IMAGE_MODEL
        self.size = settings.IMAGE_SIZE
        self.timeout = settings.IMAGE_TIMEOUT_SECONDS

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def generate_featured(
        self,
        prompt: str,
        slug: str,
        site_id: str,
        title: str = "",
        keyword: str = "",
        niche: str = "",
    ) -> str:
        """
        Generate a featured image and return its URL.

        Raises:
            httpx.HTTPError: On API errors after retries
            ValueError: If the response carries no image URL
        """
        full_prompt = f"{prompt}\nStyle: {image_style_for_niche(niche)}."
        if title:
            full_prompt += f'\nArticle title: "{title}".'
        if keyword:
            full_prompt += f'\nTopic keyword: "{keyword}".'

        logger.info(f"Generating featured image for {site_id}/{slug}")
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(
                f"{self.base_url}/images/generations",
                headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
                json={
                    "model": self.model,
                    "prompt": full_prompt,
                    "size": self.size,
                    "n": 1,
                    "user": f"{site_id}:{slug}",
                },
            )
            response.raise_for_status()
            data = response.json().get("data") or []

        if not data or not data[0].get("url"):
            raise ValueError("Image API returned no image URL")
        return data[0]["url"]
