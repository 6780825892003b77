"""Client for the hosted image-generation model behind ``/api/generate-design``."""

import base64
import logging

import httpx

import config
from errors import UpstreamError

logger = logging.getLogger(__name__)


def generate_design(image: bytes, style: str = "modern") -> str:
    """Send ``image`` to the inference endpoint and return a PNG ``data:`` URL."""
    headers = {
        "Authorization": f"Bearer {config.HF_API_KEY}",
        "Content-Type": "application/octet-stream",
    }
    logger.info(f"Requesting {style} design from {config.HF_MODEL_URL}")
    try:
        response = httpx.post(
            config.HF_MODEL_URL,
            headers=headers,
            content=image,
            timeout=config.HF_TIMEOUT_SECONDS,
        )
    except httpx.HTTPError as exc:
        logger.error(f"Design generation request failed: {exc}")
        raise UpstreamError("AI generation failed", details=str(exc)) from exc

    if response.status_code >= 400:
        logger.error(f"Design generation returned HTTP {response.status_code}")
        raise UpstreamError("AI generation failed", details=response.text)

    encoded = base64.b64encode(response.content).decode("ascii")
    return f"data:image/png;base64,{encoded}"
