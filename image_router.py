# backend/image_router.py

import base64
import logging

import requests
from fastapi import APIRouter, Depends

from auth import get_current_user
from config import settings
from errors import ConfigError, UpstreamError, ValidationError
from schemas import ImageRequest, ImageResponse, TokenData

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/image",
    tags=["image"]
)


def generate_image(prompt: str) -> ImageResponse:
    if not prompt or not prompt.strip():
        raise ValidationError("Prompt is required")
    if not settings.hf_api_key:
        raise ConfigError("HF_API_KEY is not set in .env")

    headers = {
        "Authorization": f"Bearer {settings.hf_api_key}",
        "Content-Type": "application/json",
    }
    try:
        r = requests.post(
            f"{settings.hf_url}/{settings.hf_image_model}",
            headers=headers,
            json={"inputs": prompt},
            timeout=settings.upstream_timeout,
        )
    except requests.exceptions.RequestException as e:
        logger.error("HF image error: %s", e)
        raise UpstreamError("Image generation failed", status_code=500)

    if not r.ok:
        # upstream body stays in the log
        logger.error("HF image error (%s): %s", r.status_code, r.text)
        raise UpstreamError("Image API failed", status_code=500)

    # HF returns raw image bytes
    encoded = base64.b64encode(r.content).decode("ascii")
    return ImageResponse(imageBase64=f"data:image/png;base64,{encoded}")


# ─── POST /api/image/generate ──────────────────────────────────────────────────
@router.post("/generate", response_model=ImageResponse)
def generate_image_route(
    body: ImageRequest,
    current_user: TokenData = Depends(get_current_user)
):
    return generate_image(body.prompt)
