"""Image generation and catalog routes."""
from fastapi import APIRouter, Depends

from common.error_messages import ErrorCode
from common.exceptions import RelayError
from generation.catalog import MODELS, SIZES, DEFAULT_SETTINGS
from generation.models import GenerateRequest, GenerateResponse
from generation.services import ImageGenerator, get_generator, generate_images
from utils.logger import get_logger

logger = get_logger("generation")
router = APIRouter(prefix="/api", tags=["generation"])


@router.get("/models")
def list_models():
    """Available models, display name -> vendor model id."""
    return {"models": MODELS}


@router.get("/sizes")
def list_sizes():
    """Available sizes, name -> [width, height]."""
    return {"sizes": SIZES}


@router.get("/default-settings")
def default_settings():
    return {"settings": DEFAULT_SETTINGS}


@router.post("/generate", response_model=GenerateResponse)
async def generate(req: GenerateRequest, generator: ImageGenerator = Depends(get_generator)):
    """
    Generate images through the Runware API.

    Accepts:
      { prompt, model, width?, height?, steps?, cfg_scale?, number_results?,
        negative_prompt?, loras? }

    Returns { images: [url, ...] }; failures come back as { error: "..." }.
    """
    if not req.prompt or not req.prompt.strip():
        logger.warning("Rejected generation request without prompt")
        raise RelayError(code=ErrorCode.MISSING_PROMPT)
    if not req.model or not req.model.strip():
        logger.warning("Rejected generation request without model")
        raise RelayError(code=ErrorCode.MISSING_MODEL)

    images = await generate_images(req, generator)
    return {"images": images}
