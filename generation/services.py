"""Image generation services - vendor client selection and lifecycle."""
from typing import List, Optional, Union

from config import Config
from common.exceptions import RelayError
from generation.http_client import RunwareHttpClient
from generation.models import GenerateRequest
from generation.socket_client import RunwareSocketClient
from utils.logger import get_logger

logger = get_logger("generation.services")

ImageGenerator = Union[RunwareHttpClient, RunwareSocketClient]

# One vendor client per process; the websocket variant owns the only socket
_generator: Optional[ImageGenerator] = None


def create_generator(transport: Optional[str] = None) -> ImageGenerator:
    """Build a vendor client for the given transport ("http" or "websocket")."""
    transport = (transport or Config.VENDOR_TRANSPORT).lower()
    if transport == "websocket":
        return RunwareSocketClient()
    if transport != "http":
        logger.warning(f"Unknown VENDOR_TRANSPORT '{transport}', falling back to http")
    return RunwareHttpClient()


def get_generator() -> ImageGenerator:
    """FastAPI dependency returning the process-wide vendor client."""
    global _generator
    if _generator is None:
        _generator = create_generator()
        logger.info(f"Using Runware {_generator.transport_name} transport")
    return _generator


def current_generator() -> Optional[ImageGenerator]:
    """The vendor client if one was created, without creating it."""
    return _generator


async def generate_images(req: GenerateRequest, generator: ImageGenerator) -> List[str]:
    """Forward a validated request to the vendor and return the image URLs."""
    prompt = req.prompt or ""
    logger.info(
        f"Generation request: model={req.model} size={req.width}x{req.height} "
        f"steps={req.steps} cfg={req.cfg_scale} n={req.number_results} "
        f"prompt={prompt[:50]}{'...' if len(prompt) > 50 else ''}"
    )
    try:
        urls = await generator.generate_image(req)
    except RelayError as e:
        logger.error(f"Generation failed via {generator.transport_name}: {e.message}")
        raise
    logger.info(f"Generation succeeded with {len(urls)} image(s)")
    return urls


async def warm_up_generator() -> None:
    """Open the vendor socket at startup; a failure is logged and the app keeps serving."""
    if Config.VENDOR_TRANSPORT != "websocket":
        return
    if not Config.RUNWARE_API_KEY:
        logger.warning("RUNWARE_API_KEY not set, skipping Runware connection at startup")
        return
    generator = get_generator()
    try:
        await generator.connect()
    except RelayError as e:
        logger.error(f"Could not connect to Runware at startup: {e.message}")


async def shutdown_generator() -> None:
    global _generator
    if _generator is not None:
        await _generator.close()
        _generator = None
