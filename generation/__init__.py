"""Image generation module."""
from generation.catalog import MODELS, SIZES, DEFAULT_SETTINGS
from generation.models import GenerateRequest, GenerateResponse, LoraWeight
from generation.payloads import build_http_payload, build_socket_message, extract_image_urls
from generation.http_client import RunwareHttpClient
from generation.socket_client import RunwareSocketClient
from generation.services import get_generator, generate_images

__all__ = [
    "MODELS",
    "SIZES",
    "DEFAULT_SETTINGS",
    "GenerateRequest",
    "GenerateResponse",
    "LoraWeight",
    "build_http_payload",
    "build_socket_message",
    "extract_image_urls",
    "RunwareHttpClient",
    "RunwareSocketClient",
    "get_generator",
    "generate_images"
]
