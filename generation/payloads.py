"""Translation between GenerateRequest and the Runware payload shapes."""
from typing import Any, Dict, List

from common.exceptions import VendorResponseError
from generation.models import GenerateRequest


def build_http_payload(req: GenerateRequest) -> Dict[str, Any]:
    """JSON body for POST {RUNWARE_HTTP_URL}/image/generate."""
    payload: Dict[str, Any] = {
        "prompt": req.prompt,
        "model": req.model,
        "width": req.width,
        "height": req.height,
        "steps": req.steps,
        "cfg_scale": req.cfg_scale,
        "number_results": req.number_results,
    }
    if req.negative_prompt:
        payload["negative_prompt"] = req.negative_prompt
    if req.loras:
        payload["loras"] = [{"model": lora.model, "weight": lora.weight} for lora in req.loras]
    return payload


def build_socket_message(req: GenerateRequest) -> Dict[str, Any]:
    """Socket "generate" message; the correlation id is added by the client."""
    return {
        "type": "generate",
        "payload": {
            "prompt": req.prompt,
            "negative_prompt": req.negative_prompt,
            "model": req.model,
            "width": req.width,
            "height": req.height,
            "steps": req.steps,
            "cfg_scale": req.cfg_scale,
            "batch_size": req.number_results,
            "loras": [{"model": lora.model, "weight": lora.weight} for lora in req.loras],
        },
    }


def _url_of(item: Any) -> Any:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        return item.get("url") or item.get("imageURL")
    return None


def extract_image_urls(payload: Any) -> List[str]:
    """
    Pull image URLs out of a vendor reply.

    The vendor has answered with several shapes over time:
      {"imageURLs": ["..."]}
      {"images": ["..."]} or {"images": [{"url": "..."}]}
      {"imageURL": "..."}
      {"data": [{"imageURL": "..."}]}
    and socket results wrap any of these in {"payload": {...}}.
    """
    if not isinstance(payload, dict):
        raise VendorResponseError("reply is not a JSON object", details=payload)

    if isinstance(payload.get("imageURLs"), list):
        urls = [u for u in payload["imageURLs"] if isinstance(u, str) and u]
    elif isinstance(payload.get("images"), list):
        urls = [u for u in (_url_of(i) for i in payload["images"]) if u]
    elif isinstance(payload.get("imageURL"), str) and payload["imageURL"]:
        urls = [payload["imageURL"]]
    elif isinstance(payload.get("data"), list):
        urls = [u for u in (_url_of(i) for i in payload["data"]) if u]
    elif isinstance(payload.get("payload"), dict):
        return extract_image_urls(payload["payload"])
    else:
        urls = []

    if not urls:
        raise VendorResponseError("no image URLs in reply", details=payload)
    return urls
