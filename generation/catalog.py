"""Static model and size lists offered to the WebApp."""
from typing import Dict, List, Any


MODELS: Dict[str, str] = {
    "FLUX Dev": "runware:101@1",
    "FLUX Realistic": "runware:18838@1",
    "FLUX Fantasy": "runware:18839@1",
    "FLUX Anime": "runware:18840@1",
}

SIZES: Dict[str, List[int]] = {
    "512x512": [512, 512],
    "768x768": [768, 768],
    "1024x1024": [1024, 1024],
    "512x768": [512, 768],
    "768x512": [768, 512],
}

DEFAULT_SETTINGS: Dict[str, Any] = {
    "model": "runware:101@1",
    "model_name": "FLUX Dev",
    "width": 512,
    "height": 512,
    "size_name": "512x512",
    "steps": 30,
    "cfg_scale": 7.5,
    "number_results": 1,
    "prompt": "",
    "loras": [],
}
