"""
Sanity image URL building

Asset refs look like ``image-<id>-<W>x<H>-<ext>`` and map onto the image CDN.
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from config import get_settings

CDN_BASE = "https://cdn.sanity.io/images"
REF_PATTERN = re.compile(r"^image-(?P<id>[A-Za-z0-9]+)-(?P<w>\d+)x(?P<h>\d+)-(?P<ext>[a-z0-9]+)$")


@dataclass
class BuiltImage:
    url: str
    blur_data_url: Optional[str] = None
    object_position: str = "center"
    width: Optional[int] = None
    height: Optional[int] = None


def _asset_ref(source: Any) -> Optional[str]:
    if isinstance(source, str):
        return source
    if not isinstance(source, dict):
        return None
    asset = source.get("asset") or {}
    return asset.get("_ref") or asset.get("_id")


def urlfor(
    source: Any,
    width: Optional[int] = None,
    height: Optional[int] = None,
    quality: Optional[int] = None,
    auto_format: bool = True,
    project_id: Optional[str] = None,
    dataset: Optional[str] = None,
) -> Optional[str]:
    """CDN URL for an image reference, or None when it cannot be parsed"""
    ref = _asset_ref(source)
    match = REF_PATTERN.match(ref or "")
    if not match:
        return None
    settings = get_settings()
    project_id = project_id or settings.sanity_project_id
    dataset = dataset or settings.sanity_dataset
    if not project_id:
        return None

    url = f"{CDN_BASE}/{project_id}/{dataset}/{match['id']}-{match['w']}x{match['h']}.{match['ext']}"
    params = []
    if width is not None:
        params.append(("w", int(width)))
    if height is not None:
        params.append(("h", int(height)))
    if quality is not None:
        params.append(("q", int(quality)))
    if auto_format:
        params.append(("auto", "format"))
    return f"{url}?{urlencode(params)}" if params else url


def blur_url(source: Any) -> Optional[str]:
    """Tiny low-quality variant used as a blur placeholder"""
    return urlfor(source, width=20, quality=20)


def object_position(img: Dict[str, Any]) -> str:
    hotspot = img.get("hotspot")
    if not hotspot:
        return "center"
    x = hotspot.get("x")
    y = hotspot.get("y")
    x = 0.5 if x is None else x
    y = 0.5 if y is None else y
    return f"{x * 100:g}% {y * 100:g}%"


def build_image(
    img: Optional[Dict[str, Any]],
    width: Optional[int] = None,
    height: Optional[int] = None,
    quality: Optional[int] = None,
) -> Optional[BuiltImage]:
    if not img:
        return None
    asset = img.get("asset") or {}

    url = None
    if asset.get("_ref"):
        url = urlfor(img, width=width, height=height, quality=quality)
    url = url or asset.get("url")
    if not url:
        return None

    metadata = asset.get("metadata") or {}
    dims = metadata.get("dimensions") or {}
    w = dims.get("width")
    h = dims.get("height")
    return BuiltImage(
        url=url,
        blur_data_url=metadata.get("lqip") or None,
        object_position=object_position(img),
        width=w if isinstance(w, (int, float)) else None,
        height=h if isinstance(h, (int, float)) else None,
    )
