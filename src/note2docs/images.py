"""Post-render resolution of extracted image embeds."""

from __future__ import annotations

import asyncio
import base64
import html
import inspect
import logging
import re
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple, Union

from .errors import AssetNotFoundError, AssetProcessingError
from .placeholders import ImageExtraction
from .rasterize import RasterBackend, rasterize_svg

LOG = logging.getLogger("note2docs")

IMAGE_BATCH_SIZE = 5
IMAGE_MODE_UPLOAD = "upload"
IMAGE_MODE_EMBED = "embed"
IMAGE_MODES = (IMAGE_MODE_UPLOAD, IMAGE_MODE_EMBED)

MIME_ALIASES = {"image/jpg": "image/jpeg"}

StoreAsset = Callable[[bytes, str, str], Union[str, Awaitable[str]]]


def not_found_marker(vault_path: str) -> str:
    return f"<em>[Image not found: {html.escape(vault_path)}]</em>"


def failure_marker(vault_path: str) -> str:
    return f"<em>[Failed to process: {html.escape(vault_path)}]</em>"


def normalize_mime_type(mime_type: str) -> str:
    mime_type = mime_type.lower()
    return MIME_ALIASES.get(mime_type, mime_type)


def data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def build_img_tag(src: str, alt: str, width: Optional[str]) -> str:
    tag = f'<img src="{html.escape(src, quote=True)}" alt="{html.escape(alt, quote=True)}"'
    if width:
        tag += f' width="{width}"'
    return tag + ' style="max-width:100%;">'


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def _process_image(
    img: ImageExtraction,
    vault: Any,
    context_path: str,
    image_mode: str,
    store_asset: Optional[StoreAsset],
    rasterizer: Optional[RasterBackend],
) -> str:
    asset = vault.resolve_asset(img.vault_path, context_path)
    if asset is None:
        raise AssetNotFoundError(img.vault_path)

    data = await vault.read_binary(asset)
    mime_type = "image/png" if img.is_svg else f"image/{asset.extension}"
    file_name = asset.name

    if img.is_svg:
        data = await asyncio.to_thread(rasterize_svg, data, rasterizer)
        file_name = re.sub(r"\.svg$", ".png", file_name, flags=re.IGNORECASE)

    mime_type = normalize_mime_type(mime_type)

    if image_mode == IMAGE_MODE_EMBED:
        src = data_uri(data, mime_type)
    else:
        if store_asset is None:
            raise AssetProcessingError("store_asset is required in upload mode")
        src = await _maybe_await(store_asset(data, file_name, mime_type))

    return build_img_tag(src, img.alt or asset.basename, img.width)


async def _resolve_one(
    img: ImageExtraction,
    vault: Any,
    context_path: str,
    image_mode: str,
    store_asset: Optional[StoreAsset],
    rasterizer: Optional[RasterBackend],
) -> Tuple[ImageExtraction, str]:
    try:
        tag = await _process_image(img, vault, context_path, image_mode, store_asset, rasterizer)
    except AssetNotFoundError:
        LOG.warning("Image not found in vault: %s", img.vault_path)
        return img, not_found_marker(img.vault_path)
    except Exception as exc:
        LOG.error("Failed to process image %s: %s", img.vault_path, exc)
        LOG.debug("Image failure details for %s", img.vault_path, exc_info=exc)
        return img, failure_marker(img.vault_path)
    return img, tag


def replace_image_placeholder(html_text: str, placeholder: str, tag: str) -> str:
    # A block-level embed arrives wrapped in its own paragraph; replace the
    # wrapper too so paragraph styling is not applied around the image.
    block = f"<p>{placeholder}</p>"
    if block in html_text:
        return html_text.replace(block, tag)
    return html_text.replace(placeholder, tag)


async def resolve_images(
    html_text: str,
    images: Sequence[ImageExtraction],
    vault: Any,
    context_path: str,
    *,
    image_mode: str = IMAGE_MODE_UPLOAD,
    store_asset: Optional[StoreAsset] = None,
    rasterizer: Optional[RasterBackend] = None,
) -> str:
    """Swap image placeholders for ``<img>`` tags or visible failure markers.

    Images run concurrently in batches of ``IMAGE_BATCH_SIZE``; batches run
    one after another.
    """
    if image_mode not in IMAGE_MODES:
        raise ValueError(f"Unknown image mode: {image_mode}")

    result = html_text
    total = len(images)
    for start in range(0, total, IMAGE_BATCH_SIZE):
        batch: List[ImageExtraction] = list(images[start : start + IMAGE_BATCH_SIZE])
        LOG.info("Resolving images %d-%d of %d", start + 1, start + len(batch), total)
        resolved = await asyncio.gather(
            *(_resolve_one(img, vault, context_path, image_mode, store_asset, rasterizer) for img in batch)
        )
        for img, tag in resolved:
            result = replace_image_placeholder(result, img.placeholder, tag)
    return result
