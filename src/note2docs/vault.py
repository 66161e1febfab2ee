"""Filesystem-backed vault resolution and a local asset store."""

from __future__ import annotations

import asyncio
import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Dict, Optional

LOG = logging.getLogger("note2docs")


@dataclass(frozen=True)
class Asset:
    path: str
    name: str
    basename: str
    extension: str


def _asset_from_relpath(relpath: str) -> Asset:
    pure = PurePosixPath(relpath)
    return Asset(path=relpath, name=pure.name, basename=pure.stem, extension=pure.suffix.lstrip(".").lower())


def normalize_link_path(p: str) -> str:
    p = p.replace("\\", "/").strip()
    p = p.split("#", 1)[0]
    return p.lstrip("/")


class FileVault:
    """Resolve links the way a note vault does.

    Lookup order: relative to the linking note, then vault-root relative, then
    the first file in the vault with the same name (shortest path wins).
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root).resolve()
        self._by_name: Optional[Dict[str, str]] = None

    def _relpath(self, path: Path) -> Optional[str]:
        try:
            return path.resolve().relative_to(self.root).as_posix()
        except ValueError:
            return None

    def _index(self) -> Dict[str, str]:
        if self._by_name is None:
            index: Dict[str, str] = {}
            candidates = sorted(
                (p for p in self.root.rglob("*") if p.is_file()),
                key=lambda p: (len(p.relative_to(self.root).parts), p.as_posix()),
            )
            for candidate in candidates:
                index.setdefault(candidate.name.lower(), candidate.relative_to(self.root).as_posix())
            self._by_name = index
        return self._by_name

    def resolve_asset(self, path: str, context_path: str) -> Optional[Asset]:
        link = normalize_link_path(path)
        if not link:
            return None
        context_dir = PurePosixPath(normalize_link_path(context_path)).parent
        for candidate in (self.root / context_dir.as_posix() / link, self.root / link):
            if candidate.is_file():
                rel = self._relpath(candidate)
                if rel is not None:
                    return _asset_from_relpath(rel)
        found = self._index().get(PurePosixPath(link).name.lower())
        if found is None:
            LOG.debug("Vault lookup failed for %s (from %s)", path, context_path)
            return None
        return _asset_from_relpath(found)

    async def read_binary(self, asset: Asset) -> bytes:
        return await asyncio.to_thread((self.root / asset.path).read_bytes)

    async def read_text(self, path: str) -> str:
        return await asyncio.to_thread((self.root / path).read_text, encoding="utf-8")


def slugify_filename(name: str) -> str:
    name = name.strip().replace(" ", "_")
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", name)
    return name or "asset"


def unique_target(path: Path) -> Path:
    if not path.exists():
        return path
    stem, suffix = path.stem, path.suffix
    i = 1
    while True:
        candidate = path.with_name(f"{stem}__{i}{suffix}")
        if not candidate.exists():
            return candidate
        i += 1


class DirectoryAssetStore:
    """``store_asset`` implementation that copies assets into an output folder.

    Returned locators are relative to ``base_dir`` so the HTML stays portable.
    """

    def __init__(self, assets_dir: Path, base_dir: Optional[Path] = None) -> None:
        self.assets_dir = Path(assets_dir)
        self.base_dir = Path(base_dir) if base_dir is not None else self.assets_dir.parent
        self._lock = threading.Lock()

    def _write(self, data: bytes, name: str) -> Path:
        self.assets_dir.mkdir(parents=True, exist_ok=True)
        with self._lock:
            target = unique_target(self.assets_dir / slugify_filename(name))
            target.write_bytes(data)
        return target

    async def __call__(self, data: bytes, name: str, mime_type: str) -> str:
        target = await asyncio.to_thread(self._write, data, name)
        LOG.info("Stored asset %s (%s, %d bytes)", target.name, mime_type, len(data))
        try:
            return target.relative_to(self.base_dir).as_posix()
        except ValueError:
            return target.as_posix()
