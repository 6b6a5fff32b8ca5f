"""
Render engine contract and shared template helpers.

RENDERING CONTRACT:

Callers supply:
- template:  a resolved local path (cache entry or absolute file) or a
             bare path looked up under the configured template root
- bindings:  client-supplied variable data, passed through verbatim
- assets:    embedded binary payloads (e.g. decoded images) by name

Engines expose assets to templates under the ``assets`` context key.
Bindings must not define ``assets`` themselves.

Engines return the rendered document as bytes and raise RenderFailed on
any failure.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, Mapping, Protocol, Tuple

from jinja2 import BaseLoader, Environment, FileSystemLoader, StrictUndefined, Template
from jinja2 import TemplateError

from docgen.app.errors import RenderFailed

ASSETS_CONTEXT_KEY = "assets"

_ASSET_NAME_RE = re.compile(r"^[A-Za-z0-9_.\-]{1,128}$")

_MAGIC_NUMBERS: Tuple[Tuple[bytes, str, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", "image/png", ".png"),
    (b"\xff\xd8\xff", "image/jpeg", ".jpg"),
    (b"GIF87a", "image/gif", ".gif"),
    (b"GIF89a", "image/gif", ".gif"),
    (b"%PDF-", "application/pdf", ".pdf"),
)


class RenderEngine(Protocol):
    def render(
        self,
        *,
        template: str,
        bindings: Mapping[str, Any],
        assets: Mapping[str, bytes],
    ) -> bytes:
        ...


# ----------------------------------------------------------------------
# Template lookup
# ----------------------------------------------------------------------


def locate_template(template: str, template_root: Path) -> Path:
    """
    Find the template file on disk.

    Absolute paths (resolved cache entries, copied files) are used as-is.
    Bare paths are looked up under ``template_root`` and must stay inside
    it.
    """
    candidate = Path(template)
    root = template_root.resolve()

    if not candidate.is_absolute():
        candidate = (root / candidate).resolve()
        try:
            candidate.relative_to(root)
        except ValueError:
            raise RenderFailed(
                f"Template path escapes the template root: {template}"
            ) from None

    if not candidate.is_file():
        raise RenderFailed(f"Template not found: {template}")

    return candidate


def load_template(
    template: str,
    template_root: Path,
    **environment_options: Any,
) -> Template:
    """
    Compile ``template`` with a Jinja2 environment that can also include
    siblings of the template file and files under ``template_root``.
    """
    path = locate_template(template, template_root)

    loader: BaseLoader = FileSystemLoader(
        [str(path.parent), str(template_root.resolve())]
    )
    environment_options.setdefault("undefined", StrictUndefined)
    env = Environment(loader=loader, **environment_options)

    try:
        return env.get_template(path.name)
    except TemplateError as exc:
        raise RenderFailed(f"Failed to compile template {path.name}: {exc}") from exc


def build_context(
    bindings: Mapping[str, Any],
    engine_assets: Any,
) -> Dict[str, Any]:
    if ASSETS_CONTEXT_KEY in bindings:
        raise RenderFailed(
            f"Render context collision on key '{ASSETS_CONTEXT_KEY}'. "
            "Bindings must not override engine-supplied assets."
        )
    context: Dict[str, Any] = dict(bindings)
    context[ASSETS_CONTEXT_KEY] = engine_assets
    return context


# ----------------------------------------------------------------------
# Assets
# ----------------------------------------------------------------------


def sniff_media_type(payload: bytes) -> Tuple[str, str]:
    """Return ``(media_type, extension)`` from leading magic bytes."""
    for magic, media_type, extension in _MAGIC_NUMBERS:
        if payload.startswith(magic):
            return media_type, extension
    return "application/octet-stream", ""


def asset_filename(name: str, payload: bytes) -> str:
    """
    Safe on-disk file name for an asset.

    Names are restricted to a conservative character set; an extension
    is added from the payload's magic bytes when the name has none.
    """
    if not _ASSET_NAME_RE.match(name) or name.startswith("."):
        raise RenderFailed(f"Invalid embedded asset name: {name!r}")

    if Path(name).suffix:
        return name
    return name + sniff_media_type(payload)[1]
