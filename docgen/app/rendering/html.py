"""
HTML render engine.

Jinja2 with autoescape. Embedded assets are exposed as ``data:`` URIs:

    <img src="{{ assets.logo }}" alt="Logo" />
"""

import base64
import logging
from pathlib import Path
from typing import Any, Mapping

from jinja2 import TemplateError

from docgen.app.errors import RenderFailed
from docgen.app.rendering.engine import build_context, load_template, sniff_media_type

logger = logging.getLogger(__name__)


def to_data_uri(payload: bytes) -> str:
    media_type, _ = sniff_media_type(payload)
    encoded = base64.b64encode(payload).decode("ascii")
    return f"data:{media_type};base64,{encoded}"


class HtmlEngine:
    def __init__(self, template_root: Path) -> None:
        self.template_root = Path(template_root)

    def render(
        self,
        *,
        template: str,
        bindings: Mapping[str, Any],
        assets: Mapping[str, bytes],
    ) -> bytes:
        jinja_template = load_template(
            template,
            self.template_root,
            autoescape=True,
        )

        data_uris = {name: to_data_uri(payload) for name, payload in assets.items()}

        try:
            html = jinja_template.render(build_context(bindings, data_uris))
        except TemplateError as exc:
            raise RenderFailed(f"HTML template rendering failed: {exc}") from exc

        logger.debug("HTML document rendered (%d characters)", len(html))
        return html.encode("utf-8")
