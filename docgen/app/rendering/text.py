from pathlib import Path
from typing import Any, Mapping

from jinja2 import TemplateError

from docgen.app.errors import RenderFailed
from docgen.app.rendering.engine import build_context, load_template


class TextEngine:
    """Plain-text render engine (Jinja2, no autoescape, UTF-8 output)."""

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
            autoescape=False,
            keep_trailing_newline=True,
        )

        # Plain text cannot embed binaries; templates only see asset names.
        names = {name: name for name in assets}

        try:
            text = jinja_template.render(build_context(bindings, names))
        except TemplateError as exc:
            raise RenderFailed(f"Text template rendering failed: {exc}") from exc

        return text.encode("utf-8")
