"""
Render engine registry.

This module defines the set of output formats that may be generated by
the engine. Each entry explicitly binds together:

- an output format
- a factory building the render engine from settings
- a human-readable description

Formats must be registered here to be renderable. There is no plugin
discovery.
"""

from typing import Callable, Dict

from pydantic import BaseModel, ConfigDict

from docgen.app.config import Settings
from docgen.app.rendering.engine import RenderEngine
from docgen.app.rendering.html import HtmlEngine
from docgen.app.rendering.latex import LatexPdfEngine
from docgen.app.rendering.text import TextEngine
from docgen.app.schemas.generation import DocumentFormat


class EngineEntry(BaseModel):
    """Declarative description of a render engine."""

    format: DocumentFormat
    factory: Callable[[Settings], RenderEngine]
    description: str

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)


ENGINE_REGISTRY: Dict[DocumentFormat, EngineEntry] = {
    DocumentFormat.PDF: EngineEntry(
        format=DocumentFormat.PDF,
        factory=lambda settings: LatexPdfEngine(
            settings.template_dir,
            timeout=settings.lualatex_timeout,
        ),
        description=(
            "Jinja2-templated LaTeX source compiled with LuaLaTeX. "
            "Embedded assets are written next to the .tex file."
        ),
    ),
    DocumentFormat.HTML: EngineEntry(
        format=DocumentFormat.HTML,
        factory=lambda settings: HtmlEngine(settings.template_dir),
        description="Jinja2 HTML with autoescape. Assets become data URIs.",
    ),
    DocumentFormat.TXT: EngineEntry(
        format=DocumentFormat.TXT,
        factory=lambda settings: TextEngine(settings.template_dir),
        description="Jinja2 plain text, UTF-8 encoded.",
    ),
}


def build_render_engines(settings: Settings) -> Dict[DocumentFormat, RenderEngine]:
    return {fmt: entry.factory(settings) for fmt, entry in ENGINE_REGISTRY.items()}
