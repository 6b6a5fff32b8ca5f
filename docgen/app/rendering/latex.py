"""
LaTeX PDF render engine.

Transforms a Jinja2-templated LaTeX source plus variable bindings into a
PDF using LuaLaTeX.

Design guarantees:
- Deterministic template rendering (Jinja2 + StrictUndefined)
- LaTeX-safe Jinja delimiters: \\VAR{...}, \\BLOCK{...}, \\#{...}
- No shell escape or external execution from within the document
- Compilation halted on LaTeX errors
- Embedded assets are written next to the .tex source so that
  \\includegraphics{\\VAR{assets.logo}} resolves them

Each render runs in its own temporary directory, so concurrent renders
never share intermediate files.
"""

import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Dict, Mapping

from jinja2 import TemplateError

from docgen.app.errors import RenderFailed
from docgen.app.rendering.engine import asset_filename, build_context, load_template

logger = logging.getLogger(__name__)


class LatexPdfEngine:
    def __init__(
        self,
        template_root: Path,
        *,
        timeout: float = 60.0,
        executable: str = "lualatex",
    ) -> None:
        self.template_root = Path(template_root)
        self.timeout = timeout
        self.executable = executable

    def render(
        self,
        *,
        template: str,
        bindings: Mapping[str, Any],
        assets: Mapping[str, bytes],
    ) -> bytes:
        """
        Render and compile ``template`` into PDF bytes.

        IMPORTANT INVARIANTS:
        - Bindings are passed through verbatim.
        - On any failure, RenderFailed is raised.
        """

        # ------------------------------------------------------------------
        # Jinja template rendering (deterministic)
        # ------------------------------------------------------------------
        jinja_template = load_template(
            template,
            self.template_root,
            block_start_string=r"\BLOCK{",
            block_end_string="}",
            variable_start_string=r"\VAR{",
            variable_end_string="}",
            comment_start_string=r"\#{",
            comment_end_string="}",
            autoescape=False,
        )

        with tempfile.TemporaryDirectory(prefix="docgen-latex-") as tmp:
            outdir = Path(tmp)

            asset_files: Dict[str, str] = {}
            for name, payload in assets.items():
                filename = asset_filename(name, payload)
                (outdir / filename).write_bytes(payload)
                asset_files[name] = filename

            try:
                rendered_tex = jinja_template.render(
                    build_context(bindings, asset_files)
                )
            except TemplateError as exc:
                raise RenderFailed(f"LaTeX template rendering failed: {exc}") from exc

            tex_file = outdir / "document.tex"
            tex_file.write_text(rendered_tex, encoding="utf-8")

            # --------------------------------------------------------------
            # LuaLaTeX invocation (strict, sandboxed)
            # --------------------------------------------------------------
            self._compile(tex_file, template_dir=Path(jinja_template.filename or "").parent)

            pdf_file = outdir / "document.pdf"
            if not pdf_file.exists():
                raise RenderFailed(
                    "LuaLaTeX reported success, but no PDF output was produced."
                )

            return pdf_file.read_bytes()

    def _compile(self, tex_file: Path, *, template_dir: Path) -> None:
        outdir = tex_file.parent
        command = [
            self.executable,
            "-interaction=nonstopmode",
            "-halt-on-error",
            "-no-shell-escape",
            f"-output-directory={outdir}",
            tex_file.name,
        ]

        env_vars = os.environ.copy()
        existing_texinputs = env_vars.get("TEXINPUTS", "")
        # Trailing separator keeps the TeX default search path.
        env_vars["TEXINPUTS"] = os.pathsep.join(
            [
                str(template_dir),
                str(self.template_root.resolve()),
                existing_texinputs,
            ]
        )

        try:
            process = subprocess.run(
                command,
                cwd=outdir,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
                env=env_vars,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            raise RenderFailed(f"Failed to invoke LuaLaTeX: {exc}") from exc

        if process.returncode != 0:
            stdout = process.stdout.decode("utf-8", errors="ignore")
            stderr = process.stderr.decode("utf-8", errors="ignore")
            logger.error(
                "LuaLaTeX compilation failed (exit code %d)", process.returncode
            )
            raise RenderFailed(
                "LuaLaTeX compilation failed.\n\n"
                "STDOUT:\n"
                f"{stdout}\n\n"
                "STDERR:\n"
                f"{stderr}"
            )
