"""
Template rendering for generated projects.

Wraps a jinja2 environment holding named template strings. Build manifests,
source stubs and shell launchers all go through the same renderer, so a
template only ever sees the context its provider passes in.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from jinja2 import DictLoader, Environment, StrictUndefined, TemplateError
from pydantic import BaseModel

from .errors import RenderError

logger = logging.getLogger(__name__)


def context_to_dict(context: BaseModel | Mapping[str, Any]) -> dict[str, Any]:
    """Convert a template context into a plain dict."""
    if isinstance(context, BaseModel):
        return context.model_dump(mode="json")
    if isinstance(context, Mapping):
        return dict(context)
    raise TypeError(f"Template context must be a pydantic model or mapping, not {type(context)}")


class TemplateRenderer:
    """
    Renders named template strings against a serializable context.

    Undefined variables raise instead of rendering as empty strings, and
    output is never HTML-escaped: templates produce JSON, Elixir, JavaScript
    and shell, not markup.
    """

    def __init__(self) -> None:
        self._templates: dict[str, str] = {}
        self.jinja_env = Environment(
            loader=DictLoader(self._templates),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )

    def add_template(self, name: str, source: str) -> None:
        """
        Register a template string under a name.

        Args:
            name: Template name, used when rendering and in error messages
            source: Template body

        Raises:
            RenderError: If the template does not compile
        """
        try:
            self.jinja_env.parse(source)
        except TemplateError as e:
            raise RenderError(name, str(e)) from e
        self._templates[name] = source

    def has_template(self, name: str) -> bool:
        return name in self._templates

    def render(self, name: str, context: BaseModel | Mapping[str, Any]) -> str:
        """
        Render a registered template.

        Args:
            name: Template name
            context: Pydantic model or mapping exposed to the template

        Returns:
            Rendered text

        Raises:
            RenderError: If the template is unknown or fails to render
        """
        if name not in self._templates:
            raise RenderError(name, "template not found")
        try:
            template = self.jinja_env.get_template(name)
            rendered = template.render(**context_to_dict(context))
        except TemplateError as e:
            raise RenderError(name, str(e)) from e
        logger.debug("Rendered %s (%d bytes)", name, len(rendered))
        return rendered
