"""Placeholder substitution for stub response bodies."""

from __future__ import annotations

from string import Template
from typing import Mapping


class BracedTemplate(Template):
    """``string.Template`` that only recognises the ``${name}`` form.

    Bare ``$name`` and ``$$`` are passed through untouched.
    """

    pattern = r"""
    \$(?:
      (?P<escaped>(?!))               |
      (?P<named>(?!))                 |
      {(?P<braced>[_a-z][_a-z0-9]*)}  |
      (?P<invalid>(?!))
    )
    """


def render_template(body: str, variables: Mapping[str, str]) -> str:
    """Substitute ``${name}`` placeholders in a single pass.

    Unknown names are left literal.
    """

    if "${" not in body:
        return body
    return BracedTemplate(body).safe_substitute(variables)
