# SPDX-FileCopyrightText: 2025 Sequent Tech Inc <legal@sequentech.io>
#
# SPDX-License-Identifier: MIT

"""Template rendering utilities using Jinja2."""

from typing import Dict, Any
from jinja2 import Template, TemplateSyntaxError, UndefinedError, StrictUndefined


class TemplateError(Exception):
    """Exception raised for template-related errors."""
    pass


def render_template(template_str: str, context: Dict[str, Any]) -> str:
    """
    Render a Jinja2 template with the given context.

    Args:
        template_str: Jinja2 template string using {{ variable }} syntax
        context: Dictionary of variables available to the template

    Returns:
        Rendered template string, without trailing whitespace

    Raises:
        TemplateError: If template syntax is invalid or uses undefined variables
    """
    try:
        # Use StrictUndefined to raise errors for undefined variables
        template = Template(template_str, undefined=StrictUndefined)
        return template.render(**context).rstrip()
    except TemplateSyntaxError as e:
        raise TemplateError(f"Invalid template syntax: {e}")
    except UndefinedError as e:
        raise TemplateError(f"Template uses undefined variable: {e}")


def build_release_context(
    version: str,
    branch: str,
    tag: str,
    remote_url: str = ""
) -> Dict[str, Any]:
    """
    Build the variables available to message templates.

    Returns:
        Dictionary with version, major, minor, patch, branch, tag and remote_url
    """
    major, minor, patch = version.split('.')
    return {
        'version': version,
        'major': major,
        'minor': minor,
        'patch': patch,
        'branch': branch,
        'tag': tag,
        'remote_url': remote_url,
    }
