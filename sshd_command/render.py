"""
Template evaluation and the validate/check/render pipelines.

    validate: read -> split -> parse front matter -> validate
    render:   validate -> bind tokens -> resolve identity -> build context -> render body
    check:    render against placeholder arguments, output discarded
"""

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Union

from jinja2 import Environment, StrictUndefined, TemplateSyntaxError, UndefinedError

from sshd_command.context import build_context
from sshd_command.exceptions import RenderError
from sshd_command.frontmatter import FrontMatter, load_front_matter
from sshd_command.identity import (
    IdentityLookup,
    SystemIdentity,
    UserRecord,
    complete_user,
    resolve_hostname,
)
from sshd_command.loader import TemplateFile, read_template
from sshd_command.tokens import bind_tokens, placeholder_args


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def create_environment() -> Environment:
    """Jinja2 environment used for template bodies."""
    return Environment(
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_body(body: str, context: Mapping[str, Any], line_offset: int = 0) -> str:
    """
    Render a template body against a context.

    Args:
        body: Template source
        context: Render context
        line_offset: Lines preceding the body in its file, for error messages

    Raises:
        RenderError: On syntax errors, undefined variables or any failure
            raised while evaluating the template
    """
    env = create_environment()
    try:
        template = env.from_string(body)
        return template.render(context)
    except TemplateSyntaxError as e:
        line = (e.lineno or 0) + line_offset
        raise RenderError(f"syntax error at line {line}: {e.message}") from e
    except UndefinedError as e:
        raise RenderError(f"undefined variable: {e.message}") from e
    except Exception as e:
        raise RenderError(str(e)) from e


def _body_line_offset(template: TemplateFile) -> int:
    return (template.opening + template.front_matter_raw + template.closing).count("\n")


def validate_template(template_path: PathLike) -> FrontMatter:
    """
    Check that a template is well formed and compatible with this version.

    Reads no arguments and performs no identity lookups.
    """
    logger.debug(f"Validating template: {template_path}")
    template = read_template(template_path)
    return load_front_matter(template)


def _render(
    template: TemplateFile,
    front_matter: FrontMatter,
    args: Sequence[str],
    lookup: IdentityLookup
) -> str:
    bound = bind_tokens(front_matter.tokens, args)

    hostname = resolve_hostname(lookup) if front_matter.hostname else None

    user: Optional[UserRecord] = None
    if front_matter.complete_user:
        fields = bound.fields()
        user = complete_user(lookup, uid=fields.get('user.uid'), name=fields.get('user.name'))

    context = build_context(front_matter, bound, hostname=hostname, user=user)
    return render_body(template.body, context, line_offset=_body_line_offset(template))


def render_template(
    template_path: PathLike,
    args: Sequence[str],
    lookup: Optional[IdentityLookup] = None
) -> str:
    """
    Render a template for one sshd invocation.

    Args:
        template_path: Path to the template file
        args: Token values sshd passed after the template path
        lookup: Identity lookups, defaults to the local system databases

    Returns:
        Rendered output, complete or not at all
    """
    lookup = lookup if lookup is not None else SystemIdentity()
    logger.debug(f"Rendering template {template_path} with {len(args)} argument(s)")

    template = read_template(template_path)
    front_matter = load_front_matter(template)
    return _render(template, front_matter, args, lookup)


def check_template(
    template_path: PathLike,
    lookup: Optional[IdentityLookup] = None
) -> FrontMatter:
    """
    Validate a template and render it against placeholder arguments.

    Catches body errors (undefined variables, syntax errors) that validation
    alone cannot see. The current user stands in for %U/%u.
    """
    lookup = lookup if lookup is not None else SystemIdentity()
    logger.debug(f"Checking template: {template_path}")

    template = read_template(template_path)
    front_matter = load_front_matter(template)

    uid = os.getuid()
    entry = lookup.lookup_user(uid)
    username = entry.name if entry is not None else "unknown"

    args = placeholder_args(front_matter.tokens, uid=uid, username=username)
    _render(template, front_matter, args, lookup)
    return front_matter
