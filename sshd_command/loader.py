"""Template file reading and front matter splitting."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

import yaml

from sshd_command.exceptions import (
    MalformedFrontMatter,
    SchemaError,
    TemplateNotFound,
    TemplateReadError,
)


logger = logging.getLogger(__name__)

SEPARATOR = "---"


class FrontMatterLoader(yaml.SafeLoader):
    """SafeLoader that only treats true/false as booleans, like YAML 1.2."""
    pass


# Drop the YAML 1.1 boolean resolver (yes/no/on/off/y/n) so values such as
# `on` or `no` in extra context fields reach the template as strings.
FrontMatterLoader.yaml_implicit_resolvers = {
    first: [
        (tag, regexp) for tag, regexp in resolvers
        if tag != 'tag:yaml.org,2002:bool'
    ]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
FrontMatterLoader.add_implicit_resolver(
    'tag:yaml.org,2002:bool',
    re.compile(r'^(?:true|True|TRUE|false|False|FALSE)$'),
    list('tTfF'),
)


@dataclass(frozen=True)
class TemplateFile:
    """
    A template split into its front matter and body.

    Attributes:
        front_matter_raw: Text between the delimiter lines
        body: Everything after the closing delimiter line
        opening: The opening delimiter line, including its line ending
        closing: The closing delimiter line, including its line ending
    """
    front_matter_raw: str
    body: str
    opening: str = SEPARATOR + "\n"
    closing: str = SEPARATOR + "\n"

    def reconstruct(self) -> str:
        """Join the segments back into the original file content."""
        return self.opening + self.front_matter_raw + self.closing + self.body


def _is_separator(line: str) -> bool:
    return line.rstrip() == SEPARATOR


def split_front_matter(content: str) -> TemplateFile:
    """
    Split template content into front matter and body.

    Raises:
        MalformedFrontMatter: If a delimiter is missing or a segment is empty
    """
    lines = content.splitlines(keepends=True)

    if not lines or not _is_separator(lines[0]):
        raise MalformedFrontMatter(f"first line must be '{SEPARATOR}'")

    for index in range(1, len(lines)):
        if _is_separator(lines[index]):
            end = index
            break
    else:
        raise MalformedFrontMatter(
            f"missing end separator for front matter, template does not "
            f"contain a second '{SEPARATOR}' line"
        )

    front_matter_raw = "".join(lines[1:end])
    body = "".join(lines[end + 1:])

    if not front_matter_raw.strip():
        raise MalformedFrontMatter("front matter is empty")
    if not body.strip():
        raise MalformedFrontMatter("template body is empty")

    return TemplateFile(
        front_matter_raw=front_matter_raw,
        body=body,
        opening=lines[0],
        closing=lines[end],
    )


def read_template(template_path: Union[str, Path]) -> TemplateFile:
    """Read a template file completely, then split it."""
    path = Path(template_path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
    except FileNotFoundError:
        raise TemplateNotFound(path) from None
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateReadError(path, str(e)) from e

    logger.debug(f"Read template {path} ({len(content)} characters)")
    return split_front_matter(content)


def load_front_matter_data(front_matter_raw: str) -> Any:
    """Parse raw front matter as YAML (JSON documents parse too)."""
    try:
        return yaml.load(front_matter_raw, Loader=FrontMatterLoader)
    except yaml.YAMLError as e:
        raise SchemaError("<front matter>", f"not valid YAML: {e}") from e
