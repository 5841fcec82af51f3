"""
Prompt templates and pure template substitution for the generation chain
"""
from string import Template
from typing import Iterable, Mapping, Union

from designchain.engines.generation.schemas import InteriorDescription

BASE_PROMPT = """
You are a interior designer.

This is the original image that we are working with. Modify the original image such that it has the following:

${requestedChanges}
Make sure to overlay the changes over the original image
"""

DEFAULT_REFERENCE_DESCRIPTION = (
    "furniture and decorations that encourages productivity and wellness (with some more greenery)"
)

DESCRIBE_INTERIOR_PROMPT = """
You are a interior designer trying to describe what design you've created for your clients

In plentiful detail, describe what design you've created for your clients

Here is the image that you have created:
"""

ADDITIONAL_ITEMS_PREFIX = "\n\nAdditionally, add the following items to the space: "


def compose(template: str, substitutions: Mapping[str, str]) -> str:
    """Substitute ``${placeholder}`` markers; unknown placeholders are left as-is"""
    return Template(template).safe_substitute(substitutions)


def describe_as_text(description: Union[InteriorDescription, str]) -> str:
    """Render a description as prose suitable for an instruction template"""
    if isinstance(description, str):
        return description

    lines = [description.overview.strip()]
    if description.items:
        lines.append("")
        lines.append("Include these items:")
        for item in description.items:
            detail = item.long_description or item.description
            line = f"- {item.name} ({item.quantity})"
            if detail:
                line += f": {detail}"
            lines.append(line)
    return "\n".join(lines).strip()


def build_requested_changes(description: Union[InteriorDescription, str], requested_items: Iterable[str] = ()) -> str:
    """Description text plus the additional-items clause when items were requested"""
    changes = describe_as_text(description)
    items = [item.strip() for item in requested_items if item and item.strip()]
    if items:
        changes += ADDITIONAL_ITEMS_PREFIX + ", ".join(items) + "."
    return changes


def compose_transformation_prompt(
    description: Union[InteriorDescription, str],
    requested_items: Iterable[str] = (),
    template: str = BASE_PROMPT,
) -> str:
    """Final instruction for the image transformation call"""
    return compose(template, {"requestedChanges": build_requested_changes(description, requested_items)})
