"""Adapt MCP tool descriptors to the OpenAI function-calling format."""

from __future__ import annotations

import copy
import logging
from typing import Iterable, List

from mcpchat.toolserver.schema import ModelToolSpec, ToolDescriptor, ToolParameters

logger = logging.getLogger(__name__)


def adapt(descriptor: ToolDescriptor) -> ModelToolSpec:
    """
    Convert one MCP tool descriptor into a model tool spec.

    Missing ``properties`` become ``{}`` and a missing ``required`` list
    becomes ``[]``; anything nested inside them is copied through as-is.
    """
    schema = descriptor.input_schema

    properties = schema.get("properties")
    if not isinstance(properties, dict):
        if properties is not None:
            logger.debug("Tool %s: ignoring non-object properties %r", descriptor.name, properties)
        properties = {}

    required = schema.get("required")
    if not isinstance(required, list):
        if required is not None:
            logger.debug("Tool %s: ignoring non-list required %r", descriptor.name, required)
        required = []

    return ModelToolSpec(
        name=descriptor.name,
        description=descriptor.description or f"Tool: {descriptor.name}",
        parameters=ToolParameters(
            type="object",
            properties=copy.deepcopy(properties),
            required=list(required),
        ),
    )


def adapt_all(descriptors: Iterable[ToolDescriptor]) -> List[ModelToolSpec]:
    return [adapt(d) for d in descriptors]
