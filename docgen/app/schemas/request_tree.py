"""
Request tree models.

The request tree is the nested, per-client description of the documents
to generate:

    RequestTree
      outputs[]                   OutputGroup (ordered)
        composition[]             CompositionItem (ordered)
          resource                where the template lives, what to render
          result                  filled in by reconciliation

Only composition items whose ``type`` is ``"template"`` produce
generation jobs. Unknown fields are preserved on every level so that the
response tree is structurally identical to the request tree.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


TEMPLATE_ITEM_TYPE = "template"


class ResourceDescriptor(BaseModel):
    """Source descriptor of a composition item."""

    input_format: Optional[str] = Field(
        None,
        description="Format of the template itself (e.g. odt, tex, html)",
    )

    output_format: Optional[str] = Field(
        None,
        description="Requested output format (pdf, html, txt)",
    )

    location: Optional[str] = Field(
        None,
        description="Template address, optionally tagged with a scheme",
    )

    data: Optional[Dict[str, Any]] = Field(
        None,
        description="Variable bindings for the template",
    )

    model_config = ConfigDict(extra="allow")


class ResultDescriptor(BaseModel):
    """Mutable result slot, populated during reconciliation."""

    location: Optional[str] = Field(
        None,
        description="Location of the generated artifact",
    )

    model_config = ConfigDict(extra="allow")


class CompositionItem(BaseModel):
    type: str = Field(..., description="Item type tag")

    persist: bool = Field(
        False,
        description=(
            "Persist the generated artifact to the blob store. "
            "Absent means false."
        ),
    )

    resource: ResourceDescriptor = Field(default_factory=ResourceDescriptor)
    result: ResultDescriptor = Field(default_factory=ResultDescriptor)

    model_config = ConfigDict(extra="allow")

    @property
    def is_template(self) -> bool:
        return self.type == TEMPLATE_ITEM_TYPE


class OutputGroup(BaseModel):
    type: Optional[str] = Field(None, description="Output group type tag")

    composition: List[CompositionItem] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class RequestTree(BaseModel):
    outputs: List[OutputGroup] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    def template_items(self) -> List[CompositionItem]:
        """
        Template items in traversal order (outer groups, then items).

        Derived, read-only view.
        """
        return [
            item
            for group in self.outputs
            for item in group.composition
            if item.is_template
        ]
