"""
Request flattening.

Walks the request tree depth-first, left to right (output groups in
order, composition items in order) and emits one GenerationJob per
template item. The job index is its position in that traversal; the
reconciler walks the tree in the same order to map results back.

Shape errors are raised here, before any job runs.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Dict, List

from docgen.app.errors import (
    EmptyCompositionList,
    InvalidTemplateData,
    MissingTemplateData,
)
from docgen.app.schemas.generation import GenerationJob
from docgen.app.schemas.request_tree import CompositionItem, RequestTree

logger = logging.getLogger(__name__)

IMAGES_KEY = "images"


def decode_assets(
    data: Dict[str, Any],
    *,
    group_index: int,
    item_index: int,
) -> Dict[str, bytes]:
    """Decode ``data.images`` (name -> base64 string) into raw bytes."""
    images = data.get(IMAGES_KEY)
    if images is None:
        return {}

    where = f"template item {item_index} of output group {group_index}"

    if not isinstance(images, dict):
        raise InvalidTemplateData(f"'{IMAGES_KEY}' of {where} must be an object")

    assets: Dict[str, bytes] = {}
    for name, encoded in images.items():
        if not isinstance(encoded, str):
            raise InvalidTemplateData(
                f"Image '{name}' of {where} must be a base64 string"
            )
        try:
            assets[name] = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidTemplateData(
                f"Image '{name}' of {where} is not valid base64"
            ) from exc
    return assets


class RequestFlattener:
    def flatten(self, tree: RequestTree) -> List[GenerationJob]:
        """
        Produce the ordered job list for ``tree``.

        Raises:
            InvalidTemplateData:  tree has no output groups, or bad images
            EmptyCompositionList: an output group has no items
            MissingTemplateData:  a template item has no variable data
        """
        if not tree.outputs:
            raise InvalidTemplateData("Request tree declares no output groups.")

        jobs: List[GenerationJob] = []

        for group_index, group in enumerate(tree.outputs):
            if not group.composition:
                raise EmptyCompositionList(group_index, group.type)

            for item_index, item in enumerate(group.composition):
                if not item.is_template:
                    continue
                jobs.append(
                    self._job_for(
                        item,
                        index=len(jobs),
                        group_index=group_index,
                        item_index=item_index,
                    )
                )

        logger.info(
            "Flattened request tree: %d output groups, %d generation jobs",
            len(tree.outputs),
            len(jobs),
        )
        return jobs

    @staticmethod
    def _job_for(
        item: CompositionItem,
        *,
        index: int,
        group_index: int,
        item_index: int,
    ) -> GenerationJob:
        data = item.resource.data
        if data is None:
            raise MissingTemplateData(group_index, item_index)

        return GenerationJob(
            index=index,
            template_address=item.resource.location or "",
            output_format=item.resource.output_format,
            bindings=dict(data),
            assets=decode_assets(
                data, group_index=group_index, item_index=item_index
            ),
            persist=item.persist,
        )
