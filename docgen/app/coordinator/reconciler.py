"""
Result reconciliation.

Writes generated locations back into the request tree, using the same
depth-first, left-to-right traversal as the flattener. Each template item
consumes the next outcome in order.

Reconciliation is all-or-nothing: target items are collected and counted
first, and locations are assigned only when the counts match.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from docgen.app.errors import StructuralMismatch
from docgen.app.schemas.generation import GenerationOutcome
from docgen.app.schemas.request_tree import RequestTree

logger = logging.getLogger(__name__)


class ResultReconciler:
    def reconcile(
        self,
        tree: RequestTree,
        outcomes: Sequence[GenerationOutcome],
    ) -> RequestTree:
        targets = tree.template_items()

        if len(targets) != len(outcomes):
            raise StructuralMismatch(expected=len(targets), supplied=len(outcomes))

        for item, outcome in zip(targets, outcomes):
            item.result.location = outcome.location

        logger.info("Reconciled %d generated locations into request tree", len(targets))
        return tree

    @staticmethod
    def locations(tree: RequestTree) -> List[str]:
        """Result locations of every template item, in traversal order."""
        return [item.result.location or "" for item in tree.template_items()]
