"""Fragment index over all tracked documents."""

from __future__ import annotations

from collections.abc import Iterable

from graphql import (
    DocumentNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    Node,
    Visitor,
    visit,
)

from gql_workspace.types import TrackedDocument

FragmentIndex = dict[str, FragmentDefinitionNode]


def build_index(documents: Iterable[TrackedDocument]) -> FragmentIndex:
    """Map fragment names to definitions. The last definition seen for a name wins."""

    fragments: FragmentIndex = {}
    for document in documents:
        if document.ast is None:
            continue
        for definition in document.ast.definitions:
            if isinstance(definition, FragmentDefinitionNode):
                fragments[definition.name.value] = definition
    return fragments


class _SpreadCollector(Visitor):
    def __init__(self, fragment_name: str | None = None) -> None:
        super().__init__()
        self.fragment_name = fragment_name
        self.spreads: list[FragmentSpreadNode] = []

    def enter_fragment_spread(self, node: FragmentSpreadNode, *_args: object) -> None:
        if self.fragment_name is None or node.name.value == self.fragment_name:
            self.spreads.append(node)


def fragment_spreads_for(
    fragment_name: str, documents: Iterable[TrackedDocument]
) -> list[FragmentSpreadNode]:
    """Every spread of `fragment_name` across the whole document set."""

    collector = _SpreadCollector(fragment_name)
    for document in documents:
        if document.ast is not None:
            visit(document.ast, collector)
    return collector.spreads


def referenced_fragments(
    root: Node | DocumentNode, index: FragmentIndex
) -> list[FragmentDefinitionNode]:
    """Fragments reachable from `root` through spreads, resolved via `index`.

    Names missing from the index are skipped; validation reports them as
    unknown fragments.
    """

    resolved: dict[str, FragmentDefinitionNode] = {}
    pending: list[Node] = [root]
    while pending:
        collector = _SpreadCollector()
        visit(pending.pop(), collector)
        for spread in collector.spreads:
            name = spread.name.value
            if name in resolved or name not in index:
                continue
            resolved[name] = index[name]
            pending.append(index[name])
    return list(resolved.values())
