"""Flatten a screen's recursive section tree.

Sections nest (a simple section may carry a repeat block whose row form
holds more sections). ``walk_sections`` turns that tree into a pre-order
list of ``SectionNode`` without recursion, each node carrying the chain of
tables that own it, so completion always propagates from a node to
``owner_chain[-2]`` and so on up to the screen's table.
"""

from dataclasses import dataclass

from schema_wizard.ui.models import RepeatSection, ScreenSpec, SectionSpec, SimpleSection


@dataclass(frozen=True)
class SectionNode:
    """One section in a screen tree.

    ``path`` indexes from the screen down (``(1,)`` is the screen's second
    section, ``(1, 0)`` its nested repeat's first inner section).
    ``owner_chain`` starts with the screen table; every repeat adds its own
    table, so ``table`` is the table the node writes to.
    """

    path: tuple[int, ...]
    section: SectionSpec
    owner_chain: tuple[str, ...]

    @property
    def table(self) -> str:
        return self.owner_chain[-1]

    @property
    def owner_table(self) -> str | None:
        """Table this node completes on behalf of, None at the screen level."""
        return self.owner_chain[-2] if len(self.owner_chain) > 1 else None

    @property
    def depth(self) -> int:
        return len(self.path) - 1


def walk_sections(screen: ScreenSpec) -> list[SectionNode]:
    """Pre-order walk of every section under ``screen``."""
    nodes: list[SectionNode] = []
    stack: list[tuple[tuple[int, ...], SectionSpec, tuple[str, ...]]] = [
        ((index,), section, (screen.table,))
        for index, section in reversed(list(enumerate(screen.sections)))
    ]

    while stack:
        path, section, chain = stack.pop()
        if isinstance(section, RepeatSection):
            chain = (*chain, section.table)
        nodes.append(SectionNode(path=path, section=section, owner_chain=chain))

        children: list[tuple[tuple[int, ...], SectionSpec, tuple[str, ...]]] = []
        if isinstance(section, SimpleSection) and section.nested is not None:
            children.append(((*path, 0), section.nested, chain))
        elif isinstance(section, RepeatSection):
            children.extend(
                ((*path, index), inner, chain)
                for index, inner in enumerate(section.sections)
            )
        stack.extend(reversed(children))

    return nodes
