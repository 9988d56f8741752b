# pricing_monitor/extraction/dom_arena.py

"""Flat, index-addressed view of one or more scoped element subtrees.

The scanner climbs parents and compares siblings by integer index into
``DomArena.nodes`` instead of walking live BeautifulSoup references,
so every structural question (parent, siblings, path, text length) is
answered from precomputed records.
"""

from dataclasses import dataclass, field

from bs4 import Tag

from pricing_monitor.extraction.signals import normalize_whitespace

NO_PARENT = -1

# Removed from inside the scope before scanning
_NON_CONTENT_SELECTOR = (
    "script, style, noscript, template, svg, head, link, meta"
)
_HIDDEN_SELECTOR = (
    '[aria-hidden="true"], [hidden], '
    '[style*="display:none"], [style*="display: none"], '
    '[style*="visibility:hidden"], [style*="visibility: hidden"]'
)


@dataclass
class ArenaNode:
    """One element of the arena."""

    index: int
    element: Tag
    tag: str
    parent: int
    depth: int
    position: int  # index among the parent's element children
    text: str
    classes: list[str]
    attr_text: str  # class and id joined, for vocabulary tests
    children: list[int] = field(
        default_factory=lambda: list[int]()
    )
    # Descendant tallies (the node itself excluded)
    links: int = 0
    list_items: int = 0
    offers: int = 0


def sanitize_scope(roots: list[Tag]) -> int:
    """Drop non-content and hidden descendants of each scope root.

    The roots themselves are left in place even when they match.
    Returns the number of removed elements.
    """
    removed = 0
    for root in roots:
        for selector in (_NON_CONTENT_SELECTOR, _HIDDEN_SELECTOR):
            for el in root.select(selector):
                el.extract()
                removed += 1
    return removed


def class_tokens(element: Tag) -> list[str]:
    """Return the element's class tokens in document order."""
    raw = element.get("class") or []
    if isinstance(raw, str):
        raw = raw.split()
    return [c for c in raw if c]


def has_offer_markup(element: Tag) -> bool:
    """schema.org Offer / AggregateOffer / Product microdata on *element*."""
    itemtype = str(element.get("itemtype") or "")
    return "Offer" in itemtype or "Product" in itemtype


def element_text(element: Tag) -> str:
    """Text content of *element*, child texts space-joined and collapsed."""
    return normalize_whitespace(element.get_text(" "))


class DomArena:
    """Index-addressed flattening of the scoped subtrees.

    Scope roots have ``parent == NO_PARENT``; the arena never reaches
    outside the elements it was built from.
    """

    def __init__(self, roots: list[Tag]) -> None:
        self.nodes: list[ArenaNode] = []
        self.roots: list[int] = []
        for position, root in enumerate(roots):
            self.roots.append(self._add_subtree(root, position))
        self._tally_descendants()

    def _add_subtree(self, root: Tag, position: int) -> int:
        """Append *root* and its descendants in document order."""
        root_index = len(self.nodes)
        stack: list[tuple[Tag, int, int, int]] = [
            (root, NO_PARENT, 0, position),
        ]
        while stack:
            element, parent, depth, pos = stack.pop()
            index = self._append(element, parent, depth, pos)
            if parent != NO_PARENT:
                self.nodes[parent].children.append(index)
            kids = [c for c in element.children if isinstance(c, Tag)]
            # Pushed in reverse so pops continue in document order
            for kid_pos in range(len(kids) - 1, -1, -1):
                stack.append((kids[kid_pos], index, depth + 1, kid_pos))
        return root_index

    def _append(
        self, element: Tag, parent: int, depth: int, position: int,
    ) -> int:
        classes = class_tokens(element)
        element_id = str(element.get("id") or "")
        node = ArenaNode(
            index=len(self.nodes),
            element=element,
            tag=(element.name or "").lower(),
            parent=parent,
            depth=depth,
            position=position,
            text=element_text(element),
            classes=classes,
            attr_text=f"{' '.join(classes)} {element_id}".strip(),
        )
        self.nodes.append(node)
        return node.index

    def _tally_descendants(self) -> None:
        """Fill link / list-item / offer counts bottom-up.

        Children always sit after their parent in ``nodes``, so a
        reverse sweep sees every child before its parent.
        """
        for node in reversed(self.nodes):
            if node.parent == NO_PARENT:
                continue
            parent = self.nodes[node.parent]
            parent.links += node.links + (node.tag in ("a", "button"))
            parent.list_items += node.list_items + (node.tag == "li")
            parent.offers += node.offers + has_offer_markup(node.element)

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, index: int) -> ArenaNode:
        return self.nodes[index]

    # ── Structural queries ───────────────────────────────

    def parent_of(self, index: int) -> int:
        """Parent index, or ``NO_PARENT`` for a scope root."""
        return self.nodes[index].parent

    def siblings_of(self, index: int) -> list[int]:
        """Element siblings of *index*, excluding itself."""
        parent = self.nodes[index].parent
        pool = (
            self.roots if parent == NO_PARENT
            else self.nodes[parent].children
        )
        return [i for i in pool if i != index]

    def path(self, index: int) -> str:
        """Ancestor-chain identity, e.g. ``body:0>div.grid:1>div.card:2``.

        Sibling positions make two structurally similar cards distinct
        while two signals inside one card share the card's path.
        """
        parts: list[str] = []
        cur = index
        while cur != NO_PARENT:
            node = self.nodes[cur]
            part = node.tag
            element_id = node.element.get("id")
            if element_id:
                part += f"#{element_id}"
            elif node.classes:
                part += f".{node.classes[0]}"
            parts.append(f"{part}:{node.position}")
            cur = node.parent
        return ">".join(reversed(parts))

    def parent_path(self, index: int) -> str:
        """Path of the parent; scope roots share the empty path."""
        parent = self.nodes[index].parent
        return "" if parent == NO_PARENT else self.path(parent)

    def descendants(self, index: int) -> list[int]:
        """All descendant indices of *index* in document order."""
        depth = self.nodes[index].depth
        out: list[int] = []
        for cur in range(index + 1, len(self.nodes)):
            if self.nodes[cur].depth <= depth:
                break
            out.append(cur)
        return out
