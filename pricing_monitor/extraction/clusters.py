# pricing_monitor/extraction/clusters.py

"""Pick the most plausible grid of pricing cards among the candidates."""

import logging
from collections import Counter
from dataclasses import dataclass, field

from pricing_monitor.extraction.dom_arena import NO_PARENT, DomArena
from pricing_monitor.extraction.normalizer import class_signature, score_node

logger = logging.getLogger("pricing_monitor.clusters")

MIN_CLUSTER_TEXT = 600
MIN_CLUSTER_SIZE = 2
SIGNATURE_CLASSES = 4


@dataclass
class Cluster:
    """Candidates sharing one parent."""

    parent: int  # NO_PARENT for scope roots
    path: str
    text_length: int
    items: list[int] = field(
        default_factory=lambda: list[int]()
    )
    score_sum: int = 0

    @property
    def density(self) -> float:
        """Score per character, floored so tiny parents are not favoured."""
        return self.score_sum / max(MIN_CLUSTER_TEXT, self.text_length)


def structural_signature(arena: DomArena, index: int) -> str:
    """Tag name plus up to four sorted class tokens."""
    node = arena[index]
    classes = sorted(node.classes[:SIGNATURE_CLASSES])
    return f"{node.tag}.{'.'.join(classes)}"


def _majority(arena: DomArena, indices: list[int]) -> list[int]:
    """Nodes carrying the most frequent signature, if it recurs."""
    if len(indices) < 2:
        return []
    counts = Counter(structural_signature(arena, i) for i in indices)
    best_sig, best_count = counts.most_common(1)[0]
    if best_count < 2:
        return []
    return [
        i for i in indices
        if structural_signature(arena, i) == best_sig
    ]


class ClusterSelector:
    """Group, rank and refine card candidates."""

    @staticmethod
    def group(arena: DomArena, candidates: list[int]) -> list[Cluster]:
        """Group candidates by parent path, in first-seen order."""
        clusters: dict[str, Cluster] = {}
        for index in candidates:
            parent = arena.parent_of(index)
            key = arena.parent_path(index)
            if key not in clusters:
                if parent == NO_PARENT:
                    length = sum(len(arena[r].text) for r in arena.roots)
                else:
                    length = len(arena[parent].text)
                clusters[key] = Cluster(
                    parent=parent, path=key, text_length=length,
                )
            clusters[key].items.append(index)

        for cluster in clusters.values():
            cluster.score_sum = sum(
                score_node(arena, i) for i in cluster.items
            )
        return list(clusters.values())

    @staticmethod
    def best_cluster(clusters: list[Cluster]) -> Cluster | None:
        """Densest cluster with at least two members (first wins ties)."""
        best: Cluster | None = None
        for cluster in clusters:
            if len(cluster.items) < MIN_CLUSTER_SIZE:
                continue
            if best is None or cluster.density > best.density:
                best = cluster
        return best

    @staticmethod
    def repeated_children(arena: DomArena, parent: int) -> list[int]:
        """Split a shared wrapper into its repeated structural children.

        Tries the direct children first, then the grandchildren.
        Returns an empty list when no signature recurs.
        """
        if parent == NO_PARENT:
            kids = list(arena.roots)
        else:
            kids = list(arena[parent].children)
        repeated = _majority(arena, kids)
        if repeated:
            return repeated
        grand = [g for k in kids for g in arena[k].children]
        return _majority(arena, grand)

    @staticmethod
    def prefer_grid(arena: DomArena, items: list[int]) -> list[int]:
        """Keep items whose class signature recurs, when any do."""
        counts = Counter(class_signature(arena, i) for i in items)
        gridded = [
            i for i in items if counts[class_signature(arena, i)] >= 2
        ]
        return gridded or items

    @staticmethod
    def select(arena: DomArena, candidates: list[int]) -> list[int]:
        """Reduce candidates to the card roots of the best grid.

        Without a cluster of two or more members the candidates are
        returned as they are.
        """
        clusters = ClusterSelector.group(arena, candidates)
        best = ClusterSelector.best_cluster(clusters)
        if best is None:
            logger.debug(
                "No cluster with %d+ members among %d candidates",
                MIN_CLUSTER_SIZE,
                len(candidates),
            )
            return ClusterSelector.prefer_grid(arena, candidates)

        items = best.items
        repeated = ClusterSelector.repeated_children(arena, best.parent)
        if len(repeated) >= MIN_CLUSTER_SIZE:
            items = repeated
        logger.debug(
            "Selected cluster %r: %d items, density %.4f",
            best.path,
            len(items),
            best.density,
        )
        return ClusterSelector.prefer_grid(arena, items)
