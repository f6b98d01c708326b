"""
Node and stem extraction from a flat branch network.

The network arrives as frames keyed (branch,), one ordered frame list per
branch. A node is a branch together with every branch that starts where it
ends. Nodes are trimmed to a short base (end of the incoming branch) and
short tops (start of each outgoing branch) so that only the joint region is
printed; the remaining middle sections of the branches are the stems.
"""
import logging
from dataclasses import dataclass, field
from typing import List

from joint_slicer.errors import InvalidParameterError
from joint_slicer.geometry_kernel import Plane, distance
from joint_slicer.path_tree import PathTree

logger = logging.getLogger(__name__)

STEM_BASE = "base"
STEM_INNER = "inner"


@dataclass
class NodeSkeleton:
    """Node groupings of a branch network."""
    untrimmed_nodes: PathTree[Plane] = field(default_factory=PathTree)  # (node, member)
    trimmed_nodes: PathTree[Plane] = field(default_factory=PathTree)    # (node, member)
    stems: PathTree[Plane] = field(default_factory=PathTree)            # (branch,)

    @property
    def node_count(self) -> int:
        return self.untrimmed_nodes.count_at_depth((), 0)


def extract_nodes(
    branches: PathTree[Plane],
    trim_length_top: int,
    tolerance: float = 0.01,
) -> PathTree[Plane]:
    """Group branches into nodes keyed (node, member).

    Member 0 is the incoming branch; the others are branches whose first
    origin lies within *tolerance* of its last origin. Groups with a single
    member, or with a member shorter than *trim_length_top* frames, are
    dropped.
    """
    _check_trim_length("trim_length_top", trim_length_top)
    keys = branches.paths()
    nodes: PathTree[Plane] = PathTree()
    node_count = 0

    for key in keys:
        incoming = branches.branch(key)
        end = incoming[-1].origin
        members: List[List[Plane]] = [incoming]
        for other in keys:
            if other == key:
                continue
            outgoing = branches.branch(other)
            if distance(end, outgoing[0].origin) < tolerance:
                members.append(outgoing)

        if len(members) < 2:
            continue
        if any(len(m) < trim_length_top for m in members):
            logger.debug("Branch %s: node dropped, member shorter than %d frames",
                         key, trim_length_top)
            continue

        for j, member in enumerate(members):
            nodes.append_range((node_count, j), member)
        node_count += 1

    logger.info("Extracted %d nodes from %d branches", node_count, len(keys))
    return nodes


def trim_nodes(
    nodes: PathTree[Plane],
    trim_length_base: int,
    trim_length_top: int,
) -> PathTree[Plane]:
    """Keep the last base frames of member 0 and the first top frames of the rest."""
    _check_trim_length("trim_length_base", trim_length_base)
    _check_trim_length("trim_length_top", trim_length_top)
    trimmed: PathTree[Plane] = PathTree()
    for path, frames in nodes.items():
        if path[1] == 0:
            trimmed.append_range(path, frames[-trim_length_base:])
        else:
            trimmed.append_range(path, frames[:trim_length_top])
    return trimmed


def extract_stems(
    branches: PathTree[Plane],
    trim_length_base: int,
    trim_length_top: int,
) -> PathTree[Plane]:
    """Middle section of every branch, between the node regions.

    Branches starting on the ground (z == 0) keep their start; other branches
    lose the frames printed as part of the node below them.
    """
    _check_trim_length("trim_length_base", trim_length_base)
    _check_trim_length("trim_length_top", trim_length_top)
    stems: PathTree[Plane] = PathTree()
    for path, frames in branches.items():
        stop = max(0, len(frames) - trim_length_base + 1)
        start = 0 if stem_kind(frames) == STEM_BASE else trim_length_top - 1
        stems.append_range(path, frames[start:stop])
    return stems


def stem_kind(frames: List[Plane]) -> str:
    return STEM_BASE if frames and frames[0].origin[2] == 0 else STEM_INNER


def build_node_skeleton(
    branches: PathTree[Plane],
    trim_length_base: int,
    trim_length_top: int,
    tolerance: float = 0.01,
) -> NodeSkeleton:
    untrimmed = extract_nodes(branches, trim_length_top, tolerance)
    return NodeSkeleton(
        untrimmed_nodes=untrimmed,
        trimmed_nodes=trim_nodes(untrimmed, trim_length_base, trim_length_top),
        stems=extract_stems(branches, trim_length_base, trim_length_top),
    )


def _check_trim_length(name: str, value: int) -> None:
    if int(value) != value or value < 1:
        raise InvalidParameterError(f"{name} must be a positive integer, got {value}")
