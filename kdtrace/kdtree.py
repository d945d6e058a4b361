"""
k-d tree for accelerating ray-object intersection.

The tree recursively halves a bounding box with axis-aligned planes,
cycling X, Y, Z by depth. Each split plane passes through the center of
the median shape on that axis. Shapes are referenced, not copied: a shape
that straddles a split is listed in both halves.

Traversal visits the child on the ray's side of the plane first and
only descends into the far child when the near child cannot prove it
holds the closest hit.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Union
import logging
import math

from .vec3 import Point3
from .ray import Ray
from .aabb import AABB
from .shapes import Shape, HitRecord, closest_hit

logger = logging.getLogger(__name__)

DEFAULT_LEAF_SIZE = 5
DEFAULT_MAX_DEPTH = 7
# Cells thinner than this are not worth splitting
MIN_SURFACE_AREA = 1e-4
ROOT_PADDING = 1e-3


@dataclass
class PartitionPlane:
    """An axis-aligned split plane: a point on it and the axis it is normal to."""
    point: Point3
    axis: int

    @property
    def position(self) -> float:
        return self.point[self.axis]


@dataclass
class KDLeaf:
    """Terminal cell holding every shape that overlaps its bounds."""
    bounds: AABB
    shapes: List[Shape]
    depth: int = 0


@dataclass
class KDNode:
    """Internal cell split into a lower and an upper child."""
    plane: PartitionPlane
    bounds: AABB
    left: Union['KDNode', KDLeaf]
    right: Union['KDNode', KDLeaf]
    depth: int = 0


@dataclass
class BuildReport:
    """Diagnostics gathered while building a tree.

    Attributes:
        shape_count: Shapes handed to the builder
        node_count: Internal nodes plus leaves
        leaf_count: Leaves only
        max_depth_reached: Depth of the deepest leaf
        leaf_references: Sum of leaf list lengths
        duplicated_references: References beyond one per placed shape
        unplaced: Shapes that ended up in no leaf
    """
    shape_count: int = 0
    node_count: int = 0
    leaf_count: int = 0
    max_depth_reached: int = 0
    leaf_references: int = 0
    duplicated_references: int = 0
    unplaced: List[Shape] = field(default_factory=list)


@dataclass
class TraversalStats:
    """Work counters for one or more nearest-hit queries."""
    nodes_visited: int = 0
    shape_tests: int = 0

    def reset(self) -> None:
        self.nodes_visited = 0
        self.shape_tests = 0


class _KDTreeBuilder:
    """Recursive median-split construction."""

    def __init__(self, leaf_size: int, max_depth: int, report: BuildReport):
        self.leaf_size = leaf_size
        self.max_depth = max_depth
        self.report = report

    def build(self, shapes: List[Shape], bounds: AABB, depth: int) -> Union[KDNode, KDLeaf]:
        self.report.node_count += 1

        if (len(shapes) < self.leaf_size
                or depth > self.max_depth
                or bounds.surface_area() < MIN_SURFACE_AREA):
            return self._leaf(shapes, bounds, depth)

        axis = depth % 3
        ordered = sorted(shapes, key=lambda s: float(s.center[axis]))
        median = ordered[(len(ordered) - 1) // 2]
        plane = PartitionPlane(median.center, axis)

        lower_bounds, upper_bounds = bounds.split(axis, plane.position)
        lower = [s for s in ordered if s.overlaps_box(lower_bounds)]
        upper = [s for s in ordered if s.overlaps_box(upper_bounds)]

        # Splitting cannot separate anything
        if len(lower) == len(shapes) and len(upper) == len(shapes):
            return self._leaf(shapes, bounds, depth)

        left = self.build(lower, lower_bounds, depth + 1)
        right = self.build(upper, upper_bounds, depth + 1)
        return KDNode(plane, bounds, left, right, depth)

    def _leaf(self, shapes: List[Shape], bounds: AABB, depth: int) -> KDLeaf:
        self.report.leaf_count += 1
        self.report.leaf_references += len(shapes)
        self.report.max_depth_reached = max(self.report.max_depth_reached, depth)
        return KDLeaf(bounds, list(shapes), depth)


class KDTree:
    """A built k-d tree over a fixed set of shapes."""

    def __init__(self, root: Union[KDNode, KDLeaf], shapes: Sequence[Shape], report: BuildReport):
        self.root = root
        self.shapes = list(shapes)
        self.report = report

    @property
    def bounds(self) -> AABB:
        return self.root.bounds

    def leaves(self) -> Iterator[KDLeaf]:
        """Yield every leaf, lower children first."""
        stack = [self.root]
        while stack:
            node = stack.pop()
            if isinstance(node, KDLeaf):
                yield node
            else:
                stack.append(node.right)
                stack.append(node.left)

    def nearest_hit(
        self,
        ray: Ray,
        t_min: float = 0.0,
        t_max: float = math.inf,
        stats: Optional[TraversalStats] = None
    ) -> Optional[HitRecord]:
        """Find the closest intersection along the ray.

        Args:
            ray: The ray to trace
            t_min: Minimum accepted ray parameter
            t_max: Maximum accepted ray parameter
            stats: Optional counters updated during the walk

        Returns:
            The same hit a linear scan over all shapes would return, or None
        """
        return self._traverse(self.root, ray, t_min, t_max, stats)

    def _traverse(
        self,
        node: Union[KDNode, KDLeaf],
        ray: Ray,
        t_min: float,
        t_max: float,
        stats: Optional[TraversalStats]
    ) -> Optional[HitRecord]:
        if stats is not None:
            stats.nodes_visited += 1

        span = node.bounds.intersect(ray, t_min, t_max)
        if span is None:
            return None

        if isinstance(node, KDLeaf):
            return closest_hit(node.shapes, ray, t_min, t_max, stats)

        t_entry, t_exit = span
        axis = node.plane.axis
        split = node.plane.position
        origin = ray.origin[axis]
        direction = ray.direction[axis]

        # The near child is the one on the origin's side of the plane
        origin_below = origin < split or (origin == split and direction <= 0.0)
        near, far = (node.left, node.right) if origin_below else (node.right, node.left)

        # An origin on the plane only ever moves into the child its direction points at
        if direction == 0.0 or origin == split:
            return self._traverse(near, ray, t_min, t_max, stats)

        t_split = (split - origin) * ray.inv_direction[axis]

        if t_split > t_exit or t_split < 0.0:
            return self._traverse(near, ray, t_min, t_max, stats)
        if t_split < t_entry:
            return self._traverse(far, ray, t_min, t_max, stats)

        near_hit = self._traverse(near, ray, t_min, t_max, stats)
        if near_hit is not None and near_hit.t <= t_split:
            return near_hit

        far_limit = near_hit.t if near_hit is not None else t_max
        far_hit = self._traverse(far, ray, t_min, far_limit, stats)
        if far_hit is not None and (near_hit is None or far_hit.t < near_hit.t):
            return far_hit
        return near_hit

    def __len__(self) -> int:
        return len(self.shapes)


def build_kdtree(
    shapes: Sequence[Shape],
    bounds: Optional[AABB] = None,
    leaf_size: int = DEFAULT_LEAF_SIZE,
    max_depth: int = DEFAULT_MAX_DEPTH
) -> KDTree:
    """Build a k-d tree over a list of shapes.

    Args:
        shapes: Primitives to index (meshes should be flattened first)
        bounds: Root cell; defaults to the padded union of the shape boxes
        leaf_size: Lists shorter than this become leaves
        max_depth: Nodes deeper than this become leaves

    Returns:
        The tree, with its BuildReport attached
    """
    shapes = list(shapes)
    report = BuildReport(shape_count=len(shapes))

    if bounds is None:
        union = AABB.union(s.bounding_box() for s in shapes)
        bounds = union.padded(ROOT_PADDING) if union is not None else AABB(Point3(), Point3())

    builder = _KDTreeBuilder(leaf_size, max_depth, report)
    root = builder.build([s for s in shapes if s.overlaps_box(bounds)], bounds, 0)
    tree = KDTree(root, shapes, report)

    placed = set()
    for leaf in tree.leaves():
        placed.update(id(s) for s in leaf.shapes)
    report.unplaced = [s for s in shapes if id(s) not in placed]
    report.duplicated_references = report.leaf_references - len(placed)

    logger.debug(
        "Built k-d tree: %d shapes, %d nodes, %d leaves, depth %d, %d duplicated references",
        report.shape_count, report.node_count, report.leaf_count,
        report.max_depth_reached, report.duplicated_references
    )
    if report.unplaced:
        logger.warning("%d shapes lie outside the tree bounds and were not indexed",
                       len(report.unplaced))

    return tree
