"""
ELK layout options.

The root carries the global algorithm settings; every other node gets a
default size and padding so that groups render as labelled boxes. Values a
node already carries in its own ``layoutOptions`` win over the defaults.
"""

from dataclasses import dataclass
from typing import Any, Dict

ROOT_DEFAULT_OPTIONS: Dict[str, Any] = {
    "layoutOptions": {
        "algorithm": "layered",
        "elk.direction": "RIGHT",
        "hierarchyHandling": "INCLUDE_CHILDREN",
        "elk.layered.considerModelOrder": True,
        "elk.layered.considerModelOrder.strategy": "NODES_AND_EDGES",
        "elk.layered.nodePlacement.favorStraightEdges": True,
        "elk.layered.cycleBreaking.strategy": "INTERACTIVE",
        "spacing.edgeNode": 30,
        "spacing.nodeNode": 30,
        "spacing.edgeEdge": 30,
        "spacing.edgeEdgeBetweenLayers": 30,
        "spacing.nodeNodeBetweenLayers": 30,
        "spacing.edgeNodeBetweenLayers": 30,
    }
}

NON_ROOT_DEFAULT_OPTIONS: Dict[str, Any] = {
    "width": 100,
    "height": 100,
    "layoutOptions": {
        "nodeLabels.placement": "INSIDE V_TOP H_LEFT",
        "elk.padding": "[top=30.0,left=30.0,bottom=30.0,right=30.0]",
        "elk.layered.nodePlacement.favorStraightEdges": True,
        "elk.layered.priority.shortness": 100,
        "spacing.edgeNode": 30,
        "spacing.nodeNode": 30,
        "spacing.edgeEdge": 30,
        "spacing.edgeEdgeBetweenLayers": 50,
        "spacing.nodeNodeBetweenLayers": 50,
        "spacing.edgeNodeBetweenLayers": 50,
        "edgeLabels.placement": "CENTER",
        "elk.edgeLabels.inline": True,
    },
}

DIRECTIONS = {"RIGHT", "LEFT", "DOWN", "UP"}
HIERARCHY_HANDLING = {"INCLUDE_CHILDREN", "SEPARATE_CHILDREN", "INHERIT"}


@dataclass
class LayoutOptions:
    """Named knobs exposed to callers; everything else stays at the defaults."""
    direction: str = "RIGHT"
    spacing: int = 30
    hierarchy_handling: str = "INCLUDE_CHILDREN"

    def __post_init__(self):
        self.direction = self.direction.upper()
        self.hierarchy_handling = self.hierarchy_handling.upper()
        if self.direction not in DIRECTIONS:
            raise ValueError(f"direction must be one of {sorted(DIRECTIONS)}, got {self.direction!r}")
        if self.hierarchy_handling not in HIERARCHY_HANDLING:
            raise ValueError(
                f"hierarchy_handling must be one of {sorted(HIERARCHY_HANDLING)}, got {self.hierarchy_handling!r}"
            )
        if self.spacing <= 0:
            raise ValueError("spacing must be positive")

    def root_layout_options(self) -> Dict[str, Any]:
        options = dict(ROOT_DEFAULT_OPTIONS["layoutOptions"])
        options["elk.direction"] = self.direction
        options["hierarchyHandling"] = self.hierarchy_handling
        for key in ("spacing.edgeNode", "spacing.nodeNode", "spacing.edgeEdge",
                    "spacing.edgeEdgeBetweenLayers", "spacing.nodeNodeBetweenLayers",
                    "spacing.edgeNodeBetweenLayers"):
            options[key] = self.spacing
        return options
