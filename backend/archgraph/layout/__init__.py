# Layout adapter: ELK JSON conversion, the HTTP layout client and
# version-aware coordination of layout requests.

from archgraph.layout.options import LayoutOptions, NON_ROOT_DEFAULT_OPTIONS, ROOT_DEFAULT_OPTIONS
from archgraph.layout.elk import (
    ElkLayoutClient,
    LayoutError,
    LayoutTimeoutError,
    merge_layout,
    strip_geometry,
    to_elk_graph,
)
from archgraph.layout.coordinator import LayoutCoordinator, LayoutTicket

__all__ = [
    "LayoutOptions",
    "NON_ROOT_DEFAULT_OPTIONS",
    "ROOT_DEFAULT_OPTIONS",
    "ElkLayoutClient",
    "LayoutError",
    "LayoutTimeoutError",
    "merge_layout",
    "strip_geometry",
    "to_elk_graph",
    "LayoutCoordinator",
    "LayoutTicket",
]
