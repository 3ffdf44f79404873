"""Referral network engine — builder, layout and interaction.

Host-facing entry points::

    graph = await build_network(store, root_id, max_depth, include_members)
    layout(graph, Viewport(960, 500))
    visible = apply_filter(graph, role_filter("referral"))

Hosts that animate the relaxation hand the driver to the view::

    await layout_async(
        graph,
        viewport,
        on_start=lambda driver: panel.attach(InteractiveNetwork(graph, driver=driver)),
    )

This package depends on domain, config models, NetworkX and structlog.
It must never import from services, commands, or output.
"""

from refnet.network.builder import VisitedSet, build_network
from refnet.network.graph import Free, NetworkGraph, Pinned, Viewport
from refnet.network.interaction import InteractiveNetwork, apply_filter
from refnet.network.layout import layout, layout_async

__all__ = [
    "Free",
    "InteractiveNetwork",
    "NetworkGraph",
    "Pinned",
    "Viewport",
    "VisitedSet",
    "apply_filter",
    "build_network",
    "layout",
    "layout_async",
]
