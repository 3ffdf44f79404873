"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, refnet.toml only contains overrides.
An empty (or missing) refnet.toml yields a fully working configuration.
"""

from __future__ import annotations

from pydantic import BaseModel

# --- refnet.toml sections ---


class NetworkConfig(BaseModel):
    """[network] section — traversal limits."""

    model_config = {"frozen": True}

    default_depth: int = 2
    depth_ceiling: int = 10
    include_members: bool = True
    lookup_batch_size: int = 16


class SimulationConfig(BaseModel):
    """[simulation] section — force relaxation tuning."""

    model_config = {"frozen": True}

    spring_rest_length: float = 80.0
    spring_strength: float = 0.5
    repulsion_strength: float = 200.0
    repulsion_range: float = 200.0
    anchor_strength_x: float = 0.1
    anchor_strength_y: float = 0.2
    min_separation: float = 40.0
    collision_passes: int = 4
    velocity_decay: float = 0.4
    alpha_decay: float = 0.0228
    energy_threshold: float = 0.01
    max_iterations: int = 300
    settle_timeout: float = 2.0
    dt: float = 1.0
    tick_interval: float = 1 / 60


class LayoutConfig(BaseModel):
    """[layout] section — anchor rows, margins and edge geometry."""

    model_config = {"frozen": True}

    member_row_y: float = 60.0
    child_row_y: float = 150.0
    multi_referrer_row_y: float = 220.0
    row_gap: float = 80.0
    margin: float = 20.0
    edge_offset: float = 15.0
    default_width: float = 960.0
    default_height: float = 500.0


class InteractionConfig(BaseModel):
    """[interaction] section — zoom range and drag reheat."""

    model_config = {"frozen": True}

    min_scale: float = 0.5
    max_scale: float = 3.0
    zoom_in_factor: float = 1.3
    zoom_out_factor: float = 0.7
    drag_alpha_target: float = 0.3


class StoreConfig(BaseModel):
    """[store] section — where the SQLite relationship store lives."""

    model_config = {"frozen": True}

    database: str = "refnet.db"
