from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .constants import DEFAULT_GLIDE, DEFAULT_GRIP
from .data_models import EquipmentInventory

MIN_GLIDE_MOD = 0.9
MAX_GLIDE_MOD = 1.1


@dataclass(frozen=True)
class GearModifiers:
    grip_mod: float  # energy penalty per tick, lower is better
    glide_mod: float  # speed multiplier


def resolve_gear(
    inventory: Optional[EquipmentInventory],
    ski_id: Optional[str] = None,
    wax_id: Optional[str] = None,
) -> GearModifiers:
    """
    Turns the chosen ski and wax into race-long grip/glide modifiers.

    Unknown or missing ids fall back to neutral 70/70 equipment.
    """
    ski = inventory.find(ski_id) if inventory else None
    wax = inventory.find(wax_id) if inventory else None

    ski_grip = ski.grip if ski else DEFAULT_GRIP
    ski_glide = ski.glide if ski else DEFAULT_GLIDE
    wax_grip = wax.grip if wax else DEFAULT_GRIP
    wax_glide = wax.glide if wax else DEFAULT_GLIDE

    grip_mod = (140.0 - (ski_grip + wax_grip)) / 500.0
    glide_mod = 0.9 + ((ski_glide + wax_glide) / 200.0) * 0.2
    glide_mod = max(MIN_GLIDE_MOD, min(MAX_GLIDE_MOD, glide_mod))
    return GearModifiers(grip_mod=grip_mod, glide_mod=glide_mod)
