from __future__ import annotations

from enum import Enum


class Discipline(str, Enum):
    vault = "vault"
    bars = "bars"
    beam = "beam"
    floor = "floor"
    pommel = "pommel"
    rings = "rings"
    pbars = "pbars"
    highbar = "highbar"
    all_around = "all_around"
    strength = "strength"
    flexibility = "flexibility"


DISCIPLINE_LABELS: dict[str, str] = {
    Discipline.vault.value: "Vault",
    Discipline.bars.value: "Bars",
    Discipline.beam.value: "Beam",
    Discipline.floor.value: "Floor",
    Discipline.pommel.value: "Pommel Horse",
    Discipline.rings.value: "Rings",
    Discipline.pbars.value: "Parallel Bars",
    Discipline.highbar.value: "High Bar",
    Discipline.all_around.value: "All-Around",
    Discipline.strength.value: "Strength",
    Discipline.flexibility.value: "Flexibility",
}


def discipline_label(value: str) -> str:
    """Display label for a discipline; unknown values are shown as-is."""
    return DISCIPLINE_LABELS.get(value, value)


def discipline_sort_key(value: str) -> tuple[int, str]:
    order = list(DISCIPLINE_LABELS)
    if value in DISCIPLINE_LABELS:
        return (order.index(value), value)
    return (len(order), value)
