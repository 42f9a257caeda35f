from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GymnastProfile:
    id: str
    first_name: str
    last_name: str
    level: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
