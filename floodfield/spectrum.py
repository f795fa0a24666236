"""Spectral setup: registration coefficients and material attenuation."""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from pathlib import Path

_ENERGY_COLUMN = "EkV"
_REGISTRATION_COLUMN = "Freg"


class SpectrumError(RuntimeError):
    """Raised when a spectrum file cannot be read."""


@dataclass
class Material:
    """A material with one attenuation coefficient per spectral channel."""

    name: str
    channels: int
    coefficients: list[float] = field(default_factory=list)


class Spectrum:
    """Registration coefficients per channel and the materials known to them."""

    def __init__(self) -> None:
        self.channels: int = 1
        self.registration_coefficients: list[float] = [1.0]
        self._materials: dict[str, Material] = {}

    def add_material(self, material: Material) -> None:
        """Register ``material``; an already known name is kept as it was."""
        if material.channels != self.channels:
            raise ValueError(
                "Material channels count and spectrum channels count does not match"
            )
        self._materials.setdefault(material.name, material)

    def materials(self) -> list[Material]:
        """Return the materials attached to the spectrum."""
        return list(self._materials.values())

    def read_from_csv(self, csv_path: str | Path) -> None:
        """Load the spectrum from a semicolon separated file with a header row."""
        try:
            with open(csv_path, newline="", encoding="utf-8") as handle:
                rows = [row for row in csv.reader(handle, delimiter=";") if row]
            if not rows:
                raise ValueError("file is empty")
            header, data = rows[0], rows[1:]
            columns = {name: [_cell(row, index) for row in data] for index, name in enumerate(header)}
            if _REGISTRATION_COLUMN not in columns:
                raise ValueError(f"column not found: {_REGISTRATION_COLUMN}")
            registration = columns[_REGISTRATION_COLUMN]
            self.channels = len(registration)
            self.registration_coefficients = registration
            for name in header:
                if name in (_ENERGY_COLUMN, _REGISTRATION_COLUMN):
                    continue
                coefficients = columns[name]
                self.add_material(Material(name, len(coefficients), coefficients))
        except Exception as err:
            raise SpectrumError(f"Error processing spectrum file: {err}") from err

    def material_coefficients(self, material_id: str) -> list[float]:
        """Return the attenuation coefficients of ``material_id``."""
        try:
            return self._materials[material_id].coefficients
        except KeyError:
            raise ValueError(f"Material '{material_id}' is not found") from None


def _cell(row: list[str], index: int) -> float:
    if index >= len(row):
        raise ValueError("row has too few cells")
    return float(row[index])