# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

# Just the handful of quantities lap building converts.  Each unit is
# stored as how many of it make one base unit of its quantity, plus an
# offset, so value_in_unit = base * scale + offset.

from dataclasses import dataclass
import math

import numpy as np


@dataclass(frozen=True)
class Unit:
    quantity: str
    scale: float = 1
    offset: float = 0

_quantities = {
    # quantity: {names: (scale, offset)}, the first entry is the base unit
    'length': {('m', 'meter'): (1, 0),
               ('km', 'kilometer'): (1e-3, 0),
               ('ft', 'feet'): (1 / 0.3048, 0),
               ('mi', 'mile'): (1 / 1609.344, 0)},
    'speed': {('m/s', 'meter/sec'): (1, 0),
              ('km/h', 'kph'): (3.6, 0),
              ('mph', 'mile/h'): (3600 / 1609.344, 0)},
    'angle': {('rad',): (1, 0),
              ('deg', 'degrees'): (180 / math.pi, 0)},
    'ratio': {('ratio',): (1, 0),
              ('pct', 'percent'): (100, 0)},
}

units = {name: Unit(quantity, scale, offset)
         for quantity, table in _quantities.items()
         for names, (scale, offset) in table.items()
         for name in names}

# what the telemetry file writes -> our name.  '%' channels hold 0..1.
_file_units = {'%': 'ratio'}

def file_unit(unit):
    return _file_units.get(unit, unit)

def lookup(unit):
    return units.get(file_unit(unit).lower()) if unit else None

def convert(values, from_unit, to_unit):
    """Convert values (scalar or array) between two units of one quantity.

    Returns None when either unit is unknown or they measure different
    things.
    """
    if file_unit(from_unit).lower() == to_unit.lower():
        return values
    old = lookup(from_unit)
    new = lookup(to_unit)
    if old is None or new is None or old.quantity != new.quantity:
        return None
    if old == new:
        return values
    return np.subtract(values, old.offset) * (new.scale / old.scale) + new.offset

def convert_or_keep(values, from_unit, to_unit, assumed_unit=None):
    # A channel without a unit is taken to be in assumed_unit.  Units we
    # can't convert are passed through unchanged.
    from_unit = from_unit or assumed_unit
    if not from_unit:
        return values
    converted = convert(values, from_unit, to_unit)
    return values if converted is None else converted
