"""
Pure domain layer of the copier.

Shapes, field resolution, the registry, value conversion and the copy
engine. No I/O, no global state beyond per-class caches of dataclass
field layouts.
"""
