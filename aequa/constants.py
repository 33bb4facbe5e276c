"""Named mathematical constants."""

from enum import Enum
from typing import Optional

_APPROXIMATIONS = {
    "PI": 3.141592653589793,
    "E": 2.718281828459045,
    "EULER_GAMMA": 0.5772156649015329,
    "GOLDEN_RATIO": 1.618033988749895,
    "CATALAN": 0.915965594177219,
    "POSITIVE_INFINITY": float("inf"),
    "NEGATIVE_INFINITY": float("-inf"),
}

_ALIASES = {
    "pi": "PI", "π": "PI",
    "e": "E",
    "i": "I",
    "gamma": "EULER_GAMMA", "euler_gamma": "EULER_GAMMA", "γ": "EULER_GAMMA",
    "phi": "GOLDEN_RATIO", "golden_ratio": "GOLDEN_RATIO", "φ": "GOLDEN_RATIO",
    "catalan": "CATALAN", "G": "CATALAN",
    "inf": "POSITIVE_INFINITY", "infinity": "POSITIVE_INFINITY", "∞": "POSITIVE_INFINITY",
    "-inf": "NEGATIVE_INFINITY", "-infinity": "NEGATIVE_INFINITY", "-∞": "NEGATIVE_INFINITY",
    "undefined": "UNDEFINED", "nan": "UNDEFINED",
}


class MathConstant(Enum):
    """A named constant. The value is its display symbol."""

    PI = "π"
    E = "e"
    I = "i"
    EULER_GAMMA = "γ"
    GOLDEN_RATIO = "φ"
    CATALAN = "G"
    POSITIVE_INFINITY = "∞"
    NEGATIVE_INFINITY = "-∞"
    UNDEFINED = "undefined"

    @property
    def symbol(self) -> str:
        return self.value

    def approximate(self) -> Optional[float]:
        """Float approximation, or None for i and undefined."""
        return _APPROXIMATIONS.get(self.name)

    def is_real(self) -> bool:
        return self not in (MathConstant.I, MathConstant.UNDEFINED)

    def is_finite(self) -> bool:
        return self not in (
            MathConstant.POSITIVE_INFINITY,
            MathConstant.NEGATIVE_INFINITY,
            MathConstant.UNDEFINED,
        )

    def is_nonzero(self) -> bool:
        """True when the constant is a known nonzero number."""
        return self is not MathConstant.UNDEFINED

    @classmethod
    def from_name(cls, name: str) -> "MathConstant":
        """Look up a constant by alias, symbol or enum name.

        Raises:
            ValueError: if the name is not a known constant
        """
        key = _ALIASES.get(name) or _ALIASES.get(name.lower())
        if key is None and name.upper() in cls.__members__:
            key = name.upper()
        if key is None:
            raise ValueError(f"Unknown constant: {name}")
        return cls[key]

    def __str__(self) -> str:
        return self.value
