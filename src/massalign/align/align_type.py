"""Which ends of which sequence are anchored in an alignment."""
from dataclasses import dataclass
from enum import IntEnum
from typing import Union


# Constants ------------------------------------------------------------------------------------------------------------
class Side(IntEnum):
    """
    Anchoring of one end (left or right) of an alignment.

    ``GLOBAL_A`` forces the first sequence to be aligned up to this end, ``GLOBAL_B`` the second, ``GLOBAL`` both.
    ``EITHER_GLOBAL`` requires that at least one of the two reaches the end.
    """
    LOCAL = 0
    GLOBAL_A = 1
    GLOBAL_B = 2
    GLOBAL = 3
    EITHER_GLOBAL = 4

    def global_a(self) -> bool: return self in (Side.GLOBAL_A, Side.GLOBAL)
    def global_b(self) -> bool: return self in (Side.GLOBAL_B, Side.GLOBAL)
    def global_(self) -> bool: return self != Side.LOCAL


# Classes --------------------------------------------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class AlignType:
    """
    Anchoring of both ends of an alignment.

    Attributes:
        left: Anchoring of the start.
        right: Anchoring of the end.

    Examples:
        >>> AlignType.parse('global') == AlignType.GLOBAL
        True
        >>> AlignType('local', 'global_b').right
        <Side.GLOBAL_B: 2>
    """
    left: Union[Side, str, int] = Side.GLOBAL
    right: Union[Side, str, int] = Side.GLOBAL

    def __post_init__(self):
        for name in ('left', 'right'):
            value = getattr(self, name)
            if isinstance(value, Side): continue
            if isinstance(value, str):
                try: value = Side[value.upper()]
                except KeyError: raise ValueError(f"Invalid {name} side: {value}")
            else:
                try: value = Side(value)
                except ValueError: raise ValueError(f"Invalid {name} side: {value}")
            object.__setattr__(self, name, value)

    def __str__(self):
        return self.left.name.lower() if self.left == self.right else f'{self.left.name.lower()}|{self.right.name.lower()}'

    @classmethod
    def parse(cls, text: Union[str, 'AlignType']) -> 'AlignType':
        """Reads ``'global'`` style names, or ``'left|right'`` for differing ends."""
        if isinstance(text, AlignType): return text
        left, _, right = text.partition('|')
        return cls(left, right or left)


AlignType.LOCAL = AlignType(Side.LOCAL, Side.LOCAL)
AlignType.GLOBAL = AlignType(Side.GLOBAL, Side.GLOBAL)
AlignType.GLOBAL_A = AlignType(Side.GLOBAL_A, Side.GLOBAL_A)
AlignType.GLOBAL_B = AlignType(Side.GLOBAL_B, Side.GLOBAL_B)
AlignType.EITHER_GLOBAL = AlignType(Side.EITHER_GLOBAL, Side.EITHER_GLOBAL)
