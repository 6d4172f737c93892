"""Amino acid residues, their modifications and monoisotopic masses."""
from dataclasses import dataclass
from typing import Iterable, Union

from massalign import MassAlignError


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class ResidueError(MassAlignError):
    """Raised for unknown amino acids or modifications."""


# Constants ------------------------------------------------------------------------------------------------------------
# Row order of the scoring matrices: the 20 standard amino acids alphabetically, then the extended symbols
AMINO_ACIDS = 'ACDEFGHIKLMNPQRSTVWYBJOUXZ'
_CODES = {aa: i for i, aa in enumerate(AMINO_ACIDS)}

MONOISOTOPIC = {
    'G': 57.021464, 'A': 71.037114, 'S': 87.032028, 'P': 97.052764, 'V': 99.068414, 'T': 101.047679,
    'C': 103.009185, 'L': 113.084064, 'I': 113.084064, 'N': 114.042927, 'D': 115.026943, 'Q': 128.058578,
    'K': 128.094963, 'E': 129.042593, 'M': 131.040485, 'H': 137.058912, 'F': 147.068414, 'R': 156.101111,
    'Y': 163.063329, 'W': 186.079313, 'U': 150.953636, 'O': 237.147727
}

# Candidate masses per symbol, ambiguous symbols have one per interpretation and X has none
MASSES = {aa: (mass,) for aa, mass in MONOISOTOPIC.items()}
MASSES['B'] = (MONOISOTOPIC['N'], MONOISOTOPIC['D'])
MASSES['Z'] = (MONOISOTOPIC['Q'], MONOISOTOPIC['E'])
MASSES['J'] = (MONOISOTOPIC['L'],)
MASSES['X'] = ()


# Classes --------------------------------------------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Modification:
    """
    A mass shift on a residue.

    Examples:
        >>> Modification.parse('Oxidation').mass
        15.994915
        >>> Modification.parse('+15.995')
        Modification(name='+15.995', mass=15.995)
    """
    name: str
    mass: float

    def __str__(self): return self.name

    @classmethod
    def parse(cls, text: str) -> 'Modification':
        """Looks up a named modification or interprets ``text`` as a signed mass delta."""
        if (mod := MODIFICATIONS.get(text.lower())) is not None: return mod
        try: mass = float(text)
        except ValueError: raise ResidueError(f'Unknown modification "{text}"')
        if text[0] not in '+-': raise ResidueError(f'Mass modifications need an explicit sign, got "{text}"')
        return cls(text, mass)


MODIFICATIONS = {m.name.lower(): m for m in (
    Modification('Deamidated', 0.984016),
    Modification('Oxidation', 15.994915),
    Modification('Phospho', 79.966331),
    Modification('Carbamidomethyl', 57.021464),
    Modification('Acetyl', 42.010565),
    Modification('Methyl', 14.01565),
    Modification('Amidated', -0.984016),
)}


class Residue:
    """
    An amino acid with its (possibly empty) set of modifications.

    Two residues are equal when the amino acid and the modifications are equal, this identity is what rotations
    are checked against.

    Args:
        symbol: One letter amino acid code.
        modifications: Modifications on this residue.

    Examples:
        >>> r = Residue('N', [Modification.parse('Deamidated')])
        >>> r.masses
        (115.026943,)
        >>> str(r)
        'N[Deamidated]'
    """
    __slots__ = ('symbol', 'modifications')

    def __init__(self, symbol: str, modifications: Iterable[Union[Modification, str]] = ()):
        if symbol not in _CODES: raise ResidueError(f'Unknown amino acid "{symbol}"')
        self.symbol = symbol
        self.modifications = tuple(m if isinstance(m, Modification) else Modification.parse(m) for m in modifications)

    def __eq__(self, other):
        if not isinstance(other, Residue): return NotImplemented
        return self.symbol == other.symbol and self.modifications == other.modifications

    def __hash__(self): return hash((self.symbol, self.modifications))
    def __str__(self): return self.symbol + ''.join(f'[{m}]' for m in self.modifications)
    def __repr__(self): return f"Residue({str(self)})"

    @property
    def code(self) -> int:
        """Row of this amino acid in the scoring matrices."""
        return _CODES[self.symbol]

    @property
    def is_modified(self) -> bool: return len(self.modifications) > 0

    @property
    def masses(self) -> tuple[float, ...]:
        """All candidate monoisotopic masses, including the modification shifts."""
        shift = sum(m.mass for m in self.modifications)
        return tuple(round(m + shift, 6) for m in MASSES[self.symbol])
