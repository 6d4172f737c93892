"""Linear peptides: the concrete sequence type consumed by the aligners."""
from typing import Iterable, Optional, Sequence, Union

import numpy as np

from massalign.core.residue import Residue, Modification, ResidueError


# Classes --------------------------------------------------------------------------------------------------------------
class Peptide:
    """
    An ordered run of residues with an optional name and per-residue confidence.

    Args:
        residues: The residues, or one letter codes.
        name: Optional identifier, used when rendering alignments.
        confidence: Optional per-residue confidence (e.g. from de novo sequencing), one value per residue.

    Examples:
        >>> p = Peptide.parse('ANWHN[Deamidated]')
        >>> len(p)
        5
        >>> p.sequence
        'ANWHN'
    """
    __slots__ = ('_residues', 'name', 'confidence')

    def __init__(self, residues: Iterable[Union[Residue, str]], name: str = None,
                 confidence: Optional[Sequence[float]] = None):
        self._residues = tuple(r if isinstance(r, Residue) else Residue(r) for r in residues)
        self.name = name
        if confidence is not None:
            confidence = np.asarray(confidence, dtype=np.float64)
            if confidence.shape != (len(self._residues),):
                raise ValueError(f'Expected {len(self._residues)} confidence values, got {confidence.shape}')
        self.confidence = confidence

    @classmethod
    def parse(cls, text: str, name: str = None, confidence: Sequence[float] = None) -> 'Peptide':
        """
        Parses one letter codes with bracketed modifications.

        A modification follows the residue it applies to and is either a known name (``N[Deamidated]``) or a
        signed mass shift (``M[+15.995]``).

        Args:
            text: The peptide text.
            name: Optional identifier.
            confidence: Optional per-residue confidence.

        Returns:
            The parsed Peptide.

        Raises:
            ResidueError: On unknown amino acids, unknown modifications or malformed brackets.
        """
        residues: list[tuple[str, list[Modification]]] = []
        i = 0
        while i < len(text):
            char = text[i]
            if char == '[':
                if not residues: raise ResidueError(f'Modification without a residue at position {i}')
                end = text.find(']', i)
                if end == -1: raise ResidueError(f'Unclosed modification at position {i}')
                residues[-1][1].append(Modification.parse(text[i + 1:end]))
                i = end + 1
            elif char.isspace(): i += 1
            else:
                residues.append((char, []))
                i += 1
        return cls((Residue(aa, mods) for aa, mods in residues), name=name, confidence=confidence)

    def __len__(self): return len(self._residues)
    def __iter__(self): return iter(self._residues)
    def __getitem__(self, item): return self._residues[item]
    def __str__(self): return ''.join(str(r) for r in self._residues)
    def __repr__(self): return f"Peptide({self.name + ': ' if self.name else ''}{str(self)})"

    def __eq__(self, other):
        if not isinstance(other, Peptide): return NotImplemented
        return self._residues == other._residues

    def __hash__(self): return hash(self._residues)

    @property
    def sequence(self) -> str:
        """The bare one letter codes."""
        return ''.join(r.symbol for r in self._residues)

    @property
    def mass(self) -> float:
        """Monoisotopic residue mass sum, using the first interpretation of ambiguous residues."""
        return sum(r.masses[0] for r in self._residues if r.masses)
