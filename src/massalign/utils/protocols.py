from typing import Protocol, runtime_checkable, Sequence


@runtime_checkable
class MassResidue(Protocol):
    """Protocol for a single sequence element that can be aligned on mass."""

    @property
    def symbol(self) -> str: ...

    @property
    def code(self) -> int: ...

    @property
    def masses(self) -> Sequence[float]: ...

    @property
    def is_modified(self) -> bool: ...


@runtime_checkable
class MassSequence(Protocol):
    """Protocol for an ordered run of residues (e.g. Peptide)."""

    def __len__(self) -> int: ...

    def __getitem__(self, item) -> MassResidue: ...


@runtime_checkable
class HasConfidence(Protocol):
    """Protocol for sequences carrying a per-residue confidence (e.g. de novo peptides)."""

    @property
    def confidence(self): ...
