"""Dynamic programming kernels for mass based block alignment of single sequences and of aligned groups."""
from enum import IntEnum

import numpy as np

from massalign.core.diagonal import _tri_index
from massalign.core.tolerance import ToleranceKind
from massalign.utils.resources import jit


# Constants ------------------------------------------------------------------------------------------------------------
class MatchType(IntEnum):
    """Classification of one alignment step."""
    FULL_IDENTITY = 0
    IDENTITY_MASS_MISMATCH = 1
    MISMATCH = 2
    ISOBARIC = 3
    ROTATION = 4
    GAP = 5


class PairMode(IntEnum):
    """Which side is trusted when two identical amino acids disagree in mass."""
    SAME = 0
    DATABASE_TO_PEPTIDOFORM = 1
    PEPTIDOFORM_TO_DATABASE = 2


class Param(IntEnum):
    """Slots of the integer scoring vector handed to the kernels."""
    MISMATCH = 0
    MASS_MISMATCH = 1
    MASS_BASE = 2
    ROTATED = 3
    ISOBARIC = 4
    GAP_START = 5
    GAP_EXTEND = 6
    PAIR = 7


# Plain ints so numba freezes them as compile time constants
_FULL_IDENTITY = int(MatchType.FULL_IDENTITY)
_IDENTITY_MASS_MISMATCH = int(MatchType.IDENTITY_MASS_MISMATCH)
_MISMATCH = int(MatchType.MISMATCH)
_ISOBARIC = int(MatchType.ISOBARIC)
_ROTATION = int(MatchType.ROTATION)
_GAP = int(MatchType.GAP)
_DATABASE_TO_PEPTIDOFORM = int(PairMode.DATABASE_TO_PEPTIDOFORM)
_PEPTIDOFORM_TO_DATABASE = int(PairMode.PEPTIDOFORM_TO_DATABASE)
_PPM = int(ToleranceKind.PPM)
_P_MISMATCH = int(Param.MISMATCH)
_P_MASS_MISMATCH = int(Param.MASS_MISMATCH)
_P_MASS_BASE = int(Param.MASS_BASE)
_P_ROTATED = int(Param.ROTATED)
_P_ISOBARIC = int(Param.ISOBARIC)
_P_GAP_START = int(Param.GAP_START)
_P_GAP_EXTEND = int(Param.GAP_EXTEND)
_P_PAIR = int(Param.PAIR)


# Kernels --------------------------------------------------------------------------------------------------------------
@jit(nopython=True, cache=True, nogil=True)
def _within(masses_a, masses_b, tol_kind, tol_value):
    """True if any mass of ``masses_b`` falls in the tolerance window of any mass of ``masses_a``."""
    for a in masses_a:
        if tol_kind == _PPM:
            lo = a * (1.0 - tol_value * 1e-6)
            hi = a * (1.0 + tol_value * 1e-6)
        else:
            lo = a - tol_value
            hi = a + tol_value
        for b in masses_b:
            if lo <= b <= hi: return True
    return False


@jit(nopython=True, cache=True, nogil=True)
def _score_gap(prev_score, prev_step_a, prev_step_b, gap_a, gap_start, gap_extend):
    """
    Affine gap transition.

    The gap state is recovered from the piece stored in the previous cell: a gap extends only if that piece was
    itself a gap along the same axis, any other piece (or the empty start cell) opens a new gap.
    """
    is_first = prev_step_a == 0 and prev_step_b == 0
    is_previous_gap = (prev_step_a == 0 and not gap_a) or (prev_step_b == 0 and gap_a)
    local = gap_extend
    if is_first or not is_previous_gap: local += gap_start
    step_a = 1 if gap_a else 0
    return prev_score + local, local, _GAP, step_a, 1 - step_a


@jit(nopython=True, cache=True, nogil=True)
def _score_pair(code_a, modified_a, masses_a, code_b, modified_b, masses_b, matrix, params, tol_kind, tol_value,
                score, step_a, step_b):
    """Scores a single residue against a single residue."""
    same = code_a == code_b
    within = _within(masses_a, masses_b, tol_kind, tol_value)
    substitution = matrix[code_a, code_b]
    if same and within:
        local = substitution
        kind = _FULL_IDENTITY
    elif same:
        pair = params[_P_PAIR]
        # Modifications are trusted on the database side and treated as artefacts on the peptide side
        if (pair == _DATABASE_TO_PEPTIDOFORM and modified_b) or (pair == _PEPTIDOFORM_TO_DATABASE and modified_a):
            local = substitution + params[_P_MASS_MISMATCH]
            kind = _IDENTITY_MASS_MISMATCH
        else:
            local = substitution + params[_P_MISMATCH]
            kind = _MISMATCH
    elif within:
        local = params[_P_MASS_BASE] + params[_P_ISOBARIC]
        kind = _ISOBARIC
    else:
        local = substitution + params[_P_MISMATCH]
        kind = _MISMATCH
    return score + local, local, kind, step_a, step_b


@jit(nopython=True, cache=True, nogil=True)
def _score_block(ids_a, ids_b, masses_a, masses_b, params, tol_kind, tol_value, score, step_a, step_b):
    """
    Scores a block of residues against another block.

    Returns a flag telling whether the blocks are mass equivalent, followed by the piece fields. Blocks holding
    the same residues in a different order are a rotation, anything else of equal mass is isobaric.
    """
    found = _within(masses_a, masses_b, tol_kind, tol_value)
    len_a = len(ids_a)
    len_b = len(ids_b)
    local = 0
    kind = _ISOBARIC
    if found:
        rotated = False
        if len_a == len_b: rotated = np.all(np.sort(ids_a) == np.sort(ids_b))
        if rotated:
            local = params[_P_MASS_BASE] + params[_P_ROTATED] * len_a
            kind = _ROTATION
        else:
            total = params[_P_ISOBARIC] * (len_a + len_b)
            # Truncating division, also for negative weights
            half = total // 2 if total >= 0 else -((-total) // 2)
            local = params[_P_MASS_BASE] + half
    return found, score + local, local, kind, step_a, step_b


@jit(nopython=True, cache=True, nogil=True)
def _fill_kernel(score, local, kind, step_a, step_b, side_a, side_b, matrix, params, tol_kind, tol_value, steps,
                 store_all):
    """
    Fills the alignment matrix of two groups of aligned lines.

    Rows and columns of the matrix are alignment columns of the two groups. For every line ``cuts[line, c]`` is the
    number of residues of that line before column ``c`` if ``c`` is a piece boundary of the line, otherwise ``-1``,
    and ``gaps[line, c]`` the number of gap columns of the line before ``c``. A line takes part in a candidate only
    if the candidate spans whole pieces of it and none of its gap columns; gap columns are consumed by gap steps.
    A single sequence is a group of one line with a boundary at every column, which makes this the plain pairwise
    recurrence. Each cell keeps the best candidate over all line pairs; candidates are visited in a fixed order
    and only a strictly better one replaces the current best.

    Side tuples hold ``(cuts, gaps, residue_base, codes, ids, modified, cell_base, lower, upper, mass_start, mass_end,
    mass_values)``, the per line arrays concatenated. Side A carries tolerance widened ranges, side B exact ones.

    Returns:
        The score and cell of the last best scoring cell.
    """
    cuts_a, gaps_a, rbase_a, codes_a, ids_a, mods_a, cbase_a, lo_a, hi_a, mstart_a, mend_a, values_a = side_a
    cuts_b, gaps_b, rbase_b, codes_b, ids_b, mods_b, cbase_b, lo_b, hi_b, mstart_b, mend_b, values_b = side_b
    n_a = score.shape[0] - 1
    n_b = score.shape[1] - 1
    lines_a = cuts_a.shape[0]
    lines_b = cuts_b.shape[0]
    gap_start = params[_P_GAP_START]
    gap_extend = params[_P_GAP_EXTEND]
    high_score = 0
    high_a = 0
    high_b = 0

    for i in range(1, n_a + 1):
        for j in range(1, n_b + 1):
            # 1. Gaps
            gap_in_a = _score_gap(score[i - 1, j], step_a[i - 1, j], step_b[i - 1, j], True, gap_start, gap_extend)
            gap_in_b = _score_gap(score[i, j - 1], step_a[i, j - 1], step_b[i, j - 1], False, gap_start, gap_extend)
            best = gap_in_a if gap_in_a[0] >= gap_in_b[0] else gap_in_b

            # 2. Single residues spanning exactly one column on both sides
            base = score[i - 1, j - 1]
            pair = best
            has_pair = False
            for p in range(lines_a):
                r0 = cuts_a[p, i - 1]
                if r0 < 0 or cuts_a[p, i] - r0 != 1: continue
                ra = rbase_a[p] + r0
                ga = cbase_a[p] + _tri_index(r0, 0, steps)
                for q in range(lines_b):
                    s0 = cuts_b[q, j - 1]
                    if s0 < 0 or cuts_b[q, j] - s0 != 1: continue
                    rb = rbase_b[q] + s0
                    gb = cbase_b[q] + _tri_index(s0, 0, steps)
                    candidate = _score_pair(codes_a[ra], mods_a[ra], values_a[mstart_a[ga]:mend_a[ga]],
                                            codes_b[rb], mods_b[rb], values_b[mstart_b[gb]:mend_b[gb]],
                                            matrix, params, tol_kind, tol_value, base, 1, 1)
                    if not has_pair or candidate[0] > pair[0]:
                        pair = candidate
                        has_pair = True
            if has_pair and pair[0] > best[0]: best = pair

            # 3. Blocks, skipped when an identity already won
            if best[2] != _FULL_IDENTITY:
                for len_a in range(1, min(i, steps) + 1):
                    for len_b in range(2 if len_a == 1 else 1, min(j, steps) + 1):
                        base = score[i - len_a, j - len_b]
                        for p in range(lines_a):
                            r0 = cuts_a[p, i - len_a]
                            r1 = cuts_a[p, i]
                            if r0 < 0 or r1 <= r0 or r1 - r0 > steps: continue
                            if gaps_a[p, i] != gaps_a[p, i - len_a]: continue
                            na = r1 - r0
                            ga = cbase_a[p] + _tri_index(r1 - 1, na - 1, steps)
                            for q in range(lines_b):
                                s0 = cuts_b[q, j - len_b]
                                s1 = cuts_b[q, j]
                                if s0 < 0 or s1 <= s0 or s1 - s0 > steps: continue
                                if gaps_b[q, j] != gaps_b[q, j - len_b]: continue
                                nb = s1 - s0
                                gb = cbase_b[q] + _tri_index(s1 - 1, nb - 1, steps)
                                if na == 1 and nb == 1:
                                    # Single residues pair up only over the same number of columns
                                    if len_a != len_b: continue
                                    ra = rbase_a[p] + r0
                                    rb = rbase_b[q] + s0
                                    candidate = _score_pair(
                                        codes_a[ra], mods_a[ra], values_a[mstart_a[ga]:mend_a[ga]],
                                        codes_b[rb], mods_b[rb], values_b[mstart_b[gb]:mend_b[gb]],
                                        matrix, params, tol_kind, tol_value, base, len_a, len_b)
                                    if candidate[0] > best[0]: best = candidate
                                    continue
                                # Ranges of A are already widened by the tolerance
                                if lo_a[ga] > hi_b[gb] or lo_b[gb] > hi_a[ga]: continue
                                found, s, loc, k, sa, sb = _score_block(
                                    ids_a[rbase_a[p] + r0:rbase_a[p] + r1], ids_b[rbase_b[q] + s0:rbase_b[q] + s1],
                                    values_a[mstart_a[ga]:mend_a[ga]], values_b[mstart_b[gb]:mend_b[gb]],
                                    params, tol_kind, tol_value, base, len_a, len_b)
                                if found and s > best[0]: best = (s, loc, k, sa, sb)

            # 4. Track the best cell, ties go to the later cell
            if best[0] >= high_score:
                high_score = best[0]
                high_a = i
                high_b = j
            if store_all or best[0] > 0:
                score[i, j] = best[0]
                local[i, j] = best[1]
                kind[i, j] = best[2]
                step_a[i, j] = best[3]
                step_b[i, j] = best[4]
    return high_score, high_a, high_b
