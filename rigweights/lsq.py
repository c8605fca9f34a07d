"""Sparse linear least squares with soft and hard (exact) linear constraints."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Generic, Hashable, Mapping, TypeVar

from rigweights.sparse import LLTMatrix, NotPositiveDefiniteError, SPDMatrix

logger = logging.getLogger(__name__)

V = TypeVar("V", bound=Hashable)
C = TypeVar("C", bound=Hashable)


class SingularSystemError(ValueError):
    """Raised when a constraint system is singular or leaves a variable undetermined."""


class _Anonymous:
    """Identifier slot for constraints whose right-hand side is fixed when added."""

    def __repr__(self) -> str:
        return "<anonymous>"


_ANONYMOUS = _Anonymous()


@dataclass
class _Constraint:
    hard: bool
    lhs: dict
    rhs: float = 0.0


@dataclass
class _Factorization:
    soft_num: int
    var_ids: list
    constraint_map: dict
    substituted_hard: list[list[tuple[int, float]]]
    rhs_transform: list[list[tuple[int, float]]]
    soft_matrix: list[list[tuple[int, float]]]
    matrix: LLTMatrix
    result: dict = field(default_factory=dict)


def _pick_pivot(hard_constraints: list[dict]) -> tuple[int, object, float]:
    """Choose the equation and variable to eliminate next.

    Prefers large coefficients and, strongly, short equations; an equality or
    assignment with a decent coefficient is taken at once.
    """
    best_eq, best_var, best_val = -1, None, 0.0
    for i, eq in enumerate(hard_constraints):
        for var, weight in eq.items():
            val = abs(weight) / (len(eq) - 0.9)
            if val > best_val:
                best_eq, best_var, best_val = i, var, val
                if val > 0.5 and len(eq) <= 2:
                    return best_eq, best_var, best_val
    return best_eq, best_var, best_val


class LSQSystem(Generic[V, C]):
    """A sparse linear least squares system with support for hard constraints.

    Add constraints, call :meth:`factor`, then any number of times set
    right-hand sides with :meth:`set_rhs`, call :meth:`solve` and read values
    with :meth:`result`.
    """

    def __init__(self) -> None:
        self._constraints: dict[tuple, _Constraint] = {}
        self._factored: _Factorization | None = None
        self._result: dict = {}

    def add_constraint(self, hard: bool, lhs: Mapping[V, float], ident: C) -> None:
        """Add a constraint ``sum(lhs) = rhs`` whose rhs is later set via ``ident``."""
        self._constraints[(ident, -1)] = _Constraint(bool(hard), dict(lhs))
        self._factored = None

    def add_fixed_constraint(
        self, hard: bool, lhs: Mapping[V, float], rhs: float
    ) -> None:
        """Add a constraint ``sum(lhs) = rhs`` with a right-hand side that never changes."""
        key = (_ANONYMOUS, len(self._constraints))
        self._constraints[key] = _Constraint(bool(hard), dict(lhs), float(rhs))
        self._factored = None

    def set_rhs(self, ident: C, rhs: float) -> None:
        """Set the right-hand side of the constraint added under ``ident``."""
        key = (ident, -1)
        if key not in self._constraints:
            raise KeyError(ident)
        self._constraints[key].rhs = float(rhs)

    def factor(self) -> None:
        """Eliminate the hard constraints and factor the normal equations.

        Raises :class:`SingularSystemError` if the system is (near) singular or
        some variable is determined by no constraint.
        """
        self._factored = None
        constraints = self._constraints

        constraint_map: dict[tuple, int] = {}
        soft_num = 0
        for key, con in constraints.items():
            if not con.hard:
                constraint_map[key] = soft_num
                soft_num += 1

        hard_constraints = [dict(c.lhs) for c in constraints.values() if c.hard]
        hard_ids = [key for key, c in constraints.items() if c.hard]
        hard_num = len(hard_constraints)
        hard_rhs: list[dict] = [{hid: 1.0} for hid in hard_ids]

        # substitutions[x] = {y: 3, z: 2} means x = 3y + 2z + c, where c is the
        # linear combination of right-hand sides in substitutions_rhs[x].
        substitutions: dict = {}
        substitutions_rhs: dict = {}
        substitution_idx: dict = {}

        while hard_constraints:
            best_eq, best_var, best_val = _pick_pivot(hard_constraints)
            if best_val < 1e-10:
                raise SingularSystemError("hard constraints are near-singular")

            substitution_idx[best_var] = len(substitutions)
            constraint_map[hard_ids[best_eq]] = soft_num + len(substitutions)

            last = len(hard_constraints) - 1
            for seq in (hard_constraints, hard_ids, hard_rhs):
                seq[best_eq], seq[last] = seq[last], seq[best_eq]
            eq = hard_constraints.pop()
            hard_ids.pop()
            eq_rhs = hard_rhs.pop()

            factor = -1.0 / eq[best_var]
            cur_sub = {v: w * factor for v, w in eq.items() if v != best_var}
            cur_sub_rhs = {k: r * -factor for k, r in eq_rhs.items()}
            substitutions[best_var] = cur_sub
            substitutions_rhs[best_var] = cur_sub_rhs

            for pending, pending_rhs in zip(hard_constraints, hard_rhs):
                if best_var not in pending:
                    continue
                weight = pending.pop(best_var)
                for v, s in cur_sub.items():
                    pending[v] = pending.get(v, 0.0) + s * weight
                for k, r in cur_sub_rhs.items():
                    pending_rhs[k] = pending_rhs.get(k, 0.0) - r * weight

            for var, sub in substitutions.items():
                if best_var not in sub:
                    continue
                weight = sub.pop(best_var)
                for v, s in cur_sub.items():
                    sub[v] = sub.get(v, 0.0) + s * weight
                srhs = substitutions_rhs[var]
                for k, r in cur_sub_rhs.items():
                    srhs[k] = srhs.get(k, 0.0) + r * weight

        # Variables solved for in the least squares sense come first.
        var_map: dict = {}
        var_ids: list = []
        for con in constraints.values():
            if con.hard:
                continue
            for var in con.lhs:
                if var in var_map or var in substitutions:
                    continue
                var_map[var] = len(var_ids)
                var_ids.append(var)
        soft_vars = len(var_ids)

        var_ids.extend([None] * hard_num)
        for var in substitutions:
            idx = substitution_idx[var] + soft_vars
            var_map[var] = idx
            var_ids[idx] = var

        substituted_hard: list[list[tuple[int, float]]] = [[] for _ in substitutions]
        for var, sub in substitutions.items():
            idx = substitution_idx[var]
            for other, coef in sub.items():
                if other not in var_map:
                    raise SingularSystemError(
                        f"variable {other!r} is left free by all constraints"
                    )
                substituted_hard[idx].append((var_map[other], coef))

        rhs_transform_map: list[dict[int, float]] = [{} for _ in range(hard_num)]
        soft_matrix: list[list[tuple[int, float]]] = [[] for _ in range(soft_num)]
        for key, con in constraints.items():
            if con.hard:
                continue
            idx = constraint_map[key]
            mod_lhs = dict(con.lhs)
            for var, fac in con.lhs.items():
                if var not in substitutions:
                    continue
                for other, s in substitutions[var].items():
                    mod_lhs[other] = mod_lhs.get(other, 0.0) + fac * s
                for k, r in substitutions_rhs[var].items():
                    row = rhs_transform_map[constraint_map[k] - soft_num]
                    row[idx] = row.get(idx, 0.0) - fac * r
            soft_matrix[idx] = sorted(
                (var_map[v], w) for v, w in mod_lhs.items() if v not in substitutions
            )

        for var, srhs in substitutions_rhs.items():
            idx = substitution_idx[var] + soft_num
            for k, r in srhs.items():
                row = rhs_transform_map[constraint_map[k] - soft_num]
                row[idx] = row.get(idx, 0.0) + r
        rhs_transform = [sorted(row.items()) for row in rhs_transform_map]

        # Lower triangle of A^T A.
        spd_map: list[dict[int, float]] = [{} for _ in range(soft_vars)]
        for row in soft_matrix:
            for j, (col_j, val_j) in enumerate(row):
                target = spd_map[col_j]
                for col_k, val_k in row[: j + 1]:
                    target[col_k] = target.get(col_k, 0.0) + val_j * val_k
        spdm = [sorted(entries.items()) for entries in spd_map]

        try:
            matrix = SPDMatrix(spdm).factor()
        except NotPositiveDefiniteError as exc:
            raise SingularSystemError("normal equations are not positive definite") from exc
        if matrix.size() != soft_vars:
            raise SingularSystemError("factorization has the wrong size")

        self._factored = _Factorization(
            soft_num=soft_num,
            var_ids=var_ids,
            constraint_map=constraint_map,
            substituted_hard=substituted_hard,
            rhs_transform=rhs_transform,
            soft_matrix=soft_matrix,
            matrix=matrix,
        )

    def solve(self) -> dict:
        """Solve with the current right-hand sides and return all variable values."""
        fac = self._factored
        if fac is None:
            raise RuntimeError("system must be factored before solving")
        self._result = {}

        rhs0 = [0.0] * len(fac.constraint_map)
        for key, con in self._constraints.items():
            rhs0[fac.constraint_map[key]] = con.rhs

        soft_num = fac.soft_num
        # For hard constraints the transform is absolute, not additive.
        rhs1 = rhs0[:soft_num] + [0.0] * (len(rhs0) - soft_num)
        for i, row in enumerate(fac.rhs_transform):
            source = rhs0[soft_num + i]
            for j, weight in row:
                rhs1[j] += weight * source

        rhs2 = [0.0] * fac.matrix.size()
        for i, row in enumerate(fac.soft_matrix):
            for col, weight in row:
                rhs2[col] += weight * rhs1[i]

        x = fac.matrix.solve(rhs2)
        result = {fac.var_ids[i]: value for i, value in enumerate(x)}

        for i, sub in enumerate(fac.substituted_hard):
            cur = rhs1[soft_num + i] + sum(w * x[col] for col, w in sub)
            result[fac.var_ids[i + len(x)]] = cur

        self._result = result
        return dict(result)

    def result(self, var: V) -> float:
        """Return the solved value of ``var``."""
        if var not in self._result:
            raise KeyError(var)
        return self._result[var]