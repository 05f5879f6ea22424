#!/usr/bin/env python3
#
# Copyright 2022 Max Planck Insitute Magdeburg
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
#
#
"""Unified solver interface for LPs and MILPs (MILP_LP) and COBRA-style problem adapters"""

from numpy import inf, nan, isnan
from scipy import sparse
from typing import List, Tuple
from cobradesign import avail_solvers, GLPK
from cobradesign.names import *
import logging


class MILP_LP(object):
    """Unified MILP and LP interface

    This class is a wrapper for the solver interfaces to offer unique and
    consistent bindings for the construction of MILPs and LPs in an
    vector-matrix-based manner and their solution.

    Accepts a (mixed integer) linear problem in the form:
        minimize(c),
        subject to:
        A_ineq * x <= b_ineq,
        A_eq * x  = b_eq,
        lb <= x <= ub,
        forall(i) type(x_i) = vtype(i) (continous, binary, integer)

    Please ensure that the number of variables and (in)equalities is consistent

    Example:
        milp = MILP_LP(c=c, A_ineq=A_ineq, b_ineq=b_ineq, A_eq=A_eq, b_eq=b_eq, lb=lb, ub=ub, vtype=vtype)

    Args:
        c (list of float): (Default: None)
            The objective vector (Objective sense: minimization).

        A_ineq (sparse.csr_matrix): (Default: None)
            A coefficient matrix of the static inequalities.

        b_ineq (list of float): (Default: None)
            The right hand side of the static inequalities.

        A_eq (sparse.csr_matrix): (Default: None)
            A coefficient matrix of the static equalities.

        b_eq (list of float): (Default: None)
            The right hand side of the static equalities.

        lb (list of float): (Default: None)
            The lower variable bounds.

        ub (list of float): (Default: None)
            The upper variable bounds.

        vtype (str): (Default: None)
            A character string that specifies the type of each variable:
            'C'ontinous, 'B'inary or 'I'nteger

        solver (str): (Default: taken from avail_solvers)
            Solver backend that should be used: 'glpk'

        skip_checks (bool): (Default: False)
            Upon MILP construction, the dimensions of all provided vectors and matrices
            are checked to verify their consistency. If skip_checks=True is set, these
            checks are skipped.

        tlim (float):
            Solution time limit in seconds.

        Returns:
            (MILP_LP):

            A MILP/LP solver interface class.
    """

    def __init__(self, **kwargs):
        allowed_keys = {'c', 'A_ineq', 'b_ineq', 'A_eq', 'b_eq', 'lb', 'ub', 'vtype', 'solver', 'skip_checks', 'tlim'}
        # set all keys passed in kwargs
        for key, value in kwargs.items():
            if key in allowed_keys:
                setattr(self, key, value)
            else:
                raise Exception("Key " + key + " is not supported.")
        # set all remaining keys to None
        for key in allowed_keys:
            if key not in kwargs.keys():
                setattr(self, key, None)
        if self.solver is None:
            if len(avail_solvers) > 0:
                self.solver = list(avail_solvers)[0]
            else:
                raise Exception('No solver available. Please ensure that GLPK (swiglpk) '\
                    'is avaialable in your Python environment.')
        elif self.solver not in avail_solvers:
            raise Exception("Selected solver '" + self.solver + "' is not installed / set up correctly.")
        # Copy parameters to object
        if self.A_ineq is not None:
            numvars = self.A_ineq.shape[1]
        elif self.A_eq is not None:
            numvars = self.A_eq.shape[1]
        else:
            logging.warning('Problem has no variables.')
            numvars = 0
        if self.c is None:
            self.c = [0.0] * numvars
        if self.A_ineq is None:
            self.A_ineq = sparse.csr_matrix((0, numvars))
        if self.b_ineq is None:
            self.b_ineq = []
        if self.A_eq is None:
            self.A_eq = sparse.csr_matrix((0, numvars))
        if self.b_eq is None:
            self.b_eq = []
        if self.lb is None:
            self.lb = [-inf] * numvars
        if self.ub is None:
            self.ub = [inf] * numvars
        if self.vtype is None:
            self.vtype = 'C' * numvars
        # check dimensions
        if not self.skip_checks:
            if not (self.A_ineq.shape[0] == len(self.b_ineq)):
                raise Exception("A_ineq and b_ineq must have the same number of rows/elements")
            if not (self.A_eq.shape[0] == len(self.b_eq)):
                raise Exception("A_eq and b_eq must have the same number of rows/elements")
            if not (self.A_ineq.shape[1]==numvars and self.A_eq.shape[1]==numvars and len(self.c)==numvars and \
                    len(self.lb)==numvars and len(self.ub)==numvars and len(self.vtype)==numvars):
                raise Exception("A_eq, A_ineq, c, lb, ub, vtype must have the same number of columns/elements")
        # Cast variables as float
        self.A_ineq = sparse.csr_matrix(self.A_ineq).astype(float)
        self.A_eq = sparse.csr_matrix(self.A_eq).astype(float)
        self.c = [float(v) for v in self.c]
        self.b_ineq = [float(v) for v in self.b_ineq]
        self.b_eq = [float(v) for v in self.b_eq]
        self.lb = [float(v) for v in self.lb]
        self.ub = [float(v) for v in self.ub]
        # Create backend
        if self.solver == GLPK:
            from cobradesign.glpk_interface import GLPK_MILP_LP
            self.backend = GLPK_MILP_LP(self.c, self.A_ineq, self.b_ineq, self.A_eq, self.b_eq, self.lb, self.ub, self.vtype)
        if self.tlim is None:
            self.set_time_limit(inf)
        else:
            self.set_time_limit(self.tlim)

    def solve(self) -> Tuple[List, float, str]:
        """Solve the MILP or LP

        Example:
            sol_x, optim, status = milp.solve()

        Returns:
            (Tuple[List, float, str])

            solution_vector, optimal_value, optimization_status
        """
        x, min_cx, status = self.backend.solve()
        if status in [OPTIMAL, TIME_LIMIT_W_SOL]:  # if solution exists (is not nan), round integers
            x = [x[i] if self.vtype[i] == 'C' else int(round(x[i])) for i in range(len(x))]
        return x, min_cx, status

    def slim_solve(self) -> float:
        """Solve the MILP or LP, but return only the optimal value

        Example:
            optim = milp.slim_solve()

        Returns:
            (float)

            Optimum value of the objective function.
        """
        return self.backend.slim_solve()

    def set_time_limit(self, t):
        """Set the computation time limit (in seconds)"""
        self.tlim = t
        self.backend.set_time_limit(t)

    def add_eq_constraints(self, A_eq, b_eq):
        """Add equality constraints to the model

        Additional equality constraints have the form A_eq * x = b_eq.
        The number of columns in A_eq must match with the number of variables x
        in the problem.

        Args:
            A_eq (sparse.csr_matrix):
                The coefficient matrix

            b_eq (list of float):
                The right hand side vector
        """
        A_eq = sparse.csr_matrix(A_eq, dtype=float)
        A_eq.eliminate_zeros()
        b_eq = [float(b) for b in b_eq]
        self.A_eq = sparse.vstack((self.A_eq, A_eq)).tocsr()
        self.b_eq += b_eq
        self.backend.add_eq_constraints(A_eq, b_eq)


class MILPSolution(object):
    """Result of a single solve_cobra_milp / solve_cobra_lp call

    The object is created and filled once the solver returns and is the only place
    where results of a solver call are kept. Fields follow the COBRA naming.

    Attributes:
        obj (float):
            Objective value in the sense of the problem (osense is applied).

        full (list of float):
            Complete solution vector (empty if no solution was found).

        cont (list of float):
            Values of the continuous variables.

        int (list of int):
            Values of the integer/binary variables.

        status (str):
            Status string: 'optimal', 'infeasible', 'unbounded', 'time_limit',
            'time_limit_w_sols' or 'error'.

        stat (int):
            COBRA status code: 1 optimal, 0 infeasible, 2 unbounded, 3 feasible but
            possibly not optimal (time limit), -1 no solution (time limit or error).
    """

    def __init__(self, obj, full, vartype, status, solver):
        self.status = status
        self.solver = solver
        self.stat = status2stat(status)
        if status in [OPTIMAL, TIME_LIMIT_W_SOL]:
            self.obj = obj
            self.full = full
        else:
            self.obj = obj if status == UNBOUNDED else nan
            self.full = []
        self.cont = [x for x, t in zip(self.full, vartype) if t == 'C']
        self.int = [x for x, t in zip(self.full, vartype) if t != 'C']

    def has_solution(self) -> bool:
        """Check if a solution vector is available"""
        return bool(self.full)

    def __repr__(self):
        return "<MILPSolution " + str(self.obj) + " at " + hex(id(self)) + " (" + str(self.status) + ")>"


def status2stat(status) -> int:
    """Translate a status string into the COBRA integer status code"""
    if status == OPTIMAL:
        return 1
    elif status == INFEASIBLE:
        return 0
    elif status == UNBOUNDED:
        return 2
    elif status == TIME_LIMIT_W_SOL:
        return 3
    else:
        return -1


def _field(problem, key, default=None):
    if isinstance(problem, dict):
        return problem.get(key, default)
    return getattr(problem, key, default)


def cobra_problem2mat(problem) -> Tuple[sparse.csr_matrix, List, sparse.csr_matrix, List]:
    """Split a COBRA-style constraint system into inequalities (<=) and equalities

    Rows of problem.A are sorted by their constraint sense: 'L' rows are kept,
    'G' rows are multiplied with -1 and 'E' rows are put into the equality system.
    If no sense vector is provided, all rows are treated as equalities.

    Args:
        problem (dict or object):
            Problem with the fields A (sparse matrix), b (list of float) and
            csense (str or list of 'G','E','L').

    Returns:
        (Tuple):
        A_ineq, b_ineq, A_eq, b_eq
    """
    A = sparse.csr_matrix(_field(problem, 'A'))
    b = [float(v) for v in _field(problem, 'b')]
    csense = _field(problem, 'csense')
    if csense is None or len(csense) == 0:
        csense = EQUAL * A.shape[0]
    if len(csense) != A.shape[0] or len(b) != A.shape[0]:
        raise Exception("A, b and csense must have the same number of rows/elements")
    idx_l = [i for i, s in enumerate(csense) if s == LESS]
    idx_g = [i for i, s in enumerate(csense) if s == GREATER]
    idx_e = [i for i, s in enumerate(csense) if s == EQUAL]
    if len(idx_l) + len(idx_g) + len(idx_e) != A.shape[0]:
        raise Exception("Constraint senses must be one of 'G', 'E' or 'L'.")
    A_ineq = sparse.vstack((A[idx_l, :], -A[idx_g, :])).tocsr()
    b_ineq = [b[i] for i in idx_l] + [-b[i] for i in idx_g]
    A_eq = A[idx_e, :]
    b_eq = [b[i] for i in idx_e]
    return A_ineq, b_ineq, A_eq, b_eq


def solve_cobra_milp(problem, solver=None, time_limit=None) -> MILPSolution:
    """Solve a COBRA-style (mixed integer) linear problem

    The problem is read from a dict or an object (e.g. a BilevelMILPProblem) with the
    fields A, b, c, lb, ub, csense, osense, vartype and, optionally, x0. osense=-1
    denotes maximization, osense=1 minimization. The problem is translated to the
    minimization form of MILP_LP, solved and the results are returned in a fresh
    MILPSolution object.

    Example:
        sol = solve_cobra_milp({'A': A, 'b': b, 'c': c, 'lb': lb, 'ub': ub, 'csense': 'LLE', 'osense': -1})

    Args:
        problem (dict or object):
            The problem.

        solver (optional (str)):
            The solver backend. If not specified, an available solver is chosen.

        time_limit (optional (float)):
            Time limit in seconds.

    Returns:
        (MILPSolution):
            Objective value, solution vectors and status of the solver call.
    """
    A_ineq, b_ineq, A_eq, b_eq = cobra_problem2mat(problem)
    numvars = A_ineq.shape[1]
    osense = _field(problem, 'osense', 1)
    if osense is None:
        osense = 1
    c = [osense * float(v) for v in _field(problem, 'c')]
    vartype = _field(problem, 'vartype')
    if vartype is None or len(vartype) == 0:
        vartype = 'C' * numvars
    vartype = ''.join(vartype).upper()
    x0 = _field(problem, 'x0')
    if x0 is not None and len(x0) > 0:
        logging.info('  Initial solution provided, but GLPK offers no MIP start. It is not used.')
    milp = MILP_LP(c=c,
                   A_ineq=A_ineq,
                   b_ineq=b_ineq,
                   A_eq=A_eq,
                   b_eq=b_eq,
                   lb=_field(problem, 'lb'),
                   ub=_field(problem, 'ub'),
                   vtype=vartype,
                   solver=solver,
                   tlim=time_limit)
    x, min_cx, status = milp.solve()
    obj = osense * min_cx if not isnan(min_cx) else nan
    return MILPSolution(obj, x, vartype, status, milp.solver)


def solve_cobra_lp(problem, solver=None, time_limit=None) -> MILPSolution:
    """Solve a COBRA-style linear problem

    Same as solve_cobra_milp, but all variables are treated as continuous.
    """
    if isinstance(problem, dict):
        problem = dict(problem)
        problem['vartype'] = None
        problem['x0'] = None
    else:
        problem = {k: _field(problem, k) for k in ['A', 'b', 'c', 'lb', 'ub', 'csense', 'osense']}
    return solve_cobra_milp(problem, solver=solver, time_limit=time_limit)
