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
"""GLPK solver interface for LP and MILP"""

from scipy import sparse
from numpy import nan, inf, isinf
from cobradesign.names import *
from typing import Tuple, List
from swiglpk import *
import logging


class GLPK_MILP_LP():
    """GLPK interface for MILP and LP

    This class is a wrapper for the GLPK-Python API to offer bindings and namings
    for functions for the construction and solution of MILPs and LPs in an
    vector-matrix-based manner. It is the backend of the MILP_LP class that is used
    for all optimizations of the cobradesign package (FBA, bilevel OptKnock MILPs).

    Accepts a (mixed integer) linear problem in the form:
        minimize(c),
        subject to:
        A_ineq * x <= b_ineq,
        A_eq * x  = b_eq,
        lb <= x <= ub,
        forall(i) type(x_i) = vtype(i) (continous, binary, integer)

    Please ensure that the number of variables and (in)equalities is consistent

    Example:
        glpk = GLPK_MILP_LP(c, A_ineq, b_ineq, A_eq, b_eq, lb, ub, vtype)

    Args:
        c (list of float):
            The objective vector (Objective sense: minimization).

        A_ineq (sparse.csr_matrix):
            A coefficient matrix of the static inequalities.

        b_ineq (list of float):
            The right hand side of the static inequalities.

        A_eq (sparse.csr_matrix):
            A coefficient matrix of the static equalities.

        b_eq (list of float):
            The right hand side of the static equalities.

        lb (list of float):
            The lower variable bounds.

        ub (list of float):
            The upper variable bounds.

        vtype (str):
            A character string that specifies the type of each variable:
            'C'ontinous, 'B'inary or 'I'nteger

        Returns:
            (GLPK_MILP_LP):

            A GLPK MILP/LP interface class.
    """

    def __init__(self, c, A_ineq, b_ineq, A_eq, b_eq, lb, ub, vtype):
        self.glpk = glp_create_prob()
        # Careful with indexing! GLPK indexing starts with 1 and not with 0
        numvars = A_ineq.shape[1]

        self.ismilp = not all([v == 'C' for v in vtype])

        # add and set variables, types and bounds
        if numvars > 0:
            glp_add_cols(self.glpk, numvars)
        for i, v in enumerate(vtype):
            if v == 'C':
                glp_set_col_kind(self.glpk, i + 1, GLP_CV)
            if v == 'I':
                glp_set_col_kind(self.glpk, i + 1, GLP_IV)
            if v == 'B':
                glp_set_col_kind(self.glpk, i + 1, GLP_BV)
        # set bounds
        lb = [float(l) for l in lb]
        ub = [float(u) for u in ub]
        for i in range(numvars):
            if isinf(lb[i]) and isinf(ub[i]):
                glp_set_col_bnds(self.glpk, i + 1, GLP_FR, lb[i], ub[i])
            elif not isinf(lb[i]) and isinf(ub[i]):
                glp_set_col_bnds(self.glpk, i + 1, GLP_LO, lb[i], ub[i])
            elif isinf(lb[i]) and not isinf(ub[i]):
                glp_set_col_bnds(self.glpk, i + 1, GLP_UP, lb[i], ub[i])
            elif lb[i] < ub[i]:
                glp_set_col_bnds(self.glpk, i + 1, GLP_DB, lb[i], ub[i])
            elif lb[i] == ub[i]:
                glp_set_col_bnds(self.glpk, i + 1, GLP_FX, lb[i], ub[i])
            else:
                # GLPK rejects crossed bounds, move them into a row instead
                logging.warning('Lower bound of variable ' + str(i) + ' exceeds its upper bound.')
                A_ineq = sparse.vstack((A_ineq, sparse.csr_matrix(([1.0], ([0], [i])), shape=(1, numvars))))
                b_ineq = list(b_ineq) + [ub[i]]
                glp_set_col_bnds(self.glpk, i + 1, GLP_LO, lb[i], inf)

        # set objective
        glp_set_obj_dir(self.glpk, GLP_MIN)
        for i, c_i in enumerate(c):
            glp_set_obj_coef(self.glpk, i + 1, float(c_i))

        # stack all problem rows and add constraints
        if A_ineq.shape[0] + A_eq.shape[0] > 0:
            glp_add_rows(self.glpk, A_ineq.shape[0] + A_eq.shape[0])
            eq_type = [GLP_UP] * len(b_ineq) + [GLP_FX] * len(b_eq)
            for i, t, b in zip(range(len(b_ineq) + len(b_eq)), eq_type, list(b_ineq) + list(b_eq)):
                if isinf(b):
                    glp_set_row_bnds(self.glpk, i + 1, GLP_FR, -inf, inf)
                else:
                    glp_set_row_bnds(self.glpk, i + 1, t, float(b), float(b))

            A = sparse.vstack((A_ineq, A_eq), 'coo')
            ia = intArray(A.nnz + 1)
            ja = intArray(A.nnz + 1)
            ar = doubleArray(A.nnz + 1)
            for i, row, col, data in zip(range(A.nnz), A.row, A.col, A.data):
                ia[i + 1] = int(row) + 1
                ja[i + 1] = int(col) + 1
                ar[i + 1] = float(data)
            if A.nnz:
                glp_load_matrix(self.glpk, A.nnz, ia, ja, ar)

        # LP simplex parameters
        self.lp_params = glp_smcp()
        glp_init_smcp(self.lp_params)
        self.max_tlim = self.lp_params.tm_lim
        self.lp_params.tol_bnd = 1e-9
        self.lp_params.msg_lev = 0
        # MILP parameters
        if self.ismilp:
            self.milp_params = glp_iocp()
            glp_init_iocp(self.milp_params)
            self.milp_params.presolve = 1
            self.milp_params.tol_int = 1e-12
            self.milp_params.tol_obj = 1e-9
            self.milp_params.msg_lev = 0

    def solve(self) -> Tuple[List, float, str]:
        """Solve the MILP or LP

        Example:
            sol_x, optim, status = glpk.solve()

        Returns:
            (Tuple[List, float, str])

            solution_vector, optimal_value, optimization_status
        """
        try:
            min_cx, status, bool_tlim = self.solve_MILP_LP()
            if bool_tlim and status == GLP_FEAS:  # timeout with solution
                status = TIME_LIMIT_W_SOL
            elif status in [GLP_OPT, GLP_FEAS]:  # solution
                status = OPTIMAL
            elif bool_tlim and status == GLP_UNDEF:  # timeout without solution
                x = [nan] * glp_get_num_cols(self.glpk)
                return x, nan, TIME_LIMIT
            elif status in [GLP_INFEAS, GLP_NOFEAS]:  # infeasible
                x = [nan] * glp_get_num_cols(self.glpk)
                return x, nan, INFEASIBLE
            elif status in [GLP_UNBND, GLP_UNDEF]:  # solution unbounded
                x = [nan] * glp_get_num_cols(self.glpk)
                return x, -inf, UNBOUNDED
            else:
                raise Exception('Status code ' + str(status) + " not yet handeld.")
            x = self.getSolution()
            x = [round(y, 12) for y in x]  # workaround, round to 12 decimals
            min_cx = round(min_cx, 12)
            return x, min_cx, status

        except Exception:
            logging.error('Error while running GLPK.')
            x = [nan] * glp_get_num_cols(self.glpk)
            return x, nan, ERROR

    def slim_solve(self) -> float:
        """Solve the MILP or LP, but return only the optimal value

        Example:
            optim = glpk.slim_solve()

        Returns:
            (float)

            Optimum value of the objective function.
        """
        try:
            opt, status, bool_tlim = self.solve_MILP_LP()
            if status in [GLP_OPT, GLP_FEAS]:  # solution integer optimal (tolerance)
                pass
            elif status in [GLP_UNBND, GLP_UNDEF] and not bool_tlim:  # solution unbounded
                opt = -inf
            elif bool_tlim or status in [GLP_INFEAS, GLP_NOFEAS]:  # infeasible or timeout
                opt = nan
            else:
                raise Exception('Status code ' + str(status) + " not yet handeld.")
            return round(opt, 12)  # workaround, round to 12 decimals
        except Exception:
            logging.error('Error while running GLPK.')
            return nan

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
        numvars = glp_get_num_cols(self.glpk)
        numrows = glp_get_num_rows(self.glpk)
        num_newrows = A_eq.shape[0]
        col = intArray(numvars + 1)
        val = doubleArray(numvars + 1)
        glp_add_rows(self.glpk, num_newrows)
        for j in range(num_newrows):
            for i, v in enumerate(A_eq[j].toarray()[0]):
                col[i + 1] = i + 1
                val[i + 1] = float(v)
            glp_set_mat_row(self.glpk, numrows + j + 1, numvars, col, val)
            glp_set_row_bnds(self.glpk, numrows + j + 1, GLP_FX, float(b_eq[j]), float(b_eq[j]))

    def set_time_limit(self, t):
        """Set the computation time limit (in seconds)"""
        if t * 1000 > self.max_tlim:
            if self.ismilp:
                self.milp_params.tm_lim = self.max_tlim
            self.lp_params.tm_lim = self.max_tlim
        else:
            if self.ismilp:
                self.milp_params.tm_lim = int(t * 1000)
            self.lp_params.tm_lim = int(t * 1000)

    def getSolution(self) -> list:
        """Retrieve solution from GLPK backend"""
        if self.ismilp:
            x = [glp_mip_col_val(self.glpk, i + 1) for i in range(glp_get_num_cols(self.glpk))]
        else:
            x = [glp_get_col_prim(self.glpk, i + 1) for i in range(glp_get_num_cols(self.glpk))]
        return x

    def solve_MILP_LP(self) -> Tuple[float, int, bool]:
        """Trigger GLPK solution through backend"""
        starttime = glp_time()
        # MILP solving needs prior solution of the LP-relaxed problem, because occasionally
        # the MILP solver interface crashes when a problem is infesible, which, in turn,
        # crashes the python program. This connection-loss to the solver can not be captured.
        prelim_status = glp_simplex(self.glpk, self.lp_params)
        # There is a GLPK bug where feasible LPs fail initialy but can complete when presolved
        # in these cases, glp_simplex returns GLP_EFAIL. We capture these cases and solve again
        # with prior resolve.
        if prelim_status == GLP_EFAIL:
            self.lp_params.presolve = 1
            self.lp_params.meth = 3
            prelim_status = glp_simplex(self.glpk, self.lp_params)
            self.lp_params.presolve = 0
            self.lp_params.meth = 1
        status = glp_get_status(self.glpk)
        if self.ismilp and status not in [GLP_INFEAS, GLP_NOFEAS]:
            glp_intopt(self.glpk, self.milp_params)
            status = glp_mip_status(self.glpk)
            opt = glp_mip_obj_val(self.glpk)
        else:
            opt = glp_get_obj_val(self.glpk)
        timelim_reached = glp_difftime(glp_time(), starttime) * 1000 >= self.lp_params.tm_lim
        return opt, status, timelim_reached
