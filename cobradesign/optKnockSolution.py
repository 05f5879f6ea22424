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
"""Container for OptKnock results (OptKnockSolution)"""

from cobra import Configuration
from pandas import Series
from numpy import nan
from cobradesign.solver_interface import status2stat
from cobradesign.names import *


class OptKnockSolution(object):
    """Result of an OptKnock computation

    Solutions are usually created with OptKnockSolution.from_milp from the solver output of
    a BilevelMILPProblem. If no solution was found (e.g., infeasible problem or time limit),
    the knockout list and the flux vector are empty and only the status is set.

    Example:
        sol, problem = optknock(model, ['R1', 'R2'], {'target_rxn': 'EX_P'})
        print(sol.rxn_list, sol.fluxes['EX_P'])

    Attributes:
        rxn_list (list of str):
            Identifiers of the knocked-out reactions.

        fluxes (pandas.Series):
            Net fluxes of the original reactions at the inner optimum.

        objective_value (float):
            Flux through the target reaction.

        inner_objective (float):
            Value of the native objective of the model (c'v).

        dual_objective (float):
            Objective value of the dual of the inner problem.

        full, cont, int (list):
            Complete solution vector, continuous and binary parts of the MILP solution.

        status (str):
            Solver status, e.g., 'optimal', 'infeasible' or 'time_limit'.

        stat (int):
            COBRA status code (1 optimal, 0 infeasible, 2 unbounded, 3 time limit with
            solution, -1 no solution).
    """

    def __init__(self, rxn_list=None, fluxes=None, objective_value=nan, inner_objective=nan, dual_objective=nan,
                 full=None, cont=None, int=None, status=None):
        self.rxn_list = rxn_list if rxn_list is not None else []
        self.fluxes = fluxes if fluxes is not None else Series([], dtype=float, name='fluxes')
        self.objective_value = objective_value
        self.inner_objective = inner_objective
        self.dual_objective = dual_objective
        self.full = full if full is not None else []
        self.cont = cont if cont is not None else []
        self.int = int if int is not None else []
        self.status = status
        self.stat = status2stat(status) if status is not None else None

    @classmethod
    def from_milp(cls, problem, milp_solution):
        """Decode the solution of a BilevelMILPProblem

        Net fluxes are restored from the irreversible fluxes. Candidates whose binary
        variable is 1 (within 100 times the feasibility tolerance of cobra) are
        reported as knocked out. Cycles between the forward and backward variable of a
        split reaction are removed, so at most one direction carries flux. This keeps
        the net fluxes, the objectives and all bounds.

        Args:
            problem (BilevelMILPProblem):
                The solved problem.

            milp_solution (MILPSolution):
                The solver output, as returned by solve_cobra_milp.

        Returns:
            (OptKnockSolution)
        """
        if not milp_solution.has_solution():
            return cls(status=milp_solution.status)
        x = list(milp_solution.full)
        irrev_model = problem.irrev_model
        tol = KO_TOL_FACTOR * Configuration().tolerance
        knocked_out = set(r for k, r in zip(problem.idx_z, problem.candidates) if abs(x[k] - 1) < tol)
        rxn_list = [r for r in problem.candidates if r in knocked_out]
        v = [x[i] for i in problem.idx_v]
        for i, j in enumerate(irrev_model.match_rev):
            if i < j:
                cycle = min(v[i], v[j])
                v[i] -= cycle
                v[j] -= cycle
        for i, k in enumerate(problem.idx_v):
            x[k] = v[i]
        mu_ub = [x[i] for i in problem.idx_mu_ub]
        mu_lb = [x[i] for i in problem.idx_mu_lb]
        lb_pos = [l for l in problem.flux_lb if l > 0]
        ub = problem.flux_ub
        inner_objective = sum(c_i * v_i for c_i, v_i in zip(irrev_model.c, v))
        dual_objective = sum(u * m for u, m in zip(ub, mu_ub)) - sum(l * m for l, m in zip(lb_pos, mu_lb))
        return cls(rxn_list=rxn_list,
                   fluxes=irrev_model.to_reversible_fluxes(v),
                   objective_value=milp_solution.obj,
                   inner_objective=inner_objective,
                   dual_objective=dual_objective,
                   full=x,
                   cont=[x_i for x_i, t in zip(x, problem.vartype) if t == 'C'],
                   int=milp_solution.int,
                   status=milp_solution.status)

    def has_solution(self) -> bool:
        return len(self.fluxes) > 0

    def __repr__(self):
        return "<OptKnockSolution " + str(self.rxn_list) + " (" + str(self.status) + ") at " + hex(id(self)) + ">"
