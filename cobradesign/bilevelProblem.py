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
"""Construction of the bilevel OptKnock MILP (BilevelMILPProblem) and no-good cuts"""

from scipy import sparse
from numpy import inf, isinf, nan
from typing import List, Tuple
from cobradesign.irreversibleModel import translate_constraints
from cobradesign.names import *
import logging


class BilevelMILPProblem(object):
    """The assembled OptKnock MILP in COBRA notation

    The inner problem (maximization of the native objective of the model) is represented
    by its primal feasibility, its dual feasibility and the strong duality equality. The
    outer problem maximizes the flux through the target reaction by choosing which of the
    candidate reactions are knocked out (z_k = 1). The problem can be passed directly to
    solve_cobra_milp.

    Columns are ordered in blocks:
        v      irreversible fluxes                      (idx_v)
        lambda duals of the steady state constraints    (idx_lambda)
        mu_ub  duals of the upper flux bounds           (idx_mu_ub)
        mu_lb  duals of positive lower flux bounds      (idx_mu_lb)
        z      knockout binaries, one per candidate     (idx_z)

    Attributes:
        A (sparse.csr_matrix): Constraint matrix.
        b (list of float): Right hand side.
        csense (str): Constraint senses, 'G', 'E' or 'L' for each row.
        lb, ub (list of float): Variable bounds.
        c (list of float): Objective coefficients.
        osense (int): Objective sense, -1 for maximization.
        vartype (str): 'C' or 'B' for each variable.
        int_sol_ind (list of int): Indices of the binary variables.
        x0 (list of float): Optional initial solution (None if not provided).
        candidates (list of str): Reaction identifiers of the knockout candidates.
        target (str): Identifier of the target reaction.
        irrev_model (IrreversibleModel): The constrained irreversible model.
        row_ranges (dict): Row indices of each constraint block.
        flux_lb, flux_ub (list of float): Flux bounds of the inner problem (capped at v_max).
    """

    def __init__(self, A, b, csense, lb, ub, c, osense, vartype, irrev_model, target, candidates, blocks, row_ranges,
                 flux_bounds):
        self.A = A
        self.b = b
        self.csense = csense
        self.lb = lb
        self.ub = ub
        self.c = c
        self.osense = osense
        self.vartype = vartype
        self.int_sol_ind = [i for i, t in enumerate(vartype) if t != 'C']
        self.x0 = None
        self.irrev_model = irrev_model
        self.target = target
        self.candidates = candidates
        self.idx_v, self.idx_lambda, self.idx_mu_ub, self.idx_mu_lb, self.idx_z = blocks
        self.row_ranges = row_ranges
        self.flux_lb, self.flux_ub = flux_bounds

    @property
    def num_vars(self) -> int:
        return self.A.shape[1]

    @property
    def num_rows(self) -> int:
        return self.A.shape[0]

    def set_initial_solution(self, knockouts):
        """Store an initial guess of knocked-out candidates as x0"""
        for r in knockouts:
            if r not in self.candidates:
                raise Exception("Reaction " + str(r) + " of the initial solution is not a knockout candidate.")
        self.x0 = [nan] * self.num_vars
        for k, r in zip(self.idx_z, self.candidates):
            self.x0[k] = 1.0 if r in knockouts else 0.0

    def __repr__(self):
        return "<BilevelMILPProblem " + str(self.num_rows) + " rows, " + str(self.num_vars) + " columns (" + \
            str(len(self.int_sol_ind)) + " binary) at " + hex(id(self)) + ">"


def check_model_blocks(model) -> bool:
    """Check if a cobra.Model carries constraints or variables beyond stoichiometry

    The bilevel MILP is constructed from the stoichiometric matrix, the flux bounds and the
    objective only. Additional optlang constraints or variables that were added to the
    model (e.g., enzyme constraints) are not translated. In this case, a warning is issued.

    Returns:
        (bool): True if the model consists of the stoichiometric system only.
    """
    extra_constr = len(model.constraints) > len(model.metabolites)
    extra_vars = len(model.variables) > 2 * len(model.reactions)
    if extra_constr or extra_vars:
        logging.warning('The model contains constraints or variables beyond stoichiometry. Only the stoichiometric '\
                        'system, the flux bounds and the objective are used for the bilevel problem. '\
                        'Computed designs may be wrong for the extended model.')
        return False
    return True


def no_good_cuts(candidates, prev_solutions) -> Tuple[sparse.csr_matrix, List[float]]:
    """Build constraints that exclude previously found knockout sets

    For each knockout set P, one row sum(z_k, k in P) <= |P| - 1 is generated over the
    binaries of the candidates. An empty knockout set is excluded by enforcing at least
    one knockout, -sum(z_k) <= -1. Reactions of P that are not candidates cannot be
    knocked out, such a cut is redundant and a warning is logged.

    Example:
        A_cut, b_cut = no_good_cuts(['R1', 'R2', 'R3'], [['R1', 'R3'], []])

    Args:
        candidates (list of str):
            Reaction identifiers of the knockout candidates. The order defines the columns.

        prev_solutions (list of lists of str):
            Previously found knockout sets.

    Returns:
        (Tuple):
        A_cut (sparse.csr_matrix, one row per knockout set), b_cut (list of float)
    """
    cand_idx = {r: k for k, r in enumerate(candidates)}
    rows = []
    cols = []
    data = []
    b_cut = []
    for j, sol in enumerate(prev_solutions or []):
        if isinstance(sol, str):
            sol = [sol]
        sol = list(dict.fromkeys(sol))
        if not sol:
            rows += [j] * len(candidates)
            cols += list(range(len(candidates)))
            data += [-1.0] * len(candidates)
            b_cut += [-1.0]
            continue
        missing = [r for r in sol if r not in cand_idx]
        if missing:
            logging.warning('Reactions ' + str(missing) + ' of a previous solution are no knockout candidates. '\
                            'The solution cannot be found again and the cut is redundant.')
        for r in sol:
            if r in cand_idx:
                rows += [j]
                cols += [cand_idx[r]]
                data += [1.0]
        b_cut += [float(len(sol) - 1)]
    A_cut = sparse.csr_matrix((data, (rows, cols)), shape=(len(b_cut), len(candidates)))
    return A_cut, b_cut


def create_bilevel_milp_problem(irrev_model, target, candidates, constraints=None, options=None,
                                prev_solutions=None) -> BilevelMILPProblem:
    """Assemble the OptKnock MILP from an irreversible model

    The inner problem max c'v s.t. S v = 0, lb <= v <= ub, v >= 0 is written as primal
    and dual feasibility with equal objective values. Bounds of knocked-out candidates
    (z_k = 1) are set to zero. The duals of these bounds are forced to zero and the dual
    constraints of the knocked-out columns are relaxed, which keeps the problem linear.

    Example:
        problem = create_bilevel_milp_problem(irrev_model, 'EX_succ_e', ['PFL', 'ACKr'],
                                              options={'num_del': 2, 'v_max': 1000})

    Args:
        irrev_model (IrreversibleModel):
            The irreversible model, e.g., from convert_to_irreversible.

        target (str):
            Identifier of the (original) reaction whose flux is maximized in the outer problem.

        candidates (list of str):
            Identifiers of the (original) reactions that may be knocked out.

        constraints (optional (list of tuples)): (Default: None)
            Additional constraints (reaction_id, value, sense) in original reaction space.
            They override the bounds of the irreversible model.

        options (optional (dict)): (Default: None)
            'num_del' (default 5), 'num_del_sense' (default 'L') and 'v_max' (default 1000).

        prev_solutions (optional (list of lists of str)): (Default: None)
            Knockout sets that are excluded from the solution space.

    Returns:
        (BilevelMILPProblem):
        The assembled MILP.
    """
    if options is None:
        options = {}
    num_del = options.get(NUM_DEL, 5)
    num_del_sense = options.get(NUM_DEL_SENSE, LESS)
    v_max = float(options.get(V_MAX, 1000))
    if isinf(v_max) or v_max <= 0:
        raise Exception("v_max must be a positive finite number.")
    if num_del_sense not in [GREATER, EQUAL, LESS]:
        raise Exception("Deletion sense '" + str(num_del_sense) + "' is not supported. Use 'G', 'E' or 'L'.")
    if not target:
        raise Exception("No target reaction specified.")
    if target not in irrev_model.reaction_ids:
        raise Exception("Target reaction " + str(target) + " is not part of the model.")
    unknown = [r for r in candidates if r not in irrev_model.reaction_ids]
    if unknown:
        raise Exception("Knockout candidates " + str(unknown) + " are not part of the model.")
    # candidates in model order, without duplicates
    candidates = [r for r in irrev_model.reaction_ids if r in set(candidates)]
    if constraints:
        irrev_model = irrev_model.apply_constraints(translate_constraints(constraints, irrev_model))

    S = irrev_model.S
    m, n = S.shape
    lb = [min(l, v_max) for l in irrev_model.lb]
    ub = [min(u, v_max) for u in irrev_model.ub]
    c = irrev_model.c
    lb_pos = [i for i in range(n) if lb[i] > 0]
    p = len(lb_pos)
    K = len(candidates)
    cand_idx = {r: k for k, r in enumerate(candidates)}
    # Z maps candidate binaries to the irreversible variables of the candidate reactions
    z_of_var = [cand_idx.get(v.reaction_id, -1) for v in irrev_model.variables]
    cand_vars = [i for i in range(n) if z_of_var[i] >= 0]
    Z = sparse.csr_matrix(([1.0] * len(cand_vars), (cand_vars, [z_of_var[i] for i in cand_vars])), shape=(n, K))
    P_lb = sparse.csr_matrix(([1.0] * p, (range(p), lb_pos)), shape=(p, n))
    I_n = sparse.identity(n, format='csr')
    M = abs(S).sum(axis=0).A1 * v_max + [abs(c_i) for c_i in c]

    def block_row(v=None, lam=None, mu_ub=None, mu_lb=None, z=None, numrows=0):
        blocks = []
        for mat, width in zip([v, lam, mu_ub, mu_lb, z], [n, m, n, p, K]):
            blocks += [sparse.csr_matrix((numrows, width)) if mat is None else sparse.csr_matrix(mat)]
        return sparse.hstack(blocks, format='csr')

    A = []
    b = []
    csense = ''
    row_ranges = {}

    def add_rows(name, A_block, b_block, sense):
        nonlocal csense
        start = len(b)
        A.append(A_block)
        b.extend([float(v) for v in b_block])
        csense += sense * len(b_block)
        row_ranges[name] = range(start, len(b))

    # 1. primal steady state
    add_rows('steady_state', block_row(v=S, numrows=m), [0.0] * m, EQUAL)
    # 2. upper bounds, v_i + ub_i*z_k <= ub_i
    add_rows('primal_ub', block_row(v=I_n, z=sparse.diags(ub, 0, shape=(n, n)) @ Z, numrows=n), ub, LESS)
    # 3. positive lower bounds, -v_i - lb_i*z_k <= -lb_i
    lb_p = [lb[i] for i in lb_pos]
    add_rows('primal_lb', block_row(v=-P_lb, z=-sparse.diags(lb_p, 0, shape=(p, p)) @ P_lb @ Z, numrows=p), [-l for l in lb_p], LESS)
    # 4. dual feasibility, relaxed for knocked-out columns
    add_rows('dual', block_row(lam=-S.transpose(), mu_ub=-I_n, mu_lb=P_lb.transpose(), z=-sparse.diags(M, 0, shape=(n, n)) @ Z,
                               numrows=n), [-c_i for c_i in c], LESS)
    # 5. duals of knocked-out bounds vanish
    C_ub = sparse.csr_matrix(([1.0] * len(cand_vars), (range(len(cand_vars)), cand_vars)), shape=(len(cand_vars), n))
    add_rows('dual_ub_ko', block_row(mu_ub=C_ub, z=v_max * C_ub @ Z, numrows=len(cand_vars)),
             [v_max] * len(cand_vars), LESS)
    cand_lb = [j for j, i in enumerate(lb_pos) if z_of_var[i] >= 0]
    C_lb = sparse.csr_matrix(([1.0] * len(cand_lb), (range(len(cand_lb)), cand_lb)), shape=(len(cand_lb), p))
    add_rows('dual_lb_ko', block_row(mu_lb=C_lb, z=v_max * C_lb @ P_lb @ Z, numrows=len(cand_lb)),
             [v_max] * len(cand_lb), LESS)
    # 6. strong duality, c'v = ub'mu_ub - lb'mu_lb
    add_rows('strong_duality', block_row(v=[[-c_i for c_i in c]], mu_ub=[ub], mu_lb=[[-l for l in lb_p]], numrows=1), [0.0], EQUAL)
    # 7. number of deletions
    add_rows('num_del', block_row(z=[[1.0] * K], numrows=1), [num_del], num_del_sense)
    # 8. exclude previous solutions
    A_cut, b_cut = no_good_cuts(candidates, prev_solutions)
    add_rows('no_good_cuts', block_row(z=A_cut, numrows=A_cut.shape[0]), b_cut, LESS)

    A = sparse.vstack(A, format='csr')
    numvars = 2 * n + m + p + K
    lb_milp = [0.0] * n + [-v_max] * m + [0.0] * (n + p) + [0.0] * K
    ub_milp = [inf] * n + [v_max] * (m + n + p) + [1.0] * K
    # outer objective, net flux through target reaction
    c_milp = [0.0] * numvars
    for var in irrev_model.variables_of(target):
        c_milp[var.index] = float(var.sign)
    vartype = 'C' * (2 * n + m + p) + 'B' * K
    offsets = [0, n, n + m, 2 * n + m, 2 * n + m + p, numvars]
    blocks = [range(offsets[i], offsets[i + 1]) for i in range(5)]
    return BilevelMILPProblem(A, b, csense, lb_milp, ub_milp, c_milp, -1, vartype, irrev_model, target, candidates,
                              blocks, row_ranges, (lb, ub))
