"""Test if OptKnock computations run correctly."""
from .test_01_load_models_and_solvers import *
import cobradesign as cd
from numpy import inf
from cobra.io import read_sbml_model
from pathlib import Path
import cobra

KO_TOL = 1e-6


def inner_optimum(model, knockouts):
    """Optimum of the native objective with reactions knocked out."""
    with model:
        for r in knockouts:
            model.reactions.get_by_id(r).knock_out()
        return model.slim_optimize()


@pytest.mark.timeout(15)
def test_single_reaction_no_deletion(curr_solver, model_single):
    """With no deletions allowed, the knockout set is empty and the target flux is the LP optimum."""
    options = {TARGET_RXN: 'R1', NUM_DEL: 0, SOLVER: curr_solver}
    sol, problem = cd.optknock(model_single, ['R1'], options)
    assert (sol.status == OPTIMAL)
    assert (sol.rxn_list == [])
    assert (abs(sol.objective_value - model_single.slim_optimize()) < KO_TOL)
    assert (abs(sol.fluxes['R1'] - 10.0) < KO_TOL)


@pytest.mark.timeout(15)
def test_growth_coupled_knockout(curr_solver, model_toy, v_max):
    options = cd.OptKnockOptions(target_rxn='EX_P', num_del=1, v_max=v_max, solver=curr_solver)
    sol, problem = cd.optknock(model_toy, ['R1', 'R2'], options)
    assert (sol.status == OPTIMAL)
    assert (sol.rxn_list == ['R1'])
    assert (abs(sol.objective_value - 10.0) < KO_TOL)
    assert (abs(sol.fluxes['EX_P'] - 10.0) < KO_TOL)
    assert (abs(sol.fluxes['R1']) < KO_TOL)
    # the fluxes are an optimum of the inner problem
    assert (abs(sol.fluxes['BIO'] - inner_optimum(model_toy, sol.rxn_list)) < KO_TOL)
    assert (abs(sol.inner_objective - sol.dual_objective) < KO_TOL)
    # input model is not changed
    assert (model_toy.reactions.R1.bounds == (0, 1000))


@pytest.mark.timeout(15)
def test_parallel_reversible_knockout(curr_solver, model_parallel):
    """Exactly one of two parallel reversible reactions is knocked out, in both directions."""
    options = {TARGET_RXN: 'R1', NUM_DEL: 1, NUM_DEL_SENSE: 'E', SOLVER: curr_solver}
    sol, problem = cd.optknock(model_parallel, ['R1', 'R2'], options)
    assert (sol.status == OPTIMAL)
    assert (sol.rxn_list == ['R2'])
    assert (len(problem.idx_z) == 2)
    irrev = problem.irrev_model
    v = [sol.full[i] for i in problem.idx_v]
    for i in irrev.rev2irrev[irrev.reaction_ids.index('R2')]:
        assert (abs(v[i]) < KO_TOL)
    # net flux of R1 is restored from its split pair
    f, b = [var.index for var in irrev.variables_of('R1')]
    assert (abs(sol.fluxes['R1'] - (v[f] - v[b])) < KO_TOL)
    assert (abs(sol.fluxes['R1'] - 10.0) < KO_TOL)
    assert (abs(sol.fluxes['R2']) < KO_TOL)
    # at most one direction of each split reaction carries flux
    for i, j in enumerate(irrev.match_rev):
        if j >= 0:
            assert (min(v[i], v[j]) < KO_TOL)


@pytest.mark.timeout(15)
def test_deletion_count(curr_solver, model_toy):
    for sense, num_del in [('L', 1), ('E', 1), ('G', 2)]:
        options = {TARGET_RXN: 'EX_P', NUM_DEL: num_del, NUM_DEL_SENSE: sense, SOLVER: curr_solver}
        sol, _ = cd.optknock(model_toy, ['R1', 'R2'], options)
        assert (sol.status == OPTIMAL)
        if sense == 'L':
            assert (len(sol.rxn_list) <= num_del)
        elif sense == 'E':
            assert (len(sol.rxn_list) == num_del)
        else:
            assert (len(sol.rxn_list) >= num_del)
        for r in sol.rxn_list:
            assert (abs(sol.fluxes[r]) < KO_TOL)


@pytest.mark.timeout(15)
def test_previous_solutions_excluded(curr_solver, model_toy):
    options = {TARGET_RXN: 'EX_P', NUM_DEL: 1, SOLVER: curr_solver}
    sol, _ = cd.optknock(model_toy, ['R1', 'R2'], options, prev_solutions=[['R1']])
    assert (sol.status == OPTIMAL)
    assert ('R1' not in sol.rxn_list)
    assert (abs(sol.objective_value) < KO_TOL)


@pytest.mark.timeout(30)
def test_optknock_search(curr_solver, model_toy):
    options = {TARGET_RXN: 'EX_P', NUM_DEL: 1, NUM_DEL_SENSE: 'E', SOLVER: curr_solver}
    sols, prev = cd.optknock_search(model_toy, ['R1', 'R2'], options, n=5)
    # two single knockouts exist, the third search is infeasible
    assert (len(sols) == 2)
    assert (prev == [['R1'], ['R2']])
    # resume with the returned state
    sols, prev2 = cd.optknock_search(model_toy, ['R1', 'R2'], options, n=1, prev_solutions=prev)
    assert (sols == [])
    assert (prev2 == prev)


@pytest.mark.timeout(15)
def test_constraints(curr_solver, model_toy):
    """A minimum growth rate of 12 rules out the knockout of R1."""
    options = {TARGET_RXN: 'EX_P', NUM_DEL: 1, SOLVER: curr_solver}
    for constr_opt in ['BIO >= 12', {RXN_LIST: ['BIO'], VALUES: [12], SENSE: 'G'}, [('BIO', 12, 'G')]]:
        sol, _ = cd.optknock(model_toy, ['R1', 'R2'], options, constr_opt=constr_opt)
        assert (sol.status == OPTIMAL)
        assert ('R1' not in sol.rxn_list)
        assert (sol.fluxes['BIO'] >= 12 - KO_TOL)


@pytest.mark.timeout(15)
def test_fixed_reversible_flux(curr_solver, model_toy):
    """A fixed uptake rate of the reversible exchange is restored with the correct sign."""
    options = {TARGET_RXN: 'EX_P', NUM_DEL: 1, SOLVER: curr_solver}
    sol, _ = cd.optknock(model_toy, ['R1', 'R2'], options, constr_opt='EX_S = -4')
    assert (sol.status == OPTIMAL)
    assert (abs(sol.fluxes['EX_S'] + 4.0) < KO_TOL)
    assert (abs(sol.objective_value - 4.0) < KO_TOL)


@pytest.mark.timeout(15)
def test_infeasible(curr_solver, model_toy):
    options = {TARGET_RXN: 'EX_P', NUM_DEL: 1, SOLVER: curr_solver}
    sol, _ = cd.optknock(model_toy, ['R1', 'R2'], options, constr_opt='BIO >= 25')
    assert (sol.status == INFEASIBLE)
    assert (sol.rxn_list == [])
    assert (len(sol.fluxes) == 0)


def test_no_solve(model_toy):
    options = {TARGET_RXN: 'EX_P', SOLVE_OPTKNOCK: False}
    sol, problem = cd.optknock(model_toy, ['R1', 'R2'], options, verbose=True)
    assert (sol.status is None)
    assert (sol.rxn_list == [])
    assert (problem.num_rows > 0)
    assert (problem.csense[problem.row_ranges['num_del'][0]] == 'L')
    assert (problem.b[problem.row_ranges['num_del'][0]] == 5)


def test_initial_solution(model_toy):
    options = {TARGET_RXN: 'EX_P', NUM_DEL: 1, SOLVE_OPTKNOCK: False, INIT_SOLUTION: ['R1']}
    sol, problem = cd.optknock(model_toy, ['R1', 'R2'], options)
    assert ([problem.x0[k] for k in problem.idx_z] == [1.0, 0.0])
    with pytest.raises(Exception):
        cd.optknock(model_toy, ['R1', 'R2'], {**options, INIT_SOLUTION: ['EX_P']})
    with pytest.raises(Exception):
        cd.optknock(model_toy, ['R1', 'R2'], {**options, INIT_SOLUTION: ['R1', 'R2']})


def test_option_errors(model_toy):
    with pytest.raises(Exception):
        cd.OptKnockOptions(target_rxn='EX_P', num_dels=3)
    with pytest.raises(Exception):
        cd.OptKnockOptions(target_rxn='EX_P', num_del=1.5)
    with pytest.raises(Exception):
        cd.OptKnockOptions(target_rxn='EX_P', num_del_sense='<=')
    with pytest.raises(Exception):
        cd.OptKnockOptions(target_rxn='EX_P', v_max=inf)
    with pytest.raises(Exception):
        cd.optknock(model_toy, ['R1'], {NUM_DEL: 1})
    with pytest.raises(Exception):
        cd.optknock(model_toy, ['R1'], {TARGET_RXN: 'EX_X'})
    with pytest.raises(Exception):
        cd.optknock(model_toy, ['R9'], {TARGET_RXN: 'EX_P'})
    options = cd.OptKnockOptions(target_rxn='EX_P')
    assert (options[NUM_DEL] == 5)
    assert (options[NUM_DEL_SENSE] == 'L')
    assert (options[V_MAX] == 1000)
    assert (options[SOLVE_OPTKNOCK])


@pytest.fixture
def model_textbook():
    """E. coli core model shipped with cobra, with a positive ATP maintenance flux."""
    model_path = (Path(cobra.__path__[0]) / "data" / "textbook.xml.gz")
    return read_sbml_model(str(model_path.resolve()))


@pytest.mark.timeout(15)
def test_active_lower_bound(curr_solver, model_toy):
    """A minimum product flux that is active at the inner optimum."""
    options = {TARGET_RXN: 'EX_P', NUM_DEL: 0, SOLVER: curr_solver}
    sol, _ = cd.optknock(model_toy, ['R1', 'R2'], options, constr_opt='EX_P >= 2')
    assert (sol.status == OPTIMAL)
    assert (abs(sol.objective_value - 2.0) < KO_TOL)
    assert (abs(sol.fluxes['BIO'] - 18.0) < KO_TOL)
    assert (abs(sol.inner_objective - sol.dual_objective) < KO_TOL)


@pytest.mark.timeout(120)
def test_optknock_textbook(curr_solver, model_textbook):
    """Knockouts in the E. coli core model yield fluxes at the growth optimum of the mutant."""
    assert (model_textbook.reactions.ATPM.lower_bound > 0)
    options = {TARGET_RXN: 'EX_ac_e', NUM_DEL: 2, SOLVER: curr_solver}
    candidates = ['PFL', 'LDH_D', 'ALCD2x', 'ACKr', 'PTAr', 'PYK']
    sol, _ = cd.optknock(model_textbook, candidates, options)
    assert (sol.status == OPTIMAL)
    assert (len(sol.rxn_list) <= 2)
    assert (sol.fluxes['ATPM'] >= model_textbook.reactions.ATPM.lower_bound - 1e-6)
    assert (abs(sol.fluxes['Biomass_Ecoli_core'] - inner_optimum(model_textbook, sol.rxn_list)) < 1e-5)
    assert (abs(sol.inner_objective - sol.dual_objective) < 1e-5)
    assert (abs(sol.objective_value - sol.fluxes['EX_ac_e']) < 1e-6)
