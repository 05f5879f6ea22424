"""Test if models build and solvers load."""
from cobra import Model, Reaction, Metabolite
import cobradesign as cd
from cobradesign.names import *
import pytest


def build_model(model_id, reactions, objective):
    """Build a cobra model from a dict {rxn_id: ({met_id: coeff}, (lb, ub))}."""
    model = Model(model_id)
    mets = {}
    for stoich, _ in reactions.values():
        for m in stoich:
            if m not in mets:
                mets[m] = Metabolite(m, compartment='c')
    rxns = []
    for rid, (stoich, bounds) in reactions.items():
        r = Reaction(rid)
        r.add_metabolites({mets[m]: v for m, v in stoich.items()})
        r.bounds = bounds
        rxns.append(r)
    model.add_reactions(rxns)
    model.objective = objective
    return model


@pytest.fixture
def model_single():
    """Network with a single irreversible reaction that is also the objective."""
    return build_model('single', {'R1': ({}, (0, 10))}, 'R1')


@pytest.fixture
def model_toy():
    """Substrate S is converted either to biomass precursor X (high yield) or to X and product P.

    Growth maximization uses R1 only. Knocking out R1 couples product formation to growth."""
    return build_model(
        'toy', {
            'EX_S': ({'S': -1}, (-10, 1000)),
            'R1': ({'S': -1, 'X': 2}, (0, 1000)),
            'R2': ({'S': -1, 'X': 1, 'P': 1}, (0, 1000)),
            'BIO': ({'X': -1}, (0, 1000)),
            'EX_P': ({'P': -1}, (0, 1000)),
        }, 'BIO')


@pytest.fixture
def model_parallel():
    """Two parallel reversible reactions between A and B."""
    return build_model(
        'parallel', {
            'EX_A': ({'A': -1}, (-10, 1000)),
            'R1': ({'A': -1, 'B': 1}, (-1000, 1000)),
            'R2': ({'A': -1, 'B': 1}, (-1000, 1000)),
            'EX_B': ({'B': -1}, (0, 1000)),
        }, 'EX_B')


def test_import_cd():
    import cobradesign


def test_solver_availability(curr_solver):
    """Test solver availability."""
    assert (curr_solver in cd.avail_solvers)


def test_solver_loading(curr_solver):
    """Test that solvers interfaces can be loaded."""
    milp = cd.MILP_LP(solver=curr_solver)
    assert (milp.solve() == ([], 0.0, OPTIMAL))


def test_unknown_solver():
    """Test that unavailable solvers are rejected."""
    with pytest.raises(Exception):
        cd.MILP_LP(solver='notasolver')


def test_load_solvers(model_toy, curr_solver):
    """Test solver choice."""
    # solver selection with no solver specified
    assert (cd.select_solver() in cd.avail_solvers)
    # solver selection with unknown solver specified
    assert (cd.select_solver('notasolver') in cd.avail_solvers)
    # with solver specified
    assert (cd.select_solver(curr_solver) == curr_solver)
    # with model-specified solver
    model_toy.solver = curr_solver
    assert (cd.select_solver(None, model_toy) == curr_solver)


def test_models_build(model_single, model_toy, model_parallel):
    assert (len(model_single.metabolites) == 0)
    assert (len(model_toy.reactions) == 5)
    assert (model_toy.slim_optimize() == pytest.approx(20.0))
    assert (model_parallel.slim_optimize() == pytest.approx(10.0))
