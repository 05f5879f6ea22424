"""Test the irreversible model and the translation of constraints."""
from .test_01_load_models_and_solvers import *
import cobradesign as cd
from numpy import inf


@pytest.fixture
def model_mixed():
    """Reactions of all directionality types: reversible, forward, backward-only, blocked."""
    return build_model(
        'mixed', {
            'EX_A': ({'A': -1}, (-10, 1000)),
            'R1': ({'A': -1, 'B': 1}, (0, 1000)),
            'R2': ({'A': -1, 'B': 1}, (-5, 0)),
            'R3': ({'B': -1, 'C': 1}, (-inf, inf)),
            'R4': ({'C': -1}, (0, 0)),
        }, 'R1')


def test_split_and_flip(model_mixed):
    irrev = cd.convert_to_irreversible(model_mixed)
    assert (irrev.ids == ['EX_A_f', 'R1', 'R2_r', 'R3_f', 'R4', 'EX_A_b', 'R3_b'])
    assert (irrev.S.shape == (3, 7))
    # backward variables carry the negated columns
    S = irrev.S.toarray()
    assert (list(S[:, irrev.ids.index('EX_A_b')]) == [1, 0, 0])
    assert (list(S[:, irrev.ids.index('R2_r')]) == [1, -1, 0])
    assert (irrev.lb[irrev.ids.index('R2_r')] == 0.0)
    assert (irrev.ub[irrev.ids.index('R2_r')] == 5.0)
    assert (irrev.ub[irrev.ids.index('EX_A_b')] == 10.0)
    assert (all(l >= 0 for l in irrev.lb))
    # objective of the irreversible model
    assert (irrev.c == [0, 1, 0, 0, 0, 0, 0])


def test_ordered_pairs(model_mixed):
    irrev = cd.convert_to_irreversible(model_mixed, order_reactions=True)
    assert (irrev.ids == ['EX_A_f', 'EX_A_b', 'R1', 'R2_r', 'R3_f', 'R3_b', 'R4'])
    assert (irrev.match_rev == [1, 0, -1, -1, 5, 4, -1])


def test_mappings(model_mixed, order_reactions):
    irrev = cd.convert_to_irreversible(model_mixed, order_reactions=order_reactions)
    rev2irrev = irrev.rev2irrev
    irrev2rev = irrev.irrev2rev
    assert ([len(i) for i in rev2irrev] == [2, 1, 1, 2, 1])
    for r, idx in enumerate(rev2irrev):
        for i in idx:
            assert (irrev2rev[i] == r)
    for i, j in enumerate(irrev.match_rev):
        if j >= 0:
            assert (irrev.match_rev[j] == i)
            assert (irrev2rev[i] == irrev2rev[j])
            assert (irrev.variables[i].direction != irrev.variables[j].direction)


def test_v_max_cap(model_mixed, v_max):
    irrev = cd.convert_to_irreversible(model_mixed, v_max=v_max)
    assert (irrev.ub[irrev.ids.index('R3_f')] == v_max)
    assert (irrev.ub[irrev.ids.index('R3_b')] == v_max)
    assert (max(irrev.ub) <= v_max)
    irrev = cd.convert_to_irreversible(model_mixed)
    assert (irrev.ub[irrev.ids.index('R3_f')] == inf)


def test_minimize_objective(model_mixed):
    model_mixed.objective_direction = 'min'
    irrev = cd.convert_to_irreversible(model_mixed)
    assert (irrev.c[irrev.ids.index('R1')] == -1)


def test_model_unchanged(model_mixed):
    cd.convert_to_irreversible(model_mixed, v_max=100)
    assert (model_mixed.reactions.R3.bounds == (-inf, inf))
    assert (len(model_mixed.reactions) == 5)


def test_reversible_fluxes(model_mixed, order_reactions):
    irrev = cd.convert_to_irreversible(model_mixed, order_reactions=order_reactions)
    v = {'EX_A_f': 0.0, 'EX_A_b': 4.0, 'R1': 1.0, 'R2_r': 3.0, 'R3_f': 2.0, 'R3_b': 0.0, 'R4': 0.0}
    fluxes = irrev.to_reversible_fluxes([v[i] for i in irrev.ids])
    assert (list(fluxes.index) == ['EX_A', 'R1', 'R2', 'R3', 'R4'])
    assert (list(fluxes) == [-4.0, 1.0, -3.0, 2.0, 0.0])


def test_translate_split(model_mixed):
    irrev = cd.convert_to_irreversible(model_mixed, v_max=1000)
    f = irrev.ids.index('R3_f')
    b = irrev.ids.index('R3_b')
    assert (cd.translate_constraints([('R3', -5, 'G')], irrev) == [(b, UB, 5.0)])
    assert (cd.translate_constraints([('R3', 2, 'G')], irrev) == [(f, LB, 2.0), (b, UB, 0.0)])
    assert (cd.translate_constraints([('R3', 3, 'L')], irrev) == [(f, UB, 3.0)])
    assert (cd.translate_constraints([('R3', -2, 'L')], irrev) == [(f, UB, 0.0), (b, LB, 2.0)])


def test_translate_flipped(model_mixed):
    irrev = cd.convert_to_irreversible(model_mixed)
    r = irrev.ids.index('R2_r')
    assert (cd.translate_constraints([('R2', -2, 'G')], irrev) == [(r, UB, 2.0)])
    assert (cd.translate_constraints([('R2', -1, 'L')], irrev) == [(r, LB, 1.0)])
    assert (cd.translate_constraints([('R2', -3, 'E')], irrev) == [(r, LB, 3.0), (r, UB, 3.0)])


def test_translate_unknown_reaction(model_mixed):
    irrev = cd.convert_to_irreversible(model_mixed)
    with pytest.raises(Exception):
        cd.translate_constraints([('R9', 1, 'G')], irrev)


def test_fixed_flux_round_trip(model_mixed):
    """Fixing a split reaction reproduces the net flux with the right sign."""
    irrev = cd.convert_to_irreversible(model_mixed, v_max=1000)
    for value in [2.0, -2.0]:
        fixed = irrev.apply_constraints(cd.translate_constraints([('R3', value, 'E')], irrev))
        v = [fixed.lb[i] if i in irrev.rev2irrev[3] else 0.0 for i in range(irrev.num_vars)]
        assert (fixed.to_reversible_fluxes(v)['R3'] == value)
    # the original irreversible model keeps its bounds
    assert (irrev.lb[irrev.ids.index('R3_b')] == 0.0)
    assert (irrev.ub[irrev.ids.index('R3_b')] == 1000.0)


def test_parse_constr_opt(model_mixed):
    reaction_ids = model_mixed.reactions.list_attr('id')
    expected = [('R1', 2.0, 'G'), ('R3', -1.0, 'L')]
    assert (cd.parse_constr_opt({'rxn_list': ['R1', 'R3'], 'values': [2, -1], 'sense': 'GL'}, reaction_ids) == expected)
    assert (cd.parse_constr_opt([('R1', 2, '>='), ('R3', -1, 'L')], reaction_ids) == expected)
    assert (cd.parse_constr_opt('R1 >= 2, R3 <= -1', reaction_ids) == expected)
    assert (cd.parse_constr_opt(['-2 R1 <= -4', 'R3 <= -1'], reaction_ids) == expected)
    assert (cd.parse_constr_opt(None, reaction_ids) == [])


def test_parse_constr_opt_errors(model_mixed):
    reaction_ids = model_mixed.reactions.list_attr('id')
    with pytest.raises(Exception):
        cd.parse_constr_opt({'rxn_list': ['R9'], 'values': [1], 'sense': 'G'}, reaction_ids)
    with pytest.raises(Exception):
        cd.parse_constr_opt([('R1', 1, 'X')], reaction_ids)
    with pytest.raises(Exception):
        cd.parse_constr_opt({'rxn_list': ['R1'], 'values': [1, 2], 'sense': 'G'}, reaction_ids)
    with pytest.raises(Exception):
        cd.parse_constr_opt('R1 + R3 >= 1', reaction_ids)
