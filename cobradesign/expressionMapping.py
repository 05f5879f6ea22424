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
"""Mapping of gene expression data to reactions through GPR rules"""

from pandas import DataFrame, Series
from numpy import nan, isnan
from typing import Tuple, List
import ast
import logging


def _as_series(data, name) -> Series:
    if data is None:
        return Series([], dtype=float, name=name)
    if isinstance(data, Series):
        return data.astype(float)
    return Series(dict(data), dtype=float, name=name)


def map_expression_to_reactions(model, expression_data, min_sum=False, significance=None) -> DataFrame:
    """Determine the expression level of each reaction from gene expression data

    The GPR rule of each reaction is evaluated with the expression levels of its genes:
    The minimum is taken over genes that are linked by AND (enzyme complexes) and the
    maximum (or the sum, if min_sum=True) over terms that are linked by OR (isozymes).
    Genes without data are ignored. Reactions without a GPR rule or without data for
    any of their genes obtain NaN.

    Example:
        expr = map_expression_to_reactions(model, {'b0001': 12.0, 'b0002': 3.5})

    Args:
        model (cobra.Model):
            A metabolic model that is an instance of the cobra.Model class.

        expression_data (dict or pandas.Series or pandas.DataFrame):
            Expression values of genes, e.g., {'g1': 5.0, 'g2': 1.0}. A DataFrame must
            have the columns 'gene' and 'value' and may have the column 'sig' with
            significance values (e.g., p-values).

        min_sum (optional (bool)): (Default: False)
            Use the sum instead of the maximum for OR-linked terms.

        significance (optional (dict or pandas.Series)): (Default: None)
            Significance values of the genes. The significance of a reaction is the one
            of the gene whose expression value was selected (with min_sum, the one of the
            term with the highest expression).

    Returns:
        (pandas.DataFrame):
        A table indexed by reaction identifiers with the columns 'expression', 'gene_used'
        (list of genes whose values were used) and, if significance values were provided,
        'significance'.
    """
    if isinstance(expression_data, DataFrame):
        if 'gene' not in expression_data or 'value' not in expression_data:
            raise Exception("Expression data must contain the columns 'gene' and 'value'.")
        if 'sig' in expression_data and significance is None:
            significance = Series(expression_data['sig'].values, index=expression_data['gene'].values)
        expression_data = Series(expression_data['value'].values, index=expression_data['gene'].values)
    expression = _as_series(expression_data, 'expression')
    sig = _as_series(significance, 'significance')
    if expression.index.has_duplicates:
        raise Exception("Gene identifiers in the expression data must be unique.")
    model_genes = set(model.genes.list_attr('id'))
    num_used = len(model_genes.intersection(expression.index))
    logging.info('  Expression data found for ' + str(num_used) + ' of ' + str(len(model_genes)) + ' genes.')

    def evaluate_gpr_ast(node) -> Tuple[float, List[str], float]:
        """Returns the expression value, the used genes and the significance of a GPR (sub-)rule"""
        if isinstance(node, ast.Name):
            value = expression.get(node.id, nan)
            if isnan(value):
                return nan, [], nan
            return value, [node.id], sig.get(node.id, nan)
        elif isinstance(node, ast.BoolOp):
            results = [evaluate_gpr_ast(child) for child in node.values]
            results = [r for r in results if not isnan(r[0])]
            if not results:
                return nan, [], nan
            if isinstance(node.op, ast.And):
                return min(results, key=lambda r: r[0])
            elif isinstance(node.op, ast.Or):
                if min_sum:
                    genes = [g for r in results for g in r[1]]
                    return sum(r[0] for r in results), genes, max(results, key=lambda r: r[0])[2]
                return max(results, key=lambda r: r[0])
        raise ValueError(f"Unsupported AST node type: {type(node)}")

    rows = {}
    for r in model.reactions:
        if r.gpr and r.gpr.body:
            rows[r.id] = evaluate_gpr_ast(r.gpr.body)
        else:
            rows[r.id] = (nan, [], nan)
    table = DataFrame({
        'expression': [rows[r][0] for r in rows],
        'gene_used': [rows[r][1] for r in rows],
    }, index=list(rows.keys()))
    if significance is not None:
        table['significance'] = [rows[r][2] for r in rows]
    return table
