#!/usr/bin/env python3
# -*- coding: utf-8 -*-


"""Tabulate the dN/dS estimates of a PAML report (tab-separated).

By default, output the pairwise estimates (one row per pair of sequences).
With `--branches`, output the per-branch estimates attached to the trees.
"""


import argparse
import logging
import pandas as pd

from IOtools import Stream
from pamliped.mlc import parse_paml
logger = logging.getLogger(__name__)


MATRICES = ('ml_matrix', 'ng_matrix', 'aa_distances', 'aa_ml_distances',
            'nt_distances')
BRANCH_FIELDS = ['t', 'N', 'S', 'omega', 'dN', 'dS', 'NdN', 'SdS']


def pairwise_table(result, matrix='ml_matrix'):
    """One row per defined cell of the matrix: seq1, seq2 then its fields."""
    distmat = getattr(result, matrix)
    if distmat is None:
        return None
    rows = []
    for i, j, cell in distmat.cells():
        row = {'seq1': distmat.names[i], 'seq2': distmat.names[j]}
        row.update(cell)
        rows.append(row)
    return pd.DataFrame(rows, columns=['seq1', 'seq2'] + distmat.fields())


def branch_table(result, models=True):
    """One row per annotated node of the trees, with its parent name."""
    trees = [('', tree) for tree in result.trees]
    if models:
        trees += [('Model %s' % model.model_num, tree)
                  for model in result.site_class_models for tree in model.trees]
    rows = []
    for model, tree in trees:
        for node in tree.traverse():
            if not any(field in node.features for field in BRANCH_FIELDS):
                continue
            row = {'model': model, 'tree': getattr(tree, 'treename', ''),
                   'node': node.name,
                   'parent': node.up.name if node.up is not None else ''}
            row.update((field, getattr(node, field, None))
                       for field in BRANCH_FIELDS if field in node.features)
            rows.append(row)
    return pd.DataFrame(rows, columns=['model', 'tree', 'node', 'parent']
                                      + BRANCH_FIELDS)


def main(mlcfile, outfile='-', matrix='ml_matrix', branches=False):
    results = parse_paml(mlcfile, rst_filename=None)
    tables = []
    for dataset, result in enumerate(results, start=1):
        table = branch_table(result) if branches \
                else pairwise_table(result, matrix)
        if table is None:
            logger.warning('No %s in data set %d', matrix, dataset)
            continue
        table.insert(0, 'dataset', dataset)
        tables.append(table)
    if not tables:
        logger.error('Nothing to output from %s', mlcfile)
        return None
    output = pd.concat(tables, ignore_index=True, sort=False)
    with Stream(outfile, 'w') as out:
        output.to_csv(out, sep='\t', index=False)
    return output


if __name__ == '__main__':
    logging.basicConfig(format="%(levelname)s:%(funcName)s:%(message)s")
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('mlcfile', help='PAML report, or "-" for stdin')
    parser.add_argument('outfile', nargs='?', default='-')
    parser.add_argument('-m', '--matrix', default='ml_matrix', choices=MATRICES,
                        help='Pairwise matrix to output [%(default)s]')
    parser.add_argument('-b', '--branches', action='store_true',
                        help='Output the per-branch values instead')
    parser.add_argument('-v', '--verbose', action='count', default=0)

    args = parser.parse_args()
    if args.verbose > 1:
        logging.getLogger('pamliped').setLevel(logging.DEBUG)
    elif args.verbose > 0:
        logging.getLogger('pamliped').setLevel(logging.INFO)
    delattr(args, 'verbose')

    main(**vars(args))
