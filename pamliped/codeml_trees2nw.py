#!/usr/bin/env python3
# -*- coding: utf-8 -*-


"""Extract the trees of a PAML report (codeml/aaml/baseml) into newick, one
tree per line.

Branch values (t, N, S, omega, dN, dS...) are output as NHX features when
requested with `-f`.
"""


import argparse
import logging

from IOtools import Stream
from pamliped.mlc import parse_paml
logger = logging.getLogger(__name__)


def iter_trees(results, models=False, reconstruction=False):
    for result in results:
        if reconstruction:
            yield from result.reconstruction.trees
            # Identical in every result.
            return
        yield from result.trees
        if models:
            for model in result.site_class_models:
                yield from model.trees


def main(mlcfile, outfile='-', dirname=None, features=None, format=1,
         models=False, reconstruction=False):
    results = parse_paml(mlcfile, dirname)
    logger.info('%d results in %s', len(results), mlcfile)
    ntrees = 0
    with Stream(outfile, 'w') as out:
        for tree in iter_trees(results, models, reconstruction):
            out.write(tree.write(format=format, features=features,
                                 format_root_node=True) + '\n')
            ntrees += 1
    if not ntrees:
        logger.warning('No tree found in %s', mlcfile)
    return ntrees


if __name__ == '__main__':
    logging.basicConfig(format="%(levelname)s:%(funcName)s:%(message)s")
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('mlcfile', help='PAML report, or "-" for stdin')
    parser.add_argument('outfile', nargs='?', default='-')
    parser.add_argument('-d', '--dirname',
                        help='Directory of the "rst" file [directory of mlcfile]')
    parser.add_argument('-f', '--features', action='append',
                        help='Node feature to output (NHX). Can be repeated.')
    parser.add_argument('-F', '--format', type=int, default=1,
                        help='ete3 newick format [%(default)s]')
    parser.add_argument('-m', '--models', action='store_true',
                        help='Also output the trees of each site-class model')
    parser.add_argument('-r', '--reconstruction', action='store_true',
                        help='Output the trees of the "rst" file instead')
    parser.add_argument('-v', '--verbose', action='count', default=0)

    args = parser.parse_args()
    if args.verbose > 1:
        logging.getLogger('pamliped').setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    elif args.verbose > 0:
        logging.getLogger('pamliped').setLevel(logging.INFO)
        logger.setLevel(logging.INFO)
    delattr(args, 'verbose')

    main(**vars(args))
