#!/usr/bin/env python3
# -*- coding: utf-8 -*-


"""Write the alignment printed in a PAML report into fasta."""


import argparse
import logging
from Bio import SeqIO

from IOtools import Stream
from pamliped.mlc import parse_paml
logger = logging.getLogger(__name__)


def main(mlcfile, outfile='-', dataset=None):
    results = parse_paml(mlcfile, rst_filename=None)
    if dataset is not None:
        if dataset < 1:
            raise ValueError('Data set numbers start at 1 (got %d)' % dataset)
        try:
            results = [results[dataset - 1]]
        except IndexError:
            logger.error('Data set %d requested, %d found in %s', dataset,
                         len(results), mlcfile)
            raise
    with Stream(outfile, 'w') as out:
        return sum(SeqIO.write(result.sequences, out, 'fasta')
                   for result in results)


if __name__ == '__main__':
    logging.basicConfig(format="%(levelname)s:%(funcName)s:%(message)s")
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('mlcfile', help='PAML report, or "-" for stdin')
    parser.add_argument('outfile', nargs='?', default='-')
    parser.add_argument('-n', '--dataset', type=int,
                        help='Only this data set (1-based) [all]')
    parser.add_argument('-v', '--verbose', action='count', default=0)

    args = parser.parse_args()
    if args.verbose > 1:
        logging.getLogger('pamliped').setLevel(logging.DEBUG)
    elif args.verbose > 0:
        logging.getLogger('pamliped').setLevel(logging.INFO)
    delattr(args, 'verbose')

    main(**vars(args))
