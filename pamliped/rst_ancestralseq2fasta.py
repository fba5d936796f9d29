#!/usr/bin/env python3
# -*- coding: utf-8 -*-


"""Convert the reconstructed ancestral sequences of PAML (file `rst`) into a
fasta file."""


import re
import argparse
import logging
from Bio import SeqIO

from IOtools import Stream, LineCursor
from pamliped.errors import ParseContext
from pamliped.rst import parse_rst
logger = logging.getLogger(__name__)


def main(rstfile, outfile='-', nodes=None):
    with Stream(rstfile) as rst:
        cursor = LineCursor(rst, name=rstfile)
        reconstruction = parse_rst(cursor, ParseContext(cursor))

    records = list(reconstruction.sequences)
    if nodes:
        wanted = set('node#' + re.sub(r'^node\s*#?', '', n) for n in nodes)
        records = [record for record in records if record.id in wanted]
        if len(records) < len(wanted):
            logger.warning('Nodes not found: %s',
                           ' '.join(wanted - set(r.id for r in records)))
    if not records:
        logger.warning('No ancestral sequence in %s', rstfile)
    with Stream(outfile, 'w') as out:
        return SeqIO.write(records, out, 'fasta')


if __name__ == '__main__':
    logging.basicConfig(format="%(levelname)s:%(funcName)s:%(message)s")
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('rstfile', help='"rst" file, or "-" for stdin')
    parser.add_argument('outfile', nargs='?', default='-')
    parser.add_argument('-n', '--nodes', nargs='+',
                        help='Only these node numbers (e.g. 7 8)')
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
