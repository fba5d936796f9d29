#!/usr/bin/env python3
# -*- coding: utf-8 -*-


from io import StringIO
from IOtools import LineCursor
from pamliped.errors import ParseContext, MalformedLine
from pamliped.model import Dialect
from pamliped.distances import *

import pytest


def cursor_ctx(text):
    cursor = LineCursor(StringIO(text))
    return cursor, ParseContext(cursor)


NG_CODEML = """\

Nei & Gojobori 1986. dN/dS (dN, dS)
(Note: This matrix is not used in later ML. analysis.
Use runmode = -2 for ML pairwise comparison.)

Hsa
Ptr                  0.5000 (0.0100 0.0200)
Mmu                  0.4000 (0.0200 0.0500)  -1.0000 (0.0300 0.0000)

TREE #  1:  ((1, 2), 3);
"""

NG_YN00 = """\
(A) Nei-Gojobori (1986) method
Nei, M., and T. Gojobori. 1986. Simple methods for estimating the
numbers of synonymous and nonsynonymous nucleotide substitutions.
Mol. Biol. Evol. 3:418-426.
Nei & Gojobori 1986. dN/dS (dN, dS)
(Note: This matrix is not used in later ML. analysis.)

A
B                    0.2000 (0.0100 0.0500)

(B) Yang & Nielsen (2000) method
"""


class Test_parse_ng_matrix:
    def test_codeml(self):
        cursor, ctx = cursor_ctx(NG_CODEML)
        matrix = parse_ng_matrix(cursor, ctx, Dialect.CODONML,
                                 ['Hsa', 'Ptr', 'Mmu'])
        assert matrix.names == ['Hsa', 'Ptr', 'Mmu']
        assert matrix[1][0] == {'omega': 0.5, 'dN': 0.01, 'dS': 0.02}
        assert matrix['Mmu', 'Ptr']['omega'] == -1.0
        assert matrix.params['layout'] == '3.14'
        assert len(ctx) == 0
        assert cursor.at_end() is False

    def test_yn00_with_citation(self):
        cursor, ctx = cursor_ctx(NG_YN00)
        matrix = parse_ng_matrix(cursor, ctx, Dialect.YN00)
        assert matrix.names == ['A', 'B']
        assert matrix[1][0]['dS'] == 0.05
        assert matrix.params['layout'] == '3.15'
        assert len(ctx) == 0

    def test_absent(self):
        cursor, ctx = cursor_ctx('\nTREE #  1:  (1, 2);\n')
        assert parse_ng_matrix(cursor, ctx, Dialect.CODONML) is None
        assert cursor.readline().startswith('TREE')

    def test_row_count_mismatch(self):
        cursor, ctx = cursor_ctx(NG_CODEML)
        parse_ng_matrix(cursor, ctx, Dialect.CODONML, ['Hsa', 'Ptr'])
        assert ctx.warnings[0].category is MalformedLine


PAIRWISE = """\
pairwise comparison, codon frequencies: F3x4.


2 (Ptr) ... 1 (Hsa)
lnL = -30.500000
  0.01000  1.50000  0.40000

t= 0.0100  S=     2.5  N=     6.5  dN/dS=  0.4000  dN = 0.0030  dS = 0.0075


3 (Mmu) ... 1 (Hsa)
lnL = -40.250000
  0.05000  2.00000  0.30000

t= 0.0500  S=     2.5  N=     6.5  dN/dS=  0.3000  dN = 0.0100  dS = 0.0333

Data set 2
"""

def test_parse_pairwise_codon():
    cursor, ctx = cursor_ctx(PAIRWISE)
    model, matrix = parse_pairwise_codon(cursor, ctx, ['Hsa', 'Ptr', 'Mmu'])
    assert model == 'F3x4'
    assert matrix[1, 0] == {'lnL': -30.5, 't': 0.01, 'kappa': 1.5, 'omega': 0.4,
                            'S': 2.5, 'N': 6.5, 'dN': 0.003, 'dS': 0.0075}
    assert matrix.get(0, 2)['lnL'] == -40.25
    assert matrix[2, 1] is None
    assert cursor.readline() == 'Data set 2'


def test_parse_pairwise_codon_names_from_pairs():
    cursor, ctx = cursor_ctx(PAIRWISE)
    _, matrix = parse_pairwise_codon(cursor, ctx)
    assert matrix.names == ['Hsa', 'Ptr', 'Mmu']


YN_PAIRWISE = """\
(B) Yang & Nielsen (2000) method

Yang Z, Nielsen R (2000) Estimating synonymous and nonsynonymous substitution
rates under realistic evolutionary models. Mol. Biol. Evol. 17:32-43

(equal weighting of pathways)

seq. seq.     S       N        t   kappa   omega     dN +- SE    dS +- SE

   2    1     2.5     6.5   0.1000  2.0000  0.5000  0.0100 +- 0.0050  0.0200 +- 0.0100


(C) LWL85, LPB93 & LWLm methods
"""

def test_parse_yn_pairwise():
    cursor, ctx = cursor_ctx(YN_PAIRWISE)
    matrix = parse_yn_pairwise(cursor, ctx, ['A', 'B'])
    assert matrix.names == ['A', 'B']
    assert matrix[1][0] == {'S': 2.5, 'N': 6.5, 't': 0.1, 'kappa': 2.0,
                            'omega': 0.5, 'dN': 0.01, 'dN_SE': 0.005,
                            'dS': 0.02, 'dS_SE': 0.01}
    assert cursor.readline().startswith('(C) LWL85')


AA_DISTANCES = """\
AA distances (raw proportions of different sites)

seq1
seq2             0.1000
seq3             0.2000  0.3000

TREE #  1:  ((1, 2), 3);
"""

ML_DISTANCES = """\
ML distances of aa seqs.
seq2             0.1200
seq3             0.2400  0.3600

TREE #  1:  ((1, 2), 3);
"""

class Test_parse_aa_distances:
    def test_raw(self):
        cursor, ctx = cursor_ctx(AA_DISTANCES)
        matrix = parse_aa_distances(cursor, ctx, ['seq1', 'seq2', 'seq3'])
        assert matrix.params['kind'] == 'AA'
        assert matrix[2][1] == {'dist': 0.3}
        assert len(ctx) == 0

    def test_ml_without_first_row(self):
        cursor, ctx = cursor_ctx(ML_DISTANCES)
        matrix = parse_aa_distances(cursor, ctx, ['seq1', 'seq2', 'seq3'])
        assert matrix.names == ['seq1', 'seq2', 'seq3']
        assert matrix['seq3', 'seq1'] == {'dist': 0.24}
        assert len(ctx) == 0


NT_DISTANCES = """\
Distances: HKY85 (kappa)  (alpha set at 0.50)
This matrix is not used in later m.l. analysis.

seq1
seq2                  0.0512( 3.2100)
seq3                  0.1024( 2.1000)  0.0800(99.0000)

TREE #  1:  ((1, 2), 3);
"""

def test_parse_nt_distances():
    cursor, ctx = cursor_ctx(NT_DISTANCES)
    matrix = parse_nt_distances(cursor, ctx, ['seq1', 'seq2', 'seq3'])
    assert matrix.params == {'model': 'HKY85', 'parameter': 'kappa',
                             'alpha': 0.5}
    assert matrix[1][0] == {'kappa': 0.0512, 'alpha': 3.21}
    assert matrix[2][1]['alpha'] == 99.0
    assert len(ctx) == 0
    assert cursor.readline().startswith('TREE')


@pytest.mark.parametrize('seqnames', [(), ('seq1', 'seq2', 'seq3')])
def test_parse_nt_distances_leaves_next_block(seqnames):
    cursor, ctx = cursor_ctx(NT_DISTANCES.replace('\nTREE', '\n\n\nTREE'))
    matrix = parse_nt_distances(cursor, ctx, seqnames)
    assert len(matrix) == 3
    line = cursor.readline()
    while line == '':
        line = cursor.readline()
    assert line.startswith('TREE')


def test_parse_nt_distances_without_gamma():
    text = NT_DISTANCES.replace('  (alpha set at 0.50)', '')
    cursor, ctx = cursor_ctx(text)
    matrix = parse_nt_distances(cursor, ctx, ['seq1', 'seq2', 'seq3'])
    assert matrix.params == {'model': 'HKY85', 'parameter': 'kappa'}
    assert matrix[2][0] == {'kappa': 0.1024, 'alpha': 2.1}
    assert len(ctx) == 0


def test_parse_nt_distances_unrecognized_title():
    title = NT_DISTANCES.splitlines()[0]
    cursor, ctx = cursor_ctx(NT_DISTANCES.replace(title, 'Distances: HKY85'))
    matrix = parse_nt_distances(cursor, ctx, ['seq1', 'seq2', 'seq3'])
    assert len(matrix) == 0
    assert len(ctx) == 1
    assert ctx.warnings[0].category is MalformedLine
