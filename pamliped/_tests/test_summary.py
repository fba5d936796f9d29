#!/usr/bin/env python3
# -*- coding: utf-8 -*-


from io import StringIO
from IOtools import LineCursor
from pamliped.errors import ParseContext, MalformedLine
from pamliped.summary import *

import pytest


def cursor_ctx(text):
    cursor = LineCursor(StringIO(text))
    return cursor, ParseContext(cursor)


class Test_parse_header:
    def test_codeml(self):
        cursor, ctx = cursor_ctx('\nCODONML (in paml version 4.9j, February 2020)'
                                 '  seqs.phy   Model: One dN/dS ratio\nns = 2\n')
        header = parse_header(cursor, ctx)
        assert header['dialect'] is Dialect.CODONML
        assert header['seqfile'] == 'seqs.phy'
        assert header['model'] == 'One dN/dS ratio'
        assert header['multidata'] == 0
        assert version_number(header['version']) == (4, 9)
        assert cursor.readline() == 'ns = 2'

    def test_without_version(self):
        header = parse_header(*cursor_ctx('BASEML  brown.nuc  HKY85 dGamma (ncatG=5)\n'))
        assert header['dialect'] is Dialect.BASEML
        assert header['version'] is None
        assert header['model'] == 'HKY85 dGamma (ncatG=5)'

    def test_data_set_banner(self):
        header = parse_header(*cursor_ctx('Data set 3\nYN00 abglobin.nuc\n'))
        assert header['multidata'] == 3
        assert header['dialect'] is Dialect.YN00

    def test_codon2aaml_not_implemented(self):
        with pytest.raises(NotYetImplementedError):
            parse_header(*cursor_ctx('CODON2AAML (in paml version 4.9) seqs.phy\n'))

    def test_empty_stream(self):
        assert parse_header(*cursor_ctx('\n\n')) is None

    def test_unrecognized(self):
        with pytest.raises(UnrecognizedFormatError):
            parse_header(*cursor_ctx('This is not a PAML report\n'))


def test_parse_input_params():
    cursor, ctx = cursor_ctx('Codon frequency model: F3x4\n'
                             'Site-class models:  PositiveSelection\n'
                             'ns =   2  ls =   3\n')
    params = parse_input_params(cursor, ctx)
    assert params == {'Codon frequency model': 'F3x4',
                      'Site-class models': 'PositiveSelection'}
    assert cursor.readline().startswith('ns =')


class Test_parse_patterns:
    def test_counts(self):
        cursor, ctx = cursor_ctx('ns =   3  ls =  10\n\n# site patterns =   4\n\n'
                                 '    5    2    2\n    1\n\nseq1  ACGT\n')
        patterns = parse_patterns(cursor, ctx)
        assert patterns == {'ns': 3, 'ls': 10, 'n_patterns': 4,
                            'patterns': [5, 2, 2, 1]}
        assert len(ctx) == 0

    def test_count_mismatch(self):
        cursor, ctx = cursor_ctx('ns = 2  ls = 3\n# site patterns = 3\n  1 2\n\n')
        assert parse_patterns(cursor, ctx)['patterns'] == [1, 2]
        assert ctx.warnings[0].category is MalformedLine

    def test_without_patterns(self):
        cursor, ctx = cursor_ctx('ns =   2  ls =   3\n\nA   ATG\n')
        assert parse_patterns(cursor, ctx)['n_patterns'] is None
        assert cursor.readline() == 'A   ATG'


class Test_parse_sequences:
    def test_placeholders(self):
        cursor, ctx = cursor_ctx('Hsa   ATG AAA CCC\nPtr   ... ..G ...\n'
                                 'Mmu   ..C ... ...\n\nCodon position\n')
        records = parse_sequences(cursor, ctx)
        assert [r.id for r in records] == ['Hsa', 'Ptr', 'Mmu']
        assert [str(r.seq) for r in records] == ['ATGAAACCC', 'ATGAAGCCC',
                                                 'ATCAAACCC']
        assert len(ctx) == 0

    def test_duplicate_names(self):
        cursor, ctx = cursor_ctx('A  ACGT\nA  ..G.\nB  ....\n\n')
        records = parse_sequences(cursor, ctx)
        assert [r.id for r in records] == ['A', 'A_2', 'B']
        assert len(ctx) == 1

    def test_longer_than_reference(self):
        cursor, ctx = cursor_ctx('A  AC\nB  ...\n\n')
        records = parse_sequences(cursor, ctx)
        assert str(records[1].seq) == 'AC.'
        assert ctx.warnings[0].category is MalformedLine

    def test_stops_at_section(self):
        cursor, ctx = cursor_ctx('A  AC\nTREE #  1:  (1, 2);\n')
        assert len(parse_sequences(cursor, ctx)) == 1
        assert cursor.readline().startswith('TREE')


def test_parse_codon_counts_not_collected():
    cursor, ctx = cursor_ctx('Codon usage in sequences\n')
    assert parse_codon_counts(cursor, ctx) is NOT_COLLECTED


POSITIONS = """\
Codon position x base (3x4) table, overall

position  1:    T:0.10000    C:0.20000    A:0.30000    G:0.40000
position  2:    T:0.25000    C:0.25000    A:0.25000    G:0.25000
position  3:    T:0.40000    C:0.30000    A:0.20000    G:0.10000
Average         T:0.25000    C:0.25000    A:0.25000    G:0.25000

"""

class Test_parse_codon_positions:
    def test_table(self):
        cursor, ctx = cursor_ctx(POSITIONS + 'Nei & Gojobori 1986. dN/dS (dN, dS)\n')
        table, evolver = parse_codon_positions(cursor, ctx)
        assert list(table) == ['1', '2', '3', 'Average']
        assert table['1']['G'] == 0.4
        assert table.aggregate['T'] == 0.25
        assert table.kind == 'position'
        assert evolver == {}
        assert cursor.readline().startswith('Nei')

    def test_evolver_frequencies(self):
        rows = '\n'.join(' '.join(['0.01562500'] * 4) for _ in range(16))
        cursor, ctx = cursor_ctx(POSITIONS + 'Codon frequencies under model, '
                                 'for use in evolver (TTT TTC TTA TTG ... GGG):\n'
                                 + rows + '\n\n')
        table, evolver = parse_codon_positions(cursor, ctx)
        assert len(table) == 4
        assert len(evolver) == 64
        assert evolver['GGG'] == 0.015625
        assert len(ctx) == 0


AA_FREQUENCIES = """\
Frequencies..
                                  A      R      N
seq1                         0.5000 0.2500 0.2500
seq2                         0.2500 0.5000 0.2500
Average                      0.3750 0.3750 0.2500

# constant sites:     30 (50.00%)
ln Lmax (unconstrained) = -250.123456
TREE #  1:  (1, 2);
"""

def test_parse_frequencies():
    cursor, ctx = cursor_ctx(AA_FREQUENCIES)
    table, stats = parse_frequencies(cursor, ctx)
    assert list(table.per_row()) == ['seq1', 'seq2']
    assert table['seq2']['R'] == 0.5
    assert table.alphabet == 'amino acid'
    assert stats == {'constant_sites': 30, 'constant_sites_percentage': 50.0,
                     'loglikelihood': -250.123456}
    assert cursor.readline().startswith('TREE')


def test_parse_frequencies_stops_at_lmax():
    cursor, ctx = cursor_ctx('Frequencies.\n'
                             '             A      R      N      D\n'
                             'seqA    0.2500 0.2500 0.2500 0.2500\n'
                             'seqB    0.1000 0.2000 0.3000 0.4000\n'
                             'ln Lmax (unconstrained) = -99.9\n'
                             '\nTREE #  1:  (1, 2);\n')
    table, stats = parse_frequencies(cursor, ctx)
    assert list(table) == ['seqA', 'seqB']
    assert table['seqB']['D'] == 0.4
    assert stats['loglikelihood'] == -99.9
    assert cursor.readline() == ''
    assert cursor.readline().startswith('TREE')
