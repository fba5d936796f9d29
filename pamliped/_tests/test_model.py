#!/usr/bin/env python3
# -*- coding: utf-8 -*-


import pickle
from collections import OrderedDict
import numpy as np
from pamliped.model import *

import pytest


class Test_DistanceMatrix:
    def setup_method(self):
        self.m = DistanceMatrix(['a', 'b', 'c'], program='CODONML')
        self.m[1, 0] = {'dN': 0.1}
        self.m[2, 0] = {'dN': 0.2}
        self.m[2, 1] = {'dN': 0.3, 'dS': 0.6}

    def test_lower_triangle_access(self):
        assert self.m[1][0] == {'dN': 0.1}
        assert self.m[2, 1]['dS'] == 0.6
        assert self.m['c', 'a'] == {'dN': 0.2}

    @pytest.mark.parametrize('i,j', [(0, 0), (1, 1), (0, 1), (1, 2)])
    def test_undefined_cells_raise(self, i, j):
        with pytest.raises(IndexError):
            self.m[i][j]
        with pytest.raises(IndexError):
            self.m[i, j]

    def test_set_upper_triangle_raises(self):
        with pytest.raises(IndexError):
            self.m[0, 1] = {'dN': 1}

    def test_get_is_symmetric(self):
        assert self.m.get(0, 2) is self.m.get(2, 0)
        assert self.m.get('a', 'b') == {'dN': 0.1}

    def test_get_diagonal_raises(self):
        with pytest.raises(KeyError):
            self.m.get(1, 1)

    def test_size(self):
        assert len(self.m) == 3
        assert self.m.shape == (3, 3)

    def test_cells_and_fields(self):
        assert [(i, j) for i, j, _ in self.m.cells()] == [(1, 0), (2, 0), (2, 1)]
        assert self.m.fields() == ['dN', 'dS']

    def test_to_array(self):
        array = self.m.to_array('dS')
        assert array.shape == (3, 3)
        assert array[2, 1] == 0.6
        assert np.isnan(array[1, 0])
        assert np.isnan(array[1, 2])
        assert np.isnan(array[0, 0])

    def test_to_frame(self):
        assert self.m.to_frame('dN').loc['b', 'a'] == 0.1

    def test_field_to_biopython(self):
        biomat = self.m.field('dN')
        assert biomat.names == ['a', 'b', 'c']
        assert biomat[1, 0] == 0.1
        assert biomat[0, 0] == 0


class Test_FrequencyTable:
    def setup_method(self):
        self.table = FrequencyTable([('s1', OrderedDict(A=0.25, C=0.75)),
                                     ('s2', OrderedDict(A=0.75, C=0.25)),
                                     ('Average', OrderedDict(A=0.5, C=0.5))],
                                    alphabet='nucleotide')

    def test_aggregate(self):
        assert self.table.aggregate == {'A': 0.5, 'C': 0.5}
        assert FrequencyTable().aggregate is None

    def test_per_row(self):
        assert list(self.table.per_row()) == ['s1', 's2']

    def test_to_frame(self):
        df = self.table.to_frame()
        assert list(df.columns) == ['A', 'C']
        assert df.loc['s2', 'A'] == 0.75

    def test_pickle(self):
        table = pickle.loads(pickle.dumps(self.table))
        assert table == self.table
        assert table.kind == 'sequence'
        assert table.alphabet == 'nucleotide'


class Test_NOT_COLLECTED:
    def test_falsy_but_not_empty(self):
        assert not NOT_COLLECTED
        assert NOT_COLLECTED is not None
        assert NOT_COLLECTED != {}

    def test_singleton(self):
        assert pickle.loads(pickle.dumps(NOT_COLLECTED)) is NOT_COLLECTED
        assert repr(NOT_COLLECTED) == 'NOT_COLLECTED'


def test_SiteClassModel_defaults():
    model = SiteClassModel(model_num=1, description='NearlyNeutral (2 categories)')
    assert model.kappa is None
    assert model.shape_params is None
    assert model.trees == ()
    assert model.beb_sites == ()
    assert model.tree is None


@pytest.mark.parametrize('symbols,expected', [('TCAG', 'nucleotide'),
                                              (AMINO_ACIDS, 'amino acid'),
                                              (CODONS, 'codon')])
def test_guess_alphabet(symbols, expected):
    assert guess_alphabet(symbols) == expected


def test_codon_order():
    assert len(CODONS) == 64
    assert CODONS[:3] == ('TTT', 'TTC', 'TTA')
    assert CODONS[-1] == 'GGG'
