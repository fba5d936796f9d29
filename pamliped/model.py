#!/usr/bin/env python3
# -*- coding: utf-8 -*-


"""Result model of a parsed PAML report (codeml, aaml, baseml, yn00).

Trees are `ete3.Tree` instances whose nodes carry the parsed branch values
as features; sequences are `Bio.SeqRecord.SeqRecord` instances.
"""


from collections import namedtuple, OrderedDict
from enum import Enum
from itertools import product
import numpy as np
import pandas as pd
from Bio.Phylo.TreeConstruction import DistanceMatrix as BioDistanceMatrix
import logging
logger = logging.getLogger(__name__)


# Symbol orders used by PAML in its tables.
NUCLEOTIDES = 'TCAG'
AMINO_ACIDS = 'ARNDCQEGHILKMFPSTWYV'
CODONS = tuple(''.join(c) for c in product(NUCLEOTIDES, repeat=3))


class Dialect(Enum):
    """Program that produced the report."""
    CODONML = 'CODONML'  # codon models
    AAML = 'AAML'        # amino-acid models
    BASEML = 'BASEML'    # nucleotide models
    YN00 = 'YN00'        # pairwise distances only


class _NotCollected(object):
    """Marker of a section that this parser never collects.

    Distinct from an empty value, which means "parsed, but empty"."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return 'NOT_COLLECTED'

    def __reduce__(self):
        return (_NotCollected, ())

NOT_COLLECTED = _NotCollected()


RunSummary = namedtuple('RunSummary',
                        'dialect version seqfile model input_params ns ls '
                        'n_patterns')


def guess_alphabet(symbols):
    symbols = list(symbols)
    if symbols and all(len(s) == 3 for s in symbols):
        return 'codon'
    if set(symbols) <= set(NUCLEOTIDES + 'U'):
        return 'nucleotide'
    return 'amino acid'


class FrequencyTable(OrderedDict):
    """Ordered rows of symbol -> frequency.

    `kind` is 'position' for the (3x4) codon position table (rows '1', '2',
    '3', then 'Average'), or 'sequence' for per-sequence tables (one row per
    sequence name, then the aggregate row, usually 'Average').
    """
    aggregate_keys = ('Average', 'Overall', 'Sum', 'Sums')

    def __init__(self, rows=(), kind='sequence', alphabet=None):
        super().__init__(rows)
        self.kind = kind
        self.alphabet = alphabet

    @property
    def aggregate(self):
        for key in reversed(self):
            if key in self.aggregate_keys:
                return self[key]

    def per_row(self):
        """Rows excluding the aggregate entry."""
        return OrderedDict((k, v) for k, v in self.items()
                           if k not in self.aggregate_keys)

    def to_frame(self):
        columns = None
        for row in self.values():
            columns = list(row)
            break
        return pd.DataFrame.from_dict(self, orient='index', columns=columns)

    def __reduce__(self):
        return (self.__class__, (list(self.items()), self.kind, self.alphabet))

    def __repr__(self):
        return '%s(kind=%r, alphabet=%r, rows=%s)' % (
                    self.__class__.__name__, self.kind, self.alphabet,
                    list(self.keys()))


class DistanceMatrix(object):
    """Strict lower-triangular matrix of named values between sequences.

    Each defined cell, `matrix[i][j]` with i > j, is a dict of named numbers
    (e.g. 'omega', 'dN', 'dS'). The diagonal and the upper triangle are
    undefined: `matrix[i][j]` with j >= i raises IndexError.
    Use `get(i, j)` for symmetric access. Indices may be sequence names.
    """
    def __init__(self, names, program=None, params=None):
        self.names = list(names)
        self.program = program
        self.params = OrderedDict() if params is None else params
        self._rows = [[None] * i for i in range(len(self.names))]

    def __len__(self):
        return len(self.names)

    @property
    def shape(self):
        return (len(self.names), len(self.names))

    def index(self, key):
        if isinstance(key, str):
            return self.names.index(key)
        return key

    def __getitem__(self, key):
        if isinstance(key, tuple):
            i, j = (self.index(k) for k in key)
            if not 0 <= j < i:
                raise IndexError('Undefined cell (%d, %d) in strict lower '
                                 'triangular matrix' % (i, j))
            return self._rows[i][j]
        return tuple(self._rows[self.index(key)])

    def __setitem__(self, key, cell):
        i, j = (self.index(k) for k in key)
        if not 0 <= j < i < len(self.names):
            raise IndexError('Cannot set cell (%d, %d) of a strict lower '
                             'triangular %dx%d matrix' % (i, j, *self.shape))
        self._rows[i][j] = cell

    def get(self, i, j, default=None):
        """Symmetric accessor: get(i, j) is get(j, i)."""
        i, j = self.index(i), self.index(j)
        if i == j:
            raise KeyError('The diagonal is undefined (%d, %d)' % (i, j))
        cell = self._rows[max(i, j)][min(i, j)]
        return default if cell is None else cell

    def cells(self):
        """Iterate over (i, j, cell) for every defined cell."""
        for i, row in enumerate(self._rows):
            for j, cell in enumerate(row):
                if cell is not None:
                    yield i, j, cell

    def fields(self):
        found = []
        for _, _, cell in self.cells():
            for key in cell:
                if key not in found:
                    found.append(key)
        return found

    def to_array(self, field):
        """Square float array of one field: NaN on the diagonal, the upper
        triangle and missing cells."""
        n = len(self.names)
        array = np.full((n, n), np.nan)
        for i, j, cell in self.cells():
            value = cell.get(field)
            if value is not None:
                array[i, j] = value
        return array

    def to_frame(self, field):
        return pd.DataFrame(self.to_array(field), index=self.names,
                            columns=self.names)

    def field(self, field):
        """Biopython DistanceMatrix of one field (zero diagonal, NaN when a
        cell is missing)."""
        values = self.to_array(field)
        lower = []
        for i in range(len(self.names)):
            lower.append([float(v) for v in values[i, :i]] + [0])
        return BioDistanceMatrix(list(self.names), lower)

    def __repr__(self):
        return '<%s %s %dx%d>' % (self.__class__.__name__, self.program or '',
                                  *self.shape)


SelectedSite = namedtuple('SelectedSite',
                          'position residue probability significance mean_w se',
                          defaults=(None, None))


class SiteClassModel(namedtuple('SiteClassModel',
                                'model_num description kappa omega likelihood '
                                'time_used num_site_classes site_classes '
                                'shape_params trees pos_sites neb_sites beb_sites',
                                defaults=(None,) * 9 + ((),) * 4)):
    """One "Model N" block of a codeml NSsites batch.

    `site_classes` is {'p': [...], 'w': [...]}, aligned by site class;
    `shape_params` is a dict whose 'shape' key is 'beta' (p, q, or p0, p, q,
    p1, w for beta&w>1) or 'alpha' (gamma, r, f).
    """
    __slots__ = ()

    @property
    def tree(self):
        return self.trees[0] if self.trees else None


ExtantState = namedtuple('ExtantState', 'codon aa')
AncestralState = namedtuple('AncestralState',
                            'codon aa prob aa_marginal aa_marginal_prob')
SiteReconstruction = namedtuple('SiteReconstruction',
                                'site freq extant ancestral')
Substitution = namedtuple('Substitution',
                          'site ancestral ancestral_prob derived derived_prob')
Accuracy = namedtuple('Accuracy', 'per_site per_sequence')

AncestralReconstruction = namedtuple('AncestralReconstruction',
                                     'sites trees sequences accuracy')
EMPTY_RECONSTRUCTION = AncestralReconstruction(OrderedDict(), (), (), None)


class Result(namedtuple('Result',
                        'summary sequences patterns codon_positions '
                        'codon_frequencies codon_counts aa_frequencies '
                        'nt_frequencies stats ng_matrix ml_matrix aa_distances '
                        'aa_ml_distances nt_distances trees site_class_models '
                        'rate_parameters reconstruction warnings')):
    """Everything extracted for one run of a PAML program."""
    __slots__ = ()

    @property
    def dialect(self):
        return self.summary.dialect

    def get_seq(self, name):
        for record in self.sequences:
            if record.id == name:
                return record
        raise KeyError(name)

    @property
    def has_reconstruction(self):
        return bool(self.reconstruction.sites or self.reconstruction.trees
                    or self.reconstruction.sequences)
