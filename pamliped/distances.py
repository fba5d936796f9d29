#!/usr/bin/env python3
# -*- coding: utf-8 -*-


"""Grammars for the pairwise distance tables of PAML reports.

All matrices are returned as `pamliped.model.DistanceMatrix` (strict lower
triangle, cells are dicts of named values).
"""


import re
from collections import OrderedDict

from pamliped.common import NUM, SECTION_START_RE, is_blank, to_float, to_number
from pamliped.errors import MalformedLine
from pamliped.model import Dialect, DistanceMatrix
from pamliped.summary import DATASET_RE
import logging
logger = logging.getLogger(__name__)


NG_TITLE_RE = re.compile(r'^Nei\s*&\s*Gojobori')
NG_CITATION_RE = re.compile(r'^\(A\)\s*Nei-Gojobori\s*\(1986\)\s*method')
NG_CELL_RE = re.compile(r'(-?\d+(?:\.\d+)?)\s*\(\s*(-?\d+(?:\.\d+)?)\s+'
                        r'(-?\d+(?:\.\d+)?)\s*\)')

# Layout of the Nei & Gojobori matrix. From paml 3.15 the title is preceded
# by a reference citation ('(A) Nei-Gojobori (1986) method' and 3 more lines),
# and the number of note lines between the title and the first row depends
# on the program.
NG_CITATION_LINES = 4
NG_PREAMBLE_LINES = {('3.14', Dialect.CODONML): 3,
                     ('3.15', Dialect.CODONML): 4,
                     ('3.14', Dialect.YN00): 0,
                     ('3.15', Dialect.YN00): 1}

PAIRWISE_TITLE_RE = re.compile(r'^pairwise comparison, codon frequencies:'
                               r'\s*(\S+?)\.?\s*$')
PAIR_RE = re.compile(r'^\s*(\d+)\s+\((\S+)\)\s+\.\.\.\s+(\d+)\s+\((\S+)\)')
LNL_RE = re.compile(r'^lnL\s*=\s*(%s)' % NUM)
ESTIMATES_RE = re.compile(r'^t\s*=')
KEYVAL_RE = re.compile(r'([A-Za-z]+(?:/[A-Za-z]+)?)\s*=\s*(%s)' % NUM)

YN_START_RE = re.compile(r'^Estimation by the method|'
                         r'\(B\) Yang & Nielsen \(2000\) method')
YN_HEADER_RE = re.compile(r'^\s*seq\.\s+seq\.')
YN_END_RE = re.compile(r'^\(C\) LWL85')
YN_ROW_RE = re.compile(r'^\s*(\d+)\s+(\d+)' + r'\s+(%s)' % NUM * 6 +
                       r'\s+\+-\s+(%s)\s+(%s)\s+\+-\s+(%s)' % (NUM, NUM, NUM))
YN_FIELDS = ('S', 'N', 't', 'kappa', 'omega', 'dN', 'dN_SE', 'dS', 'dS_SE')

AA_DIST_TITLE_RE = re.compile(r'^(AA|ML) distances')
NT_DIST_TITLE_RE = re.compile(r'^Distances:\s*(\S+)\s+\(([^)]+)\)'
                              r'(?:\s+\(alpha set at (%s)\))?' % NUM)
NT_CELL_RE = re.compile(r'(%s)\s*\(\s*(%s)\s*\)' % (NUM, NUM))


def _next_content_line(cursor):
    for line in cursor:
        if not is_blank(line):
            return line


def parse_ng_matrix(cursor, ctx, dialect, seqnames=()):
    """Nei & Gojobori (1986) dN/dS (dN, dS) matrix.

    Return a DistanceMatrix with 'omega', 'dN', 'dS' cells, or None when the
    next section is not this matrix.
    """
    line = _next_content_line(cursor)
    layout = '3.14'
    if line is not None and NG_CITATION_RE.match(line):
        layout = '3.15'
        for _ in range(NG_CITATION_LINES):
            line = cursor.readline()
            if line is None or NG_TITLE_RE.match(line):
                break
    if line is None:
        return None
    if not NG_TITLE_RE.match(line):
        if layout == '3.15':
            ctx.warn(MalformedLine, 'Nei-Gojobori citation not followed by '
                     'the matrix title: %r', line)
        cursor.pushback(line)
        return None

    for _ in range(NG_PREAMBLE_LINES.get((layout, dialect), 0)):
        cursor.readline()

    names, rows = [], []
    for line in cursor:
        if is_blank(line):
            if names:
                break
            continue
        if SECTION_START_RE.match(line):
            cursor.pushback(line)
            break
        if re.match(r'^NOTE:|^\(', line, re.I):
            continue
        name, _, rest = line.strip().partition(' ')
        names.append(name)
        rows.append([OrderedDict((('omega', to_float(w)), ('dN', to_float(dn)),
                                  ('dS', to_float(ds))))
                     for w, dn, ds in NG_CELL_RE.findall(rest)])

    if seqnames and len(names) != len(seqnames):
        ctx.warn(MalformedLine, 'Nei-Gojobori matrix has %d rows for %d '
                 'sequences', len(names), len(seqnames))
    matrix = DistanceMatrix(names, program=dialect.value,
                            params=OrderedDict(method='Nei & Gojobori 1986',
                                               layout=layout))
    _fill_rows(matrix, rows, ctx)
    return matrix


def _fill_rows(matrix, rows, ctx):
    for i, cells in enumerate(rows):
        if len(cells) > i:
            ctx.warn(MalformedLine, 'Row %s has %d values, expected %d',
                     matrix.names[i], len(cells), i)
        for j, cell in enumerate(cells[:i]):
            matrix[i, j] = cell


def parse_pairwise_codon(cursor, ctx, seqnames=()):
    """codeml runmode = -2: maximum likelihood estimates for each pair.

    Return (codon frequency model, DistanceMatrix) with cells holding 'lnL',
    't', 'kappa', 'omega', 'S', 'N', 'dN', 'dS'.
    """
    model = None
    pair = None
    lnL, row = None, []
    names = dict(enumerate(seqnames))
    cells = {}
    for line in cursor:
        if DATASET_RE.match(line):
            cursor.pushback(line)
            break
        if is_blank(line):
            continue
        m = PAIRWISE_TITLE_RE.match(line)
        if m:
            model = m.group(1)
            continue
        m = PAIR_RE.match(line)
        if m:
            a, b = int(m.group(1)) - 1, int(m.group(3)) - 1
            names.setdefault(a, m.group(2))
            names.setdefault(b, m.group(4))
            pair = (max(a, b), min(a, b))
            lnL, row = None, []
            continue
        m = LNL_RE.match(line)
        if m:
            lnL = to_float(m.group(1))
            estimates = cursor.readline()
            if estimates is not None:
                row = estimates.split()
            continue
        if ESTIMATES_RE.match(line):
            if pair is None or pair[0] == pair[1]:
                ctx.warn(MalformedLine, 'Pairwise estimates without a pair '
                         'of sequences: %r', line)
                continue
            values = {key: to_number(v) for key, v in KEYVAL_RE.findall(line)}
            t, kappa, omega = (row + [None] * 3)[:3]
            cells[pair] = OrderedDict((
                ('lnL', lnL),
                ('t', to_float(t) if t is not None else values.get('t')),
                ('kappa', to_float(kappa)),
                ('omega', to_float(omega) if omega is not None
                          else values.get('dN/dS')),
                ('S', values.get('S')),
                ('N', values.get('N')),
                ('dN', values.get('dN')),
                ('dS', values.get('dS'))))
            continue
        logger.debug('Skip line %d: %r', cursor.lineno, line)

    size = max([len(seqnames)] + [i + 1 for i in names])
    matrix = DistanceMatrix([names.get(i, str(i + 1)) for i in range(size)],
                            program=Dialect.CODONML.value,
                            params=OrderedDict(codon_frequencies=model))
    for (i, j), cell in cells.items():
        matrix[i, j] = cell
    return model, matrix


def parse_yn_pairwise(cursor, ctx, seqnames=()):
    """yn00: Yang & Nielsen (2000) estimates, with the standard errors of dN
    and dS."""
    for line in cursor:
        if YN_HEADER_RE.match(line):
            break
        if DATASET_RE.match(line):
            cursor.pushback(line)
            break
    cells = {}
    for line in cursor:
        if YN_END_RE.match(line) or DATASET_RE.match(line):
            cursor.pushback(line)
            break
        if is_blank(line):
            continue
        m = YN_ROW_RE.match(line)
        if m:
            a, b = int(m.group(1)) - 1, int(m.group(2)) - 1
            if a == b:
                ctx.warn(MalformedLine, 'Pair of identical indices: %r', line)
                continue
            cells[max(a, b), min(a, b)] = OrderedDict(
                    zip(YN_FIELDS, (to_float(v) for v in m.groups()[2:])))
        else:
            logger.debug('Skip line %d: %r', cursor.lineno, line)

    size = max([len(seqnames)] + [i + 1 for i, _ in cells])
    names = list(seqnames) + [str(i + 1) for i in range(len(seqnames), size)]
    matrix = DistanceMatrix(names, program=Dialect.YN00.value,
                            params=OrderedDict(method='Yang & Nielsen 2000'))
    for (i, j), cell in cells.items():
        matrix[i, j] = cell
    return matrix


def parse_aa_distances(cursor, ctx, seqnames=()):
    """aaml 'AA distances' or 'ML distances of aa seqs.' lower triangle.

    Cells are {'dist': value}.
    """
    names, rows = [], []
    kind = None
    seen = False
    for line in cursor:
        if line.startswith('TREE') or SECTION_START_RE.match(line):
            cursor.pushback(line)
            break
        if is_blank(line):
            if seen:
                break
            continue
        m = AA_DIST_TITLE_RE.match(line)
        if m:
            kind = m.group(1)
            continue
        if kind is None:
            continue
        seqname, *values = line.split()
        seen = True
        if kind == 'ML' and not names and values and seqnames:
            # The row of the first sequence is not printed by some versions.
            names.append(seqnames[0])
            rows.append([])
        names.append(seqname)
        rows.append([OrderedDict(dist=to_float(v)) for v in values])
        if seqnames and len(names) == len(seqnames):
            line = _next_content_line(cursor)
            if line is not None:
                cursor.pushback(line)
            break

    matrix = DistanceMatrix(names, program=Dialect.AAML.value,
                            params=OrderedDict(kind=kind))
    _fill_rows(matrix, rows, ctx)
    return matrix


def parse_nt_distances(cursor, ctx, seqnames=()):
    """baseml 'Distances:' matrix, whose cells read "value(value)".

    Cells are {'kappa': first value, 'alpha': parenthesized value}; the
    model name and the fixed alpha (when printed) go to `matrix.params`.
    """
    names, rows = [], []
    params = OrderedDict()
    started = seen = False
    for line in cursor:
        if line.startswith('TREE') or SECTION_START_RE.match(line):
            cursor.pushback(line)
            break
        if line.startswith('This matrix is not used in later'):
            continue
        if is_blank(line):
            if seen:
                break
            continue
        m = NT_DIST_TITLE_RE.match(line)
        if m:
            started = True
            params['model'] = m.group(1)
            params['parameter'] = m.group(2)
            if m.group(3) is not None:
                params['alpha'] = to_float(m.group(3))
            continue
        if line.startswith('Distances:'):
            ctx.warn(MalformedLine, 'Unrecognized distance matrix title %r', line)
            continue
        if not started:
            continue
        seen = True
        seqname, _, rest = line.strip().partition(' ')
        cells = [OrderedDict((('kappa', to_float(k)), ('alpha', to_float(a))))
                 for k, a in NT_CELL_RE.findall(rest)]
        if rest.strip() and not cells:
            ctx.warn(MalformedLine, 'No distance found for %s in %r', seqname,
                     rest)
        names.append(seqname)
        rows.append(cells)
        if seqnames and len(names) == len(seqnames):
            line = _next_content_line(cursor)
            if line is not None:
                cursor.pushback(line)
            break

    matrix = DistanceMatrix(names, program=Dialect.BASEML.value, params=params)
    _fill_rows(matrix, rows, ctx)
    return matrix
