#!/usr/bin/env python3
# -*- coding: utf-8 -*-


"""Grammars for the first part of a PAML report: program header, control
settings, site patterns, sequences and composition tables.

Each `parse_*` function reads from a `IOtools.LineCursor`, returns what it
extracted, and pushes back the first line that belongs to the next section.
"""


import re
from collections import OrderedDict
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from pamliped.common import (SECTION_START_RE, is_blank, to_float,
                             fill_placeholders, floatlist)
from pamliped.errors import (UnrecognizedFormatError, NotYetImplementedError,
                             MalformedLine)
from pamliped.model import (Dialect, FrequencyTable, NOT_COLLECTED, CODONS,
                            guess_alphabet)
import logging
logger = logging.getLogger(__name__)


HEADER_RE = re.compile(r'''^(?P<dialect>(?:CODON|AA|BASE|CODON2AA)ML|YN00)\s+
                           (?:\(in\s+(?P<version>[^)]+?)\s*\)\s*)?
                           (?P<seqfile>\S+)\s*
                           (?P<model>.+?)?\s*$''', re.X)
DATASET_RE = re.compile(r'^Data set (\d+)')
VERSION_NB_RE = re.compile(r'(\d+)\.(\d+)')

INPUT_PARAM_RE = re.compile(r'^(Codon frequenc(?:ies|y model)|Site-class models)'
                            r'\s*:\s+(.+)')
NSLS_RE = re.compile(r'^ns\s*=\s*(\d+)\s+ls\s*=\s*(\d+)')
PATTERNS_RE = re.compile(r'^#\s*site patterns\s*=\s*(\d+)')
SEQ_SKIP_RE = re.compile(r'^\s*\d+(?:\s+\d+)*(?:\s+[A-Z])?\s*$|^Printing out')

POSITION_TABLE_RE = re.compile(r'^Codon position x base \(3x4\) table, overall')
FREQUENCIES_RE = re.compile(r'^Frequencies\.')
POSITION_ROW_RE = re.compile(r'^(?:position\s+(\d+)|(Average))\s*:?\s+(.*)$')
EVOLVER_RE = re.compile(r'^Codon frequencies under model, for use in evolver')
NG_START_RE = re.compile(r'^Nei|\(A\) Nei')
CONSTANT_SITES_RE = re.compile(r'^#\s+constant\s+sites:\s+(\d+)\s+'
                               r'\(\s*([\d.]+)\s*%\s*\)')
LMAX_RE = re.compile(r'^ln\s+Lmax\s+\(unconstrained\)\s+=\s+(\S+)')


def version_number(version):
    """'paml version 4.9j, February 2020' -> (4, 9)"""
    if version:
        m = VERSION_NB_RE.search(version)
        if m:
            return int(m.group(1)), int(m.group(2))


def parse_header(cursor, ctx):
    """Find the program signature line.

    Return a dict (dialect, version, seqfile, model, multidata), or None if the
    stream ended before any non-blank line was read.
    """
    header = {'multidata': 0}
    seen_content = False
    for line in cursor:
        m = HEADER_RE.match(line)
        if m:
            dialect = m.group('dialect')
            if dialect == 'CODON2AAML':
                raise NotYetImplementedError('CODON2AAML parsing is not '
                                             'implemented.')
            header['dialect'] = Dialect(dialect)
            header['version'] = m.group('version')
            header['seqfile'] = m.group('seqfile')
            model = m.group('model')
            header['model'] = re.sub(r'^Model:\s+', '', model) if model else None
            logger.debug('Dialect %s (%s)', dialect, header['version'])
            return header
        dataset = DATASET_RE.match(line)
        if dataset:
            header = {'multidata': int(dataset.group(1))}
        if not is_blank(line):
            seen_content = True
    if seen_content or header['multidata']:
        raise UnrecognizedFormatError('Unknown format of PAML output: no '
                                      'program signature found in %s'
                                      % cursor.name)
    return None


def parse_input_params(cursor, ctx):
    """Control file settings printed before the alignment."""
    params = OrderedDict()
    for line in cursor:
        m = INPUT_PARAM_RE.match(line)
        if m:
            params[m.group(1)] = m.group(2).strip()
        elif NSLS_RE.match(line) or SECTION_START_RE.match(line):
            cursor.pushback(line)
            break
        elif not is_blank(line):
            logger.debug('Skip line %d: %r', cursor.lineno, line)
    return params


def parse_patterns(cursor, ctx):
    """Number of sequences, alignment length and site pattern counts."""
    ns, ls, n_patterns = None, None, None
    patterns = []
    for line in cursor:
        if re.match(r'^Codon (?:position|usage)|^Frequencies\.', line) \
                or SECTION_START_RE.match(line):
            cursor.pushback(line)
            break
        if n_patterns is not None:
            if is_blank(line):
                if patterns:
                    break
                continue
            try:
                patterns.extend([int(x) for x in line.split()])
            except ValueError:
                # Sequences directly follow the counts.
                cursor.pushback(line)
                break
            continue
        m = NSLS_RE.match(line)
        if m:
            ns, ls = int(m.group(1)), int(m.group(2))
            continue
        m = PATTERNS_RE.match(line)
        if m:
            n_patterns = int(m.group(1))
        elif ns is not None and not is_blank(line) and \
                not SEQ_SKIP_RE.match(line) and len(line.split()) > 1:
            # Alignment printed without a pattern summary.
            cursor.pushback(line)
            break
    if n_patterns is not None and len(patterns) != n_patterns:
        ctx.warn(MalformedLine, 'Expected %d site pattern counts, got %d',
                 n_patterns, len(patterns))
    return {'ns': ns, 'ls': ls, 'n_patterns': n_patterns,
            'patterns': patterns}


def parse_sequences(cursor, ctx, stop=re.compile(r'^(?:TREE|Codon|Frequencies)')):
    """Alignment block: rows after the first one use '.' for "same residue as
    in the first sequence"."""
    records = []
    reference = None
    for line in cursor:
        if stop.match(line) or SECTION_START_RE.match(line):
            cursor.pushback(line)
            break
        if is_blank(line):
            if records:
                break
            continue
        if SEQ_SKIP_RE.match(line):
            continue
        fields = line.split(None, 1)
        if len(fields) < 2:
            ctx.warn(MalformedLine, 'Sequence line without residues: %r', line)
            continue
        name, seqstr = fields[0], re.sub(r'\s+', '', fields[1])
        if reference is None:
            reference = seqstr
        else:
            seqstr, unresolved = fill_placeholders(seqstr, reference)
            if unresolved:
                ctx.warn(MalformedLine, 'Sequence %s is longer than the first '
                         'sequence: %d placeholders kept', name, unresolved)
        records.append(SeqRecord(Seq(seqstr), id=name, name=name,
                                 description=''))
    return uniquify_ids(records, ctx)


def uniquify_ids(records, ctx):
    seen = {}
    for record in records:
        if record.id in seen:
            seen[record.id] += 1
            newid = '%s_%d' % (record.id, seen[record.id])
            ctx.warn(MalformedLine, 'Duplicate sequence name %r renamed %r',
                     record.id, newid)
            record.id = record.name = newid
        else:
            seen[record.id] = 1
    return records


def parse_codon_counts(cursor, ctx):
    """Codon usage tables are not collected."""
    return NOT_COLLECTED


def _parse_symbol_values(words, ctx):
    row = OrderedDict()
    for word in words:
        symbol, _, value = word.partition(':')
        if not value:
            ctx.warn(MalformedLine, 'Expected symbol:value, got %r', word)
            continue
        row[symbol] = to_float(value)
    return row


def parse_codon_positions(cursor, ctx):
    """Overall (3x4) codon position x base table, and the codon frequencies
    "for use in evolver" when printed.

    Return (FrequencyTable with rows '1', '2', '3', 'Average'; OrderedDict
    codon -> frequency, possibly empty).
    """
    table = FrequencyTable(kind='position', alphabet='nucleotide')
    evolver = OrderedDict()
    in_table = False
    for line in cursor:
        if NG_START_RE.match(line) or SECTION_START_RE.match(line):
            cursor.pushback(line)
            return table, evolver
        if POSITION_TABLE_RE.match(line):
            in_table = True
            continue
        if EVOLVER_RE.match(line):
            evolver = _parse_evolver_freqs(cursor, ctx)
            return table, evolver
        if not in_table or is_blank(line):
            continue
        m = POSITION_ROW_RE.match(line)
        if m:
            key = m.group(1) or m.group(2)
            table[key] = _parse_symbol_values(m.group(3).split(), ctx)
            if key == 'Average':
                in_table = False
        elif table:
            in_table = False
    return table, evolver


def _parse_evolver_freqs(cursor, ctx):
    values = []
    for line in cursor:
        if is_blank(line):
            if values:
                break
            continue
        try:
            values.extend(floatlist(line))
        except ValueError:
            cursor.pushback(line)
            break
    if len(values) != len(CODONS):
        ctx.warn(MalformedLine, 'Expected %d codon frequencies, got %d',
                 len(CODONS), len(values))
    return OrderedDict(zip(CODONS, values))


def parse_frequencies(cursor, ctx, stop=re.compile(r'^(?:TREE|AA distances|Distances)')):
    """Per-sequence frequency table opened by 'Frequencies.' (aaml, baseml).

    Return (FrequencyTable, stats) where stats may hold 'constant_sites',
    'constant_sites_percentage' and 'loglikelihood'.
    """
    table = FrequencyTable(kind='sequence')
    stats = OrderedDict()
    symbols = None
    started = False
    for line in cursor:
        if stop.match(line) or SECTION_START_RE.match(line):
            cursor.pushback(line)
            break
        if is_blank(line) or line.startswith('(Ambiguity'):
            continue
        if FREQUENCIES_RE.match(line):
            started = True
            continue
        if not started:
            continue
        if symbols is None:
            symbols = line.split()
            table.alphabet = guess_alphabet(symbols)
            continue
        m = CONSTANT_SITES_RE.match(line)
        if m:
            stats['constant_sites'] = int(m.group(1))
            stats['constant_sites_percentage'] = float(m.group(2))
            continue
        m = LMAX_RE.match(line)
        if m:
            stats['loglikelihood'] = to_float(m.group(1))
            break
        name, *values = line.split()
        if len(values) != len(symbols):
            ctx.warn(MalformedLine, 'Frequencies of %s: %d values for %d '
                     'symbols', name, len(values), len(symbols))
        table[name] = OrderedDict(zip(symbols, (to_float(v) for v in values)))
    return table, stats
