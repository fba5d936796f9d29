#!/usr/bin/env python3
# -*- coding: utf-8 -*-


"""Parse the main report of PAML programs (codeml "mlc", aaml, baseml, yn00).

    >>> for result in PAMLParser(open('mlc'), dirname='.'):
    ...     print(result.dialect, len(result.sequences), result.trees)

The report is read as a sequence of blocks: the summary blocks, in a fixed
order depending on the program, then the blocks recognized by their first
line (trigger). One `Result` is returned per run ("Data set") of the report.
"""


import os.path as op
import re
from copy import deepcopy
from enum import Enum
from collections import OrderedDict
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from IOtools import Stream, LineCursor
from pamliped.common import is_blank
from pamliped.errors import ParseContext, PAMLError, UnsupportedDialectError, \
                            MalformedLine
from pamliped.model import Dialect, RunSummary, Result, NOT_COLLECTED, \
                           EMPTY_RECONSTRUCTION
from pamliped.summary import DATASET_RE, parse_header, parse_input_params, \
                             parse_patterns, parse_sequences, \
                             parse_codon_counts, parse_codon_positions, \
                             parse_frequencies
from pamliped.distances import parse_ng_matrix, parse_pairwise_codon, \
                               parse_yn_pairwise, parse_aa_distances, \
                               parse_nt_distances
from pamliped.forestry import parse_forestry, parse_branch_table, \
                              annotate_branches
from pamliped.sites import parse_nssites_model, parse_rate_parameters
from pamliped.rst import RST_FILENAME, load_rst, parse_rst
import logging
logger = logging.getLogger(__name__)


class Block(Enum):
    # summary
    INPUT_PARAMS = 'input parameters'
    PATTERNS = 'site patterns'
    SEQUENCES = 'sequences'
    CODON_COUNTS = 'codon usage counts'
    CODON_POSITIONS = 'codon position x base table'
    NG_MATRIX = 'Nei & Gojobori distances'
    AA_FREQUENCIES = 'amino acid frequencies'
    AA_DISTANCES = 'amino acid distances'
    NT_FREQUENCIES = 'nucleotide frequencies'
    # triggered
    PAIRWISE = 'pairwise codon comparison'
    AA_ML_DISTANCES = 'ML distances of aa seqs'
    NSSITES_MODEL = 'site-class model'
    BRANCH_TABLE = 'per-branch table'
    FORESTRY = 'trees'
    NT_DISTANCES = 'nucleotide distances'
    RATE_PARAMETERS = 'rate parameters'
    YN_PAIRWISE = 'Yang & Nielsen pairwise estimates'
    STEPWISE_ADDITION = 'Heuristic tree search by stepwise addition'
    NNI_PERTURBATION = 'Heuristic tree search by NNI perturbation'
    STAR_DECOMPOSITION = 'Star decomposition'
    END_OF_RUN = 'Data set'


SUMMARY_BLOCKS = {
    Dialect.CODONML: (Block.INPUT_PARAMS, Block.PATTERNS, Block.SEQUENCES,
                      Block.CODON_COUNTS, Block.CODON_POSITIONS,
                      Block.NG_MATRIX),
    Dialect.AAML: (Block.INPUT_PARAMS, Block.PATTERNS, Block.SEQUENCES,
                   Block.AA_FREQUENCIES, Block.AA_DISTANCES),
    Dialect.BASEML: (Block.PATTERNS, Block.SEQUENCES, Block.NT_FREQUENCIES),
    Dialect.YN00: (Block.CODON_POSITIONS, Block.CODON_COUNTS,
                   Block.NG_MATRIX)}

HEURISTIC_TRIGGERS = [
    (re.compile(r'Heuristic tree search by stepwise addition$'),
     Block.STEPWISE_ADDITION),
    (re.compile(r'Heuristic tree search by NNI perturbation$'),
     Block.NNI_PERTURBATION),
    (re.compile(r'^stage 0:'), Block.STAR_DECOMPOSITION)]

_TREE_TRIGGERS = [
    (re.compile(r'^Model\s+\d+'), Block.NSSITES_MODEL),
    (re.compile(r'for each branch'), Block.BRANCH_TABLE),
    (re.compile(r'^TREE'), Block.FORESTRY)]

END_TRIGGER = (DATASET_RE, Block.END_OF_RUN)

# Checked in order, on each line following the summary.
TRIGGERS = {
    Dialect.CODONML: [END_TRIGGER,
                      (re.compile(r'^pairwise comparison, codon frequencies:'),
                       Block.PAIRWISE)] + _TREE_TRIGGERS + HEURISTIC_TRIGGERS,
    Dialect.AAML: [END_TRIGGER,
                   (re.compile(r'^ML distances of aa seqs\.'),
                    Block.AA_ML_DISTANCES)] + _TREE_TRIGGERS + HEURISTIC_TRIGGERS,
    Dialect.BASEML: [END_TRIGGER,
                     (re.compile(r'^Distances:'), Block.NT_DISTANCES),
                     (re.compile(r'^TREE'), Block.FORESTRY),
                     (re.compile(r'^Detailed output identifying parameters|'
                                 r'^Rate parameters:'), Block.RATE_PARAMETERS)],
    Dialect.YN00: [END_TRIGGER,
                   (re.compile(r'^Estimation by the method|'
                               r'\(B\) Yang & Nielsen \(2000\) method'),
                    Block.YN_PAIRWISE)]}

# The grammars of these blocks read their trigger line themselves.
PUSHBACK_BLOCKS = frozenset((Block.PAIRWISE, Block.AA_ML_DISTANCES,
                             Block.NSSITES_MODEL, Block.FORESTRY,
                             Block.NT_DISTANCES, Block.RATE_PARAMETERS,
                             Block.YN_PAIRWISE, Block.END_OF_RUN))
# Nothing else is parsed in the run after these blocks.
FINAL_BLOCKS = frozenset((Block.PAIRWISE, Block.YN_PAIRWISE, Block.END_OF_RUN))
UNSUPPORTED_BLOCKS = frozenset((Block.STEPWISE_ADDITION,
                                Block.NNI_PERTURBATION,
                                Block.STAR_DECOMPOSITION))


def next_block(dialect, line):
    """Block started by this line, or None."""
    for regex, block in TRIGGERS[dialect]:
        if regex.search(line):
            return block
    return None


class PAMLParser(object):
    """Iterate over the results of a PAML report.

    `dirname`: directory containing the ancestral reconstruction file
    (`rst_filename`), or `rst`: an already opened reconstruction stream.
    Without them, results have an empty reconstruction. The reconstruction
    file is parsed once; each result after the first gets its own copy.
    """
    def __init__(self, handle, dirname=None, rst=None, rst_filename=RST_FILENAME):
        self.cursor = handle if isinstance(handle, LineCursor) else LineCursor(handle)
        self.ctx = ParseContext(self.cursor)
        self.dirname = dirname
        self.rst = rst
        self.rst_filename = rst_filename
        self._summary = None
        self._reconstruction = None
        self._reconstruction_given = False

    @property
    def reconstruction(self):
        """Parsed once, on the first access."""
        if self._reconstruction is None:
            rst_ctx = ParseContext()
            if self.rst is not None:
                rst_cursor = LineCursor(self.rst)
                rst_ctx.cursor = rst_cursor
                self._reconstruction = parse_rst(rst_cursor, rst_ctx)
            elif self.dirname is not None and self.rst_filename:
                self._reconstruction = load_rst(self.dirname, self.rst_filename,
                                                rst_ctx)
            else:
                self._reconstruction = EMPTY_RECONSTRUCTION
            self.ctx.warnings.extend(rst_ctx.take_warnings())
        return self._reconstruction

    def next_result(self):
        """Return the next Result, or None when the report has no more data."""
        try:
            if self._summary is None or self._summary['multidata']:
                header = parse_header(self.cursor, self.ctx)
                if header is None:
                    return None
                self._summary = header
                self._read_summary()
            data = self._read_run()
        except PAMLError as err:
            err.args += ('at line %d of %s' % (self.cursor.lineno,
                                               self.cursor.name),)
            raise
        if not data:
            return None
        return self._make_result(data)

    def iter_results(self, skip_errors=False):
        """Yield results until the end of the report.

        With `skip_errors`, a run that cannot be parsed is logged and skipped,
        and parsing resumes at the next 'Data set' banner.
        """
        while True:
            try:
                result = self.next_result()
            except PAMLError as err:
                if not skip_errors:
                    raise
                logger.error('Skip run: %s', ' '.join(str(a) for a in err.args))
                self.ctx.take_warnings()
                self._summary = None
                if not self._skip_to_next_run():
                    return
                continue
            if result is None:
                return
            yield result

    def __iter__(self):
        return self.iter_results()

    def _skip_to_next_run(self):
        for line in self.cursor:
            if DATASET_RE.match(line):
                self.cursor.pushback(line)
                return True
        return False

    def _read_summary(self):
        summary = self._summary
        dialect = summary['dialect']
        summary['stats'] = OrderedDict()
        for block in SUMMARY_BLOCKS[dialect]:
            logger.debug('Summary block: %s', block.value)
            self._run_block(block, summary)

    def _read_run(self):
        data = {}
        dialect = self._summary['dialect']
        for line in self.cursor:
            block = next_block(dialect, line)
            if block is None:
                continue
            logger.debug('Line %d starts block: %s', self.cursor.lineno,
                         block.value)
            if block in UNSUPPORTED_BLOCKS:
                raise UnsupportedDialectError('%s not yet implemented!'
                                              % block.value)
            if block in PUSHBACK_BLOCKS:
                self.cursor.pushback(line)
            if block is Block.END_OF_RUN:
                break
            self._run_block(block, data)
            if block in FINAL_BLOCKS:
                break
        return data

    def _run_block(self, block, data):
        getattr(self, '_read_' + block.name.lower())(data)

    @property
    def seqnames(self):
        return [record.id for record in self._summary.get('sequences', ())]

    # Summary blocks

    def _read_input_params(self, summary):
        summary['input_params'] = parse_input_params(self.cursor, self.ctx)

    def _read_patterns(self, summary):
        summary.update(parse_patterns(self.cursor, self.ctx))

    def _read_sequences(self, summary):
        summary['sequences'] = parse_sequences(self.cursor, self.ctx)

    def _read_codon_counts(self, summary):
        summary['codon_counts'] = parse_codon_counts(self.cursor, self.ctx)

    def _read_codon_positions(self, summary):
        summary['codon_positions'], summary['codon_frequencies'] = \
                parse_codon_positions(self.cursor, self.ctx)

    def _read_ng_matrix(self, summary):
        matrix = parse_ng_matrix(self.cursor, self.ctx, summary['dialect'],
                                 self.seqnames)
        summary['ng_matrix'] = matrix
        if matrix is not None and not summary.get('sequences'):
            # yn00 does not print the alignment.
            summary['sequences'] = [SeqRecord(Seq(''), id=name, name=name,
                                              description='')
                                    for name in matrix.names]

    def _read_aa_frequencies(self, summary):
        summary['aa_frequencies'], stats = parse_frequencies(self.cursor,
                                                             self.ctx)
        summary['stats'].update(stats)

    def _read_nt_frequencies(self, summary):
        summary['nt_frequencies'], stats = parse_frequencies(self.cursor,
                                                             self.ctx)
        summary['stats'].update(stats)

    def _read_aa_distances(self, summary):
        line = self.cursor.readline()
        while line is not None and is_blank(line):
            line = self.cursor.readline()
        if line is None:
            return
        self.cursor.pushback(line)
        if line.startswith('AA distances'):
            summary['aa_distances'] = parse_aa_distances(self.cursor, self.ctx,
                                                         self.seqnames)

    # Triggered blocks

    def _read_pairwise(self, data):
        _, data['ml_matrix'] = parse_pairwise_codon(self.cursor, self.ctx,
                                                    self.seqnames)

    def _read_yn_pairwise(self, data):
        data['ml_matrix'] = parse_yn_pairwise(self.cursor, self.ctx,
                                              self.seqnames)

    def _read_aa_ml_distances(self, data):
        data['aa_ml_distances'] = parse_aa_distances(self.cursor, self.ctx,
                                                     self.seqnames)

    def _read_nt_distances(self, data):
        data['nt_distances'] = parse_nt_distances(self.cursor, self.ctx,
                                                  self.seqnames)

    def _read_nssites_model(self, data):
        model = parse_nssites_model(self.cursor, self.ctx)
        if model is not None:
            data.setdefault('site_class_models', []).append(model)

    def _read_forestry(self, data):
        trees, lookups = parse_forestry(self.cursor, self.ctx)
        data.setdefault('trees', []).extend(trees)
        data.setdefault('lookups', []).extend(lookups)

    def _read_branch_table(self, data):
        table = parse_branch_table(self.cursor, self.ctx)
        trees, lookups = data.get('trees'), data.get('lookups')
        annotate_branches(trees[-1] if trees else None,
                          lookups[-1] if lookups else None, table, self.ctx)

    def _read_rate_parameters(self, data):
        params = parse_rate_parameters(self.cursor, self.ctx)
        if params:
            data['rate_parameters'] = params

    def _make_result(self, data):
        summary = self._summary
        reconstruction = self.reconstruction
        if self._reconstruction_given and reconstruction is not EMPTY_RECONSTRUCTION:
            reconstruction = deepcopy(reconstruction)
        self._reconstruction_given = True
        run_summary = RunSummary(summary['dialect'], summary['version'],
                                 summary['seqfile'], summary['model'],
                                 summary.get('input_params', OrderedDict()),
                                 summary.get('ns'), summary.get('ls'),
                                 summary.get('n_patterns'))
        matrices = dict(ng_matrix=summary.get('ng_matrix'),
                        ml_matrix=data.get('ml_matrix'),
                        aa_distances=summary.get('aa_distances'),
                        aa_ml_distances=data.get('aa_ml_distances'),
                        nt_distances=data.get('nt_distances'))
        ns = run_summary.ns or len(summary.get('sequences', ()))
        for field, matrix in matrices.items():
            if matrix is not None and ns and len(matrix) != ns:
                self.ctx.warn(MalformedLine, '%s has %d rows for %d sequences',
                              field, len(matrix), ns)
        return Result(summary=run_summary,
                      sequences=tuple(summary.get('sequences', ())),
                      patterns=tuple(summary.get('patterns', ())),
                      codon_positions=summary.get('codon_positions'),
                      codon_frequencies=summary.get('codon_frequencies'),
                      codon_counts=NOT_COLLECTED,
                      aa_frequencies=summary.get('aa_frequencies'),
                      nt_frequencies=summary.get('nt_frequencies'),
                      stats=summary['stats'],
                      trees=tuple(data.get('trees', ())),
                      site_class_models=tuple(data.get('site_class_models', ())),
                      rate_parameters=data.get('rate_parameters', NOT_COLLECTED),
                      reconstruction=reconstruction,
                      warnings=self.ctx.take_warnings(),
                      **matrices)


def parse_paml(filename, dirname=None, rst_filename=RST_FILENAME,
               skip_errors=False):
    """List of the results of a report file ('-' for stdin).

    The reconstruction file is searched in `dirname`, by default the
    directory of `filename`."""
    if dirname is None and filename not in (None, '-'):
        dirname = op.dirname(filename) or op.curdir
    with Stream(filename) as handle:
        parser = PAMLParser(handle, dirname, rst_filename=rst_filename)
        return list(parser.iter_results(skip_errors))
