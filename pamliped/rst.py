#!/usr/bin/env python3
# -*- coding: utf-8 -*-


"""Parse the ancestral reconstruction file ('rst') written next to the main
PAML report.

The nodes of the reconstruction tree are labelled by their PAML number
('7', or '1_Homo_sapiens' for leaves): the branch change summary refers to
these numbers, which are matched to the tree nodes by sorting them.
"""


import os.path as op
import re
from collections import OrderedDict

from IOtools import LineCursor
from pamliped.common import NUM, is_blank, to_float, leading_floats, \
                            fill_placeholders
from pamliped.errors import ParseContext, MalformedLine, CorrelationMiss
from pamliped.model import ExtantState, AncestralState, SiteReconstruction, \
                           Substitution, Accuracy, AncestralReconstruction, \
                           EMPTY_RECONSTRUCTION
from pamliped.forestry import read_tree
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord
import logging
logger = logging.getLogger(__name__)


RST_FILENAME = 'rst'

TREE_RE = re.compile(r'^TREE\s+#\s*(\d+)')
NODE_LABELS_RE = re.compile(r'tree\s+with\s+node\s+labels\s+for')
PERSITE_RE = re.compile(r'^Prob\s+of\s+best\s+(?:character|state)\s+at\s+each\s+'
                        r'node,\s+listed\s+by\s+site')
PERSITE_ROW_RE = re.compile(r'^\s*(\d+)\s+(\d+)\s+([^:]+?)\s*:\s*(.*)$')
EXTANT_CODON_RE = re.compile(r'([A-Z*-]{3})\s+\(([A-Z*-])\)')
# "ATG M 0.998 (M 0.999)" or "ATG 0.998 (M 0.999)"
ANCESTRAL_CODON_RE = re.compile(r'([A-Z*-]{3})\s+(?:([A-Z*])\s+)?(%s)\s+'
                                r'\(([A-Z*-])\s+(%s)\)' % (NUM, NUM))
ANCESTRAL_STATE_RE = re.compile(r'([A-Z*-])\s*\(?\s*(%s)\)?' % NUM)

CHANGES_RE = re.compile(r'^(?:Summary\s+of\s+changes\s+along\s+branches|'
                        r'Check\s+root\s+for\s+directions\s+of\s+change)\.')
BRANCH_RE = re.compile(r'^Branch\s+(\d+):\s+(\d+)\.\.(\d+)\b')
BRANCH_NS_RE = re.compile(r'\(n=\s*([^\s)]+)(?:\s+s=\s*([^\s)]+))?\)')
CHANGE_RE = re.compile(r'^\s+(\d+)\s+([A-Z*-]{1,3})(?:\s+\([A-Z*]\))?\s+(%s)\s+'
                       r'->\s+([A-Z*-]{1,3})(?:\s+\([A-Z*]\))?(?:\s+(%s))?'
                       % (NUM, NUM))

SEQUENCES_RE = re.compile(r'^List\s+of\s+extant\s+and\s+reconstructed\s+sequences')
NODE_ROW_RE = re.compile(r'^node\s+#?\s*(\d+)\s+(.*)$')
ACCURACY_RE = re.compile(r'^Overall\s+accuracy\s+of\s+the\s+(\d+)\s+ancestral\s+'
                         r'sequences:')
LEADING_ID_RE = re.compile(r'^(\d+)_?')


def load_rst(dirname, filename=RST_FILENAME, ctx=None):
    """Parse `filename` in `dirname`. A missing or empty file gives
    EMPTY_RECONSTRUCTION."""
    path = op.join(dirname or op.curdir, filename)
    if not op.isfile(path) or not op.getsize(path):
        logger.debug('No reconstruction file at %s', path)
        return EMPTY_RECONSTRUCTION
    try:
        handle = open(path)
    except OSError as err:
        logger.info('Reconstruction file not readable: %s', err)
        return EMPTY_RECONSTRUCTION
    with handle:
        cursor = LineCursor(handle, name=path)
        if ctx is None:
            ctx = ParseContext(cursor)
        return parse_rst(cursor, ctx)


def parse_rst(cursor, ctx=None):
    """Read the whole reconstruction stream.

    Return an AncestralReconstruction:
        sites: OrderedDict 1-based site -> SiteReconstruction;
        trees: the trees with PAML node labels; the node of each branch
               listed in the change summary has features 'n', 's' and
               'changes' (list of Substitution);
        sequences: SeqRecords of the reconstructed nodes ('node#7'), with the
                   overall accuracies in their description;
        accuracy: Accuracy(per_site, per_sequence) or None.
    """
    if not isinstance(cursor, LineCursor):
        cursor = LineCursor(cursor)
    if ctx is None:
        ctx = ParseContext(cursor)
    trees = []
    sites = OrderedDict()
    sequences = None
    accuracy = None
    for line in cursor:
        if TREE_RE.match(line):
            tree = _parse_labelled_tree(cursor, ctx)
            if tree is not None:
                trees.append(tree)
        elif PERSITE_RE.match(line):
            sites.update(_parse_persite(cursor, ctx))
        elif CHANGES_RE.match(line):
            if not trees:
                ctx.warn(CorrelationMiss, 'No tree built before the branch '
                         'changes: skipped.')
                _skip_changes(cursor)
            else:
                _parse_changes(cursor, ctx, trees[-1])
        elif SEQUENCES_RE.match(line):
            block = _parse_sequences(cursor, ctx)
            if sequences is None:
                sequences = block
            else:
                logger.debug('Skip additional list of sequences (line %d)',
                             cursor.lineno)
        elif ACCURACY_RE.match(line):
            accuracy = _parse_accuracy(cursor, ctx)

    sequences = sequences or []
    if accuracy is not None:
        _fold_accuracy(sequences, accuracy, ctx)
    _check_numbering(sites, ctx)
    return AncestralReconstruction(sites, tuple(trees), tuple(sequences),
                                   accuracy)


def _parse_labelled_tree(cursor, ctx):
    for line in cursor:
        if NODE_LABELS_RE.search(line):
            line = cursor.readline()
            if line is None:
                break
            return read_tree(line, ctx)
        if TREE_RE.match(line) or PERSITE_RE.match(line) or \
                CHANGES_RE.match(line) or SEQUENCES_RE.match(line):
            cursor.pushback(line)
            break
    ctx.warn(MalformedLine, 'No tree with node labels after the TREE banner')
    return None


def _parse_persite(cursor, ctx):
    sites = OrderedDict()
    for line in cursor:
        if CHANGES_RE.match(line) or SEQUENCES_RE.match(line) or \
                TREE_RE.match(line) or ACCURACY_RE.match(line):
            cursor.pushback(line)
            break
        if is_blank(line) or line.startswith('Site'):
            continue
        m = PERSITE_ROW_RE.match(line)
        if not m:
            logger.debug('Skip line %d: %r', cursor.lineno, line)
            continue
        site, freq, extant, ancestral = m.groups()
        codons = EXTANT_CODON_RE.findall(extant)
        if codons:
            extant_states = tuple(ExtantState(c, aa) for c, aa in codons)
            ancestral_states = tuple(
                    AncestralState(codon, aa or aa_m, to_float(prob), aa_m,
                                   to_float(aa_prob))
                    for codon, aa, prob, aa_m, aa_prob
                    in ANCESTRAL_CODON_RE.findall(ancestral))
        else:
            # Amino acid or nucleotide reconstruction.
            extant_states = tuple(ExtantState(None, residue)
                                  for residue in re.sub(r'\s+', '', extant))
            ancestral_states = tuple(
                    AncestralState(None, residue, to_float(prob), None, None)
                    for residue, prob in ANCESTRAL_STATE_RE.findall(ancestral))
        if not ancestral_states:
            ctx.warn(MalformedLine, 'Site %s: no ancestral state found', site)
        sites[int(site)] = SiteReconstruction(int(site), int(freq),
                                              extant_states, ancestral_states)
    return sites


def _check_numbering(sites, ctx):
    for expected, site in enumerate(sites, start=1):
        if site != expected:
            ctx.warn(MalformedLine, 'Site numbering is not contiguous: site %d '
                     'at position %d', site, expected)
            break


def node_order(tree):
    """Nodes sorted by the number leading their label, with None at index 0
    so that a PAML node number directly indexes its node."""
    numbered = []
    for node in tree.traverse():
        m = LEADING_ID_RE.match(node.name)
        if m:
            numbered.append((int(m.group(1)), node))
        else:
            logger.debug('Node without number: %r', node.name)
    numbered.sort(key=lambda item: item[0])
    return [None] + [node for _, node in numbered]


def _skip_changes(cursor):
    for line in cursor:
        if SEQUENCES_RE.match(line) or TREE_RE.match(line) or \
                ACCURACY_RE.match(line):
            cursor.pushback(line)
            break


def _parse_changes(cursor, ctx, tree):
    nodes = node_order(tree)
    node = None
    branch = None
    for line in cursor:
        if is_blank(line) or CHANGES_RE.match(line):
            continue
        if SEQUENCES_RE.match(line) or TREE_RE.match(line) or \
                ACCURACY_RE.match(line) or PERSITE_RE.match(line):
            cursor.pushback(line)
            break
        m = BRANCH_RE.match(line)
        if m:
            branch, right = m.group(1), int(m.group(3))
            node = nodes[right] if 0 < right < len(nodes) else None
            if node is None or \
                    int(LEADING_ID_RE.match(node.name).group(1)) != right:
                ctx.warn(CorrelationMiss, 'Branch %s: node %d not found in '
                         'the reconstruction tree', branch, right)
                node = None
                continue
            ns = BRANCH_NS_RE.search(line)
            if ns:
                node.add_feature('n', to_float(ns.group(1)))
                if ns.group(2) is not None:
                    node.add_feature('s', to_float(ns.group(2)))
            if 'changes' not in node.features:
                node.add_feature('changes', [])
            continue
        m = CHANGE_RE.match(line)
        if m:
            if node is None:
                if branch is None:
                    ctx.warn(MalformedLine, 'Change listed before any branch: '
                             '%r', line)
                continue
            site, anc, anc_prob, der, der_prob = m.groups()
            node.changes.append(Substitution(int(site), anc, to_float(anc_prob),
                                             der, to_float(der_prob)))
        else:
            logger.debug('Skip line %d: %r', cursor.lineno, line)


def _parse_sequences(cursor, ctx):
    """Only the reconstructed sequences ('node #7' rows) are kept."""
    records = []
    reference = None
    for line in cursor:
        if ACCURACY_RE.match(line) or TREE_RE.match(line) or \
                PERSITE_RE.match(line) or CHANGES_RE.match(line):
            cursor.pushback(line)
            break
        if is_blank(line):
            if reference is not None:
                break
            continue
        if re.match(r'^\s*\d+(?:\s+\d+)*\s*$', line):
            continue
        m = NODE_ROW_RE.match(line)
        if m:
            name, seqstr = 'node#' + m.group(1), m.group(2)
        else:
            fields = line.split(None, 1)
            if len(fields) < 2:
                ctx.warn(MalformedLine, 'Sequence line without residues: %r',
                         line)
                continue
            name, seqstr = fields
        seqstr = re.sub(r'\s+', '', seqstr)
        if reference is None:
            reference = seqstr
        else:
            seqstr, unresolved = fill_placeholders(seqstr, reference)
            if unresolved:
                ctx.warn(MalformedLine, 'Sequence %s is longer than the first '
                         'sequence: %d placeholders kept', name, unresolved)
        if m:
            records.append(SeqRecord(Seq(seqstr), id=name, name=name,
                                     description=''))
    return records


def _parse_accuracy(cursor, ctx):
    vectors = []
    for line in cursor:
        if is_blank(line):
            continue
        values = leading_floats(line)
        if not values:
            cursor.pushback(line)
            break
        vectors.append(values)
        if len(vectors) == 2:
            break
    if len(vectors) < 2:
        ctx.warn(MalformedLine, 'Incomplete overall accuracy block')
        vectors += [[]] * (2 - len(vectors))
    return Accuracy(*vectors)


def _fold_accuracy(sequences, accuracy, ctx):
    if not (len(accuracy.per_site) == len(accuracy.per_sequence)
            == len(sequences)):
        ctx.warn(CorrelationMiss, 'Accuracies (%d per site, %d per sequence) '
                 'do not match the %d reconstructed sequences',
                 len(accuracy.per_site), len(accuracy.per_sequence),
                 len(sequences))
    for record, site_acc, seq_acc in zip(sequences, accuracy.per_site,
                                         accuracy.per_sequence):
        record.description = 'overall_accuracy_site=%s overall_accuracy_seq=%s' \
                             % (site_acc, seq_acc)
