#!/usr/bin/env python3
# -*- coding: utf-8 -*-


"""Build the trees printed in a PAML report and attach branch values to them.

codeml/baseml/aaml print each tree twice: first with the sequence numbers as
leaf labels, then with the sequence names. The branches of the parameter
table are given as "parent..child" pairs of these numbers, where the numbers
of the internal nodes never appear in the trees themselves.

The numbers are mapped to the set of leaf names they subsume (the id lookup),
then each branch end is resolved in the named tree as the lowest common
ancestor of that set.
"""


import re
from collections import deque, OrderedDict
import ete3

from pamliped.common import is_blank, to_float, to_number
from pamliped.errors import MalformedLine, CorrelationMiss
import logging
logger = logging.getLogger(__name__)


TREE_BANNER_RE = re.compile(r'^TREE\s+#\s*(\d+):?\s*(.*)$')
MP_SCORE_RE = re.compile(r'\s*MP\s+score:\s+(\S+)\s*$')
LEAF_ID_RE = re.compile(r'(\d+)\s*[,)]')
FORESTRY_END_RE = re.compile(r'^Node\s+&|^\s+N37|^(?:CODONML|AAML|YN00|BASEML)|'
                             r'^\*\*|^Detailed output identifying parameters|'
                             r'^Model\s+\d+|^Data set \d+|^Time used|'
                             # parameter blocks printed without the line above
                             r'^(?:kappa|omega)\s+\(|^dN\b|^Parameters in|'
                             r'^(?:Naive|Bayes) Empirical Bayes|'
                             r'^Positively selected|^alpha\s+\(gamma|'
                             r'^Rate parameters|^Distances:|^(?:ML|AA) distances')
TREE_LENGTH_RE = re.compile(r'^tree\s+length\s+=\s+(\S+)')
LNL_NP_RE = re.compile(r'^\s*lnL\(.+np:\s*(\d+)\):\s+(\S+)')
BRANCHES_RE = re.compile(r'^\s*\d+\.\.\d+')

BRANCH_TABLE_RE = re.compile(r'^\s*branch\s+t\b')
BRANCH_ROW_RE = re.compile(r'^\s*(\d+\.\.\d+)\s')
# Table columns renamed to valid feature names.
BRANCH_FIELDS = {'dN/dS': 'omega', 'N*dN': 'NdN', 'S*dS': 'SdS'}


def read_tree(text, ctx=None):
    """Build an ete3 tree from a newick line of the report (spaces removed).
    Return None if it cannot be parsed."""
    newick = re.sub(r'\s+', '', text)
    try:
        return ete3.Tree(newick, format=1)
    except ete3.parser.newick.NewickError as err:
        if ctx is not None:
            ctx.warn(MalformedLine, 'Malformed newick tree %r: %s', newick, err)
        return None


def is_numbered(tree):
    return all(leaf.name.isdigit() for leaf in tree.iter_leaves())


class TreeBlock(object):
    """What is printed for one 'TREE # N' banner."""
    def __init__(self, number=None, mp_score=None, leaf_ids=()):
        self.number = number
        self.mp_score = mp_score
        self.leaf_ids = list(leaf_ids)
        self.num_param = None
        self.loglik = None
        self.tree_length = None
        self.branches = []
        self.numbered = None
        self.tree = None
        self.lookup = None

    def add_tree(self, tree, ctx):
        if self.numbered is None and self.tree is None and is_numbered(tree):
            self.numbered = tree
            if not self.leaf_ids:
                self.leaf_ids = tree.get_leaf_names()
            return
        if self.tree is not None:
            logger.debug('Skip additional rendering of tree #%s', self.number)
            return
        tree.add_features(score=self.loglik,
                          num_param=self.num_param,
                          treename='num_param:%s' % self.num_param)
        if self.mp_score is not None:
            tree.add_feature('mp_score', self.mp_score)
        if self.number is not None:
            tree.add_feature('tree_number', self.number)
        self.tree = tree
        self.lookup = build_id_lookup(self.leaf_ids, tree, self.branches, ctx)


def parse_forestry(cursor, ctx):
    """Read consecutive TREE blocks.

    Return (trees, lookups): the named trees in order of appearance, each
    with features 'score' (log-likelihood), 'num_param', 'treename',
    optionally 'mp_score'; and the matching id -> leaf names lookups.
    """
    blocks = []
    block = None
    for line in cursor:
        m = TREE_BANNER_RE.match(line)
        if m:
            rest = m.group(2)
            mp_score = None
            mp = MP_SCORE_RE.search(rest)
            if mp:
                mp_score = to_number(mp.group(1))
                rest = rest[:mp.start()]
            block = TreeBlock(int(m.group(1)), mp_score, LEAF_ID_RE.findall(rest))
            blocks.append(block)
            continue
        if FORESTRY_END_RE.match(line):
            cursor.pushback(line)
            break
        if block is None:
            # Tree lines without banner.
            block = TreeBlock()
            blocks.append(block)
        m = TREE_LENGTH_RE.match(line)
        if m:
            block.tree_length = to_float(m.group(1))
            logger.debug('tree length = %s', block.tree_length)
            continue
        m = LNL_NP_RE.match(line)
        if m:
            block.num_param, block.loglik = int(m.group(1)), to_float(m.group(2))
            continue
        if line.startswith('('):
            tree = read_tree(line, ctx)
            if tree is not None:
                block.add_tree(tree, ctx)
            continue
        if BRANCHES_RE.match(line):
            block.branches.extend(tuple(br.split('..')) for br in line.split())

    trees, lookups = [], []
    for block in blocks:
        if block.tree is not None:
            trees.append(block.tree)
            lookups.append(block.lookup)
        elif block.numbered is not None:
            logger.info('Tree #%s only printed with numbered leaves.',
                        block.number)
    return trees, lookups


def build_id_lookup(leaf_ids, tree, branches, ctx):
    """Map each node number to the names of the leaves it subsumes.

    Leaf numbers are matched to leaf names by their order in the newick
    string. A parent number gets the leaves of its child numbers; branches
    whose child number is not known yet are retried after the others.
    """
    names = tree.get_leaf_names()
    if len(leaf_ids) != len(names):
        ctx.warn(CorrelationMiss, '%d numbered leaves for %d named leaves',
                 len(leaf_ids), len(names))
    lookup = OrderedDict((str(i), [name]) for i, name in zip(leaf_ids, names))
    pending = deque(branches)
    unresolved = 0
    while pending and unresolved < len(pending):
        parent, child = pending.popleft()
        if child in lookup:
            subsumed = lookup.setdefault(parent, [])
            subsumed.extend(n for n in lookup[child] if n not in subsumed)
            unresolved = 0
        else:
            pending.append((parent, child))
            unresolved += 1
    if pending:
        ctx.warn(CorrelationMiss, 'Unresolved branches: %s',
                 ' '.join('%s..%s' % br for br in pending))
    return lookup


def resolve_node(tree, lookup, node_id, leaves=None):
    """Find the node numbered `node_id`: the lowest common ancestor of the
    leaves it subsumes. Unnamed nodes (and internal ones) take the number as
    name.

    Raise LookupError if it cannot be found.
    """
    if leaves is None:
        leaves = {leaf.name: leaf for leaf in tree.iter_leaves()}
    try:
        nodes = [leaves[name] for name in lookup[node_id]]
    except KeyError as err:
        raise LookupError('No node for id %s: unknown %s' % (node_id, err))
    if not nodes:
        raise LookupError('No leaf under id %s' % node_id)
    while len(nodes) > 1:
        a, b = nodes.pop(0), nodes.pop(0)
        nodes.append(a if a is b else tree.get_common_ancestor(a, b))
    node = nodes[0]
    if not (node.is_leaf() and node.name):
        node.name = node_id
    return node


def parse_branch_table(cursor, ctx):
    """Table following 'dN & dS for each branch'.

    Return OrderedDict 'parent..child' -> OrderedDict(field -> value); fields
    are the column names, with 'dN/dS' named 'omega'.
    """
    header = None
    table = OrderedDict()
    for line in cursor:
        if is_blank(line):
            continue
        if header is None:
            if BRANCH_TABLE_RE.match(line):
                header = [BRANCH_FIELDS.get(f, f) for f in line.split()[1:]]
            elif FORESTRY_END_RE.match(line):
                cursor.pushback(line)
                break
            continue
        m = BRANCH_ROW_RE.match(line)
        if not m:
            cursor.pushback(line)
            break
        values = line.split()[1:]
        if len(values) != len(header):
            ctx.warn(MalformedLine, 'Branch %s: %d values for %d columns',
                     m.group(1), len(values), len(header))
        table[m.group(1)] = OrderedDict(zip(header,
                                            (to_float(v) for v in values)))
    return table


def annotate_branches(tree, lookup, table, ctx):
    """Add the values of each branch as features of its child node.

    Branches that cannot be resolved are skipped with a warning.
    Return the number of annotated branches.
    """
    if tree is None or lookup is None:
        ctx.warn(CorrelationMiss, 'No tree loaded: %d branch values dropped',
                 len(table))
        return 0
    leaves = {leaf.name: leaf for leaf in tree.iter_leaves()}
    annotated = 0
    for branch, values in table.items():
        try:
            parent, child = (resolve_node(tree, lookup, node_id, leaves)
                             for node_id in branch.split('..'))
        except LookupError as err:
            ctx.warn(CorrelationMiss, 'Branch %s: %s', branch, err)
            continue
        if child.up is not parent:
            logger.debug('Branch %s: %s is not a child of %s', branch,
                         child.name, parent.name)
        child.add_features(**values)
        annotated += 1
    return annotated
