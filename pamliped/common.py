#!/usr/bin/env python3
# -*- coding: utf-8 -*-


"""Value converters and line predicates shared by the PAML grammars."""


import re
import logging
logger = logging.getLogger(__name__)


# A number as printed by PAML, including its non-finite spellings.
NUM = r'[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?|[-+]?nan|[-+]?inf'
NUM_RE = re.compile(r'^(?:%s)$' % NUM, re.I)

# Lines that always start a new part of a report: every grammar reading the
# summary stops there and pushes the line back.
SECTION_START_RE = re.compile(r'^(?:TREE\s*#|Model\s+\d+|pairwise comparison|'
                              r'Data set \d+|Time used|'
                              r'(?:CODON|AA|BASE|CODON2AA)ML\b|YN00\b|'
                              r'Heuristic tree search|stage 0:)')


def is_blank(line):
    return not line.strip()


def is_number(text):
    return bool(NUM_RE.match(text))


def to_float(text):
    """Convert one PAML number; return None for anything else."""
    try:
        return float(text)
    except (TypeError, ValueError):
        return None


def to_number(text):
    """int if the text is written as an integer, else float (or None)."""
    try:
        return int(text)
    except (TypeError, ValueError):
        return to_float(text)


def intlist(line):
    return [int(x) for x in line.split()]


def floatlist(line):
    return [float(x) for x in line.split()]


def leading_floats(line):
    """Floats at the start of the line, stopping at the first word that is
    not a number (e.g. "0.98 0.97 for a site." -> [0.98, 0.97])."""
    values = []
    for word in line.split():
        if not is_number(word):
            break
        values.append(float(word))
    return values


def fill_placeholders(seqstr, reference, placeholder='.'):
    """Replace each placeholder by the reference residue of the same column.

    Return the new string and the number of placeholders that could not be
    replaced (beyond the end of the reference)."""
    residues = list(seqstr)
    unresolved = 0
    for i, residue in enumerate(residues):
        if residue == placeholder:
            if i < len(reference):
                residues[i] = reference[i]
            else:
                unresolved += 1
    return ''.join(residues), unresolved
