#!/usr/bin/env python3
# -*- coding: utf-8 -*-


"""Grammars of the model parameter blocks: codeml site-class models
("NSsites" batches), positively selected sites, and the baseml rate
parameters."""


import re
from collections import OrderedDict

from pamliped.common import NUM, SECTION_START_RE, is_blank, to_float, \
                            leading_floats
from pamliped.errors import MalformedLine
from pamliped.model import SiteClassModel, SelectedSite
from pamliped.forestry import parse_forestry, parse_branch_table, \
                              annotate_branches
import logging
logger = logging.getLogger(__name__)


MODEL_RE = re.compile(r'^Model\s+(\d+)(?::\s+(.+?))?\s*$')
TIME_USED_RE = re.compile(r'^Time used:\s+(\S+)')
KAPPA_RE = re.compile(r'^kappa\s+\(ts/tv\)\s+=\s+(\S+)')
OMEGA_RE = re.compile(r'^omega\s+\(dN/dS\)\s+=\s+(\S+)')
SITE_CLASSES_RE = re.compile(r'^dN.*K\s*=\s*(\d+)', re.I)
BRANCH_TABLE_START_RE = re.compile(r'^dN.*for each branch', re.I)
POS_SITES_START_RE = re.compile(r'^(?:Naive Empirical Bayes|Bayes Empirical Bayes|'
                                r'Positively\s+selected\s+sites)', re.I)
BETA_W_RE = re.compile(r'^Parameters in (?:M8 \()?beta&w>1\)?:')
BETA_RE = re.compile(r'^Parameters in (?:M7 \()?beta\)?:')
BETA_PQ_RE = re.compile(r'p\s*=\s*(%s)\s+q\s*=\s*(%s)' % (NUM, NUM))
BETA_P0PQ_RE = re.compile(r'p0\s*=\s*(%s)\s+p\s*=\s*(%s)\s+q\s*=\s*(%s)'
                          % (NUM, NUM, NUM))
BETA_P1W_RE = re.compile(r'\(p1\s*=\s*(%s)\)\s+w\s*=\s*(%s)' % (NUM, NUM))
GAMMA_RE = re.compile(r'^alpha\s+\(gamma\)\s+=\s+(\S+)')
GAMMA_R_RE = re.compile(r'^r\s+\(\s*\d+\):\s+')
GAMMA_F_RE = re.compile(r'^f\s*:\s+')

# Three shapes of selected site rows:
# position, residue, probability[stars], mean w +- SE
SITE_SE_RE = re.compile(r'^\s+(\d+)\s+(\S+)\s+(-?\d+(?:\.\d+)?)(\**)\s+'
                        r'(-?\d+(?:\.\d+)?)\s+\+-\s+(-?\d+(?:\.\d+)?)')
# position, residue, probability[stars], mean w
SITE_MEAN_RE = re.compile(r'^\s+(\d+)\s+(\S+)\s+(-?\d*\.\d+|-?\d+)(\**)\s+'
                          r'(-?\d+(?:\.\d+)?)')
# position, residue, probability[stars]
SITE_RE = re.compile(r'^\s+(\d+)\s+(\S)\s+([\d.+-]+)(\**)')
SITES_END_RE = re.compile(r'^Time used|^TREE|^Model\s+\d+|^Data set \d+')
GRID_RE = re.compile(r'^The grid|^Posterior on the grid')

RATE_PARAMS_RE = re.compile(r'^Rate\s+parameters:\s+')
BASE_FREQS_RE = re.compile(r'^Base\s+frequencies:\s+')
RATE_MATRIX_RE = re.compile(r'^Rate\s+matrix\s+Q,\s+Average\s+Ts/Tv\s+'
                            r'(?:\(([^)]+)\))?\s*=\s+(%s)' % NUM)
RATE_GAMMA_RE = re.compile(r'^alpha\s+\(gamma,\s+K\s*=\s*(\d+)\s*\)\s*=\s*(%s)'
                           % NUM)
RATE_VECTOR_RE = re.compile(r'^(r|f):\s+')


def _values_after(line, regex):
    """Floats following the label matched by `regex`."""
    return leading_floats(regex.sub('', line, count=1))


def parse_nssites_model(cursor, ctx):
    """One 'Model N: description' block of a codeml NSsites batch.

    The block ends at the next 'Model' banner (pushed back) or after the
    'Time used' line. Return a SiteClassModel, or None if no banner was found.
    """
    data = {}
    trees, lookups = [], []
    for line in cursor:
        if is_blank(line):
            continue
        m = MODEL_RE.match(line)
        if m:
            if data:
                cursor.pushback(line)
                break
            data['model_num'] = int(m.group(1))
            data['description'] = m.group(2)
            continue
        if not data:
            if SECTION_START_RE.match(line) and not line.startswith('TREE'):
                cursor.pushback(line)
                break
            continue
        m = TIME_USED_RE.match(line)
        if m:
            data['time_used'] = m.group(1)
            break
        if SECTION_START_RE.match(line) and not line.startswith('TREE'):
            cursor.pushback(line)
            break
        m = KAPPA_RE.match(line)
        if m:
            data['kappa'] = to_float(m.group(1))
            continue
        m = OMEGA_RE.match(line)
        if m:
            data['omega'] = to_float(m.group(1))
            continue
        if line.startswith('TREE'):
            cursor.pushback(line)
            new_trees, new_lookups = parse_forestry(cursor, ctx)
            trees.extend(new_trees)
            lookups.extend(new_lookups)
            if trees and 'likelihood' not in data:
                data['likelihood'] = trees[0].score
            continue
        if POS_SITES_START_RE.match(line):
            cursor.pushback(line)
            sites, neb, beb = parse_pos_selected_sites(cursor, ctx)
            data['pos_sites'] = tuple(sites)
            data['neb_sites'] = tuple(neb)
            data['beb_sites'] = tuple(beb)
            continue
        if BRANCH_TABLE_START_RE.match(line):
            table = parse_branch_table(cursor, ctx)
            annotate_branches(trees[-1] if trees else None,
                              lookups[-1] if lookups else None, table, ctx)
            continue
        m = SITE_CLASSES_RE.match(line)
        if m:
            data['num_site_classes'] = int(m.group(1))
            data['site_classes'] = _parse_site_classes(cursor, ctx)
            continue
        if BETA_W_RE.match(line):
            data['shape_params'] = _parse_beta_w(cursor, ctx)
            continue
        if BETA_RE.match(line):
            data['shape_params'] = _parse_beta(cursor, ctx)
            continue
        m = GAMMA_RE.match(line)
        if m:
            data['shape_params'] = _parse_gamma(cursor, ctx,
                                                to_float(m.group(1)))
            continue
        logger.debug('Skip line %d: %r', cursor.lineno, line)

    if not data:
        return None
    data['trees'] = tuple(trees)
    return SiteClassModel(**data)


def _parse_site_classes(cursor, ctx):
    """'p:' and 'w:' rows following 'dN/dS (w) for site classes (K=n)'."""
    line = cursor.readline()
    while line is not None and is_blank(line):
        line = cursor.readline()
    classes = OrderedDict()
    for key in ('p', 'w'):
        if line is None:
            break
        label, _, values = line.strip().partition(':')
        if label.strip() != key:
            ctx.warn(MalformedLine, 'Expected site class %r values, got %r',
                     key, line)
            cursor.pushback(line)
            break
        classes[key] = leading_floats(values)
        line = cursor.readline() if key == 'p' else None
    if len(set(len(v) for v in classes.values())) > 1:
        ctx.warn(MalformedLine, 'Site class vectors of unequal lengths: %s',
                 dict(classes))
    return classes


def _parse_beta(cursor, ctx):
    line = cursor.readline() or ''
    m = BETA_PQ_RE.search(line)
    if not m:
        ctx.warn(MalformedLine, 'Unparseable beta parameters: %r', line)
        return None
    return OrderedDict((('shape', 'beta'), ('p', to_float(m.group(1))),
                        ('q', to_float(m.group(2)))))


def _parse_beta_w(cursor, ctx):
    line = cursor.readline() or ''
    m = BETA_P0PQ_RE.search(line)
    if not m:
        ctx.warn(MalformedLine, 'Unparseable beta parameters: %r', line)
        return None
    params = OrderedDict(shape='beta')
    params.update(zip(('p0', 'p', 'q'), (to_float(v) for v in m.groups())))
    line = cursor.readline() or ''
    m = BETA_P1W_RE.search(line)
    if not m:
        ctx.warn(MalformedLine, 'Unparseable beta&w>1 parameters: %r', line)
        return None
    params['p1'], params['w'] = (to_float(v) for v in m.groups())
    return params


def _parse_gamma(cursor, ctx, gamma):
    params = OrderedDict((('shape', 'alpha'), ('gamma', gamma), ('r', []),
                          ('f', [])))
    line = cursor.readline()
    if line is not None and GAMMA_R_RE.match(line):
        params['r'] = _values_after(line, GAMMA_R_RE)
        line = cursor.readline()
    if line is not None and GAMMA_F_RE.match(line):
        params['f'] = _values_after(line, GAMMA_F_RE)
    elif line is not None:
        cursor.pushback(line)
    return params


def parse_pos_selected_sites(cursor, ctx):
    """Positively selected site lists.

    Return three lists of SelectedSite: listed without method, under
    'Naive Empirical Bayes' (NEB), and under 'Bayes Empirical Bayes' (BEB).
    """
    sites = {'default': [], 'neb': [], 'beb': []}
    method = 'default'
    listing = False
    for line in cursor:
        if SITES_END_RE.match(line):
            cursor.pushback(line)
            break
        if is_blank(line) or re.match(r'^\s+Pr\(w>1\)', line):
            continue
        if re.match(r'^Naive Empirical Bayes', line, re.I):
            method = 'neb'
        elif re.match(r'^Bayes Empirical Bayes', line, re.I):
            method = 'beb'
        elif line.startswith('Positively selected sites'):
            listing = True
        elif GRID_RE.match(line):
            listing = False
        elif listing:
            site = _selected_site(line)
            if site is not None:
                sites[method].append(site)
            else:
                logger.debug('Skip line %d: %r', cursor.lineno, line)
    return sites['default'], sites['neb'], sites['beb']


def _selected_site(line):
    m = SITE_SE_RE.match(line)
    if m:
        pos, residue, prob, signif, mean_w, se = m.groups()
        return SelectedSite(int(pos), residue, to_float(prob), signif or '',
                            to_float(mean_w), to_float(se))
    m = SITE_MEAN_RE.match(line)
    if m:
        pos, residue, prob, signif, mean_w = m.groups()
        return SelectedSite(int(pos), residue, to_float(prob), signif or '',
                            to_float(mean_w))
    m = SITE_RE.match(line)
    if m:
        pos, residue, prob, signif = m.groups()
        return SelectedSite(int(pos), residue, to_float(prob), signif or '')


def parse_rate_parameters(cursor, ctx):
    """baseml substitution model estimates following 'Detailed output
    identifying parameters'.

    Return an OrderedDict with any of: 'rate_parameters', 'base_frequencies',
    'average_TsTv', 'rate_matrix_Q' (list of rows), 'K', 'alpha', 'r', 'f'.
    """
    params = OrderedDict()
    for line in cursor:
        if SECTION_START_RE.match(line) or line.startswith('TREE'):
            cursor.pushback(line)
            break
        if RATE_PARAMS_RE.match(line):
            params['rate_parameters'] = _values_after(line, RATE_PARAMS_RE)
            continue
        if BASE_FREQS_RE.match(line):
            params['base_frequencies'] = _values_after(line, BASE_FREQS_RE)
            continue
        m = RATE_MATRIX_RE.match(line)
        if m:
            params['average_TsTv'] = to_float(m.group(2))
            params['rate_matrix_Q'] = _parse_rate_matrix(cursor)
            continue
        m = RATE_GAMMA_RE.match(line)
        if m:
            params['K'], params['alpha'] = int(m.group(1)), to_float(m.group(2))
            continue
        m = RATE_VECTOR_RE.match(line)
        if m:
            params[m.group(1)] = _values_after(line, RATE_VECTOR_RE)
            continue
        if not is_blank(line):
            logger.debug('Skip line %d: %r', cursor.lineno, line)
    return params


def _parse_rate_matrix(cursor):
    rows = []
    for line in cursor:
        if is_blank(line):
            break
        values = leading_floats(line)
        if not values:
            cursor.pushback(line)
            break
        rows.append(values)
    return rows
