#!/usr/bin/env python3

"""Sample PAML reports shared by the tests"""


import pytest


CODONML_HEADER = """\
CODONML (in paml version 4.9j, February 2020)  seqs.phy   Model: One dN/dS ratio
Codon frequency model: F3x4
"""

CODON_POSITIONS = """\
Codon position x base (3x4) table, overall

position  1:    T:0.00000    C:0.33333    A:0.33333    G:0.33333
position  2:    T:0.33333    C:0.33333    A:0.33333    G:0.00000
position  3:    T:0.00000    C:0.33333    A:0.16667    G:0.50000
Average         T:0.11111    C:0.33333    A:0.27778    G:0.27778

"""

PAIRWISE_RUN = CODONML_HEADER + """\
ns =   2  ls =   3

A   ATG AAA CCC
B   ... ..G ...

""" + CODON_POSITIONS + """\
Nei & Gojobori 1986. dN/dS (dN, dS)
(Note: This matrix is not used in later ML. analysis.
Use runmode = -2 for ML pairwise comparison.)

A
B                   0.5000 (0.0100 0.0200)

pairwise comparison, codon frequencies: F3x4.

1 (A) ... 2 (B)
lnL = %s
  0.10000  2.00000  0.50000

t=0.1 S=10 N=20 dN/dS=0.5 dN=0.01 dS=0.02

"""

PAIRWISE_REPORT = PAIRWISE_RUN % '-123.45'

MULTIDATA_REPORT = ('\nData set 1\n' + PAIRWISE_RUN % '-123.45'
                    + '\nData set 2\n' + PAIRWISE_RUN % '-200.0')

FORESTRY = """\
TREE #  1:  ((1, 2), 3);   MP score: 2
lnL(ntime:  3  np:  5):   -100.500000      +0.000000
   4..5     5..1     5..2     4..3
  0.01000  0.02000  0.03000  0.04000  2.00000  0.50000

Note: Branch length is defined as number of nucleotide substitutions per codon (not per neucleotide site).

tree length =   0.10000

((1: 0.02000, 2: 0.03000): 0.01000, 3: 0.04000);

((Hsa: 0.02000, Ptr: 0.03000): 0.01000, Mmu: 0.04000);

Detailed output identifying parameters
"""

BRANCH_TABLE = """\
dN & dS for each branch

 branch           t       N       S   dN/dS      dN      dS  N*dN  S*dS

   4..5       0.010     6.0     3.0  0.5000  0.0020  0.0040   0.0   0.0
   5..1       0.020     6.0     3.0  0.5000  0.0040  0.0080   0.0   0.0
   5..2       0.030     6.0     3.0  0.5000  0.0060  0.0120   0.0   0.0
   4..3       0.040     6.0     3.0  0.5000  0.0080  0.0160   0.0   0.0

tree length for dN:       0.0200
tree length for dS:       0.0400
"""

TREE_REPORT = CODONML_HEADER + """\
ns =   3  ls =   3

Hsa   ATG AAA CCC
Ptr   ... ..G ...
Mmu   ..C ... ...

""" + CODON_POSITIONS + """\
Nei & Gojobori 1986. dN/dS (dN, dS)
(Note: This matrix is not used in later ML. analysis.
Use runmode = -2 for ML pairwise comparison.)

Hsa
Ptr                  0.5000 (0.0100 0.0200)
Mmu                  0.4000 (0.0200 0.0500)  0.3000 (0.0300 0.1000)

""" + FORESTRY + """
kappa (ts/tv) =  2.00000

omega (dN/dS) =  0.50000

""" + BRANCH_TABLE + """
Time used:  0:01
"""

RST = """\
Supplementary results for CODONML (seqs.phy)

TREE #  1

((1_Hsa, 2_Ptr) 5 , 3_Mmu) 4 ;

tree with node labels for Rod Page's TreeView
((1_Hsa, 2_Ptr) 5 , 3_Mmu) 4 ;

Prob of best state at each node, listed by site

Site   Freq   Data:

   1      1   ATG (M) ATG (M) ATG (M) :  ATG 1.000 (M 1.000)  ATG 0.999 (M 1.000)
   2      1   AAA (K) AAG (K) AAA (K) :  AAA 0.990 (K 1.000)  AAA 0.980 (K 1.000)
   3      1   CCC (P) CCC (P) CCC (P) :  CCC 1.000 (P 1.000)  CCC 1.000 (P 1.000)

Summary of changes along branches.
Check root for directions of change.

Branch 1:    4..5  (n=  0.0 s=  0.0)

Branch 2:    5..1  (Hsa) (n=  0.0 s=  0.0)

Branch 3:    5..2  (Ptr) (n=  0.0 s=  1.0)

      2 AAA (K) 0.980 -> AAG (K)

Branch 4:    4..3  (Mmu) (n=  0.0 s=  0.0)

List of extant and reconstructed sequences

    5      9

Hsa                   ATG AAA CCC
Ptr                   ... ..G ...
Mmu                   ... ... ...
node #4               ... ... ...
node #5               ... ... ...

Overall accuracy of the 2 ancestral sequences:
     0.99667   0.99333  for a site.

     0.99000   0.98000  for a sequence.
"""


@pytest.fixture
def report_dir(tmp_path):
    """Directory with a codeml report 'mlc' and its 'rst' file."""
    (tmp_path / 'mlc').write_text(TREE_REPORT)
    (tmp_path / 'rst').write_text(RST)
    return tmp_path
