#!/usr/bin/env python3


from .errors import PAMLError, UnrecognizedFormatError, NotYetImplementedError, \
                    UnsupportedDialectError, CorrelationMiss, MalformedLine
from .model import Dialect, NOT_COLLECTED, Result, DistanceMatrix, FrequencyTable
from .rst import RST_FILENAME, parse_rst
from .mlc import PAMLParser, parse_paml
