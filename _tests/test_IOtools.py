#!/usr/bin/env python3
# -*- coding: utf-8 -*-


from io import StringIO
import IOtools
from IOtools import *

import pytest


class Test_LineCursor:
    def setup_method(self):
        self.cursor = LineCursor(StringIO('first\r\nsecond\n\nlast'))

    def test_readline_strips_eol(self):
        assert self.cursor.readline() == 'first'
        assert self.cursor.readline() == 'second'
        assert self.cursor.readline() == ''
        assert self.cursor.readline() == 'last'
        assert self.cursor.readline() is None
        assert self.cursor.lineno == 4

    def test_pushback(self):
        line = self.cursor.readline()
        self.cursor.pushback(line)
        assert self.cursor.lineno == 0
        assert self.cursor.readline() == 'first'
        assert self.cursor.lineno == 1

    def test_double_pushback_raises(self):
        self.cursor.pushback(self.cursor.readline())
        with pytest.raises(CursorError):
            self.cursor.pushback('second')

    def test_pushback_end_of_stream_raises(self):
        with pytest.raises(CursorError):
            self.cursor.pushback(None)

    def test_iteration_leaves_boundary_line(self):
        for line in self.cursor:
            if line == 'second':
                self.cursor.pushback(line)
                break
        assert list(self.cursor) == ['second', '', 'last']

    def test_at_end(self):
        assert not self.cursor.at_end()
        assert self.cursor.readline() == 'first'
        for line in self.cursor:
            pass
        assert self.cursor.at_end()

    def test_name(self):
        assert LineCursor(StringIO(''), name='mlc').name == 'mlc'
        assert 'mlc:0' in repr(LineCursor(StringIO(''), name='mlc'))


class Test_Stream:
    def test_file(self, tmp_path):
        path = tmp_path / 'out.txt'
        with Stream(str(path), 'w') as out:
            out.write('text\n')
        with Stream(str(path)) as handle:
            assert handle.read() == 'text\n'
            assert not handle.closed
        assert handle.closed

    @pytest.mark.parametrize('filename', [None, '-'])
    def test_std(self, filename):
        with Stream(filename) as handle:
            assert handle is IOtools.stdin
        with Stream(filename, 'w') as handle:
            assert handle is IOtools.stdout
        assert not handle.closed
