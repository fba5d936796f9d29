#!/usr/bin/env python3


"""Input/output helpers shared by the PAML parsers: file-or-std streams and a
line cursor with one line of push-back."""


from sys import stdin, stdout
import logging
logger = logging.getLogger(__name__)


class CursorError(RuntimeError):
    pass


class Stream(object):
    """Context Manager class (for use with `with` statement).

    Do the exact same as `open()`, but if filename is "-" or None:
        - open stdout for writing, or
        - open stdin for reading.
    """
    write_modes = ('w', 'x', 'a')

    def __init__(self, filename=None, *args, **kwargs):
        self.filename = filename
        self.is_std = filename is None or filename == '-'
        if self.is_std:
            mode = args[0] if args else kwargs.get('mode', 'r')
            if any(letter in mode for letter in self.write_modes):
                self.stream = stdout
            else:
                self.stream = stdin
        else:
            self.stream = open(filename, *args, **kwargs)

    def __enter__(self):
        return self.stream

    def __exit__(self, type, value, traceback):
        if not self.is_std:
            self.stream.close()


class LineCursor(object):
    """Read a text stream line by line, with a single slot of push-back.

    `readline()` returns the next line stripped of its end-of-line characters,
    or None at the end of the stream. `pushback(line)` makes that line the
    next one returned. Pushing back twice without reading in between raises
    CursorError.

    Iterating over the cursor yields lines until the end of the stream, so
    that a loop can `pushback` the boundary line and `break`, leaving it for
    the next consumer:

    >>> cursor = LineCursor(io.StringIO('a\\nb\\n'))
    >>> for line in cursor:
    ...     if line == 'b':
    ...         cursor.pushback(line)
    ...         break
    >>> cursor.readline()
    'b'
    """
    def __init__(self, handle, name=None):
        self.handle = handle
        self.name = name or getattr(handle, 'name', '<stream>')
        self.lineno = 0
        self._buffer = None

    def readline(self):
        if self._buffer is not None:
            line, self._buffer = self._buffer, None
            self.lineno += 1
            return line
        line = self.handle.readline()
        if not line:
            return None
        self.lineno += 1
        return line.rstrip('\r\n')

    def pushback(self, line):
        if self._buffer is not None:
            raise CursorError('Cannot push back %r at line %d of %s: %r is '
                              'already pushed back.' % (line, self.lineno,
                                                        self.name,
                                                        self._buffer))
        if line is None:
            raise CursorError('Cannot push back the end of stream.')
        self._buffer = line
        self.lineno -= 1

    def at_end(self):
        line = self.readline()
        if line is None:
            return True
        self.pushback(line)
        return False

    def __iter__(self):
        return iter(self.readline, None)

    def __repr__(self):
        return '<LineCursor %s:%d>' % (self.name, self.lineno)
