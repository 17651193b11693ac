"""Replay of terminal output

This module feeds the output of a terminal session to the pyte terminal
emulator and produces a frame (grid of characters with their style and
position of the cursor) each time the output changes what is displayed.
"""
import logging
from collections import namedtuple

import pyte
import pyte.graphics

from termtogif.theme import parse_hex_triplet

logger = logging.getLogger(__name__)

# Ugliest hack: Replace the first 16 colors rgb values by their names so that
# FG_BG_256[0] (which defaults to black #000000 but is styled by themes) can be
# distinguished from FG_BG_256[16] (which is also black #000000 but must be
# displayed as is).
_COLORS = ['black', 'red', 'green', 'brown', 'blue', 'magenta', 'cyan', 'white']
_BRIGHTCOLORS = ['bright{}'.format(color) for color in _COLORS]
NAMED_COLORS = _COLORS + _BRIGHTCOLORS
pyte.graphics.FG_BG_256 = NAMED_COLORS + pyte.graphics.FG_BG_256[16:]

# Color names and hex values of pyte mapped to indexed colors
_COLOR_INDEXES = {value: index for index, value in enumerate(pyte.graphics.FG_BG_256)}


class InvalidTerminalSize(Exception):
    pass


def _color_from_pyte(value):
    """Return None for the default color, an integer for an indexed color or
    an (r, g, b) tuple for a true color"""
    if value == 'default':
        return None
    if value in _COLOR_INDEXES:
        return _COLOR_INDEXES[value]
    if len(value) == 6:
        return parse_hex_triplet(value)
    raise ValueError('Invalid color: {}'.format(value))


_PEN_ATTRIBUTES = ['foreground', 'background', 'bold', 'faint', 'italic',
                   'underline', 'blink', 'inverse']
_Pen = namedtuple('_Pen', _PEN_ATTRIBUTES)
# Default colors and no style attribute
_Pen.__new__.__defaults__ = (None, None, False, False, False, False, False, False)
_Pen.__doc__ = 'Style attributes of a character cell'
_Pen.foreground.__doc__ = 'Text color: None (default color), color index or (r, g, b)'
_Pen.background.__doc__ = 'Background color: None (default color), color index or (r, g, b)'


class Pen(_Pen):
    @classmethod
    def from_pyte(cls, char):
        """Create a Pen from the style of a pyte character"""
        # Faint text (SGR 2) is not tracked by pyte
        return cls(foreground=_color_from_pyte(char.fg),
                   background=_color_from_pyte(char.bg),
                   bold=char.bold,
                   italic=char.italics,
                   underline=char.underscore,
                   blink=char.blink,
                   inverse=char.reverse)


DEFAULT_PEN = Pen()

Frame = namedtuple('Frame', ['time', 'lines', 'cursor'])
Frame.__doc__ = 'Content of the terminal screen at a given time'
Frame.time.__doc__ = 'Time of the frame in seconds'
Frame.lines.__doc__ = 'List of rows, each row being a list of (character, Pen) tuples'
Frame.cursor.__doc__ = '(column, row) position of the cursor or None if hidden'


def _cursor(screen):
    if screen.cursor.hidden:
        return None
    return screen.cursor.x, screen.cursor.y


def _screen_lines(screen):
    lines = []
    for row in range(screen.lines):
        line = screen.buffer[row]
        lines.append([(line[column].data, Pen.from_pyte(line[column]))
                      for column in range(screen.columns)])
    return lines


def frames(events, terminal_size):
    """Return a generator of frames computed from output events

    A frame is produced for an event only if the event modified at least one
    line of the screen or moved the cursor. Events with no visible effect are
    consumed silently.

    :param events: Iterable of (time, data) output events
    :param terminal_size: (columns, rows) tuple
    """
    columns, rows = terminal_size
    if columns <= 0 or rows <= 0:
        raise InvalidTerminalSize('Invalid terminal size: {}x{}'.format(columns, rows))

    def generator():
        # No history: only the visible screen is rendered
        screen = pyte.Screen(columns, rows)
        stream = pyte.Stream(screen)
        screen.dirty.clear()
        prev_cursor = None

        for time, data in events:
            stream.feed(data)
            cursor = _cursor(screen)
            if screen.dirty or cursor != prev_cursor:
                screen.dirty.clear()
                prev_cursor = cursor
                yield Frame(time, _screen_lines(screen), cursor)
            else:
                logger.debug('Skipping frame with no visual changes: {!r}'.format(data))

    return generator()
